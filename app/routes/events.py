from datetime import datetime
import json
from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from sqlalchemy import or_
from app import db
from app.errors import ValidationError
from app.models.event import Event, EventParticipant
from app.models.user import User
from app.ownership import delete_owned, update_owned
from app.schemas import EventCreate, EventUpdate, load
from app.utils.time_utils import isoformat_utc
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('events', __name__)

WINDOW_ERROR = 'Event end must not be before its start'


def _window_error(end):
    return ValidationError.for_field('endDateTime', WINDOW_ERROR, isoformat_utc(end))


def _check_window(start, end):
    if start is not None and end is not None and start > end:
        raise _window_error(end)


def _build_participants(participants):
    """Participant rows, linked to local accounts where the email is known"""
    emails = [p.email for p in participants]
    accounts = {u.email: u.id for u in User.query.filter(User.email.in_(emails)).all()} if emails else {}
    return [
        EventParticipant(
            user_id=accounts.get(p.email),
            name=p.name,
            email=p.email,
            avatar=p.avatar,
            status=p.status
        )
        for p in participants
    ]


def _column_values(data):
    """Map the provided payload fields onto Event columns"""
    fields = data.model_dump(exclude_unset=True)
    values = {}
    for key in ('title', 'description', 'location_type', 'location', 'time_range', 'status'):
        if key in fields:
            values[key] = fields[key]
    if 'start_date_time' in fields:
        values['start_time'] = fields['start_date_time']
    if 'end_date_time' in fields:
        values['end_time'] = fields['end_date_time']
    if fields.get('duration') is not None:
        values['duration_hours'] = fields['duration']['hours']
        values['duration_minutes'] = fields['duration']['minutes']
    if 'available_slots' in fields:
        values['available_slots'] = json.dumps(fields['available_slots'] or [])
    if 'selected_slot' in fields:
        values['selected_slot'] = json.dumps(fields['selected_slot']) if fields['selected_slot'] else None
    return values


@bp.route('')
@login_required
def get_events():
    """Events created by the logged-in user"""
    events = Event.query.filter_by(creator_id=current_user.id).order_by(
        Event.start_time.is_(None), Event.start_time, Event.created_at
    ).all()
    return jsonify([event.to_dict() for event in events])


@bp.route('', methods=['POST'])
@login_required
def create_event():
    data = load(EventCreate, request.get_json(silent=True))
    _check_window(data.start_date_time, data.end_date_time)

    event = Event(
        title=data.title,
        description=data.description,
        location_type=data.location_type,
        location=data.location,
        duration_hours=data.duration.hours,
        duration_minutes=data.duration.minutes,
        time_range=data.time_range,
        start_time=data.start_date_time,
        end_time=data.end_date_time,
        status=data.status,
        creator_id=current_user.id
    )
    event.set_available_slots([slot.model_dump() for slot in data.available_slots])
    event.set_selected_slot(data.selected_slot.model_dump() if data.selected_slot else None)
    event.participants = _build_participants(data.participants)

    db.session.add(event)
    db.session.commit()

    logger.info(f"Created event {event.id} for user {current_user.id}")
    return jsonify(event.to_dict()), 201


@bp.route('/<int:event_id>', methods=['PUT'])
@login_required
def update_event(event_id):
    data = load(EventUpdate, request.get_json(silent=True))
    values = _column_values(data)

    # The stored side of a one-sided window change is checked in the same statement
    start, end = values.get('start_time'), values.get('end_time')
    criteria = []
    if start is not None and end is not None:
        _check_window(start, end)
    elif start is not None and 'end_time' not in values:
        criteria.append(or_(Event.end_time.is_(None), Event.end_time >= start))
    elif end is not None and 'start_time' not in values:
        criteria.append(or_(Event.start_time.is_(None), Event.start_time <= end))

    values['updated_at'] = datetime.utcnow()
    matched, event = update_owned(Event, event_id, current_user, values, 'Event', criteria)
    if not matched:
        db.session.rollback()
        raise _window_error(end if end is not None else event.end_time)

    if data.participants is not None:
        EventParticipant.query.filter_by(event_id=event_id).delete(synchronize_session=False)
        for participant in _build_participants(data.participants):
            participant.event_id = event_id
            db.session.add(participant)

    db.session.commit()
    db.session.refresh(event)
    return jsonify(event.to_dict())


@bp.route('/<int:event_id>', methods=['DELETE'])
@login_required
def delete_event(event_id):
    delete_owned(Event, event_id, current_user, 'Event')
    EventParticipant.query.filter_by(event_id=event_id).delete(synchronize_session=False)
    db.session.commit()

    logger.info(f"Deleted event {event_id} for user {current_user.id}")
    return jsonify({'id': event_id, 'message': 'Event removed'})
