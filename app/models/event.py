from datetime import datetime
import json
from app import db

EVENT_STATUSES = ('Draft', 'Scheduled', 'Cancelled', 'Completed')
LOCATION_TYPES = ('online', 'offline')
TIME_RANGES = ('this-week', 'next-week', 'this-month', 'next-month')
PARTICIPANT_STATUSES = ('Pending', 'Accepted', 'Declined')

class Event(db.Model):
    __owner_column__ = 'creator_id'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    location_type = db.Column(db.String(20), default='online', nullable=False)
    location = db.Column(db.String(512))  # Zoom link or physical address
    duration_hours = db.Column(db.Integer, default=1, nullable=False)
    duration_minutes = db.Column(db.Integer, default=0, nullable=False)
    time_range = db.Column(db.String(20))
    start_time = db.Column(db.DateTime, index=True)  # naive UTC
    end_time = db.Column(db.DateTime, index=True)  # naive UTC
    status = db.Column(db.String(20), default='Draft', nullable=False, index=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, index=True, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Poll options and the slot finally chosen
    available_slots = db.Column(db.Text)  # JSON list of {date, time, votes}
    selected_slot = db.Column(db.Text)  # JSON {date, time}

    participants = db.relationship('EventParticipant', backref='event', lazy='select',
                                   cascade='all, delete-orphan',
                                   order_by='EventParticipant.id')

    def __repr__(self):
        return f'<Event {self.title} ({self.status})>'

    def set_available_slots(self, slots):
        self.available_slots = json.dumps(slots or [])

    def get_available_slots(self):
        try:
            return json.loads(self.available_slots) if self.available_slots else []
        except ValueError:
            return []

    def set_selected_slot(self, slot):
        self.selected_slot = json.dumps(slot) if slot else None

    def get_selected_slot(self):
        try:
            return json.loads(self.selected_slot) if self.selected_slot else None
        except ValueError:
            return None

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'locationType': self.location_type,
            'location': self.location,
            'duration': {'hours': self.duration_hours, 'minutes': self.duration_minutes},
            'timeRange': self.time_range,
            'startDateTime': self.start_time.isoformat() + 'Z' if self.start_time else None,
            'endDateTime': self.end_time.isoformat() + 'Z' if self.end_time else None,
            'participants': [p.to_dict() for p in self.participants],
            'availableSlots': self.get_available_slots(),
            'selectedSlot': self.get_selected_slot(),
            'status': self.status,
            'creator': self.creator_id,
            'createdAt': self.created_at.isoformat() + 'Z' if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() + 'Z' if self.updated_at else None
        }


class EventParticipant(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('event.id', ondelete='CASCADE'),
                         nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)  # Existing account, if any
    name = db.Column(db.String(120))
    email = db.Column(db.String(120), index=True)
    avatar = db.Column(db.String(512))
    status = db.Column(db.String(20), default='Pending', nullable=False)

    def __repr__(self):
        return f'<EventParticipant {self.email} -> {self.event_id} ({self.status})>'

    def to_dict(self):
        return {
            'user': self.user_id,
            'name': self.name,
            'email': self.email,
            'avatar': self.avatar,
            'status': self.status
        }
