from datetime import timedelta
from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from app import db
from app.models.study_session import StudySession
from app.schemas import MinutesIn, load
from app.utils.time_utils import js_weekday, user_today
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('progress', __name__)

DAY_LABELS = ['SUN', 'MON', 'TUE', 'WED', 'THU', 'FRI', 'SAT']


@bp.route('/goal', methods=['POST'])
@login_required
def set_daily_goal():
    data = load(MinutesIn, request.get_json(silent=True))

    current_user.daily_goal_minutes = data.clamped
    db.session.commit()

    logger.info(f"User {current_user.id} set daily goal to {current_user.daily_goal_minutes} minutes")
    return jsonify({'dailyGoalMinutes': current_user.daily_goal_minutes})


@bp.route('/session', methods=['POST'])
@login_required
def add_study_session():
    """Record study time against today's date in the user's time zone"""
    data = load(MinutesIn, request.get_json(silent=True))

    study_session = StudySession(
        user_id=current_user.id,
        date=user_today(current_user.timezone).isoformat(),
        minutes=data.clamped
    )
    db.session.add(study_session)
    db.session.commit()

    return jsonify({'message': 'Session saved'}), 201


@bp.route('/weekly')
@login_required
def get_weekly():
    """Minutes studied on each of the last 7 days, oldest first"""
    goal = current_user.daily_goal_minutes
    today = user_today(current_user.timezone)
    days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]

    totals = StudySession.minutes_by_date(current_user.id, [d.isoformat() for d in days])

    weekly = []
    for day in days:
        key = day.isoformat()
        weekly.append({
            'day': DAY_LABELS[js_weekday(day)],
            'date': key,
            'studiedMinutes': totals.get(key, 0),
            'goalMinutes': goal
        })

    return jsonify({'weekly': weekly, 'dailyGoalMinutes': goal})
