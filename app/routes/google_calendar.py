from datetime import datetime, timedelta
from urllib.parse import urlencode
from flask import Blueprint, current_app, request, redirect, jsonify
from flask_login import login_required, current_user
from app import db
from app.errors import BadRequestError, ServiceUnavailableError, ValidationError
from app.models.user import User
from app.schemas import FreeBusyIn, load
from app.services.availability_service import AvailabilityService
from app.services.google_calendar_service import GoogleCalendarError, google_calendar_service
from app.utils.time_utils import isoformat_utc, parse_rfc3339
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('google_calendar', __name__)


def _frontend_redirect(**params):
    """Send the browser back to the calendar sync page"""
    base = current_app.config['FRONTEND_URL'].rstrip('/')
    return redirect(f"{base}/CalendarSync?{urlencode(params)}")


def _query_datetime(name, default):
    value = request.args.get(name)
    if not value:
        return default
    try:
        return parse_rfc3339(value)
    except ValueError:
        raise ValidationError.for_field(name, f'{name} must be an ISO 8601 timestamp', value)


@bp.route('/auth-url')
@login_required
def auth_url():
    """Authorization URL for linking the caller's Google Calendar"""
    if not google_calendar_service.is_configured():
        raise ServiceUnavailableError('Google Calendar integration is not configured')

    url = google_calendar_service.get_authorization_url(current_user.id)
    logger.info(f"Generated Google auth URL for user {current_user.id}")
    return jsonify({'url': url})


@bp.route('/auth/google/callback')
def callback():
    """Handle Google OAuth callback"""
    authorization_code = request.args.get('code')
    state = request.args.get('state')

    if request.args.get('error'):
        logger.warning(f"Google OAuth error: {request.args.get('error')}")

    if not authorization_code:
        return _frontend_redirect(error='missing_code')

    user_id = google_calendar_service.read_state(state) if state else None
    if user_id is None:
        logger.warning("Google OAuth callback with missing or invalid state")
        return _frontend_redirect(error='invalid_state')

    user = db.session.get(User, user_id)
    if user is None:
        logger.warning(f"Google OAuth callback for unknown user {user_id}")
        return _frontend_redirect(error='user_not_found')

    try:
        google_calendar_service.handle_oauth_callback(authorization_code, user)
    except (GoogleCalendarError, ValueError) as e:
        db.session.rollback()
        logger.error(f"Google OAuth callback failed for user {user_id}: {str(e)}")
        return _frontend_redirect(error='oauth_failed')

    return _frontend_redirect(googleConnected='true')


@bp.route('/freebusy', methods=['POST'])
@login_required
def freebusy():
    """Busy intervals for the caller and each requested email"""
    data = load(FreeBusyIn, request.get_json(silent=True))
    if data.time_min > data.time_max:
        raise ValidationError.for_field('timeMax', 'timeMax must not be before timeMin',
                                        isoformat_utc(data.time_max))

    busy = AvailabilityService.get_busy_intervals(current_user, data.emails, data.time_min, data.time_max)
    return jsonify(AvailabilityService.to_freebusy_response(busy, data.time_min, data.time_max))


@bp.route('/events')
@login_required
def list_events():
    """The caller's Google Calendar events, the next 7 days by default"""
    if not current_user.is_google_linked:
        raise BadRequestError('Google Calendar not connected')

    now = datetime.utcnow()
    time_min = _query_datetime('timeMin', now)
    time_max = _query_datetime('timeMax', now + timedelta(days=7))
    if time_min > time_max:
        raise ValidationError.for_field('timeMax', 'timeMax must not be before timeMin',
                                        isoformat_utc(time_max))

    try:
        items = google_calendar_service.list_events(current_user, time_min, time_max)
    except GoogleCalendarError as e:
        logger.warning(f"Google events unavailable for user {current_user.id}: {e.message}")
        items = []

    events = []
    for item in items:
        start = item.get('start', {})
        end = item.get('end', {})
        events.append({
            'id': item.get('id'),
            'title': item.get('summary') or 'Untitled Event',
            'description': item.get('description') or '',
            'start': start.get('dateTime') or start.get('date'),
            'end': end.get('dateTime') or end.get('date'),
            'location': item.get('location') or '',
            'locationType': 'offline' if item.get('location') else 'online',
            'status': 'Scheduled',
            'source': 'google',
            'creator': current_user.id
        })

    return jsonify(events)
