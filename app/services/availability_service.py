"""
Busy-interval lookup across local events and linked Google calendars.

For the caller and each requested email, busy intervals are gathered from
two sources: events stored here, and the free/busy answer of the person's
own Google calendar when they linked one. Participants are processed one
at a time in the order given.
"""

import logging
from sqlalchemy import and_, or_, select
from app.models.event import Event, EventParticipant
from app.models.user import User
from app.services.google_calendar_service import GoogleCalendarError, google_calendar_service
from app.utils.time_utils import isoformat_utc

logger = logging.getLogger(__name__)


class AvailabilityService:

    @staticmethod
    def normalize_emails(caller, emails):
        """Caller first, then each distinct email in the order given"""
        ordered = [caller.email.lower()]
        for email in emails:
            if not isinstance(email, str):
                continue
            email = email.strip().lower()
            if email and email not in ordered:
                ordered.append(email)
        return ordered

    @staticmethod
    def overlap_criteria(time_min, time_max):
        """
        Inclusive four-case overlap test: the event starts inside the window,
        ends inside it, or spans all of it.
        """
        return or_(
            and_(Event.start_time >= time_min, Event.start_time <= time_max),
            and_(Event.end_time >= time_min, Event.end_time <= time_max),
            and_(Event.start_time <= time_min, Event.end_time >= time_max)
        )

    @staticmethod
    def get_local_busy_times(user, time_min, time_max):
        """Events the user created, or joined without declining, that touch the window"""
        participating = select(EventParticipant.event_id).where(
            EventParticipant.status != 'Declined',
            or_(EventParticipant.user_id == user.id, EventParticipant.email == user.email)
        )

        events = Event.query.filter(
            or_(Event.creator_id == user.id, Event.id.in_(participating)),
            Event.status != 'Cancelled',
            Event.start_time.isnot(None),
            Event.end_time.isnot(None),
            AvailabilityService.overlap_criteria(time_min, time_max)
        ).order_by(Event.start_time).all()

        return [{'start': event.start_time, 'end': event.end_time, 'source': 'local'}
                for event in events]

    @staticmethod
    def get_participant_busy_times(email, time_min, time_max):
        """
        Busy intervals for one email. Returns (intervals, errors).

        Unknown emails have no known availability and yield []. A Google failure
        leaves the participant with [] and an error entry.
        """
        user = User.query.filter_by(email=email).first()
        if not user:
            logger.debug(f"No local account for {email}, availability unknown")
            return [], []

        intervals = AvailabilityService.get_local_busy_times(user, time_min, time_max)

        if user.is_google_linked:
            try:
                external = google_calendar_service.get_busy_times(user, time_min, time_max)
            except GoogleCalendarError as e:
                logger.warning(f"Free/busy unavailable for {email}: {e.message}")
                return [], [{'domain': 'google', 'reason': 'backendError'}]
            intervals.extend(dict(period, source='google') for period in external)

        intervals.sort(key=lambda interval: (interval['start'], interval['end']))
        return intervals, []

    @staticmethod
    def get_busy_intervals(caller, emails, time_min, time_max):
        """Map each email (caller included) to its busy intervals within [time_min, time_max]"""
        result = {}
        for email in AvailabilityService.normalize_emails(caller, emails):
            intervals, errors = AvailabilityService.get_participant_busy_times(email, time_min, time_max)
            result[email] = {'intervals': intervals, 'errors': errors}

        logger.info(f"Collected availability for {len(result)} calendars for user {caller.id}")
        return result

    @staticmethod
    def to_freebusy_response(busy, time_min, time_max):
        """Render the aggregate in the Calendar API's free/busy shape"""
        calendars = {}
        for email, entry in busy.items():
            calendar = {'busy': [
                {'start': isoformat_utc(i['start']), 'end': isoformat_utc(i['end']), 'source': i['source']}
                for i in entry['intervals']
            ]}
            if entry['errors']:
                calendar['errors'] = entry['errors']
            calendars[email] = calendar

        return {
            'kind': 'calendar#freeBusy',
            'timeMin': isoformat_utc(time_min),
            'timeMax': isoformat_utc(time_max),
            'calendars': calendars
        }
