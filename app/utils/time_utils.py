"""
Time helpers. Everything is stored as naive UTC; user-facing day boundaries
are computed in the user's own time zone.
"""
from datetime import datetime, timedelta, timezone
import pytz

def to_utc_naive(value):
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already"""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value

def isoformat_utc(value):
    """Render a naive UTC datetime the way Google does: 2025-01-01T09:00:00Z"""
    if value is None:
        return None
    return to_utc_naive(value).isoformat() + 'Z'

def parse_rfc3339(value):
    """Parse an RFC 3339 timestamp from the Calendar API into naive UTC"""
    return to_utc_naive(datetime.fromisoformat(value.replace('Z', '+00:00')))

def get_user_timezone(tz_name):
    try:
        return pytz.timezone(tz_name or 'UTC')
    except pytz.UnknownTimeZoneError:
        return pytz.utc

def user_today(tz_name, now=None):
    """Today's date in the user's time zone"""
    now = now or datetime.utcnow()
    return pytz.utc.localize(now).astimezone(get_user_timezone(tz_name)).date()

def local_day_bounds(tz_name, day):
    """
    Return the [start, end) of a local calendar day as naive UTC datetimes.
    """
    tz = get_user_timezone(tz_name)
    start_local = tz.localize(datetime.combine(day, datetime.min.time()))
    end_local = tz.localize(datetime.combine(day + timedelta(days=1), datetime.min.time()))
    return to_utc_naive(start_local), to_utc_naive(end_local)

def to_user_local(value, tz_name):
    """Naive UTC -> aware datetime in the user's zone"""
    return pytz.utc.localize(value).astimezone(get_user_timezone(tz_name))

def js_weekday(value):
    """Weekday index with Sunday as 0, as the dashboard charts expect"""
    return (value.weekday() + 1) % 7
