"""
Request payload rules. Each schema validates one JSON body; ``load`` turns
pydantic's failures into the field-level list the API returns.
"""
import math
from datetime import datetime
from typing import Optional

import pytz
from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from app.errors import ValidationError
from app.models.event import EVENT_STATUSES, LOCATION_TYPES, PARTICIPANT_STATUSES, TIME_RANGES
from app.models.task import TASK_PRIORITIES, TASK_STATUSES
from app.utils.time_utils import to_utc_naive

# Column sizes of the backing tables
NAME_MAX_LENGTH = 120
EMAIL_MAX_LENGTH = 120
URL_MAX_LENGTH = 512
USERNAME_MAX_LENGTH = 64

MAX_MINUTES = 24 * 60
MAX_DURATION_HOURS = 24 * 31
MAX_VOTES = 2 ** 31 - 1


def load(schema_cls, data):
    """Validate ``data`` against ``schema_cls`` or raise a field-level ValidationError"""
    if not isinstance(data, dict):
        raise ValidationError.for_field('body', 'Request body must be a JSON object')
    try:
        return schema_cls.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError([_field_error(err) for err in e.errors()])


def _field_error(err):
    field = '.'.join(str(part) for part in err['loc'])
    if err['type'] == 'value_error':
        message = str(err['ctx']['error'])
    else:
        message = err['msg']
    value = None if err['type'] == 'missing' else err.get('input')
    return {'field': field, 'message': message, 'value': value}


def _required_text(value, message, max_length=None, length_message=None):
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValueError(message)
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValueError(length_message or message)
    return value


def _one_of(value, allowed, label):
    if value not in allowed:
        raise ValueError(f"{label} must be one of: {', '.join(allowed)}")
    return value


def _normalize_email(value):
    if not isinstance(value, str):
        raise ValueError('Please provide a valid email address')
    try:
        result = validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        raise ValueError('Please provide a valid email address')
    if len(result.normalized) > EMAIL_MAX_LENGTH:
        raise ValueError(f'Email must be at most {EMAIL_MAX_LENGTH} characters long')
    return result.normalized.lower()


def _valid_timezone(value):
    if not isinstance(value, str) or value not in pytz.all_timezones_set:
        raise ValueError('Timezone must be a valid IANA time zone name')
    return value


class ApiSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')


# Users

class RegisterIn(ApiSchema):
    username: str = Field(default=None, validate_default=True)
    email: str = Field(default=None, validate_default=True)
    password: str = Field(default=None, validate_default=True)
    timezone: str = 'UTC'

    @field_validator('username', mode='before')
    @classmethod
    def _username(cls, value):
        value = _required_text(value, 'Username is required', max_length=USERNAME_MAX_LENGTH,
                               length_message=f'Username must be at most {USERNAME_MAX_LENGTH} characters long')
        if len(value) < 2:
            raise ValueError('Username must be at least 2 characters long')
        return value

    @field_validator('email', mode='before')
    @classmethod
    def _email(cls, value):
        return _normalize_email(value)

    @field_validator('password', mode='before')
    @classmethod
    def _password(cls, value):
        if not isinstance(value, str) or len(value) < 6:
            raise ValueError('Password must be at least 6 characters long')
        return value

    @field_validator('timezone', mode='before')
    @classmethod
    def _timezone(cls, value):
        return _valid_timezone(value)


class LoginIn(ApiSchema):
    email: str = Field(default=None, validate_default=True)
    password: str = Field(default=None, validate_default=True)

    @field_validator('email', mode='before')
    @classmethod
    def _email(cls, value):
        return _normalize_email(value)

    @field_validator('password', mode='before')
    @classmethod
    def _password(cls, value):
        if not isinstance(value, str) or not value:
            raise ValueError('Password is required')
        return value


class ProfileUpdate(ApiSchema):
    timezone: Optional[str] = None

    @field_validator('timezone', mode='before')
    @classmethod
    def _timezone(cls, value):
        return _valid_timezone(value)


class ContactIn(ApiSchema):
    name: str = Field(default=None, validate_default=True)
    email: str = Field(default=None, validate_default=True)
    avatar: Optional[str] = Field(default=None, max_length=URL_MAX_LENGTH)

    @field_validator('name', mode='before')
    @classmethod
    def _name(cls, value):
        return _required_text(value, 'Contact name is required', max_length=NAME_MAX_LENGTH,
                              length_message=f'Contact name must be at most {NAME_MAX_LENGTH} characters long')

    @field_validator('email', mode='before')
    @classmethod
    def _email(cls, value):
        return _normalize_email(value)


# Tasks

class TaskCreate(ApiSchema):
    title: str = Field(default=None, validate_default=True)
    description: Optional[str] = None
    priority: str = 'Low'
    status: str = 'Pending'
    due_date: Optional[datetime] = None

    @field_validator('title', mode='before')
    @classmethod
    def _title(cls, value):
        return _required_text(value, 'Task title is required', max_length=200,
                              length_message='Task title must be between 1 and 200 characters')

    @field_validator('priority', mode='before')
    @classmethod
    def _priority(cls, value):
        return _one_of(value, TASK_PRIORITIES, 'Priority')

    @field_validator('status', mode='before')
    @classmethod
    def _status(cls, value):
        return _one_of(value, TASK_STATUSES, 'Status')

    @field_validator('due_date')
    @classmethod
    def _due_date(cls, value):
        return to_utc_naive(value)


class TaskUpdate(TaskCreate):
    title: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None

    @field_validator('title', mode='before')
    @classmethod
    def _title(cls, value):
        return _required_text(value, 'Task title cannot be empty', max_length=200,
                              length_message='Task title must be between 1 and 200 characters')


# Events

class DurationIn(ApiSchema):
    hours: int = Field(default=1, ge=0, le=MAX_DURATION_HOURS)
    minutes: int = Field(default=0, ge=0, le=59)


class ParticipantIn(ApiSchema):
    name: Optional[str] = Field(default=None, max_length=NAME_MAX_LENGTH)
    email: str
    avatar: Optional[str] = Field(default=None, max_length=URL_MAX_LENGTH)
    status: str = 'Pending'

    @field_validator('email', mode='before')
    @classmethod
    def _email(cls, value):
        return _normalize_email(value)

    @field_validator('status', mode='before')
    @classmethod
    def _status(cls, value):
        return _one_of(value, PARTICIPANT_STATUSES, 'Participant status')


class SlotIn(ApiSchema):
    date: str
    time: str
    votes: int = Field(default=0, ge=0, le=MAX_VOTES)


class SelectedSlotIn(ApiSchema):
    date: str
    time: str


class EventCreate(ApiSchema):
    title: str = Field(default=None, validate_default=True)
    description: Optional[str] = None
    location_type: str = 'online'
    location: Optional[str] = Field(default=None, max_length=URL_MAX_LENGTH)
    duration: DurationIn = Field(default_factory=DurationIn)
    time_range: Optional[str] = None
    start_date_time: Optional[datetime] = None
    end_date_time: Optional[datetime] = None
    participants: list[ParticipantIn] = Field(default_factory=list)
    available_slots: list[SlotIn] = Field(default_factory=list)
    selected_slot: Optional[SelectedSlotIn] = None
    status: str = 'Draft'

    @field_validator('title', mode='before')
    @classmethod
    def _title(cls, value):
        return _required_text(value, 'Event title is required', max_length=200,
                              length_message='Event title must be between 1 and 200 characters')

    @field_validator('location_type', mode='before')
    @classmethod
    def _location_type(cls, value):
        return _one_of(value, LOCATION_TYPES, 'Location type')

    @field_validator('time_range', mode='before')
    @classmethod
    def _time_range(cls, value):
        if value is None:
            return value
        return _one_of(value, TIME_RANGES, 'Time range')

    @field_validator('status', mode='before')
    @classmethod
    def _status(cls, value):
        return _one_of(value, EVENT_STATUSES, 'Status')

    @field_validator('start_date_time', 'end_date_time')
    @classmethod
    def _utc(cls, value):
        return to_utc_naive(value)


class EventUpdate(EventCreate):
    title: Optional[str] = None
    location_type: Optional[str] = None
    duration: Optional[DurationIn] = None
    participants: Optional[list[ParticipantIn]] = None
    available_slots: Optional[list[SlotIn]] = None
    status: Optional[str] = None

    @field_validator('title', mode='before')
    @classmethod
    def _title(cls, value):
        return _required_text(value, 'Event title cannot be empty', max_length=200,
                              length_message='Event title must be between 1 and 200 characters')


# Progress

class MinutesIn(ApiSchema):
    minutes: float = Field(default=None, validate_default=True)

    @field_validator('minutes', mode='before')
    @classmethod
    def _minutes(cls, value):
        if isinstance(value, bool):
            raise ValueError('Minutes must be a number')
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ValueError('Minutes must be a number')
        if not math.isfinite(value):
            raise ValueError('Minutes must be a number')
        if value > MAX_MINUTES:
            raise ValueError(f'Minutes must be at most {MAX_MINUTES}')
        return value

    @property
    def clamped(self):
        """Whole minutes, at least one"""
        return max(1, math.floor(self.minutes + 0.5))


# Google Calendar

class FreeBusyIn(ApiSchema):
    emails: list[str] = Field(default_factory=list)
    time_min: datetime
    time_max: datetime

    @field_validator('emails', mode='before')
    @classmethod
    def _emails(cls, value):
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError('Emails must be a list of email addresses')
        return value

    @field_validator('time_min', 'time_max')
    @classmethod
    def _utc(cls, value):
        return to_utc_naive(value)
