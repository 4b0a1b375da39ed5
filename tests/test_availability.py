from datetime import datetime
from unittest.mock import patch

import pytest

from app import db
from app.models.event import Event, EventParticipant
from app.models.user import User
from app.services.availability_service import AvailabilityService
from app.services.google_calendar_service import GoogleCalendarError, google_calendar_service
from tests.conftest import auth_headers

WINDOW_MIN = datetime(2030, 3, 4, 9, 30)
WINDOW_MAX = datetime(2030, 3, 4, 11, 0)


def add_event(creator_id, start, end, title='Session', status='Scheduled', participants=()):
    event = Event(title=title, creator_id=creator_id, start_time=start, end_time=end, status=status)
    for user_id, email, participant_status in participants:
        event.participants.append(EventParticipant(user_id=user_id, email=email, status=participant_status))
    db.session.add(event)
    db.session.commit()
    return event


def link_google(user_id, refresh_token='refresh-token'):
    user = db.session.get(User, user_id)
    user.set_google_refresh_token(refresh_token)
    db.session.commit()
    return user


@pytest.mark.parametrize('start, end, included', [
    ((9, 0), (10, 0), True),    # ends inside the window
    ((10, 30), (11, 30), True), # starts inside the window
    ((8, 0), (12, 0), True),    # spans the whole window
    ((9, 45), (10, 15), True),  # fully inside
    ((11, 0), (12, 0), True),   # starts exactly at the window end
    ((7, 0), (9, 30), True),    # ends exactly at the window start
    ((11, 1), (12, 0), False),  # after the window
    ((7, 0), (9, 29), False),   # before the window
])
def test_four_case_overlap(app, alice, start, end, included):
    with app.app_context():
        user = db.session.get(User, alice['id'])
        add_event(user.id, datetime(2030, 3, 4, *start), datetime(2030, 3, 4, *end))

        intervals = AvailabilityService.get_local_busy_times(user, WINDOW_MIN, WINDOW_MAX)

    assert bool(intervals) is included


def test_event_after_narrow_window_is_excluded(app, alice):
    with app.app_context():
        user = db.session.get(User, alice['id'])
        add_event(user.id, datetime(2030, 3, 4, 10, 30), datetime(2030, 3, 4, 11, 30))

        intervals = AvailabilityService.get_local_busy_times(
            user, datetime(2030, 3, 4, 9, 30), datetime(2030, 3, 4, 10, 15)
        )

    assert intervals == []


def test_cancelled_and_untimed_events_are_ignored(app, alice):
    with app.app_context():
        user = db.session.get(User, alice['id'])
        add_event(user.id, datetime(2030, 3, 4, 10, 0), datetime(2030, 3, 4, 10, 30), status='Cancelled')
        add_event(user.id, None, None, status='Draft')

        assert AvailabilityService.get_local_busy_times(user, WINDOW_MIN, WINDOW_MAX) == []


def test_participation_counts_unless_declined(app, alice, bob, register):
    carol = register('carol')
    with app.app_context():
        add_event(alice['id'], datetime(2030, 3, 4, 10, 0), datetime(2030, 3, 4, 10, 30), participants=[
            (bob['id'], 'bob@example.com', 'Accepted'),
            (carol['id'], 'carol@example.com', 'Declined')
        ])
        bob_user = db.session.get(User, bob['id'])
        carol_user = db.session.get(User, carol['id'])

        bob_busy = AvailabilityService.get_local_busy_times(bob_user, WINDOW_MIN, WINDOW_MAX)
        carol_busy = AvailabilityService.get_local_busy_times(carol_user, WINDOW_MIN, WINDOW_MAX)

    assert [(i['start'], i['end'], i['source']) for i in bob_busy] == [
        (datetime(2030, 3, 4, 10, 0), datetime(2030, 3, 4, 10, 30), 'local')
    ]
    assert carol_busy == []


def test_caller_first_and_deduplicated(app, alice):
    with app.app_context():
        caller = db.session.get(User, alice['id'])
        emails = AvailabilityService.normalize_emails(
            caller, [' Bob@Example.com ', 'ALICE@example.com', '', 'bob@example.com', 'zed@example.com']
        )

    assert emails == ['alice@example.com', 'bob@example.com', 'zed@example.com']


def test_unknown_emails_yield_empty_lists(app, alice):
    with app.app_context():
        caller = db.session.get(User, alice['id'])
        busy = AvailabilityService.get_busy_intervals(caller, ['stranger@example.com'], WINDOW_MIN, WINDOW_MAX)

    assert busy['stranger@example.com'] == {'intervals': [], 'errors': []}
    assert list(busy) == ['alice@example.com', 'stranger@example.com']


def test_local_and_google_intervals_are_merged(app, alice):
    google_busy = [{'start': datetime(2030, 3, 4, 9, 30), 'end': datetime(2030, 3, 4, 10, 0)}]
    with app.app_context():
        caller = link_google(alice['id'])
        add_event(caller.id, datetime(2030, 3, 4, 10, 15), datetime(2030, 3, 4, 10, 45))

        with patch.object(google_calendar_service, 'get_busy_times', return_value=google_busy) as get_busy:
            busy = AvailabilityService.get_busy_intervals(caller, [], WINDOW_MIN, WINDOW_MAX)

        get_busy.assert_called_once_with(caller, WINDOW_MIN, WINDOW_MAX)

    intervals = busy['alice@example.com']['intervals']
    assert [i['source'] for i in intervals] == ['google', 'local']


def test_upstream_failure_is_isolated(app, alice, bob, register):
    register('carol')
    with app.app_context():
        caller = db.session.get(User, alice['id'])
        link_google(bob['id'])
        carol = db.session.execute(db.select(User).filter_by(email='carol@example.com')).scalar_one()
        link_google(carol.id)

        def fake_busy(user, time_min, time_max):
            if user.email == 'bob@example.com':
                raise GoogleCalendarError('Google free/busy query failed')
            return [{'start': datetime(2030, 3, 4, 10, 0), 'end': datetime(2030, 3, 4, 10, 30)}]

        with patch.object(google_calendar_service, 'get_busy_times', side_effect=fake_busy):
            busy = AvailabilityService.get_busy_intervals(
                caller, ['bob@example.com', 'carol@example.com'], WINDOW_MIN, WINDOW_MAX
            )

    assert busy['bob@example.com'] == {'intervals': [], 'errors': [{'domain': 'google', 'reason': 'backendError'}]}
    assert len(busy['carol@example.com']['intervals']) == 1
    assert busy['carol@example.com']['errors'] == []


def test_freebusy_endpoint(app, client, alice, bob):
    with app.app_context():
        add_event(bob['id'], datetime(2030, 3, 4, 10, 0), datetime(2030, 3, 4, 10, 30))

    response = client.post('/api/google-calendar/freebusy', headers=auth_headers(alice['token']), json={
        'emails': ['bob@example.com', 'nobody@example.com'],
        'timeMin': '2030-03-04T09:30:00Z',
        'timeMax': '2030-03-04T11:00:00Z'
    })
    assert response.status_code == 200
    data = response.get_json()
    assert data['timeMin'] == '2030-03-04T09:30:00Z'
    assert list(data['calendars']) == ['alice@example.com', 'bob@example.com', 'nobody@example.com']
    assert data['calendars']['bob@example.com'] == {'busy': [
        {'start': '2030-03-04T10:00:00Z', 'end': '2030-03-04T10:30:00Z', 'source': 'local'}
    ]}
    assert data['calendars']['nobody@example.com'] == {'busy': []}


def test_freebusy_rejects_inverted_window(client, alice):
    response = client.post('/api/google-calendar/freebusy', headers=auth_headers(alice['token']), json={
        'emails': [], 'timeMin': '2030-03-04T11:00:00Z', 'timeMax': '2030-03-04T09:30:00Z'
    })
    assert response.status_code == 400
    assert response.get_json()['errors'][0]['field'] == 'timeMax'


def test_freebusy_requires_window(client, alice):
    response = client.post('/api/google-calendar/freebusy', headers=auth_headers(alice['token']),
                           json={'emails': ['bob@example.com']})
    assert response.status_code == 400
    fields = [error['field'] for error in response.get_json()['errors']]
    assert fields == ['timeMin', 'timeMax']
