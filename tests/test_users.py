from app.models.user import User
from tests.conftest import auth_headers


def test_register_returns_token(client):
    response = client.post('/api/users/register', json={
        'username': 'carol',
        'email': 'Carol@Example.com',
        'password': 'secret123'
    })
    assert response.status_code == 201
    data = response.get_json()
    assert data['username'] == 'carol'
    assert data['email'] == 'carol@example.com'
    assert data['token']


def test_duplicate_email_is_rejected(app, client, alice):
    response = client.post('/api/users/register', json={
        'username': 'alice2',
        'email': 'alice@example.com',
        'password': 'secret123'
    })
    assert response.status_code == 400
    assert response.get_json()['message'] == 'User already exists'

    with app.app_context():
        assert User.query.filter_by(email='alice@example.com').count() == 1


def test_duplicate_username_is_rejected(client, alice):
    response = client.post('/api/users/register', json={
        'username': 'alice',
        'email': 'other@example.com',
        'password': 'secret123'
    })
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Username already taken'


def test_register_validation_errors(client):
    response = client.post('/api/users/register', json={
        'username': 'a',
        'email': 'not-an-email',
        'password': '123'
    })
    assert response.status_code == 400
    data = response.get_json()
    assert data['message'] == 'Validation failed'
    fields = {error['field']: error['message'] for error in data['errors']}
    assert fields == {
        'username': 'Username must be at least 2 characters long',
        'email': 'Please provide a valid email address',
        'password': 'Password must be at least 6 characters long'
    }


def test_register_without_body(client):
    response = client.post('/api/users/register', data='nope', content_type='text/plain')
    assert response.status_code == 400
    assert response.get_json()['errors'][0]['field'] == 'body'


def test_login(client, alice):
    response = client.post('/api/users/login', json={'email': 'alice@example.com', 'password': 'secret123'})
    assert response.status_code == 200
    data = response.get_json()
    assert data['id'] == alice['id']
    assert data['token']


def test_login_with_wrong_password(client, alice):
    response = client.post('/api/users/login', json={'email': 'alice@example.com', 'password': 'wrong-pass'})
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Invalid credentials'


def test_login_with_unknown_email(client):
    response = client.post('/api/users/login', json={'email': 'nobody@example.com', 'password': 'secret123'})
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Invalid credentials'


def test_me(client, alice):
    data = client.get('/api/users/me', headers=auth_headers(alice['token'])).get_json()
    assert data['username'] == 'alice'
    assert data['dailyGoalMinutes'] == 60
    assert data['googleConnected'] is False
    assert 'password_hash' not in data


def test_contacts(client, alice):
    headers = auth_headers(alice['token'])
    assert client.get('/api/users/contacts', headers=headers).get_json() == []

    response = client.post('/api/users/contacts', headers=headers,
                           json={'name': 'Dave', 'email': 'dave@example.com', 'avatar': 'D'})
    assert response.status_code == 201
    assert response.get_json() == [{'id': 1, 'name': 'Dave', 'email': 'dave@example.com', 'avatar': 'D'}]

    response = client.post('/api/users/contacts', headers=headers,
                           json={'name': 'Dave again', 'email': 'DAVE@example.com'})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Contact already exists'


def test_contacts_are_per_user(client, alice, bob):
    client.post('/api/users/contacts', headers=auth_headers(alice['token']),
                json={'name': 'Dave', 'email': 'dave@example.com'})
    assert client.get('/api/users/contacts', headers=auth_headers(bob['token'])).get_json() == []


def test_contact_requires_name(client, alice):
    response = client.post('/api/users/contacts', headers=auth_headers(alice['token']),
                           json={'email': 'dave@example.com'})
    assert response.status_code == 400
    assert response.get_json()['errors'][0] == {
        'field': 'name', 'message': 'Contact name is required', 'value': None
    }


def test_unknown_route_is_json(client):
    response = client.get('/api/nothing-here')
    assert response.status_code == 404
    assert 'message' in response.get_json()


def test_register_rejects_overlong_username(app, client):
    response = client.post('/api/users/register', json={
        'username': 'u' * 65, 'email': 'long@example.com', 'password': 'secret123'
    })
    assert response.status_code == 400
    error = response.get_json()['errors'][0]
    assert error['field'] == 'username'
    assert error['message'] == 'Username must be at most 64 characters long'

    with app.app_context():
        assert User.query.count() == 0


def test_register_with_timezone(client):
    response = client.post('/api/users/register', json={
        'username': 'frank', 'email': 'frank@example.com', 'password': 'secret123',
        'timezone': 'Europe/Berlin'
    })
    assert response.status_code == 201

    me = client.get('/api/users/me', headers=auth_headers(response.get_json()['token'])).get_json()
    assert me['timezone'] == 'Europe/Berlin'
    assert me['createdAt'].endswith('Z')


def test_register_rejects_unknown_timezone(client):
    response = client.post('/api/users/register', json={
        'username': 'frank', 'email': 'frank@example.com', 'password': 'secret123',
        'timezone': 'Mars/Olympus_Mons'
    })
    assert response.status_code == 400
    assert response.get_json()['errors'][0]['field'] == 'timezone'


def test_update_timezone(client, alice):
    headers = auth_headers(alice['token'])
    response = client.put('/api/users/me', headers=headers, json={'timezone': 'America/New_York'})
    assert response.status_code == 200
    assert response.get_json()['timezone'] == 'America/New_York'

    response = client.put('/api/users/me', headers=headers, json={'timezone': ['UTC']})
    assert response.status_code == 400
    assert client.get('/api/users/me', headers=headers).get_json()['timezone'] == 'America/New_York'


def test_contact_field_lengths(client, alice):
    headers = auth_headers(alice['token'])

    response = client.post('/api/users/contacts', headers=headers,
                           json={'name': 'n' * 121, 'email': 'dave@example.com'})
    assert response.status_code == 400
    assert response.get_json()['errors'][0]['field'] == 'name'

    response = client.post('/api/users/contacts', headers=headers,
                           json={'name': 'Dave', 'email': 'dave@example.com', 'avatar': 'a' * 513})
    assert response.status_code == 400
    assert response.get_json()['errors'][0]['field'] == 'avatar'

    assert client.get('/api/users/contacts', headers=headers).get_json() == []
