import pytest
from cryptography.fernet import Fernet

from app import create_app, db
from config import Config


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SECRET_KEY = 'studysync-test-secret-key-0123456789abcdef'
    GOOGLE_CLIENT_ID = 'test-client-id.apps.googleusercontent.com'
    GOOGLE_CLIENT_SECRET = 'test-client-secret'
    GOOGLE_REDIRECT_URI = 'http://localhost:3000/api/google-calendar/auth/google/callback'
    GOOGLE_TOKEN_ENCRYPTION_KEY = Fernet.generate_key().decode()
    FRONTEND_URL = 'http://localhost:5173'
    LOG_LEVEL = 'DEBUG'


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def auth_headers(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def register(client):
    """Register an account and return the response body (id, username, email, token)"""
    def _register(username='alice', email=None, password='secret123'):
        response = client.post('/api/users/register', json={
            'username': username,
            'email': email or f'{username}@example.com',
            'password': password
        })
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _register


@pytest.fixture
def alice(register):
    return register('alice')


@pytest.fixture
def bob(register):
    return register('bob')
