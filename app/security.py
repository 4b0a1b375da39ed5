"""
Bearer credentials and the request-scoped identity behind ``current_user``.

Tokens are HS256 JWTs signed with ``SECRET_KEY``. Flask-Login's request
loader resolves ``Authorization: Bearer <token>`` into a ``User`` on every
protected request; nothing is kept in the session.
"""
from datetime import datetime, timedelta, timezone
import logging

import jwt
from flask import current_app, g, jsonify
from app import db, login
from app.models.user import User

logger = logging.getLogger(__name__)

NO_TOKEN = 'Not authorized, no token'
TOKEN_FAILED = 'Not authorized, token failed'
USER_NOT_FOUND = 'Not authorized, user not found'


def create_access_token(user, expires_in=None):
    if expires_in is None:
        expires_in = timedelta(days=current_app.config['JWT_EXPIRES_DAYS'])
    payload = {
        'id': str(user.id),
        'username': user.username,
        'exp': datetime.now(tz=timezone.utc) + expires_in
    }
    return jwt.encode(payload, current_app.config['SECRET_KEY'],
                      algorithm=current_app.config['JWT_ALGORITHM'])


def decode_access_token(token):
    """Verify signature and expiry. Raises jwt.InvalidTokenError."""
    return jwt.decode(token, current_app.config['SECRET_KEY'],
                      algorithms=[current_app.config['JWT_ALGORITHM']])


def _bearer_token(request):
    auth = request.headers.get('Authorization', '')
    if not auth.startswith('Bearer '):
        return None
    return auth[len('Bearer '):].strip() or None


@login.request_loader
def load_user_from_request(request):
    token = _bearer_token(request)
    if not token:
        g.auth_failure = NO_TOKEN
        return None

    try:
        payload = decode_access_token(token)
        user_id = int(payload['id'])
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError) as e:
        logger.info(f"Rejected bearer token: {type(e).__name__}")
        g.auth_failure = TOKEN_FAILED
        return None

    user = db.session.get(User, user_id)
    if user is None:
        g.auth_failure = USER_NOT_FOUND
        return None
    return user


@login.unauthorized_handler
def unauthorized():
    return jsonify({'message': g.get('auth_failure', NO_TOKEN)}), 401


def init_app(app):
    # Identity comes from the bearer header only
    login.session_protection = None
