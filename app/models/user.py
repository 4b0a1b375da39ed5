from datetime import datetime
import base64
import logging
import os
from cryptography.fernet import Fernet, InvalidToken
from flask import current_app
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from app import db
from app.utils.time_utils import isoformat_utc

logger = logging.getLogger(__name__)

class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), index=True, unique=True, nullable=False)
    email = db.Column(db.String(120), index=True, unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, index=True, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Daily study goal in minutes
    daily_goal_minutes = db.Column(db.Integer, default=60, nullable=False)
    timezone = db.Column(db.String(50), default='UTC')

    # Google Calendar integration
    google_access_token = db.Column(db.Text)  # Temporary, refreshed automatically
    google_refresh_token_encrypted = db.Column(db.Text)
    google_token_expiry = db.Column(db.DateTime)  # naive UTC

    # Relationships
    contacts = db.relationship('Contact', backref='owner', lazy='dynamic',
                               cascade='all, delete-orphan')
    tasks = db.relationship('Task', backref='owner', lazy='dynamic')
    created_events = db.relationship('Event', backref='creator', lazy='dynamic')
    study_sessions = db.relationship('StudySession', backref='user', lazy='dynamic')

    def __repr__(self):
        return '<User {}>'.format(self.email)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @staticmethod
    def _get_encryption_key():
        """Get or create encryption key for tokens"""
        key = current_app.config.get('GOOGLE_TOKEN_ENCRYPTION_KEY') or \
            os.environ.get('GOOGLE_TOKEN_ENCRYPTION_KEY')
        if not key:
            # Generate a new key if none exists (for development)
            logger.warning("GOOGLE_TOKEN_ENCRYPTION_KEY not set, generating a process-local key")
            key = Fernet.generate_key().decode()
            os.environ['GOOGLE_TOKEN_ENCRYPTION_KEY'] = key
        return key.encode() if isinstance(key, str) else key

    def set_google_refresh_token(self, refresh_token):
        """Encrypt and store refresh token"""
        if refresh_token:
            fernet = Fernet(self._get_encryption_key())
            encrypted_token = fernet.encrypt(refresh_token.encode())
            self.google_refresh_token_encrypted = base64.b64encode(encrypted_token).decode()

    def get_google_refresh_token(self):
        """Decrypt and return refresh token"""
        if self.google_refresh_token_encrypted:
            try:
                fernet = Fernet(self._get_encryption_key())
                encrypted_token = base64.b64decode(self.google_refresh_token_encrypted.encode())
                return fernet.decrypt(encrypted_token).decode()
            except (InvalidToken, ValueError) as e:
                logger.error(f"Error decrypting Google refresh token for user {self.id}: {str(e)}")
                return None
        return None

    @property
    def is_google_linked(self):
        return bool(self.google_refresh_token_encrypted)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'dailyGoalMinutes': self.daily_goal_minutes,
            'timezone': self.timezone,
            'googleConnected': self.is_google_linked,
            'createdAt': isoformat_utc(self.created_at)
        }


class Contact(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), nullable=False)
    avatar = db.Column(db.String(512))  # First letter of the name or URL to an image

    __table_args__ = (db.UniqueConstraint('user_id', 'email', name='unique_user_contact'),)

    def __repr__(self):
        return f'<Contact {self.email} of user {self.user_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'avatar': self.avatar
        }
