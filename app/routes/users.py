from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from app import db
from app.errors import AuthenticationError, BadRequestError
from app.models.user import User, Contact
from app.schemas import ContactIn, LoginIn, ProfileUpdate, RegisterIn, load
from app.security import create_access_token
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('users', __name__)


def _session_payload(user):
    return {
        'id': user.id,
        'username': user.username,
        'email': user.email,
        'token': create_access_token(user)
    }


@bp.route('/register', methods=['POST'])
def register():
    data = load(RegisterIn, request.get_json(silent=True))

    # Check if user already exists
    if User.query.filter_by(email=data.email).first():
        raise BadRequestError('User already exists')

    if User.query.filter_by(username=data.username).first():
        raise BadRequestError('Username already taken')

    user = User(username=data.username, email=data.email, timezone=data.timezone)
    user.set_password(data.password)

    db.session.add(user)
    db.session.commit()

    logger.info(f"Registered user {user.id}")
    return jsonify(_session_payload(user)), 201


@bp.route('/login', methods=['POST'])
def login():
    data = load(LoginIn, request.get_json(silent=True))

    user = User.query.filter_by(email=data.email).first()
    if not user or not user.check_password(data.password):
        raise AuthenticationError('Invalid credentials')

    return jsonify(_session_payload(user))


@bp.route('/me')
@login_required
def me():
    return jsonify(current_user.to_dict())


@bp.route('/me', methods=['PUT'])
@login_required
def update_me():
    """Update profile settings of the logged-in user"""
    data = load(ProfileUpdate, request.get_json(silent=True))

    if data.timezone is not None:
        current_user.timezone = data.timezone
    db.session.commit()

    logger.info(f"Updated profile of user {current_user.id}")
    return jsonify(current_user.to_dict())


@bp.route('/contacts')
@login_required
def get_contacts():
    contacts = current_user.contacts.order_by(Contact.id).all()
    return jsonify([contact.to_dict() for contact in contacts])


@bp.route('/contacts', methods=['POST'])
@login_required
def add_contact():
    data = load(ContactIn, request.get_json(silent=True))

    # Check if contact email already exists in the list
    if current_user.contacts.filter_by(email=data.email).first():
        raise BadRequestError('Contact already exists')

    contact = Contact(user_id=current_user.id, name=data.name, email=data.email, avatar=data.avatar)
    db.session.add(contact)
    db.session.commit()

    contacts = current_user.contacts.order_by(Contact.id).all()
    return jsonify([c.to_dict() for c in contacts]), 201
