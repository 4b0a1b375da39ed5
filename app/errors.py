"""
API error taxonomy and the JSON handlers that render it.

Routes and services raise these; nothing below the blueprint layer builds
HTTP responses itself.
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException
from app import db

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'message': self.message}


class ValidationError(ApiError):
    """Malformed or missing input, reported per field"""
    status_code = 400
    default_message = 'Validation failed'

    def __init__(self, errors):
        super().__init__(self.default_message)
        self.errors = errors

    @classmethod
    def for_field(cls, field, message, value=None):
        return cls([{'field': field, 'message': message, 'value': value}])

    def to_dict(self):
        return {'message': self.message, 'errors': self.errors}


class BadRequestError(ApiError):
    status_code = 400
    default_message = 'Bad request'


class AuthenticationError(ApiError):
    status_code = 401
    default_message = 'Not authorized'


class ForbiddenError(ApiError):
    status_code = 403
    default_message = 'User not authorized'


class NotFoundError(ApiError):
    status_code = 404
    default_message = 'Not found'


class UpstreamError(ApiError):
    """The external calendar provider failed"""
    status_code = 502
    default_message = 'Upstream provider error'


class ServiceUnavailableError(ApiError):
    status_code = 503
    default_message = 'Service unavailable'


def register_error_handlers(app):

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        if error.status_code >= 500:
            logger.error(f"{type(error).__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({'message': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception(f"Unhandled error: {str(error)}")
        db.session.rollback()
        return jsonify({'message': 'Internal server error'}), 500
