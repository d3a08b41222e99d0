"""
Application exceptions and the handlers that turn them into JSON responses.
"""
from flask import jsonify
from werkzeug.exceptions import HTTPException


class IGameError(Exception):
    """Base exception; ``status_code`` is the HTTP status it maps to."""
    status_code = 500

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class ValidationError(IGameError):
    """Missing or malformed request field."""
    status_code = 400


class AuthenticationError(IGameError):
    """Missing, invalid or expired credentials."""
    status_code = 401

    def __init__(self, message='Authentication required'):
        super().__init__(message)


class NotFoundError(IGameError):
    status_code = 404


class ConflictError(IGameError):
    """Duplicate identity (email, username or Google account)."""
    status_code = 409


class StorageError(IGameError):
    """Persistence failure. The message is logged, never sent to the client."""
    status_code = 500


def register_error_handlers(app):
    """Register exception handlers with Flask app"""

    @app.errorhandler(StorageError)
    def handle_storage_error(e):
        app.logger.error('Storage error: %s', e.message)
        return jsonify({'error': 'Internal server error'}), 500

    @app.errorhandler(IGameError)
    def handle_igame_error(e):
        if e.status_code == 401:
            app.logger.warning('Authentication failed: %s', e.message)
        return jsonify({'error': e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return jsonify({'error': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        app.logger.exception('Unhandled error: %s', e)
        return jsonify({'error': 'Internal server error'}), 500
