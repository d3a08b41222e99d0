"""Session tokens: issuing, cookie delivery and per-route verification.

Tokens are Flask-JWT-Extended access tokens whose ``sub`` is the user id.
They are read from the ``authToken`` cookie first, then from an
``Authorization: Bearer`` header (see JWT_TOKEN_LOCATION in create_app).
"""
from functools import wraps
from flask import current_app, jsonify
from flask_jwt_extended import (
    create_access_token, current_user, set_access_cookies, unset_jwt_cookies, verify_jwt_in_request
)

from igame import get_store, jwt
from igame.errors import AuthenticationError


@jwt.user_identity_loader
def _user_identity(user):
    # Flask-JWT-Extended requires a string subject
    return str(user.id)


@jwt.user_lookup_loader
def _load_user(_jwt_header, jwt_data):
    try:
        user_id = int(jwt_data['sub'])
    except (KeyError, TypeError, ValueError):
        return None
    return get_store().get_user(user_id)


@jwt.user_lookup_error_loader
def _user_not_found(_jwt_header, _jwt_data):
    return jsonify({'error': 'User not found'}), 404


@jwt.unauthorized_loader
def _missing_token(reason):
    current_app.logger.debug('No session token: %s', reason)
    return jsonify({'error': 'No token provided'}), 401


@jwt.invalid_token_loader
def _invalid_token(reason):
    current_app.logger.warning('Rejected session token: %s', reason)
    return jsonify({'error': 'Invalid token'}), 401


@jwt.expired_token_loader
def _expired_token(_jwt_header, _jwt_data):
    return jsonify({'error': 'Token has expired'}), 401


def issue_session_token(user, expires_delta=None):
    """Signed token for ``user``; lifetime defaults to JWT_ACCESS_TOKEN_EXPIRES."""
    kwargs = {'additional_claims': {'email': user.email}}
    if expires_delta is not None:
        kwargs['expires_delta'] = expires_delta
    return create_access_token(identity=user, **kwargs)


def attach_session_cookie(response, token):
    """Set the httpOnly authToken cookie (SameSite/Secure come from config)."""
    lifetime = current_app.config['JWT_ACCESS_TOKEN_EXPIRES']
    set_access_cookies(response, token, max_age=int(lifetime.total_seconds()))
    return response


def clear_session_cookies(response):
    unset_jwt_cookies(response)
    response.delete_cookie(current_app.config.get('SESSION_COOKIE_NAME', 'session'))
    return response


def session_required(fn):
    """Verify the session token and expose the user as ``current_user``.

    Missing, invalid and expired tokens are answered by the loaders above;
    a user that is no longer active is refused with 401.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        if current_user.status != 'active':
            raise AuthenticationError('Account is not active')
        return fn(*args, **kwargs)
    return wrapper
