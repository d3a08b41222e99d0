from flask import Blueprint, jsonify, request, current_app

from igame import get_store, limiter
from igame.services import accounts
from igame.utils.tokens import attach_session_cookie, issue_session_token
from igame.utils.validators import validate_json, validate_signup

account_bp = Blueprint('account_bp', __name__)


@account_bp.route('/signup', methods=['POST'])
@limiter.limit("5 per minute")
@validate_json(['username', 'email', 'password', 'gender', 'platforms', 'terms'])
def signup():
    data = validate_signup(request.get_json())
    user = accounts.register_user(get_store(), data)
    return jsonify({
        'success': True,
        'message': 'Account created successfully',
        'user': user.to_dict()
    }), 201


@account_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
@validate_json(['login', 'password'])
def login():
    """
    Password login by email or username. Issues the same session cookie as
    the Google flow.
    """
    data = request.get_json()
    user = accounts.authenticate(get_store(), data.get('login'), data.get('password'))

    response = jsonify({
        'success': True,
        'message': 'Login successful',
        'user': user.to_dict()
    })
    attach_session_cookie(response, issue_session_token(user))
    current_app.logger.info('User %s logged in with a password', user.id)
    return response, 200
