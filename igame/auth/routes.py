from flask import Blueprint, request, jsonify, redirect, url_for, current_app
from flask_jwt_extended import current_user
from authlib.integrations.base_client import OAuthError
from urllib.parse import urlencode
import requests

from igame import oauth, get_store
from igame.errors import IGameError, ValidationError
from igame.services import accounts, wishlist
from igame.utils.tokens import (
    attach_session_cookie, clear_session_cookies, issue_session_token, session_required
)
from igame.utils.validators import parse_game_id

auth_bp = Blueprint('auth_bp', __name__)

GOOGLE_USERINFO_URL = 'https://openidconnect.googleapis.com/v1/userinfo'
AUTH_FAILED_URL = '/signin?error=auth_failed'
CALLBACK_FAILED_URL = '/signin?error=callback_failed'


def _google_client():
    if not (current_app.config.get('GOOGLE_CLIENT_ID') and current_app.config.get('GOOGLE_CLIENT_SECRET')):
        return None
    return oauth.create_client('google')


def _callback_uri():
    # Prefer an explicit redirect URI from config, otherwise use our callback route
    return current_app.config.get('GOOGLE_CALLBACK_URL') or url_for('auth_bp.google_callback', _external=True)


def _fetch_userinfo(token):
    """OpenID profile from the ID token, or from the userinfo endpoint when absent."""
    userinfo = token.get('userinfo')
    if userinfo:
        return dict(userinfo)
    access_token = token.get('access_token')
    if not access_token:
        raise OAuthError(description='Failed to obtain access token from provider')
    resp = requests.get(
        GOOGLE_USERINFO_URL,
        headers={'Authorization': f'Bearer {access_token}'},
        timeout=current_app.config['OAUTH_HTTP_TIMEOUT'],
    )
    resp.raise_for_status()
    return resp.json()


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


# --- GOOGLE OAUTH ---
@auth_bp.route('/google')
def google_login():
    client = _google_client()
    if client is None:
        return jsonify({'error': 'Google sign-in is not configured'}), 503
    return client.authorize_redirect(_callback_uri())


@auth_bp.route('/google/callback')
def google_callback():
    client = _google_client()
    if client is None:
        return redirect(AUTH_FAILED_URL)

    try:
        token = client.authorize_access_token(timeout=current_app.config['OAUTH_HTTP_TIMEOUT'])
        profile = _fetch_userinfo(token)
        user = accounts.upsert_oauth_user(get_store(), profile)
    except (OAuthError, requests.RequestException, IGameError) as e:
        current_app.logger.warning('Google sign-in failed: %s', e)
        return redirect(AUTH_FAILED_URL)

    try:
        session_token = issue_session_token(user)
        params = {'userId': user.id}
        # Opt-in only: the token would otherwise land in browser history
        if current_app.config.get('AUTH_TOKEN_IN_URL'):
            params['token'] = session_token
        response = redirect(f'/index.html?{urlencode(params)}')
        attach_session_cookie(response, session_token)
    except Exception:
        current_app.logger.exception('Error in Google callback for user %s', user.id)
        return redirect(CALLBACK_FAILED_URL)

    current_app.logger.info('User %s signed in with Google', user.id)
    return response


# --- CURRENT USER / PROFILE ---
@auth_bp.route('/me', methods=['GET'])
@session_required
def me():
    return jsonify(current_user.to_dict()), 200


@auth_bp.route('/profile', methods=['GET'])
@session_required
def get_profile():
    return jsonify(current_user.to_dict()), 200


@auth_bp.route('/profile', methods=['PUT'])
@session_required
def update_profile():
    """
    Merges the provided preferences and/or metadata objects into the user's record.
    """
    data = _json_body()
    preferences = data.get('preferences')
    metadata = data.get('metadata')
    for key, value in (('preferences', preferences), ('metadata', metadata)):
        if value is not None and not isinstance(value, dict):
            raise ValidationError(f'{key} must be an object')

    user = accounts.update_profile(get_store(), current_user.id, preferences, metadata)
    return jsonify(user.to_dict()), 200


# --- WISHLIST (catalog game ids) ---
@auth_bp.route('/wishlist', methods=['GET'])
@session_required
def get_wishlist():
    entries = wishlist.list_entries(get_store(), current_user.id)
    return jsonify({'wishlist': wishlist.game_ids(entries)}), 200


@auth_bp.route('/wishlist/add', methods=['POST'])
@session_required
def add_to_wishlist():
    game_id = parse_game_id(_json_body().get('gameId'))
    ids = wishlist.add_game(get_store(), current_user.id, game_id)
    return jsonify({'message': 'Game added to wishlist', 'wishlist': ids}), 200


@auth_bp.route('/wishlist/remove', methods=['POST'])
@session_required
def remove_from_wishlist():
    game_id = parse_game_id(_json_body().get('gameId'))
    ids = wishlist.remove_game(get_store(), current_user.id, game_id)
    return jsonify({'message': 'Game removed from wishlist', 'wishlist': ids}), 200


# --- LOGOUT ---
@auth_bp.route('/logout', methods=['GET'])
def logout():
    response = jsonify({'message': 'Logged out successfully'})
    clear_session_cookies(response)
    return response, 200
