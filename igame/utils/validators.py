from flask import request, jsonify
from functools import wraps
import re

from igame.errors import ValidationError

USERNAME_RE = re.compile(r'^[A-Za-z0-9_]+$')
EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

REASON_MIN = 10
REASON_MAX = 200


def validate_json(required_fields):
    """
    Middleware to validate JSON request body for required fields.
    Ensures that the request body is a JSON object and contains all required fields.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return jsonify({'error': 'Request body must be JSON'}), 400

            missing_fields = [
                field for field in required_fields
                if data.get(field) is None or data.get(field) == ''
            ]

            if missing_fields:
                return jsonify({'error': f'Missing required fields: {", ".join(missing_fields)}'}), 400

            return func(*args, **kwargs)
        return wrapper
    return decorator


def _string(data, key):
    value = data.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f'{key} must be a string')
    return value.strip()


def _string_list(data, key):
    value = data.get(key) or []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f'{key} must be a list of strings')
    return [v.strip() for v in value if v.strip()]


def parse_game_id(value):
    """Catalog game id as an int; numeric strings are accepted."""
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError('gameId must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError('gameId must be an integer')


def validate_signup(data):
    """Check a signup body and return the normalized fields."""
    username = _string(data, 'username')
    if len(username) < 3:
        raise ValidationError('Username must be at least 3 characters')
    if not USERNAME_RE.match(username):
        raise ValidationError('Username can only contain letters, numbers, and underscores')

    email = _string(data, 'email').lower()
    if not EMAIL_RE.match(email):
        raise ValidationError('Please enter a valid email address')

    password = data.get('password')
    if not isinstance(password, str) or len(password) < 8:
        raise ValidationError('Password must be at least 8 characters')
    if not re.search(r'\d', password):
        raise ValidationError('Password must contain at least one number')
    if not re.search(r'[A-Z]', password):
        raise ValidationError('Password must contain at least one uppercase letter')

    gender = _string(data, 'gender')
    if not gender:
        raise ValidationError('Please select a gender')

    platforms = _string_list(data, 'platforms')
    if not platforms:
        raise ValidationError('Please select at least one gaming platform')

    if data.get('terms') is not True:
        raise ValidationError('You must accept the terms and conditions')

    return {
        'username': username,
        'email': email,
        'password': password,
        'gender': gender,
        'platforms': platforms,
        'full_name': _string(data, 'fullName') or None,
    }


def validate_wishlist_entry(data):
    """Check a free-form wishlist body (gameTitle, platform, genre, reason, gameId?)."""
    title = _string(data, 'gameTitle')
    if len(title) < 2:
        raise ValidationError('Game Title must be at least 2 characters')

    platform = _string(data, 'platform')
    if not platform:
        raise ValidationError('Please select a platform')

    genres = _string_list(data, 'genre')
    if not genres:
        raise ValidationError('Please select at least one genre')

    reason = _string(data, 'reason')
    if len(reason) < REASON_MIN:
        raise ValidationError(f'Reason must be at least {REASON_MIN} characters')
    if len(reason) > REASON_MAX:
        raise ValidationError(f'Reason cannot exceed {REASON_MAX} characters')

    fields = {'title': title, 'platform': platform, 'genres': genres, 'reason': reason}
    if data.get('gameId') is not None:
        fields['game_id'] = parse_game_id(data['gameId'])
    return fields
