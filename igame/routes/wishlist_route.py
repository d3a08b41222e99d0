from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user

from igame import get_store
from igame.errors import NotFoundError, ValidationError
from igame.services import wishlist
from igame.utils.tokens import session_required
from igame.utils.validators import validate_wishlist_entry

wishlist_bp = Blueprint('wishlist_bp', __name__)


def _require_owner(user_id):
    # Another user's list is reported as missing rather than forbidden
    if user_id != current_user.id:
        raise NotFoundError('Wishlist not found')


@wishlist_bp.route('', methods=['POST'])
@session_required
def add_wishlist_entry():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be JSON')
    # The owner always comes from the session token, never from the body
    fields = validate_wishlist_entry(data)
    entry = wishlist.add_entry(get_store(), current_user.id, fields)
    return jsonify({'success': True, 'data': entry.to_dict()}), 201


@wishlist_bp.route('/<int:user_id>', methods=['GET'])
@session_required
def list_wishlist(user_id):
    _require_owner(user_id)
    entries = wishlist.list_entries(get_store(), user_id)
    return jsonify({'success': True, 'data': [e.to_dict() for e in entries]}), 200


@wishlist_bp.route('/<int:user_id>/<int:entry_id>', methods=['DELETE'])
@session_required
def remove_wishlist_entry(user_id, entry_id):
    _require_owner(user_id)
    entries = wishlist.remove_entry(get_store(), user_id, entry_id)
    return jsonify({'success': True, 'data': [e.to_dict() for e in entries]}), 200
