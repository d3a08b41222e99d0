from flask import abort, blueprints, current_app, jsonify, request, send_from_directory
from datetime import datetime
import os

from igame import get_store

index_bp = blueprints.Blueprint('index_bp', __name__)

# First path segments owned by the JSON API; never answered with a page
API_PREFIXES = ('auth', 'wishlist')


@index_bp.route('/health', methods=['GET'])
def health():
    return jsonify({
        'status': 'Server is running',
        'timestamp': datetime.utcnow().isoformat(),
        'storage': get_store().name,
    }), 200


def _api_not_found():
    """405 when an API route exists for another method, else a JSON 404."""
    adapter = current_app.url_map.bind_to_environ(request.environ)
    allowed = set(adapter.allowed_methods()) - {'GET', 'HEAD', 'OPTIONS'}
    if allowed:
        abort(405, valid_methods=sorted(allowed))
    return jsonify({'error': 'Not found'}), 404


@index_bp.route('/', defaults={'path': ''}, methods=['GET'])
@index_bp.route('/<path:path>', methods=['GET'])
def static_pages(path):
    """Serve the front-end pages; unknown paths fall back to index.html."""
    if path.split('/', 1)[0] in API_PREFIXES:
        return _api_not_found()
    static_dir = current_app.config.get('STATIC_DIR')
    if not static_dir:
        return jsonify({'error': 'Not found'}), 404
    if path and os.path.isfile(os.path.join(static_dir, path)):
        return send_from_directory(static_dir, path)
    if os.path.isfile(os.path.join(static_dir, 'index.html')):
        return send_from_directory(static_dir, 'index.html')
    return jsonify({'error': 'Not found'}), 404
