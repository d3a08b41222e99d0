from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from authlib.integrations.flask_client import OAuth
from datetime import timedelta
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from dotenv import load_dotenv
import os
import secrets

# Load environment variables from .env file
load_dotenv()

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
oauth = OAuth()
cors = CORS()
limiter = Limiter(key_func=get_remote_address)

STORE_EXTENSION = 'igame_store'
DEFAULT_CORS_ORIGINS = 'http://localhost:3000,http://localhost:5000,http://127.0.0.1:3000,http://127.0.0.1:5000'


def _env_flag(name, default='False'):
    return os.getenv(name, default).lower() == 'true'


def _env_int(name, default):
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def create_app(test_config=None):
    app = Flask(__name__, instance_relative_config=True, static_folder=None)
    os.makedirs(app.instance_path, exist_ok=True)

    app.config['APP_ENV'] = os.getenv('APP_ENV', 'development').lower()
    production = app.config['APP_ENV'] == 'production'

    # Flask session is only used to carry OAuth state across the Google redirect
    app.config['SECRET_KEY'] = os.getenv('SESSION_SECRET') or secrets.token_urlsafe(32)
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['SESSION_COOKIE_SECURE'] = production

    # Storage backend: 'sql' (SQLAlchemy) or 'json' (flat files under DATA_DIR)
    app.config['STORAGE_BACKEND'] = os.getenv('STORAGE_BACKEND', 'sql').lower()
    app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv(
        'DATABASE_URL',
        'sqlite:///' + os.path.join(app.instance_path, 'igame.db')
    )
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['DATA_DIR'] = os.getenv('DATA_DIR', os.path.join(app.instance_path, 'data'))

    # Google OAuth config (read from environment)
    app.config['GOOGLE_CLIENT_ID'] = os.getenv('GOOGLE_CLIENT_ID')
    app.config['GOOGLE_CLIENT_SECRET'] = os.getenv('GOOGLE_CLIENT_SECRET')
    # Optional redirect URI override; if not set we compute via url_for in routes
    app.config['GOOGLE_CALLBACK_URL'] = os.getenv('GOOGLE_CALLBACK_URL')
    app.config['OAUTH_HTTP_TIMEOUT'] = _env_int('OAUTH_HTTP_TIMEOUT', 10)
    # Off by default: a token in the redirect URL ends up in browser history
    app.config['AUTH_TOKEN_IN_URL'] = _env_flag('AUTH_TOKEN_IN_URL')

    # JWT configuration: one access token, read from the authToken cookie first, then the bearer header
    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET')
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(days=_env_int('JWT_ACCESS_TOKEN_EXPIRES_DAYS', 7))
    app.config['JWT_TOKEN_LOCATION'] = ['cookies', 'headers']
    app.config['JWT_ACCESS_COOKIE_NAME'] = 'authToken'
    app.config['JWT_ACCESS_COOKIE_PATH'] = '/'
    app.config['JWT_SESSION_COOKIE'] = False
    app.config['JWT_COOKIE_SECURE'] = production
    app.config['JWT_COOKIE_SAMESITE'] = os.getenv('JWT_COOKIE_SAMESITE', 'Strict')
    app.config['JWT_COOKIE_CSRF_PROTECT'] = _env_flag('JWT_COOKIE_CSRF_PROTECT')

    # Rate Limiter Configuration
    app.config['RATELIMIT_ENABLED'] = _env_flag('RATELIMIT_ENABLED', 'True')
    app.config['RATELIMIT_STORAGE_URI'] = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')

    app.config['CORS_ORIGINS'] = os.getenv('CORS_ORIGINS', DEFAULT_CORS_ORIGINS)
    # Directory holding the static front-end pages; nothing is served when unset
    app.config['STATIC_DIR'] = os.getenv('STATIC_DIR')

    if test_config:
        app.config.update(test_config)

    if not app.config.get('JWT_SECRET_KEY'):
        app.logger.warning('JWT_SECRET is not set; using a random key, sessions will not survive a restart')
        app.config['JWT_SECRET_KEY'] = secrets.token_urlsafe(48)

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)
    oauth.init_app(app)
    origins = [o.strip() for o in app.config['CORS_ORIGINS'].split(',') if o.strip()]
    cors.init_app(app, origins=origins, supports_credentials=True)

    # Register Google OIDC provider if client id/secret present
    google_client_id = app.config.get('GOOGLE_CLIENT_ID')
    google_client_secret = app.config.get('GOOGLE_CLIENT_SECRET')
    if google_client_id and google_client_secret:
        oauth.register(
            name='google',
            client_id=google_client_id,
            client_secret=google_client_secret,
            server_metadata_url='https://accounts.google.com/.well-known/openid-configuration',
            client_kwargs={
                'scope': 'openid email profile',
                # Covers discovery, JWKS and token calls made by Authlib
                'default_timeout': app.config['OAUTH_HTTP_TIMEOUT'],
            }
        )
    else:
        app.logger.warning('GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET not set; Google sign-in is disabled')

    from igame.errors import StorageError, register_error_handlers
    from igame.storage.base import build_store

    store = build_store(app)
    app.extensions[STORE_EXTENSION] = store
    # A storage backend that is down at startup must not stop the process;
    # storage-backed routes fail per request instead.
    with app.app_context():
        try:
            store.setup()
        except StorageError as e:
            app.logger.warning('Storage backend %r unavailable at startup: %s', store.name, e)

    register_error_handlers(app)

    # Import and register blueprints
    from igame.utils import tokens  # noqa: F401  registers the JWT loaders
    from igame.auth.routes import auth_bp
    from igame.routes.account_routes import account_bp
    from igame.routes.wishlist_route import wishlist_bp
    from igame.routes.index import index_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(account_bp)
    app.register_blueprint(wishlist_bp, url_prefix='/wishlist')
    # index_bp holds the catch-all static route, so it goes last
    app.register_blueprint(index_bp)

    return app


def get_store():
    """Storage backend bound to the current app."""
    return current_app.extensions[STORE_EXTENSION]

# Expose extension objects for use in blueprints
# (import as `from igame import oauth, limiter, get_store` in route modules)
