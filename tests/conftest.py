"""
Pytest fixtures and configuration for iGame tests
"""
import pytest

from igame import create_app, db, get_store
from igame.services import accounts
from igame.utils.tokens import issue_session_token

TEST_JWT_SECRET = 'test-jwt-secret-key-that-is-long-enough-for-hs256'


@pytest.fixture
def app_config(tmp_path):
    """Base configuration for a test app"""
    return {
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'JWT_SECRET_KEY': TEST_JWT_SECRET,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'igame.db'}",
        'DATA_DIR': str(tmp_path / 'data'),
        'RATELIMIT_ENABLED': False,
        'GOOGLE_CLIENT_ID': 'test-client-id',
        'GOOGLE_CLIENT_SECRET': 'test-client-secret',
        'GOOGLE_CALLBACK_URL': 'http://localhost/auth/google/callback',
        'AUTH_TOKEN_IN_URL': False,
    }


@pytest.fixture(params=['sql', 'json'])
def app(request, app_config):
    """Application built once per storage backend"""
    _app = create_app({**app_config, 'STORAGE_BACKEND': request.param})
    yield _app
    if request.param == 'sql':
        with _app.app_context():
            db.session.remove()
            db.drop_all()


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def make_user(app):
    """Create a password account directly through the account service"""
    def _make(username='player_one', email='player@example.com', password='Secret123',
              gender='female', platforms=('pc',)):
        with app.app_context():
            return accounts.register_user(get_store(), {
                'username': username,
                'email': email,
                'password': password,
                'gender': gender,
                'platforms': list(platforms),
            })
    return _make


@pytest.fixture
def auth_header(app):
    """Bearer header carrying a session token for the given user"""
    def _header(user, expires_delta=None):
        with app.app_context():
            token = issue_session_token(user, expires_delta)
        return {'Authorization': f'Bearer {token}'}
    return _header


@pytest.fixture
def google_profile():
    return {
        'sub': '109876543210',
        'email': 'Gamer@Example.com',
        'email_verified': True,
        'name': 'Gina Gamer',
        'given_name': 'Gina',
        'family_name': 'Gamer',
        'picture': 'https://example.com/avatar.png',
    }
