"""Account operations shared by the Google OAuth and password sign-in paths.

Both paths end in the same UserRecord and the same session token, so a user
who signed up with a password and later uses Google lands on one account
(matched by email).
"""
import logging
from datetime import datetime

from werkzeug.security import check_password_hash, generate_password_hash

from igame.errors import AuthenticationError, ConflictError
from igame.storage.base import UserRecord

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Invalid credentials'

# Checked when the login is unknown so both failure paths cost the same
_DUMMY_PASSWORD_HASH = generate_password_hash('igame-unknown-account')


def _mark_login(record):
    record.last_login = datetime.utcnow()
    record.login_count = (record.login_count or 0) + 1


def record_login(store, user_id):
    return store.update_user(user_id, _mark_login)


def upsert_oauth_user(store, profile):
    """Find or create the user behind a Google OpenID profile.

    ``profile`` is the userinfo mapping (``sub``, ``email``, ``name``,
    ``given_name``, ``family_name``, ``picture``). An existing user gets
    ``login_count`` incremented and ``last_login`` refreshed; a new one starts
    active with ``login_count`` 1.
    """
    google_id = profile.get('sub')
    email = (profile.get('email') or '').strip().lower()
    if not google_id or not email:
        raise AuthenticationError('Google profile is missing an id or email address')

    user = store.find_user_by_google_id(google_id)
    if user is None:
        user = store.find_user_by_email(email)
        if user is not None:
            logger.info('Linking Google account to existing user %s', user.id)
            return store.update_user(user.id, lambda r: _link_google(r, profile))

    if user is not None:
        return record_login(store, user.id)

    record = UserRecord(
        email=email,
        google_id=google_id,
        first_name=profile.get('given_name'),
        last_name=profile.get('family_name'),
        full_name=profile.get('name'),
        profile_picture=profile.get('picture'),
        status='active',
        login_count=1,
        last_login=datetime.utcnow(),
    )
    try:
        return store.create_user(record)
    except ConflictError:
        # A concurrent callback for the same account created it first
        existing = store.find_user_by_google_id(google_id) or store.find_user_by_email(email)
        if existing is None:
            raise
        return record_login(store, existing.id)


def _link_google(record, profile):
    record.google_id = profile.get('sub')
    record.first_name = record.first_name or profile.get('given_name')
    record.last_name = record.last_name or profile.get('family_name')
    record.full_name = record.full_name or profile.get('name')
    record.profile_picture = record.profile_picture or profile.get('picture')
    _mark_login(record)


def register_user(store, data):
    """Create a password account from already validated signup data."""
    record = UserRecord(
        email=data['email'],
        username=data['username'],
        full_name=data.get('full_name'),
        gender=data['gender'],
        platforms=list(data['platforms']),
        password_hash=generate_password_hash(data['password']),
        status='active',
    )
    user = store.create_user(record)
    logger.info('Registered user %s', user.id)
    return user


def authenticate(store, login, password):
    """Return the user for ``login`` (email or username) and ``password``.

    Unknown logins, OAuth-only accounts and wrong passwords all raise the same
    AuthenticationError so the response never reveals whether an account exists.
    """
    login = login.strip() if isinstance(login, str) else ''
    password = password if isinstance(password, str) else ''
    user = store.find_user_by_login(login)
    password_hash = user.password_hash if user and user.password_hash else _DUMMY_PASSWORD_HASH
    password_ok = check_password_hash(password_hash, password)
    if user is None or not user.password_hash or not password_ok:
        raise AuthenticationError(INVALID_CREDENTIALS)
    if user.status != 'active':
        raise AuthenticationError('Account is not active')
    return record_login(store, user.id)


def update_profile(store, user_id, preferences=None, metadata=None):
    """Shallow-merge ``preferences`` and ``metadata`` into the stored user."""
    def merge(record):
        if preferences is not None:
            record.preferences = {**(record.preferences or {}), **preferences}
        if metadata is not None:
            record.metadata = {**(record.metadata or {}), **metadata}

    return store.update_user(user_id, merge)
