"""SQLAlchemy backend built on the app's Flask-SQLAlchemy session."""
import logging
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from igame import db
from igame.errors import ConflictError, NotFoundError, StorageError
from igame.models import User, WishlistEntry as WishlistEntryRow
from igame.storage.base import Store, UserRecord, WishlistEntry

logger = logging.getLogger(__name__)

# Record attribute -> model column attribute, where they differ
_USER_COLUMNS = {
    'id': 'user_id',
    'metadata': 'user_metadata',
}


def _to_user_record(row):
    if row is None:
        return None
    return UserRecord(**{
        name: getattr(row, _USER_COLUMNS.get(name, name))
        for name in UserRecord.__dataclass_fields__
    })


def _apply_user_record(row, record):
    for name in UserRecord.__dataclass_fields__:
        if name in ('id', 'created_at', 'updated_at'):
            continue
        setattr(row, _USER_COLUMNS.get(name, name), getattr(record, name))


def _to_entry(row):
    return WishlistEntry(
        id=row.entry_id,
        owner_id=row.owner_id,
        game_id=row.game_id,
        title=row.title,
        platform=row.platform,
        genres=list(row.genres or []),
        reason=row.reason,
        added_at=row.added_at,
    )


class SqlStore(Store):
    name = 'sql'

    @contextmanager
    def _session(self):
        """Roll back and translate database errors for the caller."""
        try:
            yield db.session
        except IntegrityError as e:
            db.session.rollback()
            logger.warning('Integrity error: %s', e.orig)
            raise ConflictError('User already exists') from e
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception('Database error')
            raise StorageError(f'Database error: {e.__class__.__name__}') from e

    def setup(self):
        with self._session():
            db.create_all()

    # -- users ------------------------------------------------------------

    def get_user(self, user_id):
        with self._session() as session:
            return _to_user_record(session.get(User, user_id))

    def find_user_by_google_id(self, google_id):
        if not google_id:
            return None
        with self._session():
            return _to_user_record(User.query.filter_by(google_id=google_id).first())

    def find_user_by_email(self, email):
        with self._session():
            return _to_user_record(User.query.filter_by(email=(email or '').lower()).first())

    def find_user_by_login(self, login):
        # Emails are stored lowercased, usernames as typed
        with self._session():
            row = User.query.filter(or_(User.email == login.lower(), User.username == login)).first()
            return _to_user_record(row)

    def _check_unique(self, record):
        others = User.query.filter(User.user_id != record.id) if record.id else User.query
        if others.filter(User.email == record.email).first():
            raise ConflictError('Email already registered')
        if record.username and others.filter(User.username == record.username).first():
            raise ConflictError('Username already taken')
        if record.google_id and others.filter(User.google_id == record.google_id).first():
            raise ConflictError('Google account already linked')

    def create_user(self, record):
        with self._session() as session:
            self._check_unique(record)
            row = User(created_at=record.created_at or datetime.utcnow())
            _apply_user_record(row, record)
            session.add(row)
            session.commit()
            return _to_user_record(row)

    def update_user(self, user_id, mutate):
        with self._session() as session:
            row = session.get(User, user_id, with_for_update=True)
            if row is None:
                raise NotFoundError('User not found')
            record = _to_user_record(row)
            mutate(record)
            record.id = user_id
            self._check_unique(record)
            _apply_user_record(row, record)
            session.commit()
            return _to_user_record(row)

    # -- wishlist ---------------------------------------------------------

    def list_wishlist(self, owner_id):
        with self._session():
            rows = WishlistEntryRow.query.filter_by(owner_id=owner_id).order_by(WishlistEntryRow.entry_id).all()
            return [_to_entry(r) for r in rows]

    def _find_game(self, owner_id, game_id):
        return WishlistEntryRow.query.filter_by(owner_id=owner_id, game_id=game_id).first()

    def add_wishlist_entry(self, entry):
        with self._session() as session:
            if session.get(User, entry.owner_id) is None:
                raise NotFoundError('User not found')
            if entry.game_id is not None:
                existing = self._find_game(entry.owner_id, entry.game_id)
                if existing:
                    return _to_entry(existing)
            row = WishlistEntryRow(
                owner_id=entry.owner_id,
                game_id=entry.game_id,
                title=entry.title,
                platform=entry.platform,
                genres=list(entry.genres),
                reason=entry.reason,
                added_at=entry.added_at or datetime.utcnow(),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                # Lost a race against a concurrent add of the same game
                session.rollback()
                existing = self._find_game(entry.owner_id, entry.game_id)
                if existing is None:
                    raise
                return _to_entry(existing)
            return _to_entry(row)

    def remove_wishlist_entries(self, owner_id, entry_id=None, game_id=None):
        if entry_id is None and game_id is None:
            return 0
        with self._session() as session:
            query = WishlistEntryRow.query.filter_by(owner_id=owner_id)
            if entry_id is not None:
                query = query.filter_by(entry_id=entry_id)
            if game_id is not None:
                query = query.filter_by(game_id=game_id)
            removed = query.delete(synchronize_session=False)
            session.commit()
            return removed
