"""Flat-file backend: ``users.json`` and ``wishlist.json`` under one directory.

Every read-modify-write of a file runs under a process-wide lock keyed by
the file's path, and the new contents replace the old file atomically, so
concurrent requests served by different threads never lose each other's
updates.
"""
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from datetime import datetime

from igame.errors import ConflictError, NotFoundError, StorageError
from igame.storage.base import Store, UserRecord, WishlistEntry

logger = logging.getLogger(__name__)

_file_locks = {}
_file_locks_guard = threading.Lock()


def _lock_for(path):
    key = os.path.abspath(path)
    with _file_locks_guard:
        lock = _file_locks.get(key)
        if lock is None:
            lock = _file_locks[key] = threading.RLock()
        return lock


class JsonFileStore(Store):
    name = 'json'

    USERS_FILE = 'users.json'
    WISHLIST_FILE = 'wishlist.json'

    def __init__(self, data_dir):
        self.data_dir = data_dir
        self.users_path = os.path.join(data_dir, self.USERS_FILE)
        self.wishlist_path = os.path.join(data_dir, self.WISHLIST_FILE)

    def setup(self):
        try:
            os.makedirs(self.data_dir, exist_ok=True)
        except OSError as e:
            raise StorageError(f'Cannot create data directory {self.data_dir}: {e}') from e

    # -- file primitives --------------------------------------------------

    @staticmethod
    def _empty(key):
        return {'next_id': 1, key: []}

    def _load(self, path, key):
        if not os.path.exists(path):
            return self._empty(key)
        try:
            with open(path, 'r', encoding='utf-8') as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            logger.exception('Failed to read %s', path)
            raise StorageError(f'Cannot read {os.path.basename(path)}') from e
        data.setdefault('next_id', 1)
        data.setdefault(key, [])
        return data

    def _dump(self, path, data):
        directory = os.path.dirname(path) or '.'
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile('w', encoding='utf-8', dir=directory,
                                             prefix='.tmp-', suffix='.json', delete=False) as fh:
                tmp_path = fh.name
                json.dump(data, fh, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            logger.exception('Failed to write %s', path)
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(f'Cannot write {os.path.basename(path)}') from e

    def _read(self, path, key):
        with _lock_for(path):
            return self._load(path, key)

    @contextmanager
    def _transaction(self, path, key):
        """Hold the file lock across load, mutation and write-back.

        Nothing is written if the body raises.
        """
        with _lock_for(path):
            data = self._load(path, key)
            yield data
            self._dump(path, data)

    # -- users ------------------------------------------------------------

    def _users(self):
        return [UserRecord.from_storage(u) for u in self._read(self.users_path, 'users')['users']]

    def get_user(self, user_id):
        return next((u for u in self._users() if u.id == user_id), None)

    def find_user_by_google_id(self, google_id):
        if not google_id:
            return None
        return next((u for u in self._users() if u.google_id == google_id), None)

    def find_user_by_email(self, email):
        email = (email or '').lower()
        return next((u for u in self._users() if u.email == email), None)

    def find_user_by_login(self, login):
        return next((u for u in self._users() if u.email == login.lower() or u.username == login), None)

    @staticmethod
    def _check_unique(rows, record):
        for row in rows:
            if row.get('id') == record.id:
                continue
            if row.get('email') == record.email:
                raise ConflictError('Email already registered')
            if record.username and row.get('username') == record.username:
                raise ConflictError('Username already taken')
            if record.google_id and row.get('google_id') == record.google_id:
                raise ConflictError('Google account already linked')

    def create_user(self, record):
        with self._transaction(self.users_path, 'users') as data:
            self._check_unique(data['users'], record)
            now = datetime.utcnow()
            record.id = data['next_id']
            record.created_at = record.created_at or now
            record.updated_at = now
            data['next_id'] += 1
            data['users'].append(record.to_storage())
        return record

    def update_user(self, user_id, mutate):
        with self._transaction(self.users_path, 'users') as data:
            index = next((i for i, u in enumerate(data['users']) if u.get('id') == user_id), None)
            if index is None:
                raise NotFoundError('User not found')
            record = UserRecord.from_storage(data['users'][index])
            mutate(record)
            record.id = user_id
            self._check_unique(data['users'], record)
            record.updated_at = datetime.utcnow()
            data['users'][index] = record.to_storage()
        return record

    # -- wishlist ---------------------------------------------------------

    def list_wishlist(self, owner_id):
        rows = self._read(self.wishlist_path, 'entries')['entries']
        return [WishlistEntry.from_storage(r) for r in rows if r.get('owner_id') == owner_id]

    def add_wishlist_entry(self, entry):
        # Users are never deleted, so the owner check can run outside the wishlist lock
        if self.get_user(entry.owner_id) is None:
            raise NotFoundError('User not found')
        with self._transaction(self.wishlist_path, 'entries') as data:
            if entry.game_id is not None:
                for row in data['entries']:
                    if row.get('owner_id') == entry.owner_id and row.get('game_id') == entry.game_id:
                        return WishlistEntry.from_storage(row)
            entry.id = data['next_id']
            entry.added_at = entry.added_at or datetime.utcnow()
            data['next_id'] += 1
            data['entries'].append(entry.to_storage())
        return entry

    def remove_wishlist_entries(self, owner_id, entry_id=None, game_id=None):
        def matches(row):
            if row.get('owner_id') != owner_id:
                return False
            if entry_id is not None and row.get('id') != entry_id:
                return False
            if game_id is not None and row.get('game_id') != game_id:
                return False
            return entry_id is not None or game_id is not None

        with self._transaction(self.wishlist_path, 'entries') as data:
            kept = [row for row in data['entries'] if not matches(row)]
            removed = len(data['entries']) - len(kept)
            data['entries'] = kept
        return removed
