"""
Tests for the flat-file store's write serialization
"""
import json
import threading

import pytest

from igame.errors import ConflictError, NotFoundError, StorageError
from igame.storage.base import UserRecord, WishlistEntry
from igame.storage.json_store import JsonFileStore


@pytest.fixture
def store(tmp_path):
    _store = JsonFileStore(str(tmp_path / 'data'))
    _store.setup()
    return _store


def _run_threads(target, count):
    threads = [threading.Thread(target=target, args=(n,)) for n in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


class TestJsonFileStore:

    def test_concurrent_writers_lose_no_updates(self, store):
        owner = store.create_user(UserRecord(email='owner@example.com'))

        def add_many(n):
            for i in range(25):
                store.add_wishlist_entry(WishlistEntry(owner_id=owner.id, title=f'game {n}-{i}'))

        _run_threads(add_many, 8)

        entries = store.list_wishlist(owner.id)
        assert len(entries) == 200
        assert len({e.id for e in entries}) == 200

    def test_concurrent_login_counts_are_exact(self, store):
        user = store.create_user(UserRecord(email='counter@example.com'))

        def bump(_n):
            for _ in range(10):
                store.update_user(user.id, lambda r: setattr(r, 'login_count', r.login_count + 1))

        _run_threads(bump, 5)

        assert store.get_user(user.id).login_count == 50

    def test_concurrent_signups_with_same_email_create_one_user(self, store):
        outcomes = []

        def signup(n):
            try:
                store.create_user(UserRecord(email='race@example.com', username=f'racer{n}'))
                outcomes.append('created')
            except ConflictError:
                outcomes.append('conflict')

        _run_threads(signup, 6)

        assert outcomes.count('created') == 1
        assert outcomes.count('conflict') == 5

    def test_file_is_valid_json_after_writes(self, store):
        store.create_user(UserRecord(email='a@example.com'))
        store.create_user(UserRecord(email='b@example.com'))
        with open(store.users_path, encoding='utf-8') as fh:
            data = json.load(fh)

        assert data['next_id'] == 3
        assert [u['email'] for u in data['users']] == ['a@example.com', 'b@example.com']

    def test_failed_mutation_writes_nothing(self, store):
        user = store.create_user(UserRecord(email='a@example.com', username='alpha'))
        store.create_user(UserRecord(email='b@example.com', username='beta'))

        with pytest.raises(ConflictError):
            store.update_user(user.id, lambda r: setattr(r, 'username', 'beta'))

        assert store.get_user(user.id).username == 'alpha'

    def test_update_unknown_user_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            store.update_user(42, lambda r: None)

    def test_wishlist_for_unknown_owner_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            store.add_wishlist_entry(WishlistEntry(owner_id=42, game_id=1))

    def test_corrupt_file_raises_storage_error(self, store):
        with open(store.users_path, 'w', encoding='utf-8') as fh:
            fh.write('{not json')

        with pytest.raises(StorageError):
            store.get_user(1)
