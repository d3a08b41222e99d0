"""Storage interface shared by the SQL and JSON-file backends.

Both backends hand out plain records rather than ORM rows, and both apply
the same duplicate rules: email, username and Google id are unique per user,
and a wishlist holds a given catalog game at most once.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

def default_preferences():
    return {
        'favoriteGenres': [],
        'favoritePlatforms': [],
        'emailNotifications': True,
        'theme': 'dark',
    }


def default_metadata():
    return {
        'gamesViewed': [],
        'reviewsSubmitted': [],
        'followedDevelopers': [],
    }


def _iso(value):
    return value.isoformat() if value else None


def _parse_dt(value):
    return datetime.fromisoformat(value) if value else None


@dataclass
class UserRecord:
    email: str
    id: Optional[int] = None
    google_id: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    profile_picture: Optional[str] = None
    gender: Optional[str] = None
    platforms: list = field(default_factory=list)
    password_hash: Optional[str] = None
    status: str = 'active'
    login_count: int = 0
    last_login: Optional[datetime] = None
    preferences: dict = field(default_factory=default_preferences)
    metadata: dict = field(default_factory=default_metadata)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self):
        """Public view of the user; never includes the password hash."""
        return {
            'id': self.id,
            'googleId': self.google_id,
            'email': self.email,
            'username': self.username,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'fullName': self.full_name,
            'profilePicture': self.profile_picture,
            'gender': self.gender,
            'platforms': list(self.platforms),
            'status': self.status,
            'loginCount': self.login_count,
            'lastLogin': _iso(self.last_login),
            'preferences': self.preferences,
            'metadata': self.metadata,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }

    def to_storage(self):
        data = {k: getattr(self, k) for k in self.__dataclass_fields__}
        for key in ('last_login', 'created_at', 'updated_at'):
            data[key] = _iso(data[key])
        return data

    @classmethod
    def from_storage(cls, data):
        data = dict(data)
        for key in ('last_login', 'created_at', 'updated_at'):
            data[key] = _parse_dt(data.get(key))
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class WishlistEntry:
    owner_id: int
    id: Optional[int] = None
    game_id: Optional[int] = None
    title: str = ''
    platform: str = ''
    genres: list = field(default_factory=list)
    reason: str = ''
    added_at: Optional[datetime] = None

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.owner_id,
            'gameId': self.game_id,
            'gameTitle': self.title,
            'platform': self.platform,
            'genre': list(self.genres),
            'reason': self.reason,
            'dateAdded': _iso(self.added_at),
        }

    def to_storage(self):
        data = {k: getattr(self, k) for k in self.__dataclass_fields__}
        data['added_at'] = _iso(self.added_at)
        return data

    @classmethod
    def from_storage(cls, data):
        data = dict(data)
        data['added_at'] = _parse_dt(data.get('added_at'))
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


class Store(ABC):
    """Persistence for users and their wishlists."""

    name = 'base'

    @abstractmethod
    def setup(self) -> None:
        """Prepare the backend (tables, directories). Raises StorageError."""

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[UserRecord]:
        ...

    @abstractmethod
    def find_user_by_google_id(self, google_id: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    def find_user_by_login(self, login: str) -> Optional[UserRecord]:
        """Match ``login`` against the email (case-insensitive) or the username (exact)."""

    @abstractmethod
    def create_user(self, record: UserRecord) -> UserRecord:
        """Insert a new user. Raises ConflictError on a duplicate identity."""

    @abstractmethod
    def update_user(self, user_id: int, mutate: Callable[[UserRecord], None]) -> UserRecord:
        """Apply ``mutate`` to the stored user atomically and persist it.

        Raises NotFoundError when the user does not exist and ConflictError
        when the change collides with another user's identity.
        """

    @abstractmethod
    def list_wishlist(self, owner_id: int) -> list:
        """Entries of one owner in insertion order."""

    @abstractmethod
    def add_wishlist_entry(self, entry: WishlistEntry) -> WishlistEntry:
        """Append ``entry``; when its game is already listed return that entry instead."""

    @abstractmethod
    def remove_wishlist_entries(self, owner_id: int, entry_id: Optional[int] = None,
                                game_id: Optional[int] = None) -> int:
        """Drop the owner's matching entries and return how many went away."""


def build_store(app) -> Store:
    """Instantiate the backend named by ``STORAGE_BACKEND``."""
    backend = app.config.get('STORAGE_BACKEND', 'sql')
    if backend == 'sql':
        from igame.storage.sql_store import SqlStore
        return SqlStore()
    if backend == 'json':
        from igame.storage.json_store import JsonFileStore
        return JsonFileStore(app.config['DATA_DIR'])
    raise ValueError(f"Unknown STORAGE_BACKEND {backend!r}; expected 'sql' or 'json'")
