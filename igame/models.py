from igame import db
from datetime import datetime

# -------------------------
# User Model
# -------------------------
class User(db.Model):
    __tablename__ = 'users'

    user_id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    google_id = db.Column(db.String(64), unique=True, nullable=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    username = db.Column(db.String(50), unique=True, nullable=True)
    first_name = db.Column(db.String(150), nullable=True)
    last_name = db.Column(db.String(150), nullable=True)
    full_name = db.Column(db.String(255), nullable=True)
    profile_picture = db.Column(db.Text, nullable=True)
    gender = db.Column(db.String(20), nullable=True)
    platforms = db.Column(db.JSON, nullable=False, default=list)
    password_hash = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default='active')
    login_count = db.Column(db.Integer, nullable=False, default=0)
    last_login = db.Column(db.DateTime, nullable=True)
    preferences = db.Column(db.JSON, nullable=False, default=dict)
    # `metadata` is reserved on declarative models
    user_metadata = db.Column('metadata', db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    wishlist_entries = db.relationship(
        'WishlistEntry',
        backref='owner',
        lazy=True,
        order_by='WishlistEntry.entry_id',
        cascade='all, delete-orphan'
    )

    def __repr__(self):
        return f"<User {self.user_id} {self.email}>"


# -------------------------
# WishlistEntry Model
# -------------------------
class WishlistEntry(db.Model):
    __tablename__ = 'wishlist_entries'
    # NULL game ids never collide, so free-form entries are unconstrained
    __table_args__ = (
        db.UniqueConstraint('owner_id', 'game_id', name='unique_owner_game'),
    )

    entry_id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False, index=True)
    game_id = db.Column(db.Integer, nullable=True)
    title = db.Column(db.String(255), nullable=False, default='')
    platform = db.Column(db.String(100), nullable=False, default='')
    genres = db.Column(db.JSON, nullable=False, default=list)
    reason = db.Column(db.Text, nullable=False, default='')
    added_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<WishlistEntry {self.entry_id} owner={self.owner_id} game={self.game_id}>"
