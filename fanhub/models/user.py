import enum
from datetime import datetime, timezone

from flask_login import UserMixin

from fanhub import db


class UserRole(enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    auth_id = db.Column(db.String(255), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False, index=True)

    # Profile information (synced from the identity provider)
    name = db.Column(db.String(100))
    picture = db.Column(db.String(500))

    role = db.Column(
        db.Enum(UserRole, name="user_role"), nullable=False, default=UserRole.USER
    )

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    last_login_at = db.Column(db.DateTime)

    # Relationships
    predictions = db.relationship(
        "Prediction", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_user_last_login", "last_login_at"),
        db.Index("idx_user_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<User {self.auth_id}>"

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    @property
    def display_name(self):
        """Name shown on the leaderboard"""
        return self.name or "Anonymous"

    def to_dict(self):
        """Convert user to dictionary for API responses"""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "picture": self.picture,
            "role": self.role.value if self.role else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "lastLoginAt": (
                self.last_login_at.isoformat() if self.last_login_at else None
            ),
        }
