import html
from datetime import datetime, timezone

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from pickem_pool import db


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Profile information
    first_name = db.Column(db.String(50))
    last_name = db.Column(db.String(50))
    display_name = db.Column(db.String(100))  # Alias shown on leaderboards

    # Account status
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    last_login = db.Column(db.DateTime)

    # Relationships
    picks = db.relationship(
        "Pick", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    weekly_scores = db.relationship(
        "WeeklyScore", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_user_active_status", "is_active"),
        db.Index("idx_user_last_login", "last_login"),
    )

    def __repr__(self):
        return f"<User {self.username}>"

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash"""
        return check_password_hash(self.password_hash, password)

    def set_display_name(self, display_name):
        """Set display name with sanitization"""
        if display_name:
            self.display_name = html.escape(display_name.strip())
        else:
            self.display_name = display_name

    @property
    def alias(self):
        """Name shown on leaderboards and recaps"""
        return self.display_name or self.username

    @property
    def sort_name(self):
        """Case-insensitive key used to order users by alias"""
        return self.alias.casefold()

    def update_last_login(self):
        """Update last login timestamp"""
        self.last_login = datetime.now(timezone.utc)
        db.session.commit()

    @staticmethod
    def get_active_users():
        return User.query.filter_by(is_active=True).order_by(User.username).all()

    def to_dict(self, include_private=False):
        """Convert user to dictionary for API responses"""
        data = {
            "user_id": self.id,
            "username": self.username,
            "alias": self.alias,
            "first_name": self.first_name,
            "last_name": self.last_name,
        }
        if include_private:
            data.update(
                {
                    "email": self.email,
                    "is_admin": self.is_admin,
                    "is_active": self.is_active,
                    "created_at": (
                        self.created_at.isoformat() if self.created_at else None
                    ),
                    "last_login": (
                        self.last_login.isoformat() if self.last_login else None
                    ),
                }
            )
        return data
