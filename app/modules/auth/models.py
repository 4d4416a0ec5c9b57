"""Auth module models."""
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime
from app.core.extensions import db


class User(UserMixin, db.Model):
    """User model with email and Telegram authentication support."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)

    # Email auth fields
    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    # Telegram auth fields
    telegram_id = db.Column(db.BigInteger, unique=True, nullable=True)
    telegram_username = db.Column(db.String(100), nullable=True)
    telegram_first_name = db.Column(db.String(100), nullable=True)
    telegram_last_name = db.Column(db.String(100), nullable=True)
    telegram_photo_url = db.Column(db.String(500), nullable=True)
    telegram_link_code = db.Column(db.String(16), unique=True, nullable=True)
    telegram_linked_at = db.Column(db.DateTime, nullable=True)

    # User preferences
    auth_type = db.Column(db.String(20), nullable=False, default='email')
    theme = db.Column(db.String(20), default='light')
    currency = db.Column(db.String(3), default='RUB')

    # Onboarding
    onboarding_completed = db.Column(db.Boolean, nullable=False, default=False)
    tutorial_completed = db.Column(db.Boolean, nullable=False, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<User {self.name}>'

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash."""
        return check_password_hash(self.password_hash, password)

    @property
    def is_telegram_user(self):
        """Check if user uses Telegram authentication."""
        return self.auth_type == 'telegram' and self.telegram_id is not None

    @property
    def display_name(self):
        if not self.is_telegram_user:
            return self.name
        full_name = " ".join(p for p in (self.telegram_first_name, self.telegram_last_name) if p)
        return full_name or self.telegram_username or f"User{self.telegram_id}"

    def to_dict(self):
        """Convert user to dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'display_name': self.display_name,
            'email': self.email,
            'auth_type': self.auth_type,
            'theme': self.theme,
            'currency': self.currency,
            'is_telegram_user': self.is_telegram_user,
            'telegram_linked': self.telegram_id is not None,
            'onboarding_completed': self.onboarding_completed,
            'tutorial_completed': self.tutorial_completed,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    @classmethod
    def find_by_email(cls, email):
        """Find user by email."""
        return cls.query.filter_by(email=email.strip().lower()).first()

    @classmethod
    def find_by_telegram_id(cls, telegram_id):
        return cls.query.filter_by(telegram_id=int(telegram_id)).first()

    @classmethod
    def find_by_link_code(cls, code):
        """One-time code issued for linking a Telegram account."""
        return cls.query.filter_by(telegram_link_code=code.strip().upper()).first()

    def update_telegram_data(self, telegram_data):
        """Copy profile fields from a widget payload or a bot update sender."""
        for field in ('username', 'first_name', 'last_name', 'photo_url'):
            setattr(self, f'telegram_{field}', telegram_data.get(field) or None)
