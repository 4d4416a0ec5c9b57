"""Auth service layer."""
import hashlib
import hmac
import secrets
import string
import time
from datetime import datetime
from typing import Optional
from flask import current_app, session
from flask_login import login_user, logout_user
from sqlalchemy.exc import IntegrityError
from app.core.errors import NotFoundError, TelegramAuthError, ValidationError
from app.core.extensions import db
from .models import User

LINK_CODE_ALPHABET = string.ascii_uppercase + string.digits
LINK_CODE_LENGTH = 8


class AuthService:
    """Authentication service."""

    @staticmethod
    def build_data_check_string(args: dict) -> str:
        """Sorted ``key=value`` lines of every field except ``hash``."""
        pairs = [
            f"{key}={value}" for key, value in args.items()
            if key != 'hash' and value is not None
        ]
        return "\n".join(sorted(pairs))

    @staticmethod
    def verify_telegram_auth(args: dict, bot_token: str, max_age_sec: int = 86400,
                             now: Optional[float] = None) -> bool:
        """Verify a Telegram login widget payload."""
        if not bot_token:
            return False

        tg_hash = args.get("hash")
        if not tg_hash:
            return False

        try:
            auth_timestamp = int(args.get("auth_date"))
        except (TypeError, ValueError):
            current_app.logger.warning(f"Invalid auth_date format: {args.get('auth_date')}")
            return False

        current_timestamp = int(now if now is not None else time.time())
        if current_timestamp - auth_timestamp > max_age_sec:
            current_app.logger.warning(f"Telegram auth expired: {current_timestamp - auth_timestamp}s old")
            return False

        secret_key = hashlib.sha256(bot_token.encode()).digest()
        calculated_hash = hmac.new(
            secret_key,
            AuthService.build_data_check_string(args).encode(),
            hashlib.sha256
        ).hexdigest()

        return hmac.compare_digest(calculated_hash, str(tg_hash))

    @staticmethod
    def login_user(user: User, remember: bool = True) -> None:
        """Set user session."""
        login_user(user, remember=remember)

        session['theme'] = user.theme or 'light'
        session['currency'] = user.currency or 'RUB'
        session.permanent = True

    @staticmethod
    def logout_user() -> None:
        """Clear user session."""
        logout_user()
        session.clear()

    @staticmethod
    def authenticate_email(email: str, password: str) -> Optional[User]:
        """Authenticate user via email/password."""
        user = User.find_by_email(email)

        if user and user.check_password(password):
            current_app.logger.info(f'Successful email login: {email} (ID: {user.id})')
            return user

        current_app.logger.warning(f'Failed email login: {email}')
        return None

    @staticmethod
    def register_email(email: str, name: str, password: str) -> User:
        """Register new user via email."""
        email = email.strip().lower()
        if User.find_by_email(email):
            raise ValidationError('Пользователь с таким email уже существует',
                                  details={'email': ['already registered']})

        user = User(
            email=email,
            name=name.strip(),
            auth_type='email',
            currency=current_app.config.get('DEFAULT_CURRENCY', 'RUB')
        )
        user.set_password(password)

        try:
            db.session.add(user)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ValidationError('Пользователь с таким email уже существует',
                                  details={'email': ['already registered']})

        current_app.logger.info(f'Successful email registration: {email} (ID: {user.id})')
        return user

    @staticmethod
    def change_password(user: User, old_password: str, new_password: str) -> None:
        """Change password of an email account after checking the current one."""
        if user.is_telegram_user:
            raise ValidationError('Изменение пароля недоступно для Telegram пользователей')
        if not user.check_password(old_password):
            current_app.logger.warning(f'Wrong current password for user ID: {user.id}')
            raise ValidationError('Неверный текущий пароль',
                                  details={'current_password': ['Неверный текущий пароль']})

        user.set_password(new_password)
        db.session.commit()
        current_app.logger.info(f'Password changed for user ID: {user.id}')

    @staticmethod
    def authenticate_telegram(telegram_data: dict) -> User:
        """Verify a widget payload, then find or create the Telegram user."""
        config = current_app.config
        if not AuthService.verify_telegram_auth(
            telegram_data,
            config.get('TELEGRAM_BOT_TOKEN'),
            config.get('TELEGRAM_AUTH_MAX_AGE', 86400)
        ):
            current_app.logger.warning(f'Invalid Telegram auth hash for ID: {telegram_data.get("id")}')
            raise TelegramAuthError('Telegram authentication failed')

        telegram_id = int(telegram_data['id'])
        user = User.find_by_telegram_id(telegram_id)

        if user:
            user.update_telegram_data(telegram_data)
            db.session.commit()
            current_app.logger.info(f'Existing Telegram user logged in: {telegram_id} (ID: {user.id})')
            return user

        user = User(
            email=f'telegram_{telegram_id}@telegram.local',
            name=telegram_data.get('first_name') or telegram_data.get('username') or f'User{telegram_id}',
            auth_type='telegram',
            telegram_id=telegram_id,
            telegram_linked_at=datetime.utcnow(),
            currency=config.get('DEFAULT_CURRENCY', 'RUB')
        )
        user.set_password(secrets.token_urlsafe(32))
        user.update_telegram_data(telegram_data)
        db.session.add(user)
        db.session.commit()

        current_app.logger.info(f'Created new Telegram user: {telegram_id} (ID: {user.id})')
        return user

    @staticmethod
    def issue_link_code(user: User) -> str:
        """Give ``user`` a fresh one-time code for ``/start <code>`` in the bot."""
        while True:
            code = ''.join(secrets.choice(LINK_CODE_ALPHABET) for _ in range(LINK_CODE_LENGTH))
            if not User.find_by_link_code(code):
                break

        user.telegram_link_code = code
        db.session.commit()

        current_app.logger.info(f'Issued Telegram link code for user ID: {user.id}')
        return code

    @staticmethod
    def link_by_code(code: str, telegram_id: int, telegram_data: Optional[dict] = None) -> Optional[User]:
        """Attach a Telegram account to the user owning ``code``; the code is consumed."""
        code = (code or '').strip().upper()
        if not code:
            return None

        user = User.find_by_link_code(code)
        if not user:
            current_app.logger.warning(f'Unknown Telegram link code from {telegram_id}')
            return None

        other = User.find_by_telegram_id(telegram_id)
        if other and other.id != user.id:
            current_app.logger.warning(f'Telegram {telegram_id} already linked to user {other.id}')
            return None

        user.telegram_id = int(telegram_id)
        user.telegram_link_code = None
        user.telegram_linked_at = datetime.utcnow()
        if telegram_data:
            user.update_telegram_data(telegram_data)
        db.session.commit()

        current_app.logger.info(f'Linked Telegram {telegram_id} to user ID: {user.id}')
        return user

    @staticmethod
    def unlink_telegram(user: User) -> None:
        """Detach the Telegram account of an email user."""
        if user.telegram_id is None:
            raise NotFoundError('Telegram account is not linked')
        if user.auth_type == 'telegram':
            raise ValidationError('Telegram is the only sign-in method of this account')

        telegram_id = user.telegram_id
        user.telegram_id = None
        user.telegram_linked_at = None
        user.telegram_link_code = None
        db.session.commit()

        current_app.logger.info(f'Unlinked Telegram {telegram_id} from user ID: {user.id}')

    @staticmethod
    def update_profile(user: User, preferences: dict) -> User:
        """Apply the non-empty profile fields."""
        for key in ('name', 'theme', 'currency', 'onboarding_completed', 'tutorial_completed'):
            value = preferences.get(key)
            if value is not None and value != '':
                setattr(user, key, value.strip() if isinstance(value, str) else value)
        db.session.commit()

        if preferences.get('theme'):
            session['theme'] = user.theme
        if preferences.get('currency'):
            session['currency'] = user.currency

        current_app.logger.info(f'Updated preferences for user ID: {user.id}')
        return user
