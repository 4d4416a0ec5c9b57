"""Application configuration."""
import os
import secrets
from datetime import timedelta


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or secrets.token_hex(32)
    SQLALCHEMY_DATABASE_URI = os.environ.get('BUDGET_DB', 'sqlite:///budget.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True
    }

    # Session configuration
    PERMANENT_SESSION_LIFETIME = timedelta(days=30)
    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # CSRF applies to session endpoints (auth); the data API is exempt
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = None

    # Cache configuration. SimpleCache lives in one process: when telegram_bot.py
    # runs next to the web app both need a shared backend (RedisCache).
    CACHE_TYPE = os.environ.get('CACHE_TYPE', 'SimpleCache')
    CACHE_DEFAULT_TIMEOUT = 300

    # Telegram
    TELEGRAM_BOT_TOKEN = os.environ.get('TELEGRAM_BOT_TOKEN')
    TELEGRAM_WEBHOOK_SECRET = os.environ.get('TELEGRAM_WEBHOOK_SECRET')
    TELEGRAM_BOT_USERNAME = os.environ.get('TELEGRAM_BOT_USERNAME')
    TELEGRAM_API_URL = os.environ.get('TELEGRAM_API_URL', 'https://api.telegram.org/bot')
    TELEGRAM_AUTH_MAX_AGE = int(os.environ.get('TELEGRAM_AUTH_MAX_AGE', str(24 * 3600)))
    TELEGRAM_LOGIN_ENABLED = os.environ.get('TELEGRAM_LOGIN_ENABLED', 'true').lower() == 'true'
    WEB_URL = os.environ.get('WEB_URL', 'https://crystalbudget.net')

    # Money
    DEFAULT_CURRENCY = os.environ.get('DEFAULT_CURRENCY', 'RUB').upper()

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = os.environ.get('HTTPS_MODE', 'false').lower() == 'true'

    def __init__(self):
        """Validate production configuration."""
        super().__init__()
        if not os.environ.get('SECRET_KEY'):
            raise RuntimeError(
                "SECRET_KEY environment variable must be set in production. "
                "Generate one with: python -c 'import secrets; print(secrets.token_hex(32))'"
            )


class TestingConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    WTF_CSRF_ENABLED = False
    CACHE_TYPE = 'SimpleCache'
    TELEGRAM_BOT_TOKEN = '123456:TEST-TOKEN'
    TELEGRAM_WEBHOOK_SECRET = 'webhook-secret'


config_by_name = {
    "production": ProductionConfig,
    "development": DevelopmentConfig,
    "testing": TestingConfig,
}


def get_config(config_name=None):
    """Get configuration object for the given name (or APP_CONFIG)."""
    if config_name is None:
        config_name = os.environ.get('APP_CONFIG', 'development')

    config_class = config_by_name.get(config_name, DevelopmentConfig)
    return config_class()
