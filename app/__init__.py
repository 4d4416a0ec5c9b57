import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from flask import Flask
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_config
from app.core.extensions import db, migrate, login_manager, csrf, cache

LOG_FORMAT = '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
LOG_FILES = (
    # (file name, level, backups)
    ('crystalbudget.log', logging.INFO, 10),
    ('errors.log', logging.ERROR, 5),
)


def configure_logging(app: Flask):
    """Rotating file logs outside debug/testing, level from LOG_LEVEL."""
    if not app.debug and not app.testing:
        logs_dir = app.config.get('LOG_DIR') or os.path.abspath(
            os.path.join(os.path.dirname(__file__), '..', 'logs'))
        os.makedirs(logs_dir, exist_ok=True)

        for filename, level, backups in LOG_FILES:
            handler = RotatingFileHandler(os.path.join(logs_dir, filename),
                                          maxBytes=10 * 1024 * 1024, backupCount=backups)
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            handler.setLevel(level)
            app.logger.addHandler(handler)

        logging.getLogger('werkzeug').setLevel(logging.WARNING)

    level_name = app.config.get('LOG_LEVEL', 'INFO')
    app.logger.setLevel(getattr(logging, level_name.upper(), logging.INFO))


def register_blueprints(app: Flask):
    from app.modules.auth import auth_bp
    from app.modules.budget import budget_bp
    from app.modules.telegram import telegram_bp

    # JSON data API and bot webhook carry no form tokens
    csrf.exempt(budget_bp)
    csrf.exempt(telegram_bp)

    for blueprint in (auth_bp, budget_bp, telegram_bp):
        app.register_blueprint(blueprint)


def create_app(config_name: Optional[str] = None):
    """Application factory."""
    config_name = config_name or os.getenv('APP_CONFIG', 'development')

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    configure_logging(app)
    app.logger.info(f'CrystalBudget startup - Config: {config_name}')

    db.init_app(app)
    # batch mode so SQLite can ALTER tables
    migrate.init_app(app, db, render_as_batch=True, compare_type=True)
    login_manager.init_app(app)
    csrf.init_app(app)
    cache.init_app(app)

    # Models must be imported before Alembic autogenerate runs
    from app.modules.auth.models import User
    from app.modules.budget import models as budget_models  # noqa: F401

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    register_blueprints(app)

    @app.route('/healthz')
    def health_check():
        try:
            with db.engine.connect() as connection:
                connection.execute(text('SELECT 1'))
        except SQLAlchemyError as e:
            app.logger.error(f'Health check failed: {e}')
            return {'status': 'error', 'message': 'Database unavailable'}, 500
        return {'status': 'ok'}, 200

    from app.core.errors import register_error_handlers
    from app.core.cli import register_cli_commands
    register_error_handlers(app)
    register_cli_commands(app)

    return app
