"""Domain exceptions and global error handlers."""
import logging
from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class BudgetError(Exception):
    """Base class for errors surfaced to API clients."""
    status_code = 500
    code = 'budget_error'

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(BudgetError):
    """Input failed validation at the API boundary."""
    status_code = 400
    code = 'validation_error'


class NotFoundError(BudgetError):
    """Referenced entity does not exist or belongs to another user."""
    status_code = 404
    code = 'not_found'


class AllocationSaveError(BudgetError):
    """Bulk replace of allocation rules failed; nothing was applied."""
    status_code = 500
    code = 'allocation_save_failed'


class AuthenticationError(BudgetError):
    """Wrong credentials."""
    status_code = 401
    code = 'invalid_credentials'


class TelegramAuthError(BudgetError):
    """Telegram login widget payload could not be verified."""
    status_code = 401
    code = 'telegram_auth_failed'


def error_response(message: str, status_code: int, code: str = None, details=None):
    """Build the JSON error envelope used by every endpoint."""
    from app.core.api import APIResponse
    return jsonify(APIResponse.error(message, code=code, details=details)), status_code


def register_error_handlers(app):
    """Register error handlers for the application."""

    @app.errorhandler(BudgetError)
    def budget_error(error):
        if error.status_code >= 500:
            logger.error(f'{error.__class__.__name__}: {error.message}')
        return error_response(error.message, error.status_code, error.code, error.details)

    @app.errorhandler(400)
    def bad_request_error(error):
        return error_response('Bad request', 400)

    @app.errorhandler(401)
    def unauthorized_error(error):
        return error_response('Authentication required', 401)

    @app.errorhandler(403)
    def forbidden_error(error):
        return error_response('Forbidden', 403)

    @app.errorhandler(404)
    def not_found_error(error):
        return error_response('Not found', 404)

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return error_response('Method not allowed', 405)

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f'Server Error: {error}')
        return error_response('Internal server error', 500)

    @app.errorhandler(HTTPException)
    def http_error(error):
        return error_response(error.description or error.name, error.code)
