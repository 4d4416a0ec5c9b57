"""Auth module routes."""
from flask import current_app, jsonify, request
from flask_login import current_user, login_required
from flask_wtf.csrf import generate_csrf
from app.core.api import APIResponse
from app.core.errors import AuthenticationError, TelegramAuthError, ValidationError
from .schemas import ChangePasswordForm, LoginForm, RegisterForm, TelegramAuthData
from .service import AuthService
from . import auth_bp


@auth_bp.route('/csrf-token')
def csrf_token():
    """Token for the X-CSRFToken header of session endpoints."""
    return jsonify(APIResponse.success({'csrf_token': generate_csrf()}))


@auth_bp.route('/register', methods=['POST'])
def register():
    data = RegisterForm().validated()
    user = AuthService.register_email(data['email'], data['name'], data['password'])
    AuthService.login_user(user)
    return jsonify(APIResponse.success(user.to_dict(), 'Регистрация успешна')), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = LoginForm().validated()

    user = AuthService.authenticate_email(data['email'], data['password'])
    if not user:
        raise AuthenticationError('Неверный email или пароль')

    AuthService.login_user(user, remember=bool(data.get('remember_me')))
    return jsonify(APIResponse.success(user.to_dict(), f'Добро пожаловать, {user.display_name}!'))


@auth_bp.route('/logout', methods=['POST'])
def logout():
    AuthService.logout_user()
    return jsonify(APIResponse.success(message='Вы вышли из системы'))


@auth_bp.route('/me')
@login_required
def me():
    return jsonify(APIResponse.success(current_user.to_dict()))


@auth_bp.route('/change-password', methods=['POST'])
@login_required
def change_password():
    data = ChangePasswordForm().validated()
    AuthService.change_password(current_user, data['current_password'], data['new_password'])
    return jsonify(APIResponse.success(message='Пароль изменен'))


@auth_bp.route('/telegram', methods=['POST'])
def telegram_auth():
    """Login widget callback: verify the payload, sign the user in."""
    if not current_app.config.get('TELEGRAM_LOGIN_ENABLED', True):
        raise TelegramAuthError('Telegram login is disabled')

    data = request.get_json(silent=True)
    if not TelegramAuthData.validate(data):
        raise ValidationError('Invalid Telegram payload')

    user = AuthService.authenticate_telegram(data)
    AuthService.login_user(user)
    return jsonify(APIResponse.success(user.to_dict(), f'Добро пожаловать, {user.display_name}!'))


@auth_bp.route('/telegram/link-code', methods=['POST'])
@login_required
def telegram_link_code():
    code = AuthService.issue_link_code(current_user)
    bot_username = current_app.config.get('TELEGRAM_BOT_USERNAME')
    return jsonify(APIResponse.success({
        'code': code,
        'command': f'/start {code}',
        'bot_url': f'https://t.me/{bot_username}?start={code}' if bot_username else None
    }))


@auth_bp.route('/telegram/link', methods=['DELETE'])
@login_required
def telegram_unlink():
    AuthService.unlink_telegram(current_user)
    return jsonify(APIResponse.success(current_user.to_dict(), 'Telegram отвязан'))
