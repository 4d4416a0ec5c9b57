"""Telegram webhook."""
import hmac
from flask import abort, current_app, jsonify, request
from .client import send_message
from .commands import handle_command
from . import telegram_bp


@telegram_bp.route('/webhook/<secret>', methods=['POST'])
def webhook(secret):
    """Receive a Bot API update and answer text commands."""
    expected = current_app.config.get('TELEGRAM_WEBHOOK_SECRET')
    if not expected or not hmac.compare_digest(secret, expected):
        current_app.logger.warning('Telegram webhook called with a wrong secret')
        abort(404)

    update = request.get_json(silent=True) or {}
    message = update.get('message') or {}
    text = message.get('text')
    if not text:
        return jsonify({'ok': True})

    from_user = message.get('from') or {}
    chat_id = (message.get('chat') or {}).get('id')
    if from_user.get('id') is None or chat_id is None:
        return jsonify({'ok': True})

    reply = handle_command(int(from_user['id']), text, from_user)
    send_message(chat_id, reply)
    return jsonify({'ok': True})
