"""Outgoing Telegram Bot API calls."""
import requests
from flask import current_app

REQUEST_TIMEOUT = 10


def send_message(chat_id: int, text: str, parse_mode: str = 'HTML') -> bool:
    """Send a message through the Bot API; returns False when Telegram refuses it."""
    token = current_app.config.get('TELEGRAM_BOT_TOKEN')
    if not token:
        current_app.logger.warning('TELEGRAM_BOT_TOKEN is not configured, message dropped')
        return False

    url = f"{current_app.config['TELEGRAM_API_URL']}{token}/sendMessage"
    try:
        response = requests.post(url, json={
            'chat_id': chat_id,
            'text': text,
            'parse_mode': parse_mode,
        }, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        current_app.logger.error(f'Telegram sendMessage to {chat_id} failed: {e}')
        return False

    return True
