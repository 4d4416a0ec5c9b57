#!/usr/bin/env python3
"""
Telegram бот CrystalBudget (long polling): баланс, доходы, категории.

Команды те же, что обслуживает вебхук /telegram/webhook/<secret>.
"""

import logging
import os

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from app import create_app
from app.core.caching import is_shared_cache
from app.modules.telegram.commands import handle_command

# Логирование
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
logger = logging.getLogger(__name__)

flask_app = create_app(os.environ.get("APP_CONFIG"))


def telegram_user_data(update: Update) -> dict:
    user = update.effective_user
    return {
        'id': user.id,
        'username': user.username,
        'first_name': user.first_name,
        'last_name': user.last_name,
    }


async def dispatch(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Answer any text message with the shared command handler."""
    if not update.message or not update.message.text:
        return

    with flask_app.app_context():
        reply = handle_command(update.effective_user.id, update.message.text, telegram_user_data(update))

    await update.message.reply_text(reply, parse_mode=ParseMode.HTML)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Обработчик ошибок"""
    logger.error(f"Exception while handling an update: {context.error}")


def main():
    """Запуск бота"""
    token = flask_app.config.get("TELEGRAM_BOT_TOKEN")
    if not token:
        logger.error("Установите переменную окружения TELEGRAM_BOT_TOKEN")
        raise SystemExit(1)

    logger.info(f"Запуск CrystalBudget Telegram Bot, база данных: {flask_app.config['SQLALCHEMY_DATABASE_URI']}")
    if not is_shared_cache(flask_app.config):
        logger.warning(
            f"CACHE_TYPE={flask_app.config.get('CACHE_TYPE')} не общий с веб-приложением: "
            "после /add обзор на сайте обновится только по таймауту кеша"
        )

    application = Application.builder().token(token).build()

    for command in ("start", "balance", "add", "categories", "help"):
        application.add_handler(CommandHandler(command, dispatch))
    # Unknown commands and plain text get the "не понял" reply
    application.add_handler(MessageHandler(filters.TEXT, dispatch))

    application.add_error_handler(error_handler)

    logger.info("Бот запущен и готов к работе")
    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
