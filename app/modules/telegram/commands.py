"""Telegram bot commands.

Each handler takes the linked user (or None) and the command arguments and
returns the HTML reply. The webhook and the polling runner both dispatch
through :func:`handle_command`.
"""
from html import escape
from typing import Optional

from flask import current_app

from app.core.money import format_money, parse_money, to_cents
from app.modules.auth.models import User
from app.modules.auth.service import AuthService
from app.modules.budget.service import CategoryService, DashboardService, IncomeService

DEFAULT_ICON = '📁'

# Category icons are stored as icon names; the bot shows emoji
ICON_EMOJI = {
    'shopping-cart': '🛒',
    'car': '🚗',
    'home': '🏠',
    'gamepad-2': '🎮',
    'piggy-bank': '🐷',
    'more-horizontal': '📦',
    'file-text': '🧾',
    'wrench': '🔧',
    'book-open': '📚',
    'baby': '👶',
    'heart-pulse': '💊',
    'plane': '✈️',
    'folder': '📁',
    'gift': '🎁',
    'utensils': '🍽',
    'shirt': '👕',
    'phone': '📱',
}

HELP_COMMANDS = (
    "/balance — текущий баланс\n"
    "/add [сумма] [описание] — добавить доход\n"
    "/categories — список категорий\n"
    "/help — справка"
)

NOT_LINKED = (
    "⚠️ Аккаунт не привязан.\n\n"
    "Отправь /start чтобы узнать как привязать."
)

UNKNOWN_COMMAND = (
    "🤔 Не понял команду.\n\n"
    "Отправь /help для списка доступных команд."
)

ADD_USAGE = "Пример: /add 50000 Зарплата"


def icon_for(name: Optional[str]) -> str:
    return ICON_EMOJI.get(name or '', DEFAULT_ICON)


def money(amount, user: User) -> str:
    return format_money(amount, user.currency or 'RUB', places=0)


def describe_rule(allocation, user: User) -> str:
    """'30% Зарплата' or '5 000 ₽ Фриланс'."""
    if allocation.is_percentage:
        value = f"{allocation.allocation_value.normalize():f}%"
    else:
        value = money(allocation.allocation_value, user)

    if allocation.income_category:
        return f"{value} {escape(allocation.income_category.name)}"
    return value


def cmd_start(user: Optional[User], args, telegram_id: int, from_user: dict) -> str:
    if args:
        linked = AuthService.link_by_code(args[0], telegram_id, from_user)
        if not linked:
            return (
                "❌ Код не найден или уже использован.\n\n"
                "Получи новый код в настройках приложения."
            )
        return (
            "✅ Аккаунт успешно привязан!\n\n"
            f"Добро пожаловать, <b>{escape(linked.display_name or linked.email or 'друг')}</b>!\n\n"
            "Теперь ты можешь управлять бюджетом прямо из Telegram.\n"
            "Отправь /help для списка команд."
        )

    if user:
        return (
            f"👋 Привет, <b>{escape(user.display_name or 'друг')}</b>!\n\n"
            "Твой аккаунт уже привязан к CrystalBudget.\n\n"
            f"📋 <b>Доступные команды:</b>\n{HELP_COMMANDS}"
        )

    web_url = current_app.config.get('WEB_URL', '')
    return (
        "👋 Добро пожаловать в <b>CrystalBudget</b>!\n\n"
        "Чтобы начать, привяжи свой аккаунт:\n"
        f"1. Открой приложение CrystalBudget {web_url}\n"
        "2. Перейди в настройки профиля\n"
        "3. Нажми \"Привязать Telegram\"\n"
        "4. Скопируй код и отправь сюда:\n"
        "/start ТВОЙ_КОД"
    )


def cmd_balance(user: User, args) -> str:
    snapshot = DashboardService.build_snapshot(user.id)
    report = snapshot.report

    lines = [
        "💰 <b>Баланс CrystalBudget</b>\n",
        f"📥 Общий доход: <b>{money(report.total_income, user)}</b>\n",
    ]

    rows = snapshot.category_rows()
    if not rows:
        lines.append("Категории ещё не созданы. Создай их в приложении.")
        return "\n".join(lines)

    lines.append("📊 <b>Распределение:</b>")
    for category, rules, allocation in rows:
        line = f"{icon_for(category.icon)} {escape(category.name)}: {money(allocation.allocated_amount, user)}"
        if rules:
            line += f" ({', '.join(describe_rule(rule, user) for rule in rules)})"
        lines.append(line)

    lines.append(f"\n💵 Остаток: <b>{money(report.remainder, user)}</b>")
    if report.is_over_allocated:
        lines.append("⚠️ Распределено больше, чем получено дохода")

    return "\n".join(lines)


def cmd_add(user: User, args) -> str:
    if not args:
        return f"⚠️ Укажи сумму дохода.\n\n{ADD_USAGE}"

    try:
        amount = to_cents(parse_money(args[0], user.currency or 'RUB').amount)
    except ValueError:
        amount = None

    if amount is None or amount <= 0:
        return f"❌ Неверная сумма. Укажи положительное число.\n\n{ADD_USAGE}"

    description = ' '.join(args[1:]) or None
    IncomeService.add_income(
        user_id=user.id,
        amount=amount,
        currency=user.currency or 'RUB',
        description=description
    )
    total = IncomeService.get_total_income(user.id)

    reply = f"✅ <b>Доход добавлен!</b>\n\n💵 Сумма: {money(amount, user)}\n"
    if description:
        reply += f"📝 Описание: {escape(description)}\n"
    reply += f"\n📊 Новый баланс: <b>{money(total, user)}</b>"
    return reply


def cmd_categories(user: User, args) -> str:
    snapshot = DashboardService.build_snapshot(user.id)
    rows = snapshot.category_rows()

    if not rows:
        return (
            "📁 <b>Категории расходов</b>\n\n"
            "У тебя пока нет категорий.\n"
            "Создай их в приложении CrystalBudget."
        )

    lines = ["📁 <b>Категории расходов</b>\n"]
    for category, rules, _ in rows:
        sources = ', '.join(describe_rule(rule, user) for rule in rules) or 'нет источников'
        lines.append(f"{icon_for(category.icon)} <b>{escape(category.name)}</b> — {sources}")

    income_categories = CategoryService.get_income_categories(user.id)
    lines.append(f"\nВсего категорий: {len(rows)}")
    if income_categories:
        lines.append(f"Источников дохода: {len(income_categories)}")
    return "\n".join(lines)


def cmd_help(user: User, args) -> str:
    return (
        "📖 <b>Справка CrystalBudget</b>\n\n"
        "<b>Основные команды:</b>\n"
        "/balance — текущий баланс и распределение\n"
        "/add [сумма] [описание] — добавить доход\n"
        "/categories — список категорий расходов\n\n"
        "<b>Примеры:</b>\n"
        "<code>/add 50000 Зарплата</code>\n"
        "<code>/add 10000 Фриланс</code>\n\n"
        "💡 Управляй категориями в веб-приложении для полного контроля."
    )


COMMANDS = {
    '/balance': cmd_balance,
    '/add': cmd_add,
    '/categories': cmd_categories,
    '/help': cmd_help,
}


def parse_command(text: str):
    """'/add@CrystalBot 500 Зарплата' -> ('/add', ['500', 'Зарплата'])."""
    parts = (text or '').strip().split()
    if not parts:
        return '', []
    command = parts[0].split('@', 1)[0].lower()
    return command, parts[1:]


def handle_command(telegram_id: int, text: str, from_user: Optional[dict] = None) -> str:
    """Run one bot command for a Telegram account and return the reply."""
    command, args = parse_command(text)
    user = User.find_by_telegram_id(telegram_id)

    current_app.logger.info(f'Telegram command {command or "<empty>"} from {telegram_id}')

    if command == '/start':
        return cmd_start(user, args, telegram_id, from_user or {})

    if not user:
        return NOT_LINKED

    handler = COMMANDS.get(command)
    if handler is None:
        return UNKNOWN_COMMAND
    return handler(user, args)
