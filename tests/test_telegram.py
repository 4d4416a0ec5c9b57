"""Tests for the Telegram bot commands and webhook."""
from decimal import Decimal

import pytest
import requests

from app.modules.budget.service import IncomeService
from app.modules.telegram import client as telegram_client
from app.modules.telegram.commands import NOT_LINKED, UNKNOWN_COMMAND, handle_command, parse_command

TELEGRAM_ID = 4242


@pytest.fixture
def linked_user(factory):
    return factory.user(email='bot@example.com', name='Bot User', telegram_id=TELEGRAM_ID)


@pytest.fixture
def sent(monkeypatch):
    """Captures Bot API calls instead of hitting Telegram."""
    calls = []

    class FakeResponse:
        def raise_for_status(self):
            pass

    def fake_post(url, json=None, timeout=None):
        calls.append({'url': url, 'json': json})
        return FakeResponse()

    monkeypatch.setattr(telegram_client.requests, 'post', fake_post)
    return calls


def update(text, telegram_id=TELEGRAM_ID):
    return {
        'update_id': 1,
        'message': {
            'message_id': 1,
            'from': {'id': telegram_id, 'first_name': 'Ivan'},
            'chat': {'id': telegram_id, 'type': 'private'},
            'text': text,
        }
    }


class TestParseCommand:

    def test_bot_mention_and_args(self):
        assert parse_command('/add@CrystalBot 500 Зарплата  июнь') == ('/add', ['500', 'Зарплата', 'июнь'])

    def test_empty(self):
        assert parse_command('   ') == ('', [])


class TestCommands:

    def test_unlinked_user_gets_hint(self, app):
        assert handle_command(1, '/balance') == NOT_LINKED

    def test_start_without_code(self, app):
        assert 'ТВОЙ_КОД' in handle_command(1, '/start')

    def test_start_links_account(self, app, user):
        user.telegram_link_code = 'ABCD1234'

        reply = handle_command(TELEGRAM_ID, '/start abcd1234', {'id': TELEGRAM_ID, 'first_name': 'Ivan'})

        assert 'Аккаунт успешно привязан' in reply
        assert user.telegram_id == TELEGRAM_ID
        assert handle_command(TELEGRAM_ID, '/help') != NOT_LINKED

    def test_start_with_unknown_code(self, app):
        assert 'Код не найден' in handle_command(TELEGRAM_ID, '/start NOPE0000')

    def test_balance_uses_allocation_engine(self, app, factory, linked_user):
        salary = factory.income_category(linked_user, 'Зарплата')
        freelance = factory.income_category(linked_user, 'Фриланс')
        food = factory.expense_category(linked_user, 'Продукты', icon='shopping-cart')
        factory.income(linked_user, 1000, category=salary)
        factory.income(linked_user, 500, category=freelance)
        factory.allocation(linked_user, food, salary, 30)
        factory.allocation(linked_user, food, freelance, 800, 'fixed')

        reply = handle_command(TELEGRAM_ID, '/balance')

        assert 'Общий доход: <b>1 500 ₽</b>' in reply
        # the fixed rule is capped at the 500 of freelance income
        assert '🛒 Продукты: 800 ₽ (30% Зарплата, 800 ₽ Фриланс)' in reply
        assert 'Остаток: <b>700 ₽</b>' in reply

    def test_balance_reports_over_allocation(self, app, factory, linked_user):
        salary = factory.income_category(linked_user)
        food = factory.expense_category(linked_user)
        factory.income(linked_user, 1000, category=salary)
        factory.allocation(linked_user, food, salary, 60)
        factory.allocation(linked_user, food, salary, 60)

        reply = handle_command(TELEGRAM_ID, '/balance')

        assert 'Остаток: <b>-200 ₽</b>' in reply
        assert '⚠️' in reply

    def test_balance_without_categories(self, app, linked_user):
        assert 'Категории ещё не созданы' in handle_command(TELEGRAM_ID, '/balance')

    def test_add_income(self, app, factory, linked_user):
        factory.income(linked_user, 1000)

        reply = handle_command(TELEGRAM_ID, '/add 50000 Премия')

        assert 'Доход добавлен' in reply
        [income] = [i for i in IncomeService.get_incomes(linked_user.id) if i.description]
        assert income.category_id is None

    def test_add_income_amount_and_description(self, app, linked_user):
        reply = handle_command(TELEGRAM_ID, '/add 1500,50 Фриланс заказ')

        [income] = IncomeService.get_incomes(linked_user.id)
        assert income.amount == Decimal('1500.50')
        assert income.description == 'Фриланс заказ'
        assert 'Новый баланс: <b>1 501 ₽</b>' in reply

    @pytest.mark.parametrize('text', ['/add', '/add abc', '/add -5', '/add 0', '/add 1e30 big', '/add 1000000000000'])
    def test_add_rejects_bad_amount(self, app, linked_user, text):
        reply = handle_command(TELEGRAM_ID, text)

        assert '/add 50000 Зарплата' in reply
        assert IncomeService.get_incomes(linked_user.id) == []

    def test_categories(self, app, factory, linked_user):
        salary = factory.income_category(linked_user, 'Зарплата')
        food = factory.expense_category(linked_user, 'Продукты')
        factory.expense_category(linked_user, 'Отпуск')
        factory.allocation(linked_user, food, salary, 25)

        reply = handle_command(TELEGRAM_ID, '/categories')

        assert '<b>Продукты</b> — 25% Зарплата' in reply
        assert '<b>Отпуск</b> — нет источников' in reply
        assert 'Всего категорий: 2' in reply

    def test_unknown_command(self, app, linked_user):
        assert handle_command(TELEGRAM_ID, '/dance') == UNKNOWN_COMMAND

    def test_names_are_escaped(self, app, factory, linked_user):
        factory.expense_category(linked_user, '<script>')
        assert '&lt;script&gt;' in handle_command(TELEGRAM_ID, '/categories')


class TestWebhook:

    def test_wrong_secret(self, client, sent):
        assert client.post('/telegram/webhook/guess', json=update('/help')).status_code == 404
        assert sent == []

    def test_replies_through_bot_api(self, client, sent, linked_user):
        response = client.post('/telegram/webhook/webhook-secret', json=update('/help'))

        assert response.get_json() == {'ok': True}
        [call] = sent
        assert call['url'] == 'https://api.telegram.org/bot123456:TEST-TOKEN/sendMessage'
        assert call['json']['chat_id'] == TELEGRAM_ID
        assert call['json']['parse_mode'] == 'HTML'
        assert 'Справка CrystalBudget' in call['json']['text']

    def test_non_text_updates_are_ignored(self, client, sent):
        response = client.post('/telegram/webhook/webhook-secret', json={'update_id': 2})

        assert response.get_json() == {'ok': True}
        assert sent == []

    def test_send_failure_is_logged_not_raised(self, app, monkeypatch):
        def failing_post(*args, **kwargs):
            raise requests.ConnectionError('offline')

        monkeypatch.setattr(telegram_client.requests, 'post', failing_post)

        assert telegram_client.send_message(1, 'hi') is False
