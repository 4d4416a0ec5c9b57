"""Test configuration and fixtures."""
from datetime import datetime
from decimal import Decimal

import pytest

from app import create_app
from app.core.caching import CacheManager
from app.core.extensions import cache, db
from app.modules.auth.models import User
from app.modules.budget.models import Allocation, ExpenseCategory, Income, IncomeCategory

TEST_PASSWORD = 'secret-password'


@pytest.fixture
def app():
    """Application on an in-memory SQLite database."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        cache.clear()


@pytest.fixture
def client(app):
    return app.test_client()


class Factory:
    """Creates rows directly, bypassing the API."""

    def user(self, email='user@example.com', name='Test User', password=TEST_PASSWORD, **kwargs):
        user = User(email=email, name=name, auth_type=kwargs.pop('auth_type', 'email'), **kwargs)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    def income_category(self, user, name='Зарплата', **kwargs):
        return self._add(IncomeCategory(user_id=user.id, name=name, **kwargs), user)

    def expense_category(self, user, name='Продукты', **kwargs):
        return self._add(ExpenseCategory(user_id=user.id, name=name, **kwargs), user)

    def income(self, user, amount, category=None, currency='RUB', created_at=None, description=None):
        return self._add(Income(
            user_id=user.id,
            amount=Decimal(str(amount)),
            currency=currency,
            category_id=category.id if category else None,
            description=description,
            created_at=created_at or datetime.utcnow()
        ), user)

    def allocation(self, user, expense_category, income_category, value, allocation_type='percentage'):
        return self._add(Allocation(
            user_id=user.id,
            expense_category_id=expense_category.id,
            income_category_id=income_category.id,
            allocation_type=allocation_type,
            allocation_value=Decimal(str(value))
        ), user)

    @staticmethod
    def _add(row, user):
        db.session.add(row)
        db.session.commit()
        CacheManager.invalidate_budget_cache(user.id)
        return row


@pytest.fixture
def factory(app):
    return Factory()


@pytest.fixture
def user(factory):
    return factory.user()


@pytest.fixture
def auth_client(client, user):
    """Test client with ``user`` logged in through the login endpoint."""
    response = client.post('/auth/login', json={'email': user.email, 'password': TEST_PASSWORD})
    assert response.status_code == 200, response.get_json()
    return client
