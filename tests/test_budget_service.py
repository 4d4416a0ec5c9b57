"""Tests for the budget service layer."""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import AllocationSaveError, NotFoundError, ValidationError
from app.core.extensions import db
from app.modules.budget.models import Allocation, Income
from app.modules.budget.service import (
    AllocationService, CategoryService, DashboardService, IncomeService, TemplateService,
)


def desired(income_category, value, allocation_type='percentage'):
    return {
        'income_category_id': income_category.id,
        'allocation_type': allocation_type,
        'allocation_value': Decimal(str(value)),
    }


class TestReplaceAllocations:

    def test_replaces_whole_rule_set(self, factory, user):
        salary = factory.income_category(user, 'Зарплата')
        freelance = factory.income_category(user, 'Фриланс')
        food = factory.expense_category(user, 'Продукты')
        factory.allocation(user, food, salary, 10)

        AllocationService.replace_allocations(user.id, food.id, [
            desired(salary, 30),
            desired(freelance, 100, 'fixed'),
        ])

        rules = AllocationService.get_allocations(user.id, food.id)
        assert [(r.income_category_id, r.allocation_type, r.allocation_value) for r in rules] == [
            (salary.id, 'percentage', Decimal('30')),
            (freelance.id, 'fixed', Decimal('100')),
        ]

    def test_empty_list_clears_rules(self, factory, user):
        salary = factory.income_category(user)
        food = factory.expense_category(user)
        for value in (10, 20, 30):
            factory.allocation(user, food, salary, value)

        AllocationService.replace_allocations(user.id, food.id, [])

        assert AllocationService.get_allocations(user.id, food.id) == []
        assert Allocation.query.filter_by(expense_category_id=food.id).count() == 0

    def test_other_categories_keep_their_rules(self, factory, user):
        salary = factory.income_category(user)
        food = factory.expense_category(user, 'Продукты')
        rent = factory.expense_category(user, 'Жильё')
        factory.allocation(user, rent, salary, 40)

        AllocationService.replace_allocations(user.id, food.id, [desired(salary, 20)])

        assert len(AllocationService.get_allocations(user.id, rent.id)) == 1

    def test_foreign_income_category_rejected_before_any_change(self, factory, user):
        other = factory.user(email='other@example.com')
        foreign = factory.income_category(other, 'Чужой доход')
        salary = factory.income_category(user)
        food = factory.expense_category(user)
        factory.allocation(user, food, salary, 50)

        with pytest.raises(ValidationError) as exc_info:
            AllocationService.replace_allocations(user.id, food.id, [desired(salary, 10), desired(foreign, 10)])

        assert exc_info.value.details == {'income_category_id': [foreign.id]}
        rules = AllocationService.get_allocations(user.id, food.id)
        assert [r.allocation_value for r in rules] == [Decimal('50')]

    def test_unknown_expense_category(self, factory, user):
        with pytest.raises(NotFoundError):
            AllocationService.replace_allocations(user.id, 999, [])

    def test_failed_insert_rolls_back(self, factory, user, monkeypatch):
        salary = factory.income_category(user)
        food = factory.expense_category(user)
        for value in (10, 20, 30):
            factory.allocation(user, food, salary, value)

        def broken_add_all(rows):
            raise SQLAlchemyError('disk full')

        monkeypatch.setattr(db.session, 'add_all', broken_add_all)

        with pytest.raises(AllocationSaveError):
            AllocationService.replace_allocations(user.id, food.id, [desired(salary, 90)])

        monkeypatch.undo()
        values = sorted(r.allocation_value for r in AllocationService.get_allocations(user.id, food.id))
        assert values == [Decimal('10'), Decimal('20'), Decimal('30')]


class TestIncomeService:

    def test_ledger_is_newest_first(self, factory, user):
        now = datetime.utcnow()
        old = factory.income(user, 100, created_at=now - timedelta(days=2))
        new = factory.income(user, 200, created_at=now)

        assert [i.id for i in IncomeService.get_incomes(user.id)] == [new.id, old.id]

    def test_filters(self, factory, user):
        salary = factory.income_category(user)
        factory.income(user, 100, category=salary)
        factory.income(user, 50, currency='USD')
        factory.income(user, 70, created_at=datetime.utcnow() - timedelta(days=400))

        assert len(IncomeService.get_incomes(user.id, category_id=salary.id)) == 1
        assert len(IncomeService.get_incomes(user.id, currency='USD')) == 1
        assert len(IncomeService.get_incomes(user.id, period='current')) == 2
        assert len(IncomeService.get_incomes(user.id, period='all')) == 3

    def test_add_income_checks_category_owner(self, factory, user):
        other = factory.user(email='other@example.com')
        foreign = factory.income_category(other)

        with pytest.raises(NotFoundError):
            IncomeService.add_income(user.id, Decimal('100'), category_id=foreign.id)

    def test_deleting_income_category_keeps_entries_uncategorized(self, factory, user):
        salary = factory.income_category(user)
        food = factory.expense_category(user)
        income = factory.income(user, 1000, category=salary)
        factory.allocation(user, food, salary, 30)

        CategoryService.delete_category(salary)

        assert db.session.get(Income, income.id).category_id is None
        assert AllocationService.get_allocations(user.id) == []

    def test_deleting_expense_category_removes_its_rules(self, factory, user):
        salary = factory.income_category(user)
        food = factory.expense_category(user)
        factory.allocation(user, food, salary, 30)

        CategoryService.delete_category(food)

        assert Allocation.query.count() == 0

    def test_history_groups_by_day(self, factory, user):
        today = datetime.utcnow().replace(hour=12, minute=0, second=0, microsecond=0)
        factory.income(user, 100, created_at=today)
        factory.income(user, 50, created_at=today.replace(hour=9))
        factory.income(user, 30, created_at=today - timedelta(days=1), currency='USD')

        history = IncomeService.get_history(user.id, 'all')

        assert history['total'] == Decimal('180')
        assert history['by_currency'] == {'RUB': Decimal('150'), 'USD': Decimal('30')}
        assert [g['date'] for g in history['groups']] == [today.date(), (today - timedelta(days=1)).date()]
        assert history['groups'][0]['total'] == Decimal('150')
        assert len(history['groups'][0]['items']) == 2


class TestDashboardService:

    def test_snapshot_matches_engine(self, factory, user):
        salary = factory.income_category(user, 'Зарплата')
        freelance = factory.income_category(user, 'Фриланс')
        food = factory.expense_category(user, 'Продукты')
        factory.income(user, 1000, category=salary)
        factory.income(user, 500, category=freelance)
        factory.allocation(user, food, salary, 30)
        factory.allocation(user, food, freelance, 100, 'fixed')

        report = DashboardService.build_snapshot(user.id).report

        assert report.total_income == Decimal('1500')
        assert report.for_category(food.id).allocated_amount == Decimal('400')
        assert report.remainder == Decimal('1100')

    def test_overview_by_currency_bucket(self, factory, user):
        salary = factory.income_category(user)
        food = factory.expense_category(user)
        factory.income(user, 1000, category=salary, currency='RUB')
        factory.income(user, 200, category=salary, currency='USD')
        factory.allocation(user, food, salary, 50)

        overview = DashboardService.get_overview(user.id, 'USD')

        assert overview['total_income'] == 200.0
        assert overview['categories'][0]['allocated_amount'] == 100.0
        assert overview['income_by_currency'] == {'RUB': 1000.0, 'USD': 200.0}
        assert overview['rules_count'] == 1

    def test_overview_cache_is_invalidated_by_mutations(self, factory, user):
        salary = factory.income_category(user)
        factory.expense_category(user)
        IncomeService.add_income(user.id, Decimal('100'), category_id=salary.id)
        assert DashboardService.get_overview(user.id)['total_income'] == 100.0

        IncomeService.add_income(user.id, Decimal('50'), category_id=salary.id)

        assert DashboardService.get_overview(user.id)['total_income'] == 150.0


class TestTemplateService:

    def test_apply_template(self, user):
        result = TemplateService.apply_template(user, 'basic')

        assert [c.name for c in result['income_categories']] == ['Зарплата', 'Аванс', 'Подработка']
        assert len(CategoryService.get_expense_categories(user.id)) == 6
        assert user.onboarding_completed is True

    def test_unknown_template(self, user):
        with pytest.raises(NotFoundError):
            TemplateService.apply_template(user, 'nope')
