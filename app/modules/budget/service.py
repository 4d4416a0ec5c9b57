"""Budget service layer."""
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List, Optional
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from app.core.extensions import db
from app.core.caching import CacheManager, cached_per_user
from app.core.errors import AllocationSaveError, NotFoundError, ValidationError
from app.core.time import period_bounds, format_day_ru
from .allocation import (
    AllocationReport, build_allocation_report, sum_income_by_currency, sum_income_total,
)
from .models import Allocation, ExpenseCategory, Income, IncomeCategory
from .serializers import AllocationSchema, CategorySchema, money_value, percent_value
from .templates import get_template


class CategoryService:
    """Income and expense category management."""

    @staticmethod
    def get_income_categories(user_id: int) -> List[IncomeCategory]:
        return IncomeCategory.query.filter_by(user_id=user_id) \
            .order_by(IncomeCategory.created_at, IncomeCategory.id).all()

    @staticmethod
    def get_expense_categories(user_id: int) -> List[ExpenseCategory]:
        return ExpenseCategory.query.filter_by(user_id=user_id) \
            .order_by(ExpenseCategory.created_at, ExpenseCategory.id).all()

    @staticmethod
    def get_income_category(category_id: int, user_id: int) -> IncomeCategory:
        category = IncomeCategory.query.filter_by(id=category_id, user_id=user_id).first()
        if not category:
            raise NotFoundError(f'Income category {category_id} not found')
        return category

    @staticmethod
    def get_expense_category(category_id: int, user_id: int) -> ExpenseCategory:
        category = ExpenseCategory.query.filter_by(id=category_id, user_id=user_id).first()
        if not category:
            raise NotFoundError(f'Expense category {category_id} not found')
        return category

    @staticmethod
    def create_income_category(user_id: int, name: str, icon: str = None, color: str = None) -> IncomeCategory:
        category = IncomeCategory(user_id=user_id, name=name)
        if icon:
            category.icon = icon
        if color:
            category.color = color
        db.session.add(category)
        db.session.commit()

        CacheManager.invalidate_budget_cache(user_id)
        current_app.logger.info(f'Created income category {name} for user {user_id}')
        return category

    @staticmethod
    def create_expense_category(user_id: int, name: str, icon: str = None, color: str = None) -> ExpenseCategory:
        category = ExpenseCategory(user_id=user_id, name=name)
        if icon:
            category.icon = icon
        if color:
            category.color = color
        db.session.add(category)
        db.session.commit()

        CacheManager.invalidate_budget_cache(user_id)
        current_app.logger.info(f'Created expense category {name} for user {user_id}')
        return category

    @staticmethod
    def update_category(category, **kwargs):
        """Update name/icon/color of an income or expense category."""
        for key in ('name', 'icon', 'color'):
            value = kwargs.get(key)
            if value:
                setattr(category, key, value)
        db.session.commit()

        CacheManager.invalidate_budget_cache(category.user_id)
        current_app.logger.info(f'Updated {category.__tablename__} {category.id} for user {category.user_id}')
        return category

    @staticmethod
    def delete_category(category) -> None:
        """Delete a category.

        Allocation rules on either side go with it; income entries of a deleted
        income category become uncategorized.
        """
        user_id, category_id, kind = category.user_id, category.id, category.__tablename__
        db.session.delete(category)
        db.session.commit()

        CacheManager.invalidate_budget_cache(user_id)
        current_app.logger.info(f'Deleted {kind} {category_id} for user {user_id}')


class IncomeService:
    """Income ledger."""

    @staticmethod
    def get_incomes(user_id: int, category_id: Optional[int] = None,
                    period: Optional[str] = None, currency: Optional[str] = None) -> List[Income]:
        """Income entries newest first, optionally filtered."""
        query = Income.query.filter(Income.user_id == user_id)

        if category_id is not None:
            query = query.filter(Income.category_id == category_id)

        if currency:
            query = query.filter(Income.currency == currency)

        if period:
            start, end = period_bounds(period)
            if start is not None:
                query = query.filter(Income.created_at >= start)
            if end is not None:
                query = query.filter(Income.created_at < end)

        return query.order_by(Income.created_at.desc(), Income.id.desc()).all()

    @staticmethod
    def get_income(income_id: int, user_id: int) -> Income:
        income = Income.query.filter_by(id=income_id, user_id=user_id).first()
        if not income:
            raise NotFoundError(f'Income {income_id} not found')
        return income

    @staticmethod
    def _check_category(user_id: int, category_id: Optional[int]) -> None:
        if category_id is not None:
            CategoryService.get_income_category(category_id, user_id)

    @staticmethod
    def add_income(user_id: int, amount: Decimal, currency: str = 'RUB',
                   category_id: Optional[int] = None, description: str = None) -> Income:
        """Add income entry."""
        IncomeService._check_category(user_id, category_id)

        income = Income(
            user_id=user_id,
            amount=amount,
            currency=currency,
            category_id=category_id,
            description=description or None
        )
        db.session.add(income)
        db.session.commit()

        CacheManager.invalidate_budget_cache(user_id)
        current_app.logger.info(f'Added income {amount} {currency} for user {user_id}')
        return income

    @staticmethod
    def update_income(income_id: int, user_id: int, amount: Decimal, currency: str = None,
                      category_id: Optional[int] = None, description: str = None) -> Income:
        income = IncomeService.get_income(income_id, user_id)
        IncomeService._check_category(user_id, category_id)

        income.amount = amount
        income.category_id = category_id
        income.description = description or None
        if currency:
            income.currency = currency
        db.session.commit()

        CacheManager.invalidate_budget_cache(user_id)
        current_app.logger.info(f'Updated income {income_id} for user {user_id}')
        return income

    @staticmethod
    def delete_income(income_id: int, user_id: int) -> None:
        income = IncomeService.get_income(income_id, user_id)
        db.session.delete(income)
        db.session.commit()

        CacheManager.invalidate_budget_cache(user_id)
        current_app.logger.info(f'Deleted income {income_id} for user {user_id}')

    @staticmethod
    def get_total_income(user_id: int) -> Decimal:
        return sum_income_total(income.to_entry() for income in IncomeService.get_incomes(user_id))

    @staticmethod
    def get_history(user_id: int, period: str) -> Dict:
        """Income entries of a period grouped by day, newest day first."""
        incomes = IncomeService.get_incomes(user_id, period=period)

        groups = OrderedDict()
        for income in incomes:
            groups.setdefault(income.created_at.date(), []).append(income)

        return {
            'period': period,
            'total': sum_income_total(income.to_entry() for income in incomes),
            'by_currency': sum_income_by_currency(income.to_entry() for income in incomes),
            'groups': [
                {
                    'date': day,
                    'formatted_date': format_day_ru(day),
                    'items': items,
                    'total': sum_income_total(income.to_entry() for income in items)
                }
                for day, items in sorted(groups.items(), key=lambda item: item[0], reverse=True)
            ]
        }


class AllocationService:
    """Allocation rule store."""

    @staticmethod
    def get_allocations(user_id: int, expense_category_id: Optional[int] = None) -> List[Allocation]:
        query = Allocation.query.filter_by(user_id=user_id)
        if expense_category_id is not None:
            query = query.filter_by(expense_category_id=expense_category_id)
        return query.order_by(Allocation.created_at, Allocation.id).all()

    @staticmethod
    def replace_allocations(user_id: int, expense_category_id: int, allocations: List[Dict]) -> List[Allocation]:
        """Make ``allocations`` the complete rule set of an expense category.

        Old rules are deleted and the new ones inserted in one transaction: on
        failure nothing changes and AllocationSaveError is raised. An empty
        list leaves the category without rules.
        """
        CategoryService.get_expense_category(expense_category_id, user_id)

        income_category_ids = {a['income_category_id'] for a in allocations}
        if income_category_ids:
            owned = {
                row.id for row in IncomeCategory.query.filter(
                    IncomeCategory.user_id == user_id,
                    IncomeCategory.id.in_(income_category_ids)
                )
            }
            missing = sorted(income_category_ids - owned)
            if missing:
                raise ValidationError('Unknown income categories', details={'income_category_id': missing})

        try:
            Allocation.query.filter_by(
                user_id=user_id,
                expense_category_id=expense_category_id
            ).delete(synchronize_session='fetch')

            created = [
                Allocation(
                    user_id=user_id,
                    expense_category_id=expense_category_id,
                    income_category_id=a['income_category_id'],
                    allocation_type=a['allocation_type'],
                    allocation_value=a['allocation_value']
                )
                for a in allocations
            ]
            db.session.add_all(created)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(
                f'Failed to save allocations for expense category {expense_category_id} '
                f'of user {user_id}: {e}'
            )
            raise AllocationSaveError('Failed to save allocations') from e

        CacheManager.invalidate_budget_cache(user_id)
        current_app.logger.info(
            f'Saved {len(created)} allocations for expense category {expense_category_id} of user {user_id}'
        )
        return created


class BudgetSnapshot:
    """Everything one run of the allocation engine needs and produces."""

    def __init__(self, categories, allocations, incomes, report: AllocationReport):
        self.categories = categories
        self.allocations = allocations
        self.incomes = incomes
        self.report = report

    def category_rows(self):
        """(category, its rules, its CategoryAllocation) in category order."""
        rules_by_category = {}
        for allocation in self.allocations:
            rules_by_category.setdefault(allocation.expense_category_id, []).append(allocation)
        return [
            (category, rules_by_category.get(category.id, []), allocation)
            for category, allocation in zip(self.categories, self.report.categories)
        ]


class DashboardService:
    """Allocation overview shared by the API, the Telegram bot and the CLI."""

    @staticmethod
    def build_snapshot(user_id: int, currency: Optional[str] = None) -> BudgetSnapshot:
        """Run the allocation engine on the user's current data.

        With ``currency`` only income entries in that currency are counted.
        """
        categories = CategoryService.get_expense_categories(user_id)
        allocations = AllocationService.get_allocations(user_id)
        incomes = IncomeService.get_incomes(user_id, currency=currency)

        report = build_allocation_report(
            [c.id for c in categories],
            [a.to_rule() for a in allocations],
            [i.to_entry() for i in incomes]
        )
        return BudgetSnapshot(categories, allocations, incomes, report)

    @staticmethod
    @cached_per_user(timeout=300)
    def get_overview(user_id: int, currency: Optional[str] = None) -> Dict:
        """Serializable dashboard overview (cached per user)."""
        snapshot = DashboardService.build_snapshot(user_id, currency)
        report = snapshot.report
        all_entries = [i.to_entry() for i in IncomeService.get_incomes(user_id)]

        return {
            'currency': currency,
            'total_income': money_value(report.total_income),
            'total_allocated': money_value(report.total_allocated),
            'allocated_percent': percent_value(report.allocated_percent),
            'remainder': money_value(report.remainder),
            'is_over_allocated': report.is_over_allocated,
            'income_by_currency': {
                code: money_value(total)
                for code, total in sum_income_by_currency(all_entries).items()
            },
            'categories': [
                dict(CategorySchema.serialize(category),
                     allocations=AllocationSchema.serialize_list(rules),
                     allocated_amount=money_value(allocation.allocated_amount),
                     percent_of_total=percent_value(allocation.percent_of_total))
                for category, rules, allocation in snapshot.category_rows()
            ],
            'expense_categories_count': len(snapshot.categories),
            'income_categories_count': IncomeCategory.query.filter_by(user_id=user_id).count(),
            'rules_count': len(snapshot.allocations),
            'incomes_count': len(snapshot.incomes),
        }


class TemplateService:
    """Onboarding category templates."""

    @staticmethod
    def apply_template(user, template_id: str) -> Dict:
        """Create the template's categories for ``user`` and finish onboarding."""
        template = get_template(template_id)
        if template is None:
            raise NotFoundError(f'Template {template_id} not found')

        income_categories = [
            IncomeCategory(user_id=user.id, name=seed.name, icon=seed.icon, color=seed.color)
            for seed in template.income_categories
        ]
        expense_categories = [
            ExpenseCategory(user_id=user.id, name=seed.name, icon=seed.icon, color=seed.color)
            for seed in template.expense_categories
        ]
        db.session.add_all(income_categories + expense_categories)
        user.onboarding_completed = True
        db.session.commit()

        CacheManager.invalidate_budget_cache(user.id)
        current_app.logger.info(f'Applied template {template_id} for user {user.id}')
        return {
            'income_categories': income_categories,
            'expense_categories': expense_categories,
        }
