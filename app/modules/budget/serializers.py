"""Response serialization for the budget API."""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List

from app.core.time import PERIOD_LABELS

CENT = Decimal('0.01')


def money_value(amount) -> float:
    """Decimal amount as a JSON number rounded to cents."""
    return float(Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP))


def percent_value(percent) -> float:
    """Percent on the 0..100 scale rounded to two places."""
    return float(Decimal(percent).quantize(CENT, rounding=ROUND_HALF_UP))


class CategorySchema:
    """Income/expense category serialization schema."""

    @staticmethod
    def serialize(category) -> Dict:
        return {
            'id': category.id,
            'name': category.name,
            'icon': category.icon,
            'color': category.color,
            'created_at': category.created_at.isoformat() if category.created_at else None
        }

    @staticmethod
    def serialize_list(categories: List) -> List[Dict]:
        return [CategorySchema.serialize(category) for category in categories]


class IncomeSchema:
    """Income serialization schema."""

    @staticmethod
    def serialize(income) -> Dict:
        return {
            'id': income.id,
            'category_id': income.category_id,
            'category_name': income.category.name if income.category else None,
            'amount': money_value(income.amount),
            'currency': income.currency,
            'formatted_amount': income.money_amount.format(),
            'description': income.description,
            'created_at': income.created_at.isoformat()
        }

    @staticmethod
    def serialize_list(incomes: List) -> List[Dict]:
        return [IncomeSchema.serialize(income) for income in incomes]


class AllocationSchema:
    """Allocation rule serialization schema."""

    @staticmethod
    def serialize(allocation) -> Dict:
        return {
            'id': allocation.id,
            'expense_category_id': allocation.expense_category_id,
            'income_category_id': allocation.income_category_id,
            'income_category_name': allocation.income_category.name if allocation.income_category else None,
            'allocation_type': allocation.allocation_type,
            'allocation_value': money_value(allocation.allocation_value)
        }

    @staticmethod
    def serialize_list(allocations: List) -> List[Dict]:
        return [AllocationSchema.serialize(allocation) for allocation in allocations]


class HistorySchema:
    """Income history (grouped by day) serialization schema."""

    @staticmethod
    def serialize(history: Dict) -> Dict:
        return {
            'period': history['period'],
            'label': PERIOD_LABELS[history['period']],
            'total': money_value(history['total']),
            'by_currency': {
                code: money_value(total) for code, total in history['by_currency'].items()
            },
            'groups': [
                {
                    'date': group['date'].isoformat(),
                    'formatted_date': group['formatted_date'],
                    'total': money_value(group['total']),
                    'items': IncomeSchema.serialize_list(group['items'])
                }
                for group in history['groups']
            ]
        }
