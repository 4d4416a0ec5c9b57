"""Allocation engine.

Pure functions that turn income entries and allocation rules into per
expense category allocations. Every place that shows allocated amounts (the
overview API, the category list, the Telegram ``/balance`` command, the CLI
report) goes through :func:`build_allocation_report`, so the numbers agree
everywhere.

Rules of the computation:

* percentage rule: ``source_income * value / 100``, never capped;
* fixed rule: ``min(value, source_income)``, a fixed amount can not take
  more than its income category actually holds;
* a rule whose income category has no entries contributes ``0``;
* the unallocated remainder is ``total_income - allocated`` and may be
  negative when rules over-allocate.

Amounts are ``Decimal``. Inputs are never mutated.
"""
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, Hashable, Iterable, List, NamedTuple, Optional, Sequence

from app.core.money import ZERO, to_decimal

UNCATEGORIZED = 'uncategorized'

PERCENTAGE = 'percentage'
FIXED = 'fixed'
ALLOCATION_TYPES = (PERCENTAGE, FIXED)

HUNDRED = Decimal('100')


class IncomeEntry(NamedTuple):
    """Income ledger row as seen by the engine."""
    id: Hashable
    category_id: Optional[Hashable]
    amount: Decimal
    currency: str = 'RUB'
    created_at: Optional[datetime] = None


class AllocationRule(NamedTuple):
    """Earmarks part of one income category for one expense category."""
    id: Hashable
    expense_category_id: Hashable
    income_category_id: Hashable
    type: str
    value: Decimal


class CategoryAllocation(NamedTuple):
    expense_category_id: Hashable
    allocated_amount: Decimal
    percent_of_total: Decimal


class AllocationReport(NamedTuple):
    total_income: Decimal
    total_allocated: Decimal
    allocated_percent: Decimal
    remainder: Decimal
    categories: List[CategoryAllocation]

    def for_category(self, expense_category_id) -> CategoryAllocation:
        for allocation in self.categories:
            if allocation.expense_category_id == expense_category_id:
                return allocation
        return CategoryAllocation(expense_category_id, ZERO, ZERO)

    @property
    def is_over_allocated(self) -> bool:
        return self.remainder < 0


def category_key(category_id) -> Hashable:
    """Aggregation key for an income entry's category reference."""
    return UNCATEGORIZED if category_id is None else category_id


def sum_income_by_category(entries: Iterable[IncomeEntry]) -> Dict[Hashable, Decimal]:
    """Total income per income category; entries without one go under UNCATEGORIZED."""
    totals = defaultdict(lambda: ZERO)
    for entry in entries:
        totals[category_key(entry.category_id)] += to_decimal(entry.amount)
    return dict(totals)


def sum_income_total(entries: Iterable[IncomeEntry]) -> Decimal:
    return sum((to_decimal(entry.amount) for entry in entries), ZERO)


def sum_income_by_currency(entries: Iterable[IncomeEntry]) -> Dict[str, Decimal]:
    """Total income per currency code, for display only (no conversion)."""
    totals = defaultdict(lambda: ZERO)
    for entry in entries:
        totals[entry.currency] += to_decimal(entry.amount)
    return dict(totals)


def rule_contribution(rule: AllocationRule, income_by_category: Dict[Hashable, Decimal]) -> Decimal:
    """Amount a single rule moves into its expense category."""
    source_income = to_decimal(income_by_category.get(rule.income_category_id, ZERO))
    value = to_decimal(rule.value)

    if rule.type == PERCENTAGE:
        return source_income * value / HUNDRED
    if rule.type == FIXED:
        return min(value, source_income)
    # Unknown types are rejected when rules are saved
    return ZERO


def compute_category_allocation(expense_category_id, rules: Iterable[AllocationRule],
                                income_by_category: Dict[Hashable, Decimal]) -> Decimal:
    """Sum of contributions of every rule targeting ``expense_category_id``."""
    return sum(
        (rule_contribution(rule, income_by_category)
         for rule in rules if rule.expense_category_id == expense_category_id),
        ZERO
    )


def compute_percent_of_total(allocated_amount, total_income) -> Decimal:
    """Share of total income on a 0..100 scale; 0 when there is no income."""
    total_income = to_decimal(total_income)
    if total_income <= 0:
        return ZERO
    return to_decimal(allocated_amount) / total_income * HUNDRED


def compute_unallocated_remainder(total_income, allocations: Iterable) -> Decimal:
    """Total income minus everything allocated. Not clamped at zero.

    ``allocations`` may hold plain amounts or :class:`CategoryAllocation` items.
    """
    allocated = sum(
        (to_decimal(getattr(item, 'allocated_amount', item)) for item in allocations),
        ZERO
    )
    return to_decimal(total_income) - allocated


def build_allocation_report(expense_category_ids: Sequence[Hashable],
                            rules: Sequence[AllocationRule],
                            entries: Sequence[IncomeEntry]) -> AllocationReport:
    """Run the whole computation for a set of expense categories.

    Categories come back in the order of ``expense_category_ids``. Rules that
    target categories outside that list are ignored, so the remainder only
    accounts for the categories being reported.
    """
    income_by_category = sum_income_by_category(entries)
    total_income = sum_income_total(entries)

    categories = []
    for expense_category_id in expense_category_ids:
        allocated = compute_category_allocation(expense_category_id, rules, income_by_category)
        categories.append(CategoryAllocation(
            expense_category_id=expense_category_id,
            allocated_amount=allocated,
            percent_of_total=compute_percent_of_total(allocated, total_income)
        ))

    total_allocated = sum((c.allocated_amount for c in categories), ZERO)

    return AllocationReport(
        total_income=total_income,
        total_allocated=total_allocated,
        allocated_percent=compute_percent_of_total(total_allocated, total_income),
        remainder=compute_unallocated_remainder(total_income, categories),
        categories=categories
    )
