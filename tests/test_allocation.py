"""Tests for the allocation engine."""
import random
from decimal import Decimal

import pytest

from app.modules.budget.allocation import (
    FIXED, PERCENTAGE, UNCATEGORIZED, AllocationRule, CategoryAllocation, IncomeEntry,
    build_allocation_report, compute_category_allocation, compute_percent_of_total,
    compute_unallocated_remainder, rule_contribution, sum_income_by_category,
    sum_income_by_currency, sum_income_total,
)


def entry(id, category, amount, currency='RUB'):
    return IncomeEntry(id=id, category_id=category, amount=Decimal(str(amount)), currency=currency)


def rule(id, expense, income, type, value):
    return AllocationRule(id=id, expense_category_id=expense, income_category_id=income,
                          type=type, value=Decimal(str(value)))


@pytest.fixture
def salary_and_freelance():
    entries = [entry(1, 'salary', 1000), entry(2, 'freelance', 500)]
    rules = [
        rule(1, 'food', 'salary', PERCENTAGE, 30),
        rule(2, 'food', 'freelance', FIXED, 100),
    ]
    return entries, rules


class TestAggregation:

    def test_sum_by_category(self):
        entries = [entry(1, 'salary', 1000), entry(2, 'salary', '250.50'), entry(3, 'bonus', 100)]

        assert sum_income_by_category(entries) == {
            'salary': Decimal('1250.50'),
            'bonus': Decimal('100'),
        }

    def test_uncategorized_entries_use_sentinel_key(self):
        entries = [entry(1, None, 300), entry(2, None, 200), entry(3, 'salary', 1000)]

        totals = sum_income_by_category(entries)

        assert totals[UNCATEGORIZED] == Decimal('500')
        assert totals['salary'] == Decimal('1000')

    def test_sum_total_is_exact(self):
        entries = [entry(i, None, '0.10') for i in range(10)]
        assert sum_income_total(entries) == Decimal('1.00')

    def test_sum_total_of_nothing_is_zero(self):
        assert sum_income_total([]) == Decimal('0')

    def test_sum_by_currency(self):
        entries = [entry(1, 'a', 100, 'RUB'), entry(2, 'a', 50, 'USD'), entry(3, 'b', 20, 'USD')]
        assert sum_income_by_currency(entries) == {'RUB': Decimal('100'), 'USD': Decimal('70')}


class TestRuleContribution:

    def test_percentage(self):
        assert rule_contribution(rule(1, 'food', 'salary', PERCENTAGE, 30), {'salary': Decimal('1000')}) == 300

    def test_percentage_is_not_capped(self):
        r = rule(1, 'food', 'salary', PERCENTAGE, 150)
        assert rule_contribution(r, {'salary': Decimal('1000')}) == Decimal('1500')

    def test_fixed_below_source(self):
        assert rule_contribution(rule(1, 'food', 'salary', FIXED, 100), {'salary': Decimal('500')}) == 100

    def test_fixed_is_capped_at_source(self):
        assert rule_contribution(rule(1, 'food', 'salary', FIXED, 800), {'salary': Decimal('500')}) == 500

    def test_missing_source_contributes_zero(self):
        assert rule_contribution(rule(1, 'food', 'gone', PERCENTAGE, 50), {'salary': Decimal('500')}) == 0
        assert rule_contribution(rule(2, 'food', 'gone', FIXED, 50), {}) == 0

    def test_unknown_type_contributes_zero(self):
        assert rule_contribution(rule(1, 'food', 'salary', 'bogus', 50), {'salary': Decimal('500')}) == 0


class TestCategoryAllocation:

    def test_concrete_scenario(self, salary_and_freelance):
        entries, rules = salary_and_freelance

        report = build_allocation_report(['food'], rules, entries)
        food = report.for_category('food')

        assert food.allocated_amount == Decimal('400')
        assert report.total_income == Decimal('1500')
        assert food.percent_of_total.quantize(Decimal('0.01')) == Decimal('26.67')
        assert report.remainder == Decimal('1100')
        assert not report.is_over_allocated

    def test_category_without_rules(self):
        entries = [entry(1, 'salary', 2000)]

        report = build_allocation_report(['rent'], [], entries)

        assert report.for_category('rent').allocated_amount == 0
        assert report.for_category('rent').percent_of_total == 0
        assert report.remainder == Decimal('2000')

    def test_over_allocation_is_surfaced(self):
        entries = [entry(1, 'salary', 1000)]
        rules = [
            rule(1, 'food', 'salary', PERCENTAGE, 60),
            rule(2, 'food', 'salary', PERCENTAGE, 60),
        ]

        report = build_allocation_report(['food'], rules, entries)

        assert report.for_category('food').allocated_amount == Decimal('1200')
        assert report.for_category('food').percent_of_total == Decimal('120')
        assert report.remainder == Decimal('-200')
        assert report.is_over_allocated

    def test_duplicate_rules_are_additive(self):
        rules = [rule(1, 'food', 'salary', FIXED, 100), rule(2, 'food', 'salary', FIXED, 100)]
        allocated = compute_category_allocation('food', rules, {'salary': Decimal('1000')})
        assert allocated == Decimal('200')

    def test_rules_of_other_categories_are_ignored(self):
        rules = [rule(1, 'food', 'salary', FIXED, 100), rule(2, 'rent', 'salary', FIXED, 300)]
        assert compute_category_allocation('food', rules, {'salary': Decimal('1000')}) == Decimal('100')

    def test_zero_income(self):
        rules = [
            rule(1, 'food', 'salary', PERCENTAGE, 30),
            rule(2, 'food', 'salary', FIXED, 500),
            rule(3, 'rent', 'salary', FIXED, 1000),
        ]

        report = build_allocation_report(['food', 'rent'], rules, [])

        assert report.total_income == 0
        assert all(c.allocated_amount == 0 for c in report.categories)
        assert all(c.percent_of_total == 0 for c in report.categories)
        assert report.allocated_percent == 0
        assert report.remainder == 0

    def test_rule_for_income_category_without_entries(self):
        entries = [entry(1, 'salary', 1000)]
        rules = [rule(1, 'food', 'deleted-category', PERCENTAGE, 50)]

        report = build_allocation_report(['food'], rules, entries)

        assert report.for_category('food').allocated_amount == 0
        assert report.remainder == Decimal('1000')

    def test_uncategorized_income_counts_in_total_only(self):
        entries = [entry(1, None, 500), entry(2, 'salary', 1000)]
        rules = [rule(1, 'food', 'salary', PERCENTAGE, 10)]

        report = build_allocation_report(['food'], rules, entries)

        assert report.total_income == Decimal('1500')
        assert report.for_category('food').allocated_amount == Decimal('100')
        assert report.remainder == Decimal('1400')

    def test_categories_follow_requested_order(self, salary_and_freelance):
        entries, rules = salary_and_freelance

        report = build_allocation_report(['rent', 'food', 'fun'], rules, entries)

        assert [c.expense_category_id for c in report.categories] == ['rent', 'food', 'fun']

    def test_unknown_category_lookup(self, salary_and_freelance):
        entries, rules = salary_and_freelance
        report = build_allocation_report(['food'], rules, entries)
        assert report.for_category('missing') == CategoryAllocation('missing', 0, 0)


class TestProperties:

    def test_contributions_are_non_negative(self):
        rng = random.Random(7)
        income_categories = ['a', 'b', 'c', 'd']
        entries = [
            entry(i, rng.choice(income_categories + [None]), rng.randint(0, 100000) / 100)
            for i in range(40)
        ]
        rules = [
            rule(i, rng.choice(['x', 'y']), rng.choice(income_categories + ['gone']),
                 rng.choice([PERCENTAGE, FIXED]), rng.randint(0, 50000) / 100)
            for i in range(30)
        ]
        income_by_category = sum_income_by_category(entries)

        for r in rules:
            assert rule_contribution(r, income_by_category) >= 0
        for category in ('x', 'y'):
            assert compute_category_allocation(category, rules, income_by_category) >= 0

    def test_idempotent_and_inputs_untouched(self, salary_and_freelance):
        entries, rules = salary_and_freelance
        entries_before, rules_before = list(entries), list(rules)

        first = build_allocation_report(['food'], rules, entries)
        second = build_allocation_report(['food'], rules, entries)

        assert first == second
        assert entries == entries_before
        assert rules == rules_before

    def test_order_independent(self):
        rng = random.Random(42)
        entries = [entry(i, rng.choice(['a', 'b', None]), rng.randint(1, 10000)) for i in range(25)]
        rules = [
            rule(i, rng.choice(['x', 'y', 'z']), rng.choice(['a', 'b']),
                 rng.choice([PERCENTAGE, FIXED]), rng.randint(0, 100))
            for i in range(15)
        ]
        expected = build_allocation_report(['x', 'y', 'z'], rules, entries)

        for _ in range(5):
            shuffled_entries, shuffled_rules = entries[:], rules[:]
            rng.shuffle(shuffled_entries)
            rng.shuffle(shuffled_rules)
            assert build_allocation_report(['x', 'y', 'z'], shuffled_rules, shuffled_entries) == expected


class TestPercentAndRemainder:

    @pytest.mark.parametrize('allocated, total, expected', [
        (Decimal('50'), Decimal('200'), Decimal('25')),
        (Decimal('0'), Decimal('200'), Decimal('0')),
        (Decimal('50'), Decimal('0'), Decimal('0')),
        (Decimal('0'), Decimal('0'), Decimal('0')),
        (Decimal('300'), Decimal('200'), Decimal('150')),
    ])
    def test_percent_of_total(self, allocated, total, expected):
        assert compute_percent_of_total(allocated, total) == expected

    def test_remainder_accepts_amounts_or_allocations(self):
        allocations = [CategoryAllocation('a', Decimal('100'), 0), CategoryAllocation('b', Decimal('50'), 0)]
        assert compute_unallocated_remainder(Decimal('1000'), allocations) == Decimal('850')
        assert compute_unallocated_remainder(Decimal('1000'), [Decimal('100'), Decimal('50')]) == Decimal('850')

    def test_remainder_is_not_clamped(self):
        assert compute_unallocated_remainder(Decimal('100'), [Decimal('150')]) == Decimal('-50')
