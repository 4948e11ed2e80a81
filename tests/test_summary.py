"""
Tests for the summary engine.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from expense_tracker.models.expense import CATEGORY_ORDER, ExpenseCategory
from expense_tracker.queries.summary import (
    category_breakdown,
    category_distribution,
    recent_expenses,
    summarize,
    top_categories,
    total_amount,
)


TODAY = date(2024, 6, 15)


class TestSummarize:
    """Tests for summarize()."""

    def test_empty_collection(self):
        """An empty collection sums to zero with Other on top."""
        summary = summarize([], today=TODAY)
        assert summary.total_expenses == Decimal("0")
        assert summary.monthly_total == Decimal("0")
        assert list(summary.category_summary) == list(CATEGORY_ORDER)
        assert all(amount == 0 for amount in summary.category_summary.values())
        assert summary.top_category.category == ExpenseCategory.OTHER
        assert summary.top_category.amount == Decimal("0")

    def test_totals_and_monthly(self, make_expense):
        """Total covers everything; monthly covers the reference month only."""
        expenses = [
            make_expense(amount="12.50", category=ExpenseCategory.FOOD, day=date(2024, 6, 1)),
            make_expense(amount="40", category=ExpenseCategory.TRANSPORTATION, day=date(2024, 5, 20)),
            make_expense(amount="7.50", category=ExpenseCategory.FOOD, day=date(2024, 6, 10)),
        ]
        summary = summarize(expenses, today=TODAY)

        assert summary.total_expenses == Decimal("60.00")
        assert summary.monthly_total == Decimal("20.00")
        assert summary.category_summary[ExpenseCategory.FOOD] == Decimal("20.00")
        assert summary.category_summary[ExpenseCategory.TRANSPORTATION] == Decimal("40")
        assert summary.top_category.category == ExpenseCategory.TRANSPORTATION
        assert summary.top_category.amount == Decimal("40")

    def test_same_month_other_year_excluded(self, make_expense):
        """June of last year is not this month."""
        expenses = [make_expense(amount="5", day=date(2023, 6, 15))]
        summary = summarize(expenses, today=TODAY)
        assert summary.monthly_total == Decimal("0")
        assert summary.total_expenses == Decimal("5")

    def test_category_totals_add_up_to_total(self, make_expense):
        """Every expense lands in exactly one bucket."""
        expenses = [
            make_expense(amount=str(i + 1), category=category)
            for i, category in enumerate(CATEGORY_ORDER)
        ]
        summary = summarize(expenses, today=TODAY)
        assert sum(summary.category_summary.values()) == summary.total_expenses

    def test_food_bills_tie(self, make_expense):
        """Food 50 and Bills 50: Food wins with 50."""
        expenses = [
            make_expense(amount="50", category=ExpenseCategory.BILLS),
            make_expense(amount="50", category=ExpenseCategory.FOOD),
        ]
        top = summarize(expenses, today=TODAY).top_category
        assert top.category == ExpenseCategory.FOOD
        assert top.amount == Decimal("50")

    def test_order_does_not_matter(self, make_expense):
        """Summaries are the same for any ordering of the input."""
        expenses = [
            make_expense(amount="12.50", category=ExpenseCategory.FOOD, day=date(2024, 6, 1)),
            make_expense(amount="40", category=ExpenseCategory.BILLS, day=date(2024, 5, 1)),
            make_expense(amount="3.25", category=ExpenseCategory.OTHER, day=date(2024, 6, 9)),
        ]
        assert summarize(expenses, today=TODAY) == summarize(expenses[::-1], today=TODAY)

    def test_tie_goes_to_earlier_category(self, make_expense):
        """Equal totals resolve to the first category in canonical order."""
        expenses = [
            make_expense(amount="25", category=ExpenseCategory.BILLS),
            make_expense(amount="25", category=ExpenseCategory.ENTERTAINMENT),
        ]
        summary = summarize(expenses, today=TODAY)
        assert summary.top_category.category == ExpenseCategory.ENTERTAINMENT

    def test_decimal_sums_are_exact(self, make_expense):
        """0.1 + 0.2 is 0.3 with no float drift."""
        expenses = [make_expense(amount="0.1"), make_expense(amount="0.2")]
        assert summarize(expenses, today=TODAY).total_expenses == Decimal("0.3")

    def test_input_not_mutated(self, make_expense):
        expenses = [make_expense(amount="3"), make_expense(amount="4")]
        before = list(expenses)
        summarize(expenses, today=TODAY)
        assert expenses == before

    def test_total_amount(self, make_expense):
        assert total_amount([]) == Decimal("0")
        assert total_amount([make_expense(amount="1.25"), make_expense(amount="2")]) == Decimal("3.25")


class TestCategoryViews:
    """Tests for the breakdown, distribution and top-category views."""

    def test_breakdown_lists_every_category(self, make_expense):
        """The largest category is 100%, others relative to it."""
        expenses = [
            make_expense(amount="50", category=ExpenseCategory.FOOD),
            make_expense(amount="25", category=ExpenseCategory.BILLS),
        ]
        shares = category_breakdown(summarize(expenses, today=TODAY))

        assert [share.category for share in shares] == list(CATEGORY_ORDER)
        by_category = {share.category: share.percentage for share in shares}
        assert by_category[ExpenseCategory.FOOD] == pytest.approx(100.0)
        assert by_category[ExpenseCategory.BILLS] == pytest.approx(50.0)
        assert by_category[ExpenseCategory.OTHER] == 0.0

    def test_breakdown_of_nothing_is_all_zero(self):
        shares = category_breakdown(summarize([], today=TODAY))
        assert all(share.percentage == 0.0 for share in shares)

    def test_distribution_skips_empty_and_sorts(self, make_expense):
        """Only categories with spend, biggest first, shares of the total."""
        expenses = [
            make_expense(amount="10", category=ExpenseCategory.FOOD),
            make_expense(amount="30", category=ExpenseCategory.SHOPPING),
            make_expense(amount="10", category=ExpenseCategory.OTHER),
        ]
        shares = category_distribution(summarize(expenses, today=TODAY))

        assert [share.category for share in shares] == [
            ExpenseCategory.SHOPPING,
            ExpenseCategory.FOOD,
            ExpenseCategory.OTHER,
        ]
        assert shares[0].percentage == pytest.approx(60.0)
        assert sum(share.percentage for share in shares) == pytest.approx(100.0)

    def test_top_categories_limit(self, make_expense):
        expenses = [
            make_expense(amount=str(amount), category=category)
            for amount, category in zip([5, 4, 3, 2, 1], CATEGORY_ORDER)
        ]
        top = top_categories(summarize(expenses, today=TODAY), limit=3)
        assert [share.category for share in top] == list(CATEGORY_ORDER[:3])


class TestRecentExpenses:
    """Tests for recent_expenses()."""

    def test_newest_created_first(self, make_expense):
        """Ordering follows created_at, not the expense date."""
        base = datetime(2024, 6, 1, tzinfo=timezone.utc)
        older = make_expense(description="older", day=date(2024, 6, 10), created_at=base)
        newer = make_expense(
            description="newer",
            day=date(2024, 1, 1),
            created_at=base + timedelta(hours=1),
        )
        assert recent_expenses([older, newer]) == [newer, older]

    def test_limit(self, make_expense):
        base = datetime(2024, 6, 1, tzinfo=timezone.utc)
        expenses = [make_expense(created_at=base + timedelta(minutes=i)) for i in range(8)]
        recent = recent_expenses(expenses, limit=5)
        assert len(recent) == 5
        assert recent[0] is expenses[-1]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
