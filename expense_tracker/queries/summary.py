"""
Summary Engine

DESIGN DECISION: Summaries are DERIVED, never stored.
Every call recomputes totals from the snapshot it is handed, so a summary
can never drift out of sync with the collection it describes.

The reference date for "this month" is an explicit parameter that defaults
to the system clock at call time. Tests pin it; the UI leaves it alone.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from expense_tracker.models.expense import (
    CATEGORY_ORDER,
    CategoryShare,
    CategoryTotal,
    Expense,
    ExpenseCategory,
    ExpenseSummary,
)

ZERO = Decimal("0")


def total_amount(expenses: Iterable[Expense]) -> Decimal:
    """Sum of amounts; 0 for an empty collection."""
    return sum((expense.amount for expense in expenses), ZERO)


def _same_month(day: date, reference: date) -> bool:
    return day.year == reference.year and day.month == reference.month


def _empty_buckets() -> dict[ExpenseCategory, Decimal]:
    return {category: ZERO for category in CATEGORY_ORDER}


def _top_category(buckets: dict[ExpenseCategory, Decimal]) -> CategoryTotal:
    # Strictly-greater replacement walking the canonical order: the first
    # category wins ties, and an all-zero collection stays on Other.
    top = CategoryTotal(category=ExpenseCategory.OTHER, amount=ZERO)
    for category in CATEGORY_ORDER:
        amount = buckets[category]
        if amount > top.amount:
            top = CategoryTotal(category=category, amount=amount)
    return top


def summarize(
    expenses: Sequence[Expense],
    today: Optional[date] = None,
) -> ExpenseSummary:
    """
    Compute the aggregate view of a collection of expenses.

    Args:
        expenses: Snapshot of the collection (any order)
        today: Reference date for the monthly total.
               Defaults to the system date at call time.

    Returns:
        ExpenseSummary with total, current-month total, every category's
        total and the top category. Never raises.
    """
    today = today or date.today()

    buckets = _empty_buckets()
    total = ZERO
    monthly_total = ZERO

    for expense in expenses:
        total += expense.amount
        if _same_month(expense.date, today):
            monthly_total += expense.amount
        buckets[ExpenseCategory.coerce(expense.category)] += expense.amount

    return ExpenseSummary(
        total_expenses=total,
        monthly_total=monthly_total,
        category_summary=buckets,
        top_category=_top_category(buckets),
    )


def _percentage(amount: Decimal, reference: Decimal) -> float:
    if reference <= 0:
        return 0.0
    return float(amount / reference * 100)


def category_breakdown(summary: ExpenseSummary) -> list[CategoryShare]:
    """
    Every category in canonical order, sized against the largest one.

    The largest category gets 100%; with no spend at all, everything is 0%.
    """
    largest = max(summary.category_summary.values(), default=ZERO)
    return [
        CategoryShare(
            category=category,
            amount=summary.category_summary.get(category, ZERO),
            percentage=_percentage(summary.category_summary.get(category, ZERO), largest),
        )
        for category in CATEGORY_ORDER
    ]


def category_distribution(summary: ExpenseSummary) -> list[CategoryShare]:
    """
    Share of total spend per category, biggest first.

    Categories with no spend are left out. Equal amounts keep the
    canonical category order.
    """
    shares = []
    for category in CATEGORY_ORDER:
        amount = summary.category_summary.get(category, ZERO)
        if amount > 0:
            shares.append(CategoryShare(
                category=category,
                amount=amount,
                percentage=_percentage(amount, summary.total_expenses),
            ))

    # list.sort is stable, so ties stay in canonical order
    shares.sort(key=lambda share: share.amount, reverse=True)
    return shares


def top_categories(summary: ExpenseSummary, limit: int = 3) -> list[CategoryShare]:
    """The `limit` biggest categories by spend."""
    return category_distribution(summary)[: max(0, limit)]


def recent_expenses(expenses: Sequence[Expense], limit: int = 5) -> list[Expense]:
    """
    Most recently created expenses, newest first.

    Ordered by creation timestamp, not by the expense date.
    The input sequence is left untouched.
    """
    ordered = sorted(expenses, key=lambda expense: expense.created_at, reverse=True)
    return ordered[: max(0, limit)]
