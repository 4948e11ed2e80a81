"""
Filter/Query Engine

Selects the subset of expenses matching an ExpenseFilters and orders
it newest-first. Like the summary engine it only reads the snapshot it is
given and never touches storage.

Ordering uses a stable sort on the expense date alone, so records sharing a
date keep their relative input order.
"""

from typing import Sequence

from expense_tracker.models.expense import (
    ALL_CATEGORIES,
    Expense,
    ExpenseFilters,
    FilterResult,
)
from expense_tracker.queries.summary import total_amount


def matches_filters(expense: Expense, filters: ExpenseFilters) -> bool:
    """Check one expense against every clause of the filters."""
    if filters.category != ALL_CATEGORIES and expense.category != filters.category:
        return False
    if filters.date_from and expense.date < filters.date_from:
        return False
    if filters.date_to and expense.date > filters.date_to:
        return False
    if filters.search_term:
        needle = filters.search_term.lower()
        if needle not in expense.description.lower():
            return False
    return True


def filter_and_sort(
    expenses: Sequence[Expense],
    filters: ExpenseFilters,
) -> FilterResult:
    """
    Apply the filters and sort the matches by date, newest first.

    Returns:
        FilterResult with the matching expenses and the sum of their
        amounts. No matches is a valid result with total 0.
    """
    matches = [expense for expense in expenses if matches_filters(expense, filters)]
    matches.sort(key=lambda expense: expense.date, reverse=True)

    return FilterResult(expenses=matches, total=total_amount(matches))


def describe_filters(filters: ExpenseFilters) -> str:
    """Human-readable summary of the active clauses, for list headers."""
    parts = []
    if filters.category != ALL_CATEGORIES:
        parts.append(f"category: {filters.category.value}")
    if filters.date_from and filters.date_to:
        parts.append(f"from {filters.date_from.isoformat()} to {filters.date_to.isoformat()}")
    elif filters.date_from:
        parts.append(f"from {filters.date_from.isoformat()}")
    elif filters.date_to:
        parts.append(f"until {filters.date_to.isoformat()}")
    if filters.search_term:
        parts.append(f'matching "{filters.search_term}"')

    if not parts:
        return "All expenses"
    return " | ".join(parts)
