"""Summary and filter engines over an expense snapshot."""

from expense_tracker.queries.filters import (
    describe_filters,
    filter_and_sort,
    matches_filters,
)
from expense_tracker.queries.summary import (
    category_breakdown,
    category_distribution,
    recent_expenses,
    summarize,
    top_categories,
    total_amount,
)

__all__ = [
    "category_breakdown",
    "category_distribution",
    "describe_filters",
    "filter_and_sort",
    "matches_filters",
    "recent_expenses",
    "summarize",
    "top_categories",
    "total_amount",
]
