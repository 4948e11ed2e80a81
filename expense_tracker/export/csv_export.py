"""
CSV Export

The exported file is the one artifact users take out of the app, so its
layout is fixed:

    Date,Description,Category,Amount
    2024-06-01,"Lunch, with team",Food,12.5

Fields are comma-joined, the description is always double-quoted, rows are
joined with a bare newline and there is no trailing newline. Double quotes
inside a description are doubled, as RFC 4180 readers expect.
"""

from datetime import date
from typing import Iterable, Optional

from expense_tracker.formatting import format_amount
from expense_tracker.models.expense import Expense

CSV_HEADERS = ("Date", "Description", "Category", "Amount")


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def expense_to_row(expense: Expense) -> str:
    """Render one expense as a CSV line (no line terminator)."""
    return ",".join([
        expense.date.isoformat(),
        _quote(expense.description),
        expense.category.value,
        format_amount(expense.amount),
    ])


def expenses_to_csv(expenses: Iterable[Expense]) -> str:
    """Serialize expenses, in the order given, to CSV text."""
    lines = [",".join(CSV_HEADERS)]
    lines.extend(expense_to_row(expense) for expense in expenses)
    return "\n".join(lines)


def export_filename(today: Optional[date] = None) -> str:
    """Download name for an export made on `today`, e.g. expenses-2024-06-01.csv."""
    today = today or date.today()
    return f"expenses-{today.isoformat()}.csv"
