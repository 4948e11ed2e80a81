"""Form validation package."""

from expense_tracker.validation.validator import (
    ExpenseFormValidator,
    parse_amount,
    parse_date,
)

__all__ = ["ExpenseFormValidator", "parse_amount", "parse_date"]
