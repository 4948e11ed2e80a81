"""Shared fixtures for the expense tracker tests."""

from datetime import date, datetime, timezone
from decimal import Decimal
from itertools import count

import pytest

from expense_tracker.models.expense import Expense, ExpenseCategory


BASE_TIME = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_expense():
    """Factory for valid expenses with unique ids."""
    ids = count(1)

    def _make(
        amount="10",
        description="Lunch",
        category=ExpenseCategory.FOOD,
        day=date(2024, 6, 1),
        created_at=BASE_TIME,
        **overrides,
    ) -> Expense:
        return Expense(
            id=overrides.pop("id", f"exp-{next(ids)}"),
            amount=Decimal(amount),
            description=description,
            category=category,
            date=day,
            created_at=created_at,
            updated_at=overrides.pop("updated_at", created_at),
            **overrides,
        )

    return _make
