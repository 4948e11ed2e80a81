"""
In-Memory Storage

Used by tests and by the `memory` backend setting (nothing survives a
restart). Behaves exactly like the JSON backend minus the file.
"""

import threading
from typing import Iterable, Optional

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.expense import Expense
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Expense storage backed by a list held in memory."""

    def __init__(self, expenses: Optional[Iterable[Expense]] = None):
        self._expenses: list[Expense] = list(expenses or [])
        self._lock = threading.RLock()

    def load(self) -> list[Expense]:
        with self._lock:
            return list(self._expenses)

    def save(self, expenses: list[Expense]) -> None:
        with self._lock:
            self._expenses = list(expenses)

    def append(self, expense: Expense) -> list[Expense]:
        with self._lock:
            if any(existing.id == expense.id for existing in self._expenses):
                raise DuplicateError(f"Expense already exists: {expense.id}")
            self._expenses.append(expense)
            return list(self._expenses)

    def replace(self, expense: Expense) -> list[Expense]:
        with self._lock:
            for index, existing in enumerate(self._expenses):
                if existing.id == expense.id:
                    self._expenses[index] = expense
                    break
            return list(self._expenses)

    def remove(self, expense_id: str) -> list[Expense]:
        with self._lock:
            self._expenses = [e for e in self._expenses if e.id != expense_id]
            return list(self._expenses)

    def clear(self) -> None:
        with self._lock:
            self._expenses = []


class InMemoryAuditStorage(AuditStorageInterface):
    """Audit log kept in memory."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self.events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
