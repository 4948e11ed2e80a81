"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the summary and filter engines free of any global state
2. Use in-memory storage for testing
3. Swap the local JSON file for something else later

The storage layer owns the authoritative expense collection. Every mutator
returns the collection as it stands after the change, so callers never need
a second read to refresh their snapshot.
"""

from abc import ABC, abstractmethod

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.expense import Expense


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Implementations must serialize read-modify-write sequences:
    two writers interleaving load() and save() would lose an update.
    """

    @abstractmethod
    def load(self) -> list[Expense]:
        """
        Return the most recently committed collection.

        Unreadable or malformed persisted data degrades to an empty
        list (or to the records that could be read). It never raises.
        """
        pass

    @abstractmethod
    def save(self, expenses: list[Expense]) -> None:
        """
        Replace the whole stored collection.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def append(self, expense: Expense) -> list[Expense]:
        """
        Add an expense to the end of the collection.

        Raises:
            DuplicateError: If an expense with the same id exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def replace(self, expense: Expense) -> list[Expense]:
        """
        Replace the expense with the same id.

        No-op (nothing written) if the id is absent.
        """
        pass

    @abstractmethod
    def remove(self, expense_id: str) -> list[Expense]:
        """Remove the expense with this id, if present."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Drop the stored collection entirely."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
