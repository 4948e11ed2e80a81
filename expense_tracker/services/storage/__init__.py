"""
Storage Services Package

Provides the abstract storage interfaces and the local implementations:
a JSON file (the default) and plain memory (tests, throwaway sessions).
"""

from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    StorageError,
)
from expense_tracker.services.storage.json_file import (
    DEFAULT_STORAGE_KEY,
    JsonFileExpenseStorage,
    JsonLinesAuditStorage,
)
from expense_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseStorageInterface",
    # Exceptions
    "DuplicateError",
    "StorageError",
    # JSON file implementation
    "DEFAULT_STORAGE_KEY",
    "JsonFileExpenseStorage",
    "JsonLinesAuditStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
]
