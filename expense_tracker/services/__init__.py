"""Services package."""

from expense_tracker.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    JsonFileExpenseStorage,
    JsonLinesAuditStorage,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "DuplicateError",
    "ExpenseStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    "JsonFileExpenseStorage",
    "JsonLinesAuditStorage",
    "StorageError",
]
