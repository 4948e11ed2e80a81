"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    ALL_CATEGORIES,
    CATEGORY_ORDER,
    CategoryFilter,
    CategoryShare,
    CategoryTotal,
    Expense,
    ExpenseCategory,
    ExpenseFilters,
    ExpenseFormData,
    ExpenseSummary,
    FilterResult,
    ValidationIssue,
    ValidationResult,
    utc_now,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "ALL_CATEGORIES",
    "CATEGORY_ORDER",
    "CategoryFilter",
    "CategoryShare",
    "CategoryTotal",
    "Expense",
    "ExpenseCategory",
    "ExpenseFilters",
    "ExpenseFormData",
    "ExpenseSummary",
    "FilterResult",
    "ValidationIssue",
    "ValidationResult",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
