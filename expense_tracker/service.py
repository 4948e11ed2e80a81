"""
Expense Service

This module ties the components together and defines the flows the UI
calls into:
1. Create (form -> validate -> new expense -> append -> audit)
2. Edit (form -> validate -> replace by id -> audit)
3. Remove (id -> remove -> audit)
4. Read (load snapshot -> summary / filter / CSV export)

DESIGN DECISION: The service owns ids and timestamps; the engines never
see storage. Every read takes one snapshot from storage and hands it to
the pure summary/filter functions.
"""

from datetime import date, datetime
from typing import Callable, Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.config import Settings, get_settings
from expense_tracker.export import expenses_to_csv, export_filename
from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.expense import (
    Expense,
    ExpenseCategory,
    ExpenseFilters,
    ExpenseFormData,
    ExpenseSummary,
    FilterResult,
    ValidationResult,
    utc_now,
)
from expense_tracker.queries import filter_and_sort, summarize
from expense_tracker.services.storage import (
    ExpenseStorageInterface,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    JsonFileExpenseStorage,
    JsonLinesAuditStorage,
)
from expense_tracker.validation import ExpenseFormValidator, parse_amount, parse_date


logger = structlog.get_logger(__name__)

USER_FIELDS = ("amount", "description", "category", "date")


class ExpenseValidationError(Exception):
    """Form input failed validation; carries the full result."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(result.field_errors.values())
        super().__init__(f"Invalid expense: {messages}")


def generate_id() -> str:
    """New opaque expense id."""
    return uuid4().hex


class ExpenseService:
    """
    Create, edit and remove expenses, and answer read queries.

    The clock and id factory are injectable so tests can pin them.
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        validator: Optional[ExpenseFormValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        now: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = generate_id,
    ):
        self._storage = storage
        self._validator = validator or ExpenseFormValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._now = now
        self._id_factory = id_factory

    @property
    def validator(self) -> ExpenseFormValidator:
        return self._validator

    def _validate(
        self,
        form: ExpenseFormData,
        expense_id: Optional[str],
        correlation_id: UUID,
        result: Optional[ValidationResult],
    ) -> dict:
        """Validate a form (unless already validated) and return the parsed user fields."""
        if result is None:
            result = self._validator.validate(form)
        if result.has_errors:
            self._audit_logger.log_validation_failed(
                issues=[
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                ],
                expense_id=expense_id,
                correlation_id=correlation_id,
            )
            raise ExpenseValidationError(result)

        return {
            "amount": parse_amount(form.amount),
            "description": form.description.strip(),
            "category": ExpenseCategory(form.category),
            "date": parse_date(form.date),
        }

    # =========================================================================
    # WRITE FLOWS
    # =========================================================================

    def create_expense(
        self,
        form: ExpenseFormData,
        correlation_id: Optional[UUID] = None,
        validation: Optional[ValidationResult] = None,
    ) -> Expense:
        """
        Validate form input and store it as a new expense.

        Pass `validation` when the caller already validated this form
        (e.g. to show its warnings) so it is not validated twice.

        Raises:
            ExpenseValidationError: If the form has error-level issues
            StorageError: If the write fails
        """
        correlation_id = correlation_id or create_correlation_id()
        fields = self._validate(form, None, correlation_id, validation)

        now = self._now()
        expense = Expense(
            id=self._id_factory(),
            created_at=now,
            updated_at=now,
            **fields,
        )

        try:
            self._storage.append(expense)
        except Exception as e:
            self._audit_logger.log_storage_error(
                operation="append",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        self._audit_logger.log_expense_created(
            expense_id=expense.id,
            description=expense.description,
            amount=str(expense.amount),
            category=expense.category.value,
            correlation_id=correlation_id,
        )
        return expense

    def edit_expense(
        self,
        expense_id: str,
        form: ExpenseFormData,
        correlation_id: Optional[UUID] = None,
        validation: Optional[ValidationResult] = None,
    ) -> Optional[Expense]:
        """
        Replace the user-editable fields of an existing expense.

        The id and creation timestamp are kept; updated_at is refreshed and
        never moves backwards. Returns None if no expense has this id.

        Raises:
            ExpenseValidationError: If the form has error-level issues
            StorageError: If the write fails
        """
        correlation_id = correlation_id or create_correlation_id()

        existing = self.get_expense(expense_id)
        if existing is None:
            logger.warning("edit_unknown_expense", expense_id=expense_id)
            return None

        fields = self._validate(form, expense_id, correlation_id, validation)

        updated = Expense(
            id=existing.id,
            created_at=existing.created_at,
            updated_at=max(self._now(), existing.updated_at),
            **fields,
        )

        try:
            self._storage.replace(updated)
        except Exception as e:
            self._audit_logger.log_storage_error(
                operation="replace",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        self._audit_logger.log_expense_updated(
            expense_id=expense_id,
            changed_fields=[
                name for name in USER_FIELDS
                if getattr(existing, name) != getattr(updated, name)
            ],
            correlation_id=correlation_id,
        )
        return updated

    def remove_expense(
        self,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[Expense]:
        """Delete an expense by id; returns the remaining collection."""
        correlation_id = correlation_id or create_correlation_id()

        existed = self.get_expense(expense_id) is not None
        remaining = self._storage.remove(expense_id)

        self._audit_logger.log_expense_deleted(
            expense_id=expense_id,
            existed=existed,
            correlation_id=correlation_id,
        )
        return remaining

    def clear_expenses(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Drop every stored expense."""
        removed_count = len(self._storage.load())
        self._storage.clear()
        self._audit_logger.log_expenses_cleared(
            removed_count=removed_count,
            correlation_id=correlation_id,
        )

    # =========================================================================
    # READ FLOWS
    # =========================================================================

    def list_expenses(self) -> list[Expense]:
        """The stored collection in stored order."""
        return self._storage.load()

    def get_expense(self, expense_id: str) -> Optional[Expense]:
        for expense in self._storage.load():
            if expense.id == expense_id:
                return expense
        return None

    def summary(self, today: Optional[date] = None) -> ExpenseSummary:
        """Summary over the full collection."""
        return summarize(self._storage.load(), today=today)

    def filter_expenses(
        self,
        filters: ExpenseFilters,
        correlation_id: Optional[UUID] = None,
    ) -> FilterResult:
        """Matching expenses, newest first, with their total."""
        result = filter_and_sort(self._storage.load(), filters)
        self._audit_logger.log_query_executed(
            query_type="filter",
            result_count=result.count,
            correlation_id=correlation_id,
        )
        return result

    def export_csv(
        self,
        filters: Optional[ExpenseFilters] = None,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[str, str]:
        """
        Export expenses as CSV.

        With filters, exports the filtered list (newest first) as the
        expense list shows it; without, the whole collection in stored order.

        Returns:
            (filename, csv_text)
        """
        if filters is not None:
            expenses = filter_and_sort(self._storage.load(), filters).expenses
        else:
            expenses = self._storage.load()

        filename = export_filename(today)
        content = expenses_to_csv(expenses)

        self._audit_logger.log_expenses_exported(
            filename=filename,
            record_count=len(expenses),
            correlation_id=correlation_id,
        )
        return filename, content

    def recent_activity(self, limit: int = 20) -> list[AuditEvent]:
        """Latest audit events, newest first."""
        return self._audit_logger.recent_events(limit=limit)

    def record_error(
        self,
        error: Exception,
        action: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Audit an unexpected failure the UI caught while running `action`."""
        self._audit_logger.log_error(
            error_type=type(error).__name__,
            error_message=str(error),
            details={"action": action},
            correlation_id=correlation_id,
        )


def create_expense_service(
    settings: Optional[Settings] = None,
) -> ExpenseService:
    """
    Factory function to create the service from configuration.

    The `json` backend persists expenses and the audit trail under the
    configured paths; `memory` keeps both in memory only.
    """
    settings = settings or get_settings()
    storage_settings = settings.storage

    if storage_settings.backend == "memory":
        storage = InMemoryExpenseStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())
    else:
        storage = JsonFileExpenseStorage(
            path=storage_settings.data_path,
            storage_key=storage_settings.storage_key,
        )
        audit_logger = AuditLogger(JsonLinesAuditStorage(storage_settings.audit_log_path))

    return ExpenseService(
        storage=storage,
        validator=ExpenseFormValidator(settings.app),
        audit_logger=audit_logger,
    )
