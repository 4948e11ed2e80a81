"""
Audit Logger

DESIGN DECISION: Every mutation of the expense collection is logged.
This provides:
1. Complete traceability
2. Debugging capability when stored data looks wrong
3. A history the user can look back on

The audit logger:
- Always logs locally through structlog
- Persists to an audit store when one is configured
- Gracefully handles failures (never crashes the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from expense_tracker.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("expense_tracker.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available, except
        DEBUG events (queries run on every page render).

        Returns True if storage write succeeded (or nothing to persist).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage and event.severity != AuditSeverity.DEBUG:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent persisted events; empty without an audit store."""
        if not self._storage:
            return []
        return self._storage.get_recent_events(limit=limit)

    def log_expense_created(
        self,
        expense_id: str,
        description: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log expense creation."""
        self.log(AuditEventBuilder.expense_created(
            expense_id=expense_id,
            description=description,
            amount=amount,
            category=category,
            correlation_id=correlation_id,
        ))

    def log_expense_updated(
        self,
        expense_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an edit."""
        self.log(AuditEventBuilder.expense_updated(
            expense_id=expense_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    def log_expense_deleted(
        self,
        expense_id: str,
        existed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a delete (including deletes of unknown ids)."""
        self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            existed=existed,
            correlation_id=correlation_id,
        ))

    def log_expenses_cleared(
        self,
        removed_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.expenses_cleared(
            removed_count=removed_count,
            correlation_id=correlation_id,
        ))

    def log_validation_failed(
        self,
        issues: list[dict],
        expense_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log rejected form input."""
        self.log(AuditEventBuilder.validation_failed(
            issues=issues,
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    def log_query_executed(
        self,
        query_type: str,
        result_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log query execution."""
        self.log(AuditEventBuilder.query_executed(
            query_type=query_type,
            result_count=result_count,
            correlation_id=correlation_id,
        ))

    def log_expenses_exported(
        self,
        filename: str,
        record_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a CSV export."""
        self.log(AuditEventBuilder.expenses_exported(
            filename=filename,
            record_count=record_count,
            correlation_id=correlation_id,
        ))

    def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., submitting a form).
    Pass it through all subsequent operations.
    """
    return uuid4()
