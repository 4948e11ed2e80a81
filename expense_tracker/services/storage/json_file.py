"""
Local JSON File Storage

DESIGN DECISION: The whole collection is serialized as one blob under a
single storage key inside a JSON document:

    {"expense-tracker-expenses": [{"id": ..., "amount": 12.5, ...}, ...]}

This is the same shape a browser app keeps in local storage, so an export
of that storage can be dropped in as the data file.

TRADEOFFS:
- Every mutation rewrites the whole file (fine for personal volumes)
- Read-modify-write is serialized with a process-local lock; separate
  processes writing the same file are not coordinated
- Writes go to a temp file first and are swapped in atomically

Unreadable data is never fatal for reads: load() logs and returns what it
could read. It is never destroyed by writes either. Stored records that
fail validation are written back untouched, and a document that cannot be
read at all is not overwritten (the write raises StorageError instead).
"""

import json
import os
import threading
from pathlib import Path
from typing import Any, NamedTuple

import structlog
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.expense import Expense
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

DEFAULT_STORAGE_KEY = "expense-tracker-expenses"


class StoredState(NamedTuple):
    """One read of the data file."""

    document: dict[str, Any]
    expenses: list[Expense]
    unparsed: list[Any]
    writable: bool


class JsonFileExpenseStorage(ExpenseStorageInterface):
    """
    JSON file implementation of expense storage.

    Other keys in the same document are preserved on write.
    """

    def __init__(
        self,
        path: Path,
        storage_key: str = DEFAULT_STORAGE_KEY,
    ):
        self._path = Path(path)
        self._key = storage_key
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> tuple[dict[str, Any], bool]:
        """
        Read the whole JSON document.

        Returns (document, writable). A missing or blank file is an empty writable
        document; unreadable content is ({}, False).
        """
        if not self._path.exists():
            return {}, True

        try:
            text = self._path.read_text(encoding="utf-8")
            if not text.strip():
                return {}, True
            document = json.loads(text)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(
                "stored_expenses_unreadable",
                path=str(self._path),
                error=str(e),
            )
            return {}, False

        if not isinstance(document, dict):
            logger.error(
                "stored_expenses_malformed",
                path=str(self._path),
                reason="document is not a JSON object",
            )
            return {}, False

        return document, True

    def _read_state(self) -> StoredState:
        """Read the file and split stored records into usable and unparsed."""
        document, writable = self._read_document()
        records = document.get(self._key)

        expenses = []
        unparsed = []
        if records is None:
            pass
        elif not isinstance(records, list):
            logger.error(
                "stored_expenses_malformed",
                path=str(self._path),
                reason=f"'{self._key}' is not a list",
            )
            writable = False
        else:
            for index, record in enumerate(records):
                try:
                    expenses.append(Expense.model_validate(record))
                except ValidationError as e:
                    logger.warning(
                        "stored_expense_skipped",
                        path=str(self._path),
                        index=index,
                        error_count=e.error_count(),
                    )
                    unparsed.append(record)

        return StoredState(document, expenses, unparsed, writable)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write_document(self, document: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        os.replace(tmp_path, self._path)

    def _write_expenses(self, state: StoredState, expenses: list[Expense]) -> None:
        """Persist `expenses`, carrying over records that could not be parsed."""
        if not state.writable:
            raise StorageError(
                f"Refusing to overwrite unreadable expense data in {self._path}"
            )

        document = dict(state.document)
        document[self._key] = [
            expense.model_dump(mode="json", by_alias=True) for expense in expenses
        ] + state.unparsed
        try:
            self._write_document(document)
        except OSError as e:
            raise StorageError(f"Failed to save expenses: {e}") from e

    def load(self) -> list[Expense]:
        """Load the stored collection in stored order."""
        with self._lock:
            return self._read_state().expenses

    def save(self, expenses: list[Expense]) -> None:
        """Replace the stored collection (unparsed records are kept)."""
        with self._lock:
            self._write_expenses(self._read_state(), list(expenses))

    def append(self, expense: Expense) -> list[Expense]:
        """Append an expense and persist."""
        with self._lock:
            state = self._read_state()
            if any(existing.id == expense.id for existing in state.expenses):
                raise DuplicateError(f"Expense already exists: {expense.id}")
            expenses = state.expenses + [expense]
            self._write_expenses(state, expenses)
            return expenses

    def replace(self, expense: Expense) -> list[Expense]:
        """Replace the expense with the same id, if there is one."""
        with self._lock:
            state = self._read_state()
            expenses = list(state.expenses)
            for index, existing in enumerate(expenses):
                if existing.id == expense.id:
                    expenses[index] = expense
                    self._write_expenses(state, expenses)
                    break
            return expenses

    def remove(self, expense_id: str) -> list[Expense]:
        """Remove an expense by id."""
        with self._lock:
            state = self._read_state()
            remaining = [expense for expense in state.expenses if expense.id != expense_id]
            if len(remaining) != len(state.expenses):
                self._write_expenses(state, remaining)
            return remaining

    def clear(self) -> None:
        """Remove the storage key; delete the file if nothing else is in it."""
        with self._lock:
            document, _ = self._read_document()
            document.pop(self._key, None)
            try:
                if document:
                    self._write_document(document)
                else:
                    self._path.unlink(missing_ok=True)
            except OSError as e:
                raise StorageError(f"Failed to clear expenses: {e}") from e


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Append-only JSON-lines audit log.

    One AuditEvent per line.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._lock = threading.Lock()

    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            with self._lock:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding="utf-8") as f:
                    f.write(event.model_dump_json() + "\n")
            return True
        except OSError as e:
            # Audit logging must not break the main flow
            logger.warning(
                "audit_event_write_failed",
                path=str(self._path),
                event_id=str(event.event_id),
                error=str(e),
            )
            return False

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        if not self._path.exists():
            return []

        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise StorageError(f"Failed to read audit log: {e}") from e

        events = []
        for line in lines:
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.model_validate_json(line))
            except ValidationError:
                continue

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

