"""
Integration tests for the expense service flows.

Storage is in memory and the clock is pinned.
"""

import json

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from expense_tracker.audit import AuditLogger
from expense_tracker.config import AppSettings, Settings
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.expense import ExpenseCategory, ExpenseFilters, ExpenseFormData
from expense_tracker.service import (
    ExpenseService,
    ExpenseValidationError,
    create_expense_service,
)
from expense_tracker.services.storage import (
    DEFAULT_STORAGE_KEY,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    StorageError,
)
from expense_tracker.validation import ExpenseFormValidator


class FakeClock:
    """Settable clock for created/updated timestamps."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def service(clock, audit_storage):
    return ExpenseService(
        storage=InMemoryExpenseStorage(),
        validator=ExpenseFormValidator(AppSettings()),
        audit_logger=AuditLogger(audit_storage),
        now=clock,
    )


def form(**overrides) -> ExpenseFormData:
    data = {"amount": "12.50", "description": "Lunch", "category": "Food", "date": "2024-06-01"}
    data.update(overrides)
    return ExpenseFormData(**data)


def event_types(audit_storage) -> list[AuditEventType]:
    return [event.event_type for event in audit_storage.events]


class TestCreateExpense:
    """Tests for the create flow."""

    def test_create_assigns_id_and_timestamps(self, service, clock):
        expense = service.create_expense(form())
        assert expense.id
        assert expense.amount == Decimal("12.50")
        assert expense.category == ExpenseCategory.FOOD
        assert expense.date == date(2024, 6, 1)
        assert expense.created_at == clock.current
        assert expense.updated_at == clock.current
        assert service.list_expenses() == [expense]

    def test_ids_are_unique(self, service):
        ids = {service.create_expense(form()).id for _ in range(20)}
        assert len(ids) == 20

    def test_description_is_trimmed(self, service):
        assert service.create_expense(form(description="  Coffee ")).description == "Coffee"

    def test_invalid_form_rejected(self, service, audit_storage):
        """Nothing is stored and the failure is audited."""
        with pytest.raises(ExpenseValidationError) as exc_info:
            service.create_expense(form(amount="0", description=""))

        assert set(exc_info.value.result.field_errors) == {"amount", "description"}
        assert service.list_expenses() == []
        assert event_types(audit_storage) == [AuditEventType.VALIDATION_FAILED]

    def test_warnings_do_not_block(self, service):
        expense = service.create_expense(form(date="2999-01-01"))
        assert expense.date == date(2999, 1, 1)

    def test_create_is_audited(self, service, audit_storage):
        expense = service.create_expense(form())
        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.EXPENSE_CREATED
        assert event.entity_id == expense.id

    @pytest.mark.parametrize("amount", [
        "1e309", "1e5", "9" * 400, "NaN", "Infinity", "-Infinity", " 12.5 ", ".5", "5.", "1_000",
    ])
    def test_odd_amounts_never_crash(self, service, amount):
        """Any amount text either saves or fails validation."""
        try:
            expense = service.create_expense(form(amount=amount))
        except ExpenseValidationError as e:
            assert "amount" in e.result.field_errors
        else:
            assert expense.amount > 0
            assert service.list_expenses() == [expense]

    def test_long_description_accepted(self, service):
        expense = service.create_expense(form(description="x" * 600))
        assert len(expense.description) == 600

    def test_prevalidated_form_not_validated_again(self, service, monkeypatch):
        data = form(date="2999-01-01")
        validation = service.validator.validate(data)
        assert validation.warnings

        def fail(*args, **kwargs):
            raise AssertionError("validated twice")

        monkeypatch.setattr(service.validator, "validate", fail)
        expense = service.create_expense(data, validation=validation)
        assert expense.date == date(2999, 1, 1)

    def test_prevalidated_errors_still_rejected(self, service):
        data = form(amount="abc")
        with pytest.raises(ExpenseValidationError):
            service.create_expense(data, validation=service.validator.validate(data))
        assert service.list_expenses() == []


class TestEditExpense:
    """Tests for the edit flow."""

    def test_edit_keeps_identity(self, service, clock):
        """Edits keep id, creation time and position; updated_at moves forward."""
        first = service.create_expense(form(description="first"))
        clock.advance(minutes=1)
        target = service.create_expense(form(description="target"))
        clock.advance(minutes=1)
        service.create_expense(form(description="last"))
        clock.advance(hours=1)

        edited = service.edit_expense(
            target.id,
            form(amount="99", description="changed", category="Bills", date="2024-05-01"),
        )

        assert edited.id == target.id
        assert edited.created_at == target.created_at
        assert edited.updated_at == clock.current
        assert edited.amount == Decimal("99")
        assert edited.category == ExpenseCategory.BILLS
        assert [e.description for e in service.list_expenses()] == ["first", "changed", "last"]
        assert service.list_expenses()[0] == first

    def test_updated_at_never_moves_back(self, service, clock):
        expense = service.create_expense(form())
        clock.advance(hours=-2)
        edited = service.edit_expense(expense.id, form(description="Dinner"))
        assert edited.updated_at == expense.updated_at
        assert edited.updated_at >= edited.created_at

    def test_edit_unknown_id_returns_none(self, service):
        service.create_expense(form())
        before = service.list_expenses()
        assert service.edit_expense("ghost", form(description="x")) is None
        assert service.list_expenses() == before

    def test_invalid_edit_leaves_record(self, service):
        expense = service.create_expense(form())
        with pytest.raises(ExpenseValidationError):
            service.edit_expense(expense.id, form(date="not-a-date"))
        assert service.list_expenses() == [expense]

    def test_edit_audits_changed_fields(self, service, audit_storage):
        expense = service.create_expense(form())
        service.edit_expense(expense.id, form(amount="15"))
        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.EXPENSE_UPDATED
        assert event.details["changed_fields"] == ["amount"]


class TestRemoveAndClear:
    """Tests for remove and clear."""

    def test_remove_returns_remaining(self, service):
        a = service.create_expense(form(description="a"))
        b = service.create_expense(form(description="b"))
        remaining = service.remove_expense(a.id)
        assert remaining == [b]
        assert service.list_expenses() == [b]

    def test_remove_unknown_id_changes_nothing(self, service, audit_storage):
        expense = service.create_expense(form())
        assert service.remove_expense("ghost") == [expense]
        assert audit_storage.events[-1].details["existed"] is False

    def test_clear(self, service, audit_storage):
        service.create_expense(form())
        service.create_expense(form())
        service.clear_expenses()
        assert service.list_expenses() == []
        assert audit_storage.events[-1].details["removed_count"] == 2


class TestReadFlows:
    """Tests for summary, filtering and export through the service."""

    def test_summary_reflects_latest_state(self, service):
        lunch = service.create_expense(form(amount="12.50", date="2024-06-01"))
        service.create_expense(form(amount="40", category="Transportation", date="2024-05-20"))

        summary = service.summary(today=date(2024, 6, 15))
        assert summary.total_expenses == Decimal("52.50")
        assert summary.monthly_total == Decimal("12.50")
        assert summary.top_category.category == ExpenseCategory.TRANSPORTATION

        service.remove_expense(lunch.id)
        assert service.summary(today=date(2024, 6, 15)).monthly_total == Decimal("0")

    def test_end_to_end_scenario(self, clock):
        """Two expenses in, summary and Food filter out."""
        ids = iter(["1", "2"])
        service = ExpenseService(
            storage=InMemoryExpenseStorage(),
            validator=ExpenseFormValidator(AppSettings()),
            now=clock,
            id_factory=lambda: next(ids),
        )
        service.create_expense(form(amount="12.50", category="Food"))
        service.create_expense(form(amount="40.00", description="Power", category="Bills"))

        summary = service.summary(today=date(2024, 6, 15))
        assert summary.total_expenses == Decimal("52.50")
        assert summary.top_category.category == ExpenseCategory.BILLS
        assert summary.top_category.amount == Decimal("40")

        result = service.filter_expenses(ExpenseFilters(category="Food"))
        assert [e.id for e in result.expenses] == ["1"]
        assert result.total == Decimal("12.50")

    def test_filter_expenses(self, service, audit_storage):
        service.create_expense(form(description="Lunch", date="2024-06-01"))
        service.create_expense(form(description="Taxi", category="Transportation", date="2024-06-03"))

        persisted = len(audit_storage.events)

        result = service.filter_expenses(ExpenseFilters(category="Food"))
        assert [e.description for e in result.expenses] == ["Lunch"]
        # Query events are DEBUG and stay in the local log only
        assert len(audit_storage.events) == persisted

    def test_export_all_in_stored_order(self, service):
        service.create_expense(form(description="Lunch", date="2024-06-01"))
        service.create_expense(form(amount="40", description="Taxi", category="Transportation", date="2024-06-03"))

        filename, content = service.export_csv(today=date(2024, 6, 15))
        assert filename == "expenses-2024-06-15.csv"
        assert content == (
            "Date,Description,Category,Amount\n"
            '2024-06-01,"Lunch",Food,12.5\n'
            '2024-06-03,"Taxi",Transportation,40'
        )

    def test_export_filtered_newest_first(self, service, audit_storage):
        service.create_expense(form(description="Lunch", date="2024-06-01"))
        service.create_expense(form(description="Dinner", date="2024-06-05"))
        service.create_expense(form(description="Taxi", category="Transportation", date="2024-06-03"))

        _, content = service.export_csv(ExpenseFilters(category="Food"), today=date(2024, 6, 15))
        lines = content.split("\n")
        assert len(lines) == 3
        assert lines[1].startswith('2024-06-05,"Dinner"')
        assert audit_storage.events[-1].details["record_count"] == 2


class TestRecentActivity:
    """Tests for the audit trail exposed by the service."""

    def test_recent_activity_newest_first(self, service):
        expense = service.create_expense(form())
        service.remove_expense(expense.id)

        events = service.recent_activity(limit=1)
        assert len(events) == 1
        assert len(service.recent_activity()) == 2

    def test_record_error(self, service, audit_storage):
        service.record_error(RuntimeError("disk on fire"), action="create_expense")

        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.error_message == "disk on fire"
        assert event.details == {"action": "create_expense"}
        assert "RuntimeError" in event.description


class TestCreateExpenseService:
    """Tests for building the service from configuration."""

    def test_json_backend_persists(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "json")
        monkeypatch.setenv("STORAGE_DATA_PATH", str(tmp_path / "expenses.json"))
        monkeypatch.setenv("STORAGE_AUDIT_LOG_PATH", str(tmp_path / "audit.jsonl"))

        create_expense_service(Settings()).create_expense(form())

        reopened = create_expense_service(Settings())
        assert [e.description for e in reopened.list_expenses()] == ["Lunch"]
        assert (tmp_path / "audit.jsonl").exists()

    def test_memory_backend(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        monkeypatch.setenv("STORAGE_DATA_PATH", str(tmp_path / "expenses.json"))

        service = create_expense_service(Settings())
        service.create_expense(form())

        assert len(service.list_expenses()) == 1
        assert not (tmp_path / "expenses.json").exists()

    def test_json_backend_keeps_unreadable_records(self, tmp_path, monkeypatch):
        data_path = tmp_path / "expenses.json"
        bad = {"id": "bad", "amount": "lots", "description": "Broken", "date": "2024-06-01"}
        data_path.write_text(json.dumps({DEFAULT_STORAGE_KEY: [bad]}), encoding="utf-8")
        monkeypatch.setenv("STORAGE_BACKEND", "json")
        monkeypatch.setenv("STORAGE_DATA_PATH", str(data_path))
        monkeypatch.setenv("STORAGE_AUDIT_LOG_PATH", str(tmp_path / "audit.jsonl"))

        service = create_expense_service(Settings())
        service.create_expense(form())

        records = json.loads(data_path.read_text(encoding="utf-8"))[DEFAULT_STORAGE_KEY]
        assert bad in records
        assert [e.description for e in service.list_expenses()] == ["Lunch"]

    def test_unreadable_file_raises_storage_error(self, tmp_path, monkeypatch):
        data_path = tmp_path / "expenses.json"
        data_path.write_text("{not json", encoding="utf-8")
        monkeypatch.setenv("STORAGE_BACKEND", "json")
        monkeypatch.setenv("STORAGE_DATA_PATH", str(data_path))
        monkeypatch.setenv("STORAGE_AUDIT_LOG_PATH", str(tmp_path / "audit.jsonl"))

        service = create_expense_service(Settings())
        with pytest.raises(StorageError):
            service.create_expense(form())
        assert data_path.read_text(encoding="utf-8") == "{not json"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
