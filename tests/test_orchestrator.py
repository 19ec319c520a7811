"""
Integration tests for the cash desk flows and application wiring
"""

import json
from decimal import Decimal
from uuid import uuid4

import pytest

from cashbook.audit import AuditLogger
from cashbook.config import Settings, get_settings, validate_all_settings
from cashbook.models.audit import AuditEventType
from cashbook.models.transaction import DeleteOutcome
from cashbook.orchestrator import CashDeskFlow, create_app_components
from cashbook.services.storage import CorruptStateError, PersistenceError


@pytest.fixture
def flow(store, validator, audit_logger) -> CashDeskFlow:
    return CashDeskFlow(store=store, validator=validator, audit_logger=audit_logger)


def _event_types(audit_storage) -> list[AuditEventType]:
    return [e.event_type for e in reversed(audit_storage.get_recent_events())]


class TestRecordFlow:
    """Tests for recording orders through the flow."""

    def test_record_income_and_expense(self, flow, store, audit_storage):
        tx, result, message = flow.record_income(
            {"payer": "A", "amount": "1 000", "date": "2024-01-01", "debit": "50", "credit": "90"}
        )
        assert result.is_valid
        assert message == "✅ All checks passed."
        assert tx.order_number == "KK-2024-0001"

        tx2, _, _ = flow.record_expense({"recipient": "B", "amount": 300, "date": "2024-01-02"})
        assert tx2.order_number == "CHQ-2024-0001"
        assert store.calculate_balance() == Decimal("700")

        assert _event_types(audit_storage) == [
            AuditEventType.TRANSACTION_ADDED,
            AuditEventType.TRANSACTION_ADDED,
        ]

    def test_invalid_draft_never_reaches_ledger(self, flow, store, storage, audit_storage):
        tx, result, message = flow.record_income({"payer": "", "amount": "-5", "date": "2024-01-01"})

        assert tx is None
        assert not result.is_valid
        assert message.startswith("❌")
        assert store.count() == 0
        assert storage.save_calls == 0

        (event,) = audit_storage.get_recent_events()
        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.details["transaction_type"] == "income"
        assert {i["field"] for i in event.details["issues"]} == {"payer", "amount"}

    def test_warning_does_not_block(self, flow, store):
        tx, result, message = flow.record_expense(
            {"recipient": "B", "amount": "0", "date": "2024-01-02"}
        )
        assert tx is not None
        assert result.warnings == ["Amount is zero"]
        assert "Amount is zero" in message
        assert store.count() == 1

    def test_persistence_failure_is_audited_and_raised(self, flow, store, storage, audit_storage):
        storage.fail_saves = True
        with pytest.raises(PersistenceError):
            flow.record_income({"payer": "A", "amount": 10, "date": "2024-01-01"})

        assert store.count() == 0
        (event,) = audit_storage.get_recent_events()
        assert event.event_type == AuditEventType.PERSISTENCE_FAILED
        assert event.details["operation"] == "add"

    def test_events_share_caller_correlation_id(self, flow, audit_storage):
        correlation_id = uuid4()
        tx, _, _ = flow.record_income(
            {"payer": "A", "amount": 10, "date": "2024-01-01"}, correlation_id
        )
        flow.delete(tx.id, correlation_id)
        events = audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.TRANSACTION_ADDED,
            AuditEventType.TRANSACTION_DELETED,
        ]


class TestDeleteFlow:
    """Tests for deleting orders through the flow."""

    def test_delete_existing(self, flow, store, audit_storage):
        tx, _, _ = flow.record_income({"payer": "A", "amount": 10, "date": "2024-01-01"})
        assert flow.delete(tx.id) == DeleteOutcome.DELETED
        assert store.count() == 0

        events = audit_storage.get_events_by_entity("transaction", tx.id)
        assert events[-1].event_type == AuditEventType.TRANSACTION_DELETED
        assert events[-1].details["order_number"] == "KK-2024-0001"

    def test_delete_unknown(self, flow, audit_storage):
        assert flow.delete("missing") == DeleteOutcome.NOT_FOUND
        (event,) = audit_storage.get_recent_events()
        assert event.event_type == AuditEventType.DELETE_NOT_FOUND
        assert event.entity_id == "missing"

    def test_delete_failure_keeps_transaction(self, flow, store, storage, audit_storage):
        tx, _, _ = flow.record_income({"payer": "A", "amount": 10, "date": "2024-01-01"})
        storage.fail_saves = True

        with pytest.raises(PersistenceError):
            flow.delete(tx.id)

        assert store.get_transaction(tx.id) == tx
        assert audit_storage.get_recent_events()[0].event_type == AuditEventType.PERSISTENCE_FAILED

    def test_flow_without_audit_logger(self, store, validator):
        flow = CashDeskFlow(store=store, validator=validator)
        tx, _, _ = flow.record_income({"payer": "A", "amount": 10, "date": "2024-01-01"})
        assert flow.delete(tx.id) == DeleteOutcome.DELETED
        assert flow.snapshot().transaction_count == 0


class TestCreateAppComponents:
    """Tests for wiring the application from environment configuration."""

    @pytest.fixture(autouse=True)
    def local_env(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CASHBOOK_STORAGE_BACKEND", "local")
        monkeypatch.setenv("CASHBOOK_DATA_DIR", str(tmp_path / "data"))
        monkeypatch.setenv("CASHBOOK_AUDIT_BACKEND", "memory")
        monkeypatch.setenv("LOG_LEVEL", "warning")
        get_settings.cache_clear()
        yield tmp_path / "data"
        get_settings.cache_clear()

    def test_components_are_wired(self, clock):
        flow, store, audit_logger = create_app_components(settings=Settings(), clock=clock)

        assert isinstance(flow, CashDeskFlow)
        assert flow.store is store
        assert isinstance(audit_logger, AuditLogger)
        assert store.count() == 0

        (event,) = audit_logger.storage.get_recent_events()
        assert event.event_type == AuditEventType.LEDGER_LOADED
        assert event.details["transaction_count"] == 0

    def test_ledger_survives_restart(self, clock, local_env):
        flow, _, _ = create_app_components(settings=Settings(), clock=clock)
        tx, _, _ = flow.record_income({"payer": "A", "amount": "1000", "date": "2024-01-01"})

        stored = json.loads((local_env / "cashTransactions.json").read_text(encoding="utf-8"))
        assert stored[0]["orderNumber"] == "KK-2024-0001"

        _, store, _ = create_app_components(settings=Settings(), clock=clock)
        assert store.get_transaction(tx.id).model_dump() == tx.model_dump()
        assert store.generate_order_number("income") == "KK-2024-0002"

    def test_corrupt_file_refuses_to_start(self, clock, local_env):
        local_env.mkdir(parents=True)
        (local_env / "cashTransactions.json").write_text("{oops", encoding="utf-8")

        with pytest.raises(CorruptStateError):
            create_app_components(settings=Settings(), clock=clock)

        # stored data is left for manual recovery
        assert (local_env / "cashTransactions.json").read_text(encoding="utf-8") == "{oops"

    def test_validate_all_settings_skips_unused_sheets(self):
        results = validate_all_settings()
        assert results["ledger"] is True
        assert results["app"] is True
        assert "google_sheets" not in results

    def test_invalid_storage_key_is_reported(self, monkeypatch):
        monkeypatch.setenv("CASHBOOK_STORAGE_KEY", "../escape")
        results = validate_all_settings()
        assert results["ledger"] is False
        assert "ledger_error" in results
