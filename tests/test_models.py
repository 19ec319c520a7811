"""
Tests for Cashbook models

Test strategy:
1. Unit tests for individual components (models, validators, store)
2. Integration tests for flows (with in-memory or fake storage backends)
3. No real Google API calls in tests
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from cashbook.models.transaction import (
    CashBookRow,
    ExpenseDraft,
    ExpenseTransaction,
    IncomeDraft,
    IncomeTransaction,
    TodayStats,
    Transaction,
    TransactionType,
)
from cashbook.models.audit import (
    AUDIT_COLUMNS,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from cashbook.models.validation import DraftValidationResult, ValidationIssue


class TestDraftModels:
    """Tests for the drafts the presentation layer submits."""

    def test_income_draft_creation(self):
        """Test IncomeDraft accepts the stored field names."""
        draft = IncomeDraft(
            payer="A",
            amount=1000,
            date="2024-01-01",
            debit="50",
            credit="90",
        )
        assert draft.type == "income"
        assert draft.amount == Decimal("1000")
        assert draft.business_date == date(2024, 1, 1)
        assert draft.notes == ""

    def test_expense_draft_accepts_camel_case(self):
        """Test docRef alias populates doc_ref."""
        draft = ExpenseDraft(recipient="B", amount="300", date="2024-01-02", docRef="Akt-12")
        assert draft.doc_ref == "Akt-12"

    def test_draft_keeps_text_verbatim(self):
        """Descriptive fields are stored exactly as entered, padding included."""
        draft = IncomeDraft(payer="  Aziz  ", purpose="ijara  ", amount=1, date="2024-01-01")
        assert draft.payer == "  Aziz  "
        assert draft.purpose == "ijara  "

    def test_draft_rejects_ledger_assigned_fields(self):
        """Test that id/orderNumber/createdAt cannot be supplied by the caller."""
        with pytest.raises(ValidationError):
            IncomeDraft(payer="A", amount=1, date="2024-01-01", id="x")
        with pytest.raises(ValidationError):
            ExpenseDraft(recipient="B", amount=1, date="2024-01-01", orderNumber="CHQ-2024-0001")

    def test_draft_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            IncomeDraft(payer="A", amount=Decimal("-1"), date="2024-01-01")

    def test_draft_rejects_fields_of_other_variant(self):
        """An expense has no payer; an income has no docRef."""
        with pytest.raises(ValidationError):
            ExpenseDraft(recipient="B", payer="A", amount=1, date="2024-01-01")
        with pytest.raises(ValidationError):
            IncomeDraft(payer="A", docRef="x", amount=1, date="2024-01-01")


class TestTransactionModels:
    """Tests for recorded transactions."""

    def _income(self, **overrides) -> IncomeTransaction:
        fields = dict(
            id="tx-1",
            order_number="KK-2024-0001",
            amount=Decimal("1000"),
            date=date(2024, 1, 1),
            created_at=datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
            payer="A",
        )
        fields.update(overrides)
        return IncomeTransaction(**fields)

    def test_transaction_is_frozen(self):
        """Test that recorded transactions cannot be mutated in place."""
        tx = self._income()
        with pytest.raises(ValidationError):
            tx.amount = Decimal("1")

    def test_signed_amount(self):
        """Income adds to the balance, expense subtracts."""
        income = self._income()
        expense = ExpenseTransaction(
            order_number="CHQ-2024-0001",
            amount=Decimal("300"),
            date=date(2024, 1, 2),
            created_at=datetime(2024, 1, 2, 10, 0),
            recipient="B",
        )
        assert income.signed_amount == Decimal("1000")
        assert expense.signed_amount == Decimal("-300")
        assert expense.transaction_type == TransactionType.EXPENSE

    def test_default_id_is_generated(self):
        """Test an id is generated when none is given."""
        a = IncomeTransaction(
            order_number="KK-2024-0001",
            amount=1,
            date="2024-01-01",
            created_at="2024-01-01T10:00:00",
        )
        b = IncomeTransaction(
            order_number="KK-2024-0002",
            amount=1,
            date="2024-01-01",
            created_at="2024-01-01T10:00:00",
        )
        assert a.id and b.id and a.id != b.id

    def test_serializes_with_camel_case_keys(self):
        """Test the stored record layout."""
        data = self._income().model_dump(by_alias=True, mode="json")
        assert data["orderNumber"] == "KK-2024-0001"
        assert data["date"] == "2024-01-01"
        assert data["createdAt"] == "2024-01-01T10:00:00Z"
        assert data["amount"] == 1000
        assert data["type"] == "income"
        assert "order_number" not in data

    def test_union_dispatches_on_type(self):
        """Test the tagged union picks the right variant."""
        adapter = TypeAdapter(Transaction)
        tx = adapter.validate_python({
            "id": "1704067200000",
            "orderNumber": "CHQ-2024-0001",
            "type": "expense",
            "recipient": "B",
            "amount": 300,
            "date": "2024-01-02",
            "debit": "",
            "credit": "",
            "docRef": "",
            "purpose": "",
            "createdAt": "2024-01-02T08:00:00.000Z",
        })
        assert isinstance(tx, ExpenseTransaction)
        assert tx.counterparty == "B"

    def test_fractional_amount_is_a_json_number(self):
        data = self._income(amount=Decimal("12.5")).model_dump(by_alias=True, mode="json")
        assert data["amount"] == 12.5
        # python mode keeps the exact Decimal
        assert self._income(amount=Decimal("12.5")).model_dump()["amount"] == Decimal("12.5")

    def test_created_at_is_normalized_to_utc(self):
        tashkent = timezone(timedelta(hours=5))
        tx = self._income(created_at=datetime(2024, 1, 1, 15, 0, tzinfo=tashkent))
        assert tx.created_at == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert tx.created_at.tzinfo == timezone.utc

        legacy = self._income(created_at="2024-01-01T10:00:00.000Z")
        assert legacy.created_at.utcoffset() == timedelta(0)

    def test_numeric_legacy_id_is_accepted(self):
        """Legacy ids were numbers; they are kept as strings."""
        tx = self._income(id=1704067200000)
        assert tx.id == "1704067200000"

    def test_unknown_type_is_rejected(self):
        adapter = TypeAdapter(Transaction)
        with pytest.raises(ValidationError):
            adapter.validate_python({
                "orderNumber": "X-2024-0001",
                "type": "transfer",
                "amount": 1,
                "date": "2024-01-01",
                "createdAt": "2024-01-01T00:00:00",
            })


class TestDerivedViews:
    """Tests for cash book rows and today's stats."""

    def test_cash_book_row(self):
        tx = IncomeTransaction(
            order_number="KK-2024-0001",
            amount=5,
            date="2024-01-01",
            created_at="2024-01-01T10:00:00",
        )
        row = CashBookRow(transaction=tx, running_balance=Decimal("5"))
        assert row.is_income is True
        assert row.transaction.order_number == "KK-2024-0001"

    def test_today_stats_net(self):
        stats = TodayStats(day=date(2024, 1, 2), income=Decimal("500"), expense=Decimal("200"))
        assert stats.net == Decimal("300")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            description="Order recorded",
        )
        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            description="Order deleted",
            details={"order_number": "KK-2024-0001"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_deleted"
        assert log_dict["details"]["order_number"] == "KK-2024-0001"

    def test_audit_event_row_round_trip(self):
        """Test conversion to and from a spreadsheet row."""
        event = AuditEventBuilder.transaction_added(
            transaction_id="tx-1",
            order_number="KK-2024-0001",
            transaction_type="income",
            amount="1000",
            correlation_id=uuid4(),
        )
        row = event.to_row()
        assert len(row) == len(AUDIT_COLUMNS)
        assert row[2] == "transaction_added"
        assert row[10] == "True"
        assert AuditEvent.from_row(row).model_dump() == event.model_dump()

    def test_audit_event_builder_persistence_failed(self):
        """Persistence failures are errors and name the operation."""
        correlation_id = uuid4()
        event = AuditEventBuilder.persistence_failed(
            operation="delete",
            error_message="disk full",
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.PERSISTENCE_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.details["operation"] == "delete"
        assert event.correlation_id == correlation_id

    def test_audit_event_builder_corrupt_state_is_critical(self):
        event = AuditEventBuilder.corrupt_state_detected("cashTransactions", "bad json")
        assert event.severity == AuditSeverity.CRITICAL
        assert event.entity_id == "cashTransactions"


class TestValidationResult:
    """Tests for DraftValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = DraftValidationResult(
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = DraftValidationResult(
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message="Date in future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0

    def test_validation_issue_rejects_unknown_severity(self):
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
