"""
Data Models Package

This package contains all Pydantic models used by the cash ledger.
All data flowing through the system must conform to these schemas.
"""

from cashbook.models.transaction import (
    CashBookRow,
    DeleteOutcome,
    ExpenseDraft,
    ExpenseTransaction,
    IncomeDraft,
    IncomeTransaction,
    LedgerSnapshot,
    TodayStats,
    Transaction,
    TransactionDraft,
    TransactionType,
    new_transaction_id,
)
from cashbook.models.validation import (
    DraftValidationResult,
    ValidationIssue,
)
from cashbook.models.audit import (
    AUDIT_COLUMNS,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CashBookRow",
    "DeleteOutcome",
    "ExpenseDraft",
    "ExpenseTransaction",
    "IncomeDraft",
    "IncomeTransaction",
    "LedgerSnapshot",
    "TodayStats",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "new_transaction_id",
    # Validation models
    "DraftValidationResult",
    "ValidationIssue",
    # Audit models
    "AUDIT_COLUMNS",
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
