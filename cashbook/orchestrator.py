"""
Main Orchestrator for the Cash Ledger

This module ties together all the components and defines the
end-to-end flows the presentation layer calls:
1. Record an order (raw form values → validate → add → persist)
2. Delete an order (id → delete → persist)
3. Read everything needed for one render (snapshot)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the ledger without passing the draft validator
- Every change and every failure is audited
- Persistence and corrupt-state errors are surfaced, never swallowed

The ledger store itself knows nothing about forms, audit or settings.
"""

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import structlog

from cashbook.audit import AuditLogger, configure_logging, create_correlation_id
from cashbook.config import Settings, get_settings
from cashbook.ledger import LedgerStore
from cashbook.models.transaction import (
    DeleteOutcome,
    LedgerSnapshot,
    Transaction,
    TransactionType,
)
from cashbook.models.validation import DraftValidationResult
from cashbook.services.storage import (
    AuditStorageInterface,
    CorruptStateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsKeyValueStorage,
    InMemoryAuditStorage,
    InMemoryKeyValueStorage,
    KeyValueStorageInterface,
    LocalFileAuditStorage,
    LocalFileKeyValueStorage,
    PersistenceError,
)
from cashbook.validation import DraftValidator


logger = structlog.get_logger(__name__)


class CashDeskFlow:
    """
    Orchestrates the cash desk operations.

    Flow for recording an order:
    1. Validate → Two-stage draft validation
    2. Reject → Report issues, ledger untouched
    3. Add → Ledger assigns id, order number, timestamp and persists
    4. Audit → Record what happened under one correlation id
    """

    def __init__(
        self,
        store: LedgerStore,
        validator: Optional[DraftValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._validator = validator or DraftValidator()
        self._audit_logger = audit_logger

    @property
    def store(self) -> LedgerStore:
        return self._store

    def record(
        self,
        raw: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Transaction], DraftValidationResult, str]:
        """
        Validate raw form values and record the order.

        Returns:
            (transaction, validation_result, user_message)

        If the draft is invalid, transaction is None and nothing is written.

        Raises:
            PersistenceError: The save failed; the ledger is unchanged
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate(raw)
        message = self._validator.get_user_friendly_summary(result)

        if not result.is_valid:
            if self._audit_logger:
                self._audit_logger.log_validation_failed(result, correlation_id)
            return None, result, message

        try:
            transaction = self._store.add_transaction(result.draft)
        except PersistenceError as e:
            if self._audit_logger:
                self._audit_logger.log_persistence_failed(
                    operation="add",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_transaction_added(transaction, correlation_id)

        return transaction, result, message

    def record_income(
        self,
        raw: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Transaction], DraftValidationResult, str]:
        """Record a kirim order from the receipt form."""
        return self.record({**raw, "type": TransactionType.INCOME.value}, correlation_id)

    def record_expense(
        self,
        raw: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Transaction], DraftValidationResult, str]:
        """Record a chiqim order from the expense form."""
        return self.record({**raw, "type": TransactionType.EXPENSE.value}, correlation_id)

    def delete(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> DeleteOutcome:
        """
        Delete an order by id.

        An unknown id is reported as DeleteOutcome.NOT_FOUND, not raised.

        Raises:
            PersistenceError: The save failed; the order is still in the ledger
        """
        correlation_id = correlation_id or create_correlation_id()
        existing = self._store.get_transaction(transaction_id)

        try:
            outcome = self._store.delete_transaction(transaction_id)
        except PersistenceError as e:
            if self._audit_logger:
                self._audit_logger.log_persistence_failed(
                    operation="delete",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            if outcome == DeleteOutcome.DELETED:
                self._audit_logger.log_transaction_deleted(existing, correlation_id)
            else:
                self._audit_logger.log_delete_not_found(transaction_id, correlation_id)

        return outcome

    def snapshot(self) -> LedgerSnapshot:
        """Everything the presentation layer renders."""
        return self._store.snapshot()


def build_ledger_storage(
    settings: Settings,
    sheets_client: Optional[GoogleSheetsClient] = None,
) -> KeyValueStorageInterface:
    """Create the key-value backend selected by CASHBOOK_STORAGE_BACKEND."""
    ledger_settings = settings.ledger
    backend = ledger_settings.storage_backend
    if backend == "memory":
        return InMemoryKeyValueStorage()
    if backend == "local":
        return LocalFileKeyValueStorage(ledger_settings.data_dir)
    return GoogleSheetsKeyValueStorage(sheets_client or GoogleSheetsClient(settings.google_sheets))


def build_audit_storage(
    settings: Settings,
    sheets_client: Optional[GoogleSheetsClient] = None,
) -> Optional[AuditStorageInterface]:
    """Create the audit backend selected by CASHBOOK_AUDIT_BACKEND (None for 'none')."""
    ledger_settings = settings.ledger
    backend = ledger_settings.audit_backend
    if backend == "none":
        return None
    if backend == "memory":
        return InMemoryAuditStorage()
    if backend == "local":
        return LocalFileAuditStorage(ledger_settings.data_dir / ledger_settings.audit_file_name)
    return GoogleSheetsAuditStorage(sheets_client or GoogleSheetsClient(settings.google_sheets))


def create_app_components(
    settings: Optional[Settings] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> tuple[CashDeskFlow, LedgerStore, AuditLogger]:
    """
    Factory function to create all application components.

    Loads the ledger from the configured backend. A corrupt stored ledger
    is audited and re-raised: the application must not start on it.

    Returns:
        (cash_desk_flow, ledger_store, audit_logger)

    Raises:
        CorruptStateError: Stored data could not be parsed
        PersistenceError: The storage backend could not be read
    """
    settings = settings or get_settings()
    app_settings = settings.app
    ledger_settings = settings.ledger
    configure_logging("DEBUG" if app_settings.debug_mode else app_settings.log_level)

    sheets_client = None
    if "google_sheets" in (ledger_settings.storage_backend, ledger_settings.audit_backend):
        sheets_client = GoogleSheetsClient(settings.google_sheets)

    audit_logger = AuditLogger(build_audit_storage(settings, sheets_client))
    storage = build_ledger_storage(settings, sheets_client)

    try:
        store = LedgerStore(storage, storage_key=ledger_settings.storage_key, clock=clock)
    except CorruptStateError as e:
        audit_logger.log_corrupt_state(ledger_settings.storage_key, str(e))
        raise
    except PersistenceError as e:
        audit_logger.log_error(error_type="ledger_load_failed", error_message=str(e))
        raise

    audit_logger.log_ledger_loaded(store.count(), ledger_settings.storage_key)
    logger.info(
        "cashbook_started",
        storage_backend=ledger_settings.storage_backend,
        audit_backend=ledger_settings.audit_backend,
        environment=app_settings.app_environment,
    )

    validator = DraftValidator(settings=app_settings, clock=clock)
    flow = CashDeskFlow(store=store, validator=validator, audit_logger=audit_logger)
    return flow, store, audit_logger
