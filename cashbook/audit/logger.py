"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Complete traceability of recorded and deleted orders
2. Debugging capability when a save fails
3. A history that outlives deleted transactions

The audit logger:
- Always writes a structured local log line (structlog, JSON)
- Gracefully handles audit storage failures (they never undo or block
  a ledger operation that already succeeded or failed on its own)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from cashbook.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from cashbook.models.transaction import Transaction
from cashbook.models.validation import DraftValidationResult
from cashbook.services.storage import AuditStorageInterface


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


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at the given level."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))
    logging.getLogger().setLevel(getattr(logging, level.upper()))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend (for persistence), when configured
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
        self._logger = structlog.get_logger("cashbook.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
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

        if self._storage:
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

    def log_ledger_loaded(self, transaction_count: int, storage_key: str) -> None:
        """Log a successful ledger load at startup."""
        self.log(AuditEventBuilder.ledger_loaded(
            transaction_count=transaction_count,
            storage_key=storage_key,
        ))

    def log_corrupt_state(self, storage_key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.corrupt_state_detected(
            storage_key=storage_key,
            error_message=error_message,
        ))

    def log_validation_failed(
        self,
        result: DraftValidationResult,
        correlation_id: UUID,
    ) -> None:
        """Log a draft rejected at the boundary."""
        issues = [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in result.issues
            if i.severity == "error"
        ]
        self.log(AuditEventBuilder.validation_failed(
            transaction_type=result.transaction_type,
            issues=issues,
            correlation_id=correlation_id,
        ))

    def log_transaction_added(
        self,
        transaction: Transaction,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.transaction_added(
            transaction_id=transaction.id,
            order_number=transaction.order_number,
            transaction_type=transaction.type,
            amount=str(transaction.amount),
            correlation_id=correlation_id,
        ))

    def log_transaction_deleted(
        self,
        transaction: Transaction,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction.id,
            order_number=transaction.order_number,
            correlation_id=correlation_id,
        ))

    def log_delete_not_found(
        self,
        transaction_id: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.delete_not_found(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    def log_persistence_failed(
        self,
        operation: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.persistence_failed(
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

    Use this at the start of a new user action (e.g., submitting an order).
    Pass it through all subsequent operations.
    """
    return uuid4()
