"""
Abstract Storage Interface

DESIGN DECISION: The ledger talks to durable storage through a minimal
key-value contract. This allows us to:
1. Keep a local JSON file for single-user desktop use
2. Use in-memory storage for testing
3. Swap in Google Sheets (or a database) without touching ledger logic

The contract is intentionally tiny: the whole transaction collection is
serialized into ONE value and every save replaces it. No partial or delta
writes, so the durable copy is never half-updated.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from cashbook.models.audit import AuditEvent


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for the ledger's durable storage.

    Any storage implementation (local file, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    def load(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: Fixed identifier, e.g. "cashTransactions"

        Returns:
            The stored string, or None if nothing was ever saved

        Raises:
            PersistenceError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save(self, key: str, value: str) -> bool:
        """
        Replace the value stored under a key.

        Args:
            key: Fixed identifier
            value: The complete serialized collection

        Returns:
            True if saved successfully

        Raises:
            PersistenceError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one form submission).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'transaction', 'ledger')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceError(StorageError):
    """A durable read or write failed. In-memory changes are rolled back."""
    pass


class ConnectionError(PersistenceError):
    """Could not connect to storage backend."""
    pass


class CorruptStateError(StorageError):
    """
    Stored data could not be understood at startup.

    Fatal: the ledger refuses to start rather than discard user data.
    """

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key
