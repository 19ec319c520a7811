"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The ledger only ever sees KeyValueStorageInterface; backends are swappable.
"""

from cashbook.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    CorruptStateError,
    KeyValueStorageInterface,
    PersistenceError,
    StorageError,
)
from cashbook.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryKeyValueStorage,
)
from cashbook.services.storage.local_file import (
    LocalFileAuditStorage,
    LocalFileKeyValueStorage,
)
from cashbook.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsKeyValueStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStorageInterface",
    # Exceptions
    "ConnectionError",
    "CorruptStateError",
    "PersistenceError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryKeyValueStorage",
    # Local file implementation
    "LocalFileAuditStorage",
    "LocalFileKeyValueStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStorage",
]
