"""Services package."""

from cashbook.services.storage import (
    AuditStorageInterface,
    ConnectionError,
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
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "CorruptStateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStorage",
    "InMemoryAuditStorage",
    "InMemoryKeyValueStorage",
    "KeyValueStorageInterface",
    "LocalFileAuditStorage",
    "LocalFileKeyValueStorage",
    "PersistenceError",
    "StorageError",
]
