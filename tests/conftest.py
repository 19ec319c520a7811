"""Shared fixtures: a controllable clock and in-memory backends."""

from datetime import datetime
from typing import Optional

import pytest

from cashbook.audit import AuditLogger
from cashbook.config import AppSettings
from cashbook.ledger import LedgerStore
from cashbook.services.storage import (
    InMemoryAuditStorage,
    InMemoryKeyValueStorage,
    PersistenceError,
)
from cashbook.validation import DraftValidator


class FixedClock:
    """Callable clock that tests can move forward by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FlakyKeyValueStorage(InMemoryKeyValueStorage):
    """In-memory storage whose saves can be switched to fail."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        super().__init__(initial)
        self.fail_saves = False
        self.save_calls = 0

    def save(self, key: str, value: str) -> bool:
        self.save_calls += 1
        if self.fail_saves:
            raise PersistenceError("disk full")
        return super().save(key, value)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 1, 2, 9, 30))


@pytest.fixture
def storage() -> FlakyKeyValueStorage:
    return FlakyKeyValueStorage()


@pytest.fixture
def store(storage, clock) -> LedgerStore:
    return LedgerStore(storage, clock=clock)


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        max_transaction_amount=1_000_000,
        future_date_tolerance_days=0,
    )


@pytest.fixture
def validator(app_settings, clock) -> DraftValidator:
    return DraftValidator(settings=app_settings, clock=clock)


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)
