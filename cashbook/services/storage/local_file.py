"""
Local File Storage Implementation

DESIGN DECISION: The default backend is a plain JSON file per key because:
1. A single-user cash desk needs no server
2. The file can be opened, copied and backed up by hand
3. The format is the same JSON array the web front end keeps in localStorage

Writes are atomic: the new value goes to a temporary file in the same
directory which then replaces the old file with os.replace(). A crash
mid-write leaves the previous collection intact, never half a collection.

Transient OS errors (locked file, busy network share) are retried a few
times before surfacing as PersistenceError.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional
from uuid import UUID

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cashbook.models.audit import AuditEvent
from cashbook.services.storage.interface import (
    AuditStorageInterface,
    CorruptStateError,
    KeyValueStorageInterface,
    PersistenceError,
    StorageError,
)


_io_retry = retry(
    retry=retry_if_exception_type(OSError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
    reraise=True,
)


class LocalFileKeyValueStorage(KeyValueStorageInterface):
    """
    Stores each key as `<directory>/<key>.json`.

    The directory is created on first save.
    """

    def __init__(self, directory: Path | str):
        self._directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    @_io_retry
    def _read(self, path: Path) -> bytes:
        return path.read_bytes()

    @_io_retry
    def _write(self, path: Path, value: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def load(self, key: str) -> Optional[str]:
        """Read the stored value, or None if the file does not exist."""
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            raw = self._read(path)
        except OSError as e:
            raise PersistenceError(f"Failed to read {path}: {e}") from e

        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CorruptStateError(f"{path} is not valid UTF-8: {e}", key=key) from e

    def save(self, key: str, value: str) -> bool:
        """Atomically replace the file for this key."""
        path = self.path_for(key)
        try:
            self._write(path, value)
        except OSError as e:
            raise PersistenceError(f"Failed to write {path}: {e}") from e
        return True


class LocalFileAuditStorage(AuditStorageInterface):
    """
    Audit log as a JSON-lines file: one event per line, append-only.

    Reads scan the whole file; audit volume for a single cash desk is small.
    """

    def __init__(self, path: Path | str):
        self._path = Path(path)

    @_io_retry
    def _append_line(self, line: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")

    def _read_all(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise StorageError(f"Failed to read audit log {self._path}: {e}") from e

        events = []
        for number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.model_validate(json.loads(line)))
            except ValueError as e:
                raise StorageError(
                    f"Malformed audit record at {self._path}:{number}: {e}"
                ) from e
        return events

    def append_event(self, event: AuditEvent) -> bool:
        try:
            self._append_line(event.model_dump_json())
        except OSError as e:
            raise StorageError(f"Failed to append audit event: {e}") from e
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self._read_all() if e.correlation_id == correlation_id]

    def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        return [
            e for e in self._read_all()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        if limit <= 0:
            return []
        return list(reversed(self._read_all()[-limit:]))
