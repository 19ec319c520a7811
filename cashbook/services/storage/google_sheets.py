"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a shared backend because:
1. The accountant can view the raw ledger and audit log in a browser
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- A single cell holds at most 50,000 characters, which caps the size of
  the serialized ledger (a few hundred transactions)
- No transactions (the ledger value lives in one cell, so a save is
  still all-or-nothing)

The ledger is stored in a small key-value worksheet: one row per key with
the serialized collection in the `value` column. Audit events are rows
in a separate worksheet.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from cashbook.config import GoogleSheetsSettings, get_settings
from cashbook.models.audit import AUDIT_COLUMNS, AuditEvent
from cashbook.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    KeyValueStorageInterface,
    PersistenceError,
    StorageError,
)


logger = structlog.get_logger(__name__)

# Column layout of the key-value sheet
LEDGER_COLUMNS = ["key", "value", "updated_at"]

# Hard limit imposed by Google Sheets on a single cell
MAX_CELL_CHARS = 50_000

_api_retry = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError as e:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound as e:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_ledger_sheet(self) -> gspread.Worksheet:
        """Get or create the key-value worksheet holding the ledger."""
        return self._get_or_create_sheet(
            self._settings.ledger_sheet_name, LEDGER_COLUMNS, rows=10
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsKeyValueStorage(KeyValueStorageInterface):
    """
    Google Sheets implementation of the key-value contract.

    Each key occupies one row; saving rewrites that row's value cell.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _find_row(rows: list[list[str]], key: str) -> Optional[int]:
        """1-based sheet row index for a key (row 1 is the header)."""
        for idx, row in enumerate(rows[1:], start=2):
            if row and row[0] == key:
                return idx
        return None

    @_api_retry
    def _fetch_rows(self) -> list[list[str]]:
        return self._client.get_ledger_sheet().get_all_values()

    def load(self, key: str) -> Optional[str]:
        """Read the value cell for a key."""
        try:
            rows = self._fetch_rows()
        except ConnectionError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to read ledger from Google Sheets: {e}") from e

        idx = self._find_row(rows, key)
        if idx is None:
            return None
        row = rows[idx - 1]
        return row[1] if len(row) > 1 else None

    @_api_retry
    def _write(self, key: str, value: str) -> None:
        sheet = self._client.get_ledger_sheet()
        updated_at = datetime.now(timezone.utc).isoformat()
        idx = self._find_row(sheet.get_all_values(), key)
        if idx is None:
            sheet.append_row([key, value, updated_at], value_input_option="RAW")
        else:
            sheet.update(
                range_name=f"B{idx}:C{idx}",
                values=[[value, updated_at]],
                value_input_option="RAW",
            )

    def save(self, key: str, value: str) -> bool:
        """Replace the value cell for a key."""
        if len(value) > MAX_CELL_CHARS:
            raise PersistenceError(
                f"Serialized ledger is {len(value)} characters; "
                f"Google Sheets cells hold at most {MAX_CELL_CHARS}"
            )
        try:
            self._write(key, value)
        except ConnectionError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to write ledger to Google Sheets: {e}") from e
        return True


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _all_events(self) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}") from e

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(AuditEvent.from_row(row))
            except ValueError as e:
                logger.warning("audit_row_skipped", event_id=row[0], error=str(e))
        return events

    @_api_retry
    def _append(self, event: AuditEvent) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_row(), value_input_option="RAW")

    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append(event)
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}") from e
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID, oldest first."""
        events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity, oldest first."""
        events = [
            e for e in self._all_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        events = self._all_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
