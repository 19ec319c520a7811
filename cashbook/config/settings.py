"""
Configuration Management for the Cash Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which storage backend is in use and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Where and how the transaction collection is stored."""

    model_config = SettingsConfigDict(
        env_prefix="CASHBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    storage_backend: Literal["memory", "local", "google_sheets"] = Field(
        default="local",
        description="Durable storage backend for the transaction collection"
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the local file backend"
    )
    storage_key: str = Field(
        default="cashTransactions",
        min_length=1,
        description="Key under which the whole collection is stored"
    )
    audit_backend: Literal["none", "memory", "local", "google_sheets"] = Field(
        default="local",
        description="Where audit events are appended (structlog output is always on)"
    )
    audit_file_name: str = Field(
        default="audit.jsonl",
        description="File name of the local audit log inside data_dir"
    )

    @field_validator("storage_key")
    @classmethod
    def validate_storage_key(cls, v: str) -> str:
        """Keys become file names for the local backend."""
        if any(sep in v for sep in ("/", "\\")) or v in (".", ".."):
            raise ValueError(f"Storage key must be a plain name: {v!r}")
        return v


class GoogleSheetsSettings(BaseSettings):
    """Connection details for the Google Sheets backends."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    ledger_sheet_name: str = Field(
        default="Ledger",
        description="Name of the key-value sheet holding the transaction collection"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """A missing key file only warns; it may be mounted after startup."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Application-wide behaviour and validation thresholds.

    Read from unprefixed environment variables and the .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    # Validation thresholds
    max_transaction_amount: float = Field(
        default=1_000_000_000.0,
        gt=0,
        description="Amounts above this are flagged for review (so'm)"
    )
    future_date_tolerance_days: int = Field(
        default=0,
        ge=0,
        description="How many days in the future a business date can be without a warning"
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Groups the ledger, Google Sheets and application settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are built on access, so an unused backend needs no configuration

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    The instance is built once per process.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Check that every configuration section in use can be loaded.

    Returns a dict of {setting_name: is_valid}.
    Google Sheets is only checked when a backend actually uses it.
    """
    results = {}

    settings = get_settings()

    try:
        ledger = settings.ledger
        results["ledger"] = True
    except Exception as e:
        ledger = None
        results["ledger"] = False
        results["ledger_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    needs_sheets = ledger is not None and "google_sheets" in (
        ledger.storage_backend,
        ledger.audit_backend,
    )
    if needs_sheets:
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results
