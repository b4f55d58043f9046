"""Run settings, built once per run and passed explicitly to the workflows.

Values come from ``LEDGER_*`` environment variables (entrypoints load ``.env``
first with ``python-dotenv``) and may be overridden by CLI options. Blank
variables count as unset.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .dedup import DUPLICATE_PREFIX
from .errors import ConfigurationError
from .parsing import resolve_zone

DEFAULT_TIME_ZONE = "America/Los_Angeles"

# Settings field -> environment variable(s), first non-blank wins.
ENV_VARS: dict[str, tuple[str, ...]] = {
    "database_url": ("LEDGER_DATABASE_URL", "DATABASE_URL"),
    "source_folder": ("LEDGER_SOURCE_FOLDER",),
    "archive_folder": ("LEDGER_ARCHIVE_FOLDER",),
    "registry_path": ("LEDGER_REGISTRY_PATH",),
    "transactions_table": ("LEDGER_TRANSACTIONS_TABLE",),
    "rules_table": ("LEDGER_RULES_TABLE",),
    "time_zone": ("LEDGER_TIME_ZONE",),
    "duplicate_prefix": ("LEDGER_DUPLICATE_PREFIX",),
    "strict_dates": ("LEDGER_STRICT_DATES",),
    "alert_email": ("LEDGER_ALERT_EMAIL",),
    "alert_subject": ("LEDGER_ALERT_SUBJECT",),
    "resend_api_key": ("RESEND_API_KEY",),
    "max_reported_row_errors": ("LEDGER_MAX_REPORTED_ROW_ERRORS",),
}


class LedgerSettings(BaseModel):
    """Immutable configuration for one ingestion or categorization run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    database_url: str | None = None
    source_folder: Path | None = None
    archive_folder: Path | None = None
    registry_path: Path | None = None
    transactions_table: str = "Transactions"
    rules_table: str = "Rules"
    time_zone: str = DEFAULT_TIME_ZONE
    # Not stripped: the trailing space separates the marker from the description.
    duplicate_prefix: str = DUPLICATE_PREFIX
    strict_dates: bool = False
    alert_email: str | None = None
    alert_subject: str = "Ledger ingest alert"
    resend_api_key: str | None = None
    max_reported_row_errors: int = Field(default=30, ge=1)

    @field_validator("time_zone")
    @classmethod
    def _known_zone(cls, v: str) -> str:
        try:
            resolve_zone(v)
        except ConfigurationError as exc:
            raise ValueError(str(exc)) from exc
        return v

    @field_validator("transactions_table", "rules_table")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("table name must not be blank")
        return v.strip()

    def require_database_url(self) -> str:
        if not self.database_url:
            raise ConfigurationError(
                "LEDGER_DATABASE_URL (or DATABASE_URL) is not set; pass --database-url or set it"
            )
        return self.database_url


def _from_environ(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field, names in ENV_VARS.items():
        for name in names:
            raw = environ.get(name)
            if raw is not None and raw.strip():
                values[field] = raw if field == "duplicate_prefix" else raw.strip()
                break
    return values


def load_settings(
    environ: Mapping[str, str] | None = None, **overrides: Any
) -> LedgerSettings:
    """Build :class:`LedgerSettings` from ``environ`` (default ``os.environ``).

    Keyword ``overrides`` win over the environment; ``None`` values are
    ignored so CLI options can be passed through unconditionally.

    Raises
    ------
    ConfigurationError
        When a value fails validation (unknown time zone, non-integer limit...).
    """

    values = _from_environ(os.environ if environ is None else environ)
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return LedgerSettings.model_validate(values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc


__all__ = ["DEFAULT_TIME_ZONE", "ENV_VARS", "LedgerSettings", "load_settings"]
