"""Settings-driven entry points used by the CLI and by library callers.

These helpers build the default collaborators from :class:`LedgerSettings`
(SQL table adapter, folder source/archiver, alert sink) and delegate to the
workflows in :mod:`ledger_ingest.workflows`.
"""

from __future__ import annotations

from .alerts import AlertSink, LoggingAlertSink, ResendAlertSink
from .models import CategorizationResult, IngestionResult
from .persistence import SqlTableAdapter
from .settings import LedgerSettings
from .tables import TableAdapter
from .workflows import run_categorization, run_ingestion


def build_alert_sink(settings: LedgerSettings) -> AlertSink:
    """Email through Resend when ``alert_email`` is set, otherwise log."""

    if settings.alert_email:
        return ResendAlertSink(
            settings.alert_email,
            api_key=settings.resend_api_key,
            subject_prefix=settings.alert_subject,
        )
    return LoggingAlertSink()


def build_table_adapter(settings: LedgerSettings) -> TableAdapter:
    return SqlTableAdapter(settings.require_database_url())


def ingest_csvs(
    settings: LedgerSettings,
    *,
    table: TableAdapter | None = None,
    alerts: AlertSink | None = None,
) -> IngestionResult:
    """Ingest the configured source folder into the configured database."""

    return run_ingestion(
        settings,
        table=table or build_table_adapter(settings),
        alerts=alerts or build_alert_sink(settings),
    )


def categorize_transactions(
    settings: LedgerSettings,
    *,
    table: TableAdapter | None = None,
    alerts: AlertSink | None = None,
    start_row: int | None = None,
    num_rows: int | None = None,
) -> CategorizationResult:
    """Re-run rule categorization over all rows, or over one row slice."""

    return run_categorization(
        settings,
        table=table or build_table_adapter(settings),
        alerts=alerts or build_alert_sink(settings),
        start_row=start_row,
        num_rows=num_rows,
    )


__all__ = [
    "build_alert_sink",
    "build_table_adapter",
    "ingest_csvs",
    "categorize_transactions",
]
