# ruff: noqa: I001
"""Ingestion workflow: folder of CSV exports -> Transactions table.

Wires the pure :func:`~ledger_ingest.ingestion.ingest` transform to its
collaborators (table adapter, file source, archiver, alert sink) and turns the
returned report into alerts.
"""

from __future__ import annotations

from datetime import datetime

from ..alerts import (
    IMPORT_TAG,
    AlertSink,
    LoggingAlertSink,
    format_problem_files,
    format_row_errors,
    format_summary,
    group_row_errors,
    notify_safely,
)
from ..errors import ConfigurationError, LedgerError, StorageAdapterError
from ..ingestion import ingest
from ..logging_setup import get_logger
from ..models import IngestionResult
from ..registry import SourceFormatRegistry, load_registry
from ..schema import TRANSACTION_COLUMNS, Table
from ..settings import LedgerSettings
from ..sources import FileArchiver, FileSource, FolderArchiver, LocalFolderSource, NullArchiver
from ..tables import Row, TableAdapter

_logger = get_logger("ledger_ingest.workflows.ingest")


def _resolve_source(settings: LedgerSettings, source: FileSource | None) -> FileSource:
    if source is not None:
        return source
    if settings.source_folder is None:
        raise ConfigurationError("LEDGER_SOURCE_FOLDER is not set; nothing to ingest from")
    return LocalFolderSource(settings.source_folder)


def _resolve_archiver(settings: LedgerSettings, archiver: FileArchiver | None) -> FileArchiver:
    if archiver is not None:
        return archiver
    if settings.archive_folder is None or settings.source_folder is None:
        return NullArchiver()
    return FolderArchiver(settings.source_folder, settings.archive_folder)


def _resolve_registry(
    settings: LedgerSettings, registry: SourceFormatRegistry | None
) -> SourceFormatRegistry:
    if registry is not None:
        return registry
    if settings.registry_path is None:
        raise ConfigurationError("LEDGER_REGISTRY_PATH is not set; no source formats to map with")
    return load_registry(settings.registry_path)


def _prepare_table(adapter: TableAdapter, name: str) -> tuple[Table, list[Row]]:
    headers, rows = adapter.read_all(name)
    if not rows:
        # Only an empty table gets the canonical layout.
        adapter.ensure_columns(name, TRANSACTION_COLUMNS)
        headers, rows = adapter.read_all(name)
    table = Table(name, headers)
    table.require(TRANSACTION_COLUMNS)
    return table, rows


def _report(result: IngestionResult, alerts: AlertSink, row_error_limit: int) -> None:
    if result.unmapped_files or result.file_errors:
        notify_safely(
            alerts,
            f"{IMPORT_TAG} Some files could not be mapped",
            format_problem_files(result.unmapped_files, result.file_errors),
        )
    for name, issues in group_row_errors(result.row_errors).items():
        notify_safely(
            alerts,
            f"{IMPORT_TAG} Row mapping issues in {name}",
            format_row_errors(issues, row_error_limit),
        )
    _logger.info(format_summary(result.per_file_counts))


def run_ingestion(
    settings: LedgerSettings,
    *,
    table: TableAdapter,
    source: FileSource | None = None,
    archiver: FileArchiver | None = None,
    alerts: AlertSink | None = None,
    registry: SourceFormatRegistry | None = None,
    now: datetime | None = None,
) -> IngestionResult:
    """Ingest every CSV from the source into the Transactions table.

    Parameters
    ----------
    settings:
        Run settings. ``source_folder`` and ``registry_path`` are required
        unless ``source`` / ``registry`` are injected.
    table:
        Adapter for the tabular store.
    source / archiver:
        File collaborators. Default to the folder-based implementations
        derived from ``settings``; archiving is skipped without an archive
        folder.
    alerts:
        Alert sink; defaults to :class:`LoggingAlertSink`.
    registry:
        Pre-loaded source format registry.
    now:
        Import timestamp used for rows without a usable date.

    Returns
    -------
    IngestionResult
        The pipeline report; its rows have already been appended.

    Raises
    ------
    ConfigurationError, StorageAdapterError
        After a ``Fatal error`` alert has been sent.
    """

    sink = alerts or LoggingAlertSink()
    try:
        file_source = _resolve_source(settings, source)
        file_archiver = _resolve_archiver(settings, archiver)
        formats = _resolve_registry(settings, registry)
        target, rows = _prepare_table(table, settings.transactions_table)

        result = ingest(
            file_source.list_csv_files(),
            target.rows_to_records(rows),
            formats,
            settings.time_zone,
            import_timestamp=now,
            duplicate_prefix=settings.duplicate_prefix,
            strict_dates=settings.strict_dates,
        )

        if result.rows_to_append:
            table.append_rows(
                settings.transactions_table,
                [target.record_to_row(r) for r in result.rows_to_append],
            )
    except LedgerError as exc:
        notify_safely(sink, f"{IMPORT_TAG} Fatal error", str(exc))
        raise

    for name in result.processed_files:
        try:
            file_archiver.archive(name)
        except StorageAdapterError as exc:
            _logger.warning("Archive failed for %s: %s", name, exc)
            notify_safely(sink, f"{IMPORT_TAG} Failed to archive file", f"{name}\n\n{exc}")

    _report(result, sink, settings.max_reported_row_errors)
    return result


__all__ = ["run_ingestion"]
