"""Ingestion pipeline: raw CSV files -> deduplicated rows to append.

Contract
--------
``ingest`` is pure with respect to storage: it reads nothing but its
arguments and returns an :class:`IngestionResult`. File- and row-level
problems are collected into the result and never raised; the caller decides
how to surface them.

Per file:

1. Decode (``utf-8-sig``) and parse with :mod:`csv`. Fewer than two rows
   means nothing to import; the file is skipped with a count of 0.
2. Fingerprint the header row and look up its format. Unknown fingerprints
   are reported as :class:`UnmappedFile` and the file is skipped.
3. Each non-blank data row is normalized, keyed and run through the dedup
   policy (see :mod:`ledger_ingest.dedup`).
4. A failing row becomes a :class:`RowIssue` with its 1-based CSV row number
   (the header is row 1); a failing file becomes a :class:`FileIssue`.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from .dedup import (
    DUPLICATE_PREFIX,
    DedupKeySet,
    KeyStatus,
    build_existing_key_set,
    dedup_key,
    mark_possible_duplicate,
)
from .errors import LedgerError, UnmappedFormatError
from .fingerprint import fingerprint
from .logging_setup import get_logger
from .models import (
    FileIssue,
    FormatMap,
    IngestionResult,
    RowIssue,
    SourceFile,
    SourceFormatConfig,
    TransactionRecord,
    UnmappedFile,
)
from .normalizer import RecordNormalizer
from .registry import SourceFormatRegistry

_logger = get_logger("ledger_ingest.ingestion")


def decode_csv(content: bytes | str) -> list[list[str]]:
    """Parse CSV content into rows; a leading BOM is dropped."""

    if isinstance(content, bytes):
        text = content.decode("utf-8-sig")
    else:
        text = content.removeprefix("\ufeff")
    return [list(row) for row in csv.reader(io.StringIO(text, newline=""))]


def _is_blank(row: Sequence[str]) -> bool:
    return all(not str(cell or "").strip() for cell in row)


def resolve_format(
    source_file: str, headers: Sequence[str], registry: SourceFormatRegistry
) -> SourceFormatConfig:
    """Return the format for ``headers`` or raise :class:`UnmappedFormatError`."""

    fp = fingerprint(headers)
    config = registry.lookup(fp)
    if config is None:
        raise UnmappedFormatError(source_file, fp, headers)
    return config


def ingest(
    source_files: Iterable[SourceFile],
    stored_records: Iterable[TransactionRecord],
    format_registry: FormatMap,
    time_zone: str,
    *,
    import_timestamp: datetime | None = None,
    duplicate_prefix: str = DUPLICATE_PREFIX,
    strict_dates: bool = False,
) -> IngestionResult:
    """Run the ingestion transform over ``source_files``.

    Parameters
    ----------
    source_files:
        ``(name, content)`` pairs in processing order.
    stored_records:
        Every record already in the target table; seeds the dedup key set.
    format_registry:
        Fingerprint -> format mapping. Keys may be prefixed or bare hex.
    time_zone:
        IANA zone used to render dates.
    import_timestamp:
        Fallback date for rows whose date cannot be parsed. Defaults to now.
    duplicate_prefix:
        Marker prepended to descriptions of rows repeated within one file.
    strict_dates:
        When true, an unparseable date is a row error instead of falling
        back to ``import_timestamp``.
    """

    registry = (
        format_registry
        if isinstance(format_registry, SourceFormatRegistry)
        else SourceFormatRegistry(format_registry)
    )
    timestamp = import_timestamp or datetime.now(UTC)
    keys = DedupKeySet(build_existing_key_set(stored_records))
    result = IngestionResult()

    for name, content in source_files:
        keys.begin_file()
        try:
            rows = decode_csv(content)
            if len(rows) < 2:
                _logger.info("Skipping %s: no data rows", name)
                result.per_file_counts[name] = 0
                continue

            headers = rows[0]
            try:
                config = resolve_format(name, headers, registry)
            except UnmappedFormatError as exc:
                _logger.warning("Unmapped file %s (%s)", name, exc.fingerprint)
                result.unmapped_files.append(
                    UnmappedFile(name, exc.fingerprint, tuple(exc.headers))
                )
                continue

            normalizer = RecordNormalizer(
                headers,
                config,
                source_file=name,
                time_zone=time_zone,
                import_timestamp=timestamp,
                strict_dates=strict_dates,
            )
            accepted: list[TransactionRecord] = []
            for row_number, raw_row in enumerate(rows[1:], start=2):
                if _is_blank(raw_row):
                    continue
                try:
                    record = normalizer.normalize(raw_row)
                    key = dedup_key(record)
                except (LedgerError, ValueError, ArithmeticError) as exc:
                    _logger.debug("Row %d of %s failed: %s", row_number, name, exc)
                    result.row_errors.append(RowIssue(name, row_number, str(exc)))
                    continue

                status = keys.classify(key)
                if status is KeyStatus.KNOWN:
                    continue
                if status is KeyStatus.REPEAT_IN_FILE:
                    record = mark_possible_duplicate(record, duplicate_prefix)
                keys.accept(key)
                accepted.append(record)
        except Exception as exc:  # noqa: BLE001
            keys.discard_file()
            _logger.warning("Failed to process %s: %s", name, exc)
            result.file_errors.append(FileIssue(name, str(exc)))
            continue

        result.rows_to_append.extend(accepted)
        result.per_file_counts[name] = len(accepted)
        result.processed_files.append(name)
        _logger.info("%s: %d new rows", name, len(accepted))

    return result


__all__ = ["decode_csv", "resolve_format", "ingest"]
