"""Exception taxonomy for ``ledger_ingest``.

File- and row-level problems (:class:`UnmappedFormatError`,
:class:`RowMappingError`) are caught by the ingestion pipeline and aggregated
into its result. Configuration, rule-compilation and storage errors propagate
to the caller.
"""

from __future__ import annotations

from collections.abc import Sequence


class LedgerError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(LedgerError):
    """A required setting is missing or invalid; the run aborts before any row work."""


class MissingColumnsError(ConfigurationError):
    """A table lacks one or more required columns."""

    def __init__(self, table: str, missing: Sequence[str]) -> None:
        self.table = table
        self.missing = tuple(missing)
        super().__init__(f"{table} is missing required column(s): {', '.join(self.missing)}")


class UnmappedFormatError(LedgerError):
    """A source file's header fingerprint has no registered format."""

    def __init__(self, source_file: str, fingerprint: str, headers: Sequence[str]) -> None:
        self.source_file = source_file
        self.fingerprint = fingerprint
        self.headers = tuple(headers)
        super().__init__(
            f"Unknown header hash: {fingerprint}\nHeader: [{' | '.join(self.headers)}]"
        )


class RowMappingError(LedgerError):
    """A single CSV row could not be normalized."""

    def __init__(self, message: str, *, row_number: int | None = None) -> None:
        self.row_number = row_number
        super().__init__(message)


class RuleCompilationError(LedgerError):
    """A rule definition cannot be compiled (bad regex or bound)."""

    def __init__(self, rule_id: str, field: str, detail: str) -> None:
        self.rule_id = rule_id
        self.field = field
        self.detail = detail
        id_text = f" (Rule ID: {rule_id})" if rule_id else ""
        super().__init__(f"Invalid {field}{id_text}: {detail}")


class StorageAdapterError(LedgerError):
    """Failure reported by a table, file source or archiver collaborator."""


__all__ = [
    "LedgerError",
    "ConfigurationError",
    "MissingColumnsError",
    "UnmappedFormatError",
    "RowMappingError",
    "RuleCompilationError",
    "StorageAdapterError",
]
