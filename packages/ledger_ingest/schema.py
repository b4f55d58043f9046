"""Canonical table schema and header-aware row helpers.

The Transactions table is addressed by column *name*, never by position:
lookups normalize header text (trim, lowercase, collapse whitespace), so a
hand-edited header like ``"  account   name"`` still resolves.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime
from typing import Any

from .errors import MissingColumnsError
from .fingerprint import normalize_header_token
from .models import TransactionRecord
from .parsing import ZERO, parse_number

# ---------------------------------------------------------------------------
# Transactions table
# ---------------------------------------------------------------------------

ACCOUNT_NAME = "Account Name"
INSTITUTION = "Institution"
DATE = "Date"
TYPE = "Type"
DESCRIPTION = "Description"
WITHDRAWAL = "Withdrawal"
DEPOSIT = "Deposit"
CHECK_NUMBER = "Check Number"
CATEGORY = "Category"
SOURCE_FILE = "Source File"
MANUAL_CATEGORY = "Manual Category"

TRANSACTION_COLUMNS: tuple[str, ...] = (
    ACCOUNT_NAME,
    INSTITUTION,
    DATE,
    TYPE,
    DESCRIPTION,
    WITHDRAWAL,
    DEPOSIT,
    CHECK_NUMBER,
    CATEGORY,
    SOURCE_FILE,
    MANUAL_CATEGORY,
)

# Engine-written audit columns; created on demand.
CATEGORY_BY_RULE = "Category by Rule"
MATCHED_RULE_ID = "Matched Rule ID"
AUDIT_COLUMNS: tuple[str, ...] = (CATEGORY_BY_RULE, MATCHED_RULE_ID)

_ATTR_BY_COLUMN: dict[str, str] = {
    ACCOUNT_NAME: "account_name",
    INSTITUTION: "institution",
    DATE: "date",
    TYPE: "type",
    DESCRIPTION: "description",
    WITHDRAWAL: "withdrawal",
    DEPOSIT: "deposit",
    CHECK_NUMBER: "check_number",
    CATEGORY: "category",
    SOURCE_FILE: "source_file",
    MANUAL_CATEGORY: "manual_category",
}

# Columns a source format may fill from its CSV via ``columnMap``.
_MAPPABLE_COLUMNS: dict[str, str] = {
    normalize_header_token(c): c
    for c in (
        ACCOUNT_NAME,
        INSTITUTION,
        DATE,
        TYPE,
        DESCRIPTION,
        CHECK_NUMBER,
        CATEGORY,
        MANUAL_CATEGORY,
    )
}
_MAPPABLE_COLUMNS["financial institution"] = INSTITUTION


def resolve_mapped_column(target: str) -> str | None:
    """Return the canonical column for a ``columnMap`` target, or ``None``."""

    return _MAPPABLE_COLUMNS.get(normalize_header_token(str(target).replace("_", " ")))


# ---------------------------------------------------------------------------
# Rules table
# ---------------------------------------------------------------------------

# Field key -> accepted header names, preferred first.
RULE_COLUMNS: dict[str, tuple[str, ...]] = {
    "id": ("Rule ID",),
    "status": ("ON", "Status"),
    "category": ("Category Assigned by Rule", "Category"),
    "description_regex": ("Description Regex",),
    "account_regex": ("Account Regex", "AccountName Regex", "Account Name Regex"),
    "type_regex": ("Type Regex",),
    "category_regex": ("Category Regex",),
    "min_amount": ("Min Amount",),
    "max_amount": ("Max Amount",),
}
REQUIRED_RULE_FIELDS: tuple[str, ...] = ("id", "status", "category")

# Names used in error messages.
RULE_FIELD_LABELS: dict[str, str] = {key: names[0] for key, names in RULE_COLUMNS.items()}
RULE_FIELD_LABELS["category"] = "Category"


# ---------------------------------------------------------------------------
# Header index and Table helper
# ---------------------------------------------------------------------------


def build_header_index(headers: Iterable[Any]) -> dict[str, int]:
    """Map normalized header text to its position; first occurrence wins."""

    index: dict[str, int] = {}
    for pos, header in enumerate(headers):
        index.setdefault(normalize_header_token(str(header or "")), pos)
    return index


def cell_text(value: Any) -> str:
    """Render a stored cell as text the way a spreadsheet would display it."""

    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class Table:
    """A header row with name-based lookups and row/record conversion."""

    def __init__(self, name: str, headers: Sequence[Any]) -> None:
        self.name = name
        self.headers: list[str] = [str(h or "") for h in headers]
        self._index = build_header_index(self.headers)

    def index_of(self, column: str) -> int | None:
        return self._index.get(normalize_header_token(column))

    def has(self, column: str) -> bool:
        return self.index_of(column) is not None

    def missing(self, columns: Iterable[str]) -> list[str]:
        return [c for c in columns if not self.has(c)]

    def require(self, columns: Iterable[str]) -> None:
        """Raise :class:`MissingColumnsError` unless every column is present."""

        missing = self.missing(columns)
        if missing:
            raise MissingColumnsError(self.name, missing)

    def value(self, row: Sequence[Any], column: str) -> Any:
        idx = self.index_of(column)
        if idx is None or idx >= len(row):
            return ""
        return row[idx]

    def record_to_row(self, record: TransactionRecord) -> list[Any]:
        """Lay out ``record`` in this table's column order; unknown columns stay blank."""

        row: list[Any] = [""] * len(self.headers)
        for column, attr in _ATTR_BY_COLUMN.items():
            idx = self.index_of(column)
            if idx is None:
                continue
            val = getattr(record, attr)
            row[idx] = float(val) if column in (WITHDRAWAL, DEPOSIT) else val
        return row

    def row_to_record(self, row: Sequence[Any]) -> TransactionRecord:
        """Read a stored row back into a record (requires the canonical columns)."""

        self.require(TRANSACTION_COLUMNS)
        values: dict[str, Any] = {}
        for column, attr in _ATTR_BY_COLUMN.items():
            raw = self.value(row, column)
            if column in (WITHDRAWAL, DEPOSIT):
                values[attr] = parse_number(raw) or ZERO
            else:
                values[attr] = cell_text(raw)
        return TransactionRecord(**values)

    def rows_to_records(self, rows: Iterable[Sequence[Any]]) -> list[TransactionRecord]:
        return [self.row_to_record(r) for r in rows]


def rule_field_mapping(table: Table) -> Mapping[str, int]:
    """Resolve rule field keys to column positions in a Rules table header."""

    resolved: dict[str, int] = {}
    for key, names in RULE_COLUMNS.items():
        for name in names:
            idx = table.index_of(name)
            if idx is not None:
                resolved[key] = idx
                break
    missing = [RULE_FIELD_LABELS[k] for k in REQUIRED_RULE_FIELDS if k not in resolved]
    if missing:
        raise MissingColumnsError(table.name, missing)
    return resolved


__all__ = [
    "ACCOUNT_NAME",
    "INSTITUTION",
    "DATE",
    "TYPE",
    "DESCRIPTION",
    "WITHDRAWAL",
    "DEPOSIT",
    "CHECK_NUMBER",
    "CATEGORY",
    "SOURCE_FILE",
    "MANUAL_CATEGORY",
    "TRANSACTION_COLUMNS",
    "CATEGORY_BY_RULE",
    "MATCHED_RULE_ID",
    "AUDIT_COLUMNS",
    "RULE_COLUMNS",
    "REQUIRED_RULE_FIELDS",
    "resolve_mapped_column",
    "build_header_index",
    "cell_text",
    "Table",
    "rule_field_mapping",
]
