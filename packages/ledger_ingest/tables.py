"""Tabular store interface and an in-memory implementation.

The core only ever talks to a :class:`TableAdapter`: a named table is a header
row plus data rows, and column lookups are case- and whitespace-insensitive.
``start_row`` arguments are 0-based data-row offsets; the header row is not
counted.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from .errors import StorageAdapterError
from .fingerprint import normalize_header_token
from .schema import build_header_index

type Row = list[Any]


@runtime_checkable
class TableAdapter(Protocol):
    def read_all(self, table: str) -> tuple[list[str], list[Row]]:
        """Return ``(headers, rows)``; a missing table reads as ``([], [])``."""
        ...

    def append_rows(self, table: str, rows: Sequence[Sequence[Any]]) -> None: ...

    def ensure_columns(self, table: str, headers: Sequence[str]) -> None:
        """Append any of ``headers`` not already present; create the table if needed."""
        ...

    def write_column(
        self, table: str, column: str, start_row: int, values: Sequence[Any]
    ) -> None: ...


def missing_headers(existing: Sequence[str], wanted: Sequence[str]) -> list[str]:
    """Headers in ``wanted`` with no normalized match in ``existing``, in order."""

    have = {normalize_header_token(h) for h in existing}
    out: list[str] = []
    for h in wanted:
        token = normalize_header_token(h)
        if token not in have:
            have.add(token)
            out.append(h)
    return out


def column_position(table: str, headers: Sequence[str], column: str) -> int:
    idx = build_header_index(headers).get(normalize_header_token(column))
    if idx is None:
        raise StorageAdapterError(f"{table} has no column {column!r}")
    return idx


def check_row_range(table: str, row_count: int, start_row: int, count: int) -> None:
    if start_row < 0 or start_row + count > row_count:
        raise StorageAdapterError(
            f"{table}: rows {start_row}..{start_row + count - 1} out of range "
            f"({row_count} data rows)"
        )


class InMemoryTableAdapter:
    """Dict-backed tables, used in tests."""

    def __init__(
        self, tables: dict[str, tuple[Sequence[str], Sequence[Sequence[Any]]]] | None = None
    ) -> None:
        self._tables: dict[str, tuple[list[str], list[Row]]] = {}
        for name, (headers, rows) in (tables or {}).items():
            self._tables[name] = (list(headers), [list(r) for r in rows])

    def read_all(self, table: str) -> tuple[list[str], list[Row]]:
        if table not in self._tables:
            return [], []
        headers, rows = self._tables[table]
        return list(headers), [list(r) for r in rows]

    def append_rows(self, table: str, rows: Sequence[Sequence[Any]]) -> None:
        if table not in self._tables:
            raise StorageAdapterError(f"Table {table!r} does not exist")
        self._tables[table][1].extend(list(r) for r in rows)

    def ensure_columns(self, table: str, headers: Sequence[str]) -> None:
        if table not in self._tables:
            self._tables[table] = (list(headers), [])
            return
        self._tables[table][0].extend(missing_headers(self._tables[table][0], headers))

    def write_column(
        self, table: str, column: str, start_row: int, values: Sequence[Any]
    ) -> None:
        if table not in self._tables:
            raise StorageAdapterError(f"Table {table!r} does not exist")
        headers, rows = self._tables[table]
        idx = column_position(table, headers, column)
        check_row_range(table, len(rows), start_row, len(values))
        for offset, value in enumerate(values):
            row = rows[start_row + offset]
            if len(row) <= idx:
                row.extend([""] * (idx + 1 - len(row)))
            row[idx] = value


__all__ = [
    "Row",
    "TableAdapter",
    "missing_headers",
    "column_position",
    "check_row_range",
    "InMemoryTableAdapter",
]
