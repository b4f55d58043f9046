# ruff: noqa: I001
"""SQL-backed :class:`~ledger_ingest.tables.TableAdapter`.

Tables live in the shared database owned by ``libs/ledger_db``: one
``ledger_tables`` row per named table (its header row as JSON) and one
``ledger_rows`` row per data row (cells as JSON, ordered by ``position``).

Every SQLAlchemy failure is re-raised as :class:`StorageAdapterError`.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_db import Base
from ledger_db.client import get_engine, session_scope
from ledger_db.models.ledger import LedgerRow, LedgerTable
from .errors import StorageAdapterError
from .logging_setup import get_logger
from .tables import Row, check_row_range, column_position, missing_headers

_logger = get_logger("ledger_ingest.persistence")


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


class SqlTableAdapter:
    """Table adapter over ``ledger_tables``/``ledger_rows``.

    Parameters
    ----------
    database_url:
        SQLAlchemy URL. The engine is shared per URL via ``ledger_db.client``.
    """

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with session_scope(database_url=self.database_url) as session:
                yield session
        except SQLAlchemyError as exc:
            raise StorageAdapterError(f"Database error: {exc}") from exc

    def create_schema(self) -> None:
        """Create the ledger tables directly (tests and local runs without Alembic)."""

        try:
            Base.metadata.create_all(bind=get_engine(database_url=self.database_url))
        except SQLAlchemyError as exc:
            raise StorageAdapterError(f"Database error: {exc}") from exc

    @staticmethod
    def _require_table(session: Session, table: str) -> LedgerTable:
        found = session.get(LedgerTable, table)
        if found is None:
            raise StorageAdapterError(f"Table {table!r} does not exist")
        return found

    # ------------------------------------------------------------------
    # TableAdapter
    # ------------------------------------------------------------------

    def read_all(self, table: str) -> tuple[list[str], list[Row]]:
        with self._session() as session:
            found = session.get(LedgerTable, table)
            if found is None:
                return [], []
            cells = session.scalars(
                select(LedgerRow.cells)
                .where(LedgerRow.table_name == table)
                .order_by(LedgerRow.position)
            ).all()
            return list(found.headers), [list(c) for c in cells]

    def append_rows(self, table: str, rows: Sequence[Sequence[Any]]) -> None:
        if not rows:
            return
        with self._session() as session:
            self._require_table(session, table)
            last = session.scalar(
                select(func.max(LedgerRow.position)).where(LedgerRow.table_name == table)
            )
            start = 0 if last is None else last + 1
            session.add_all(
                LedgerRow(
                    table_name=table,
                    position=start + offset,
                    cells=[_jsonable(v) for v in row],
                )
                for offset, row in enumerate(rows)
            )
        _logger.debug("Appended %d row(s) to %s", len(rows), table)

    def ensure_columns(self, table: str, headers: Sequence[str]) -> None:
        with self._session() as session:
            found = session.get(LedgerTable, table)
            if found is None:
                session.add(LedgerTable(name=table, headers=list(headers)))
                _logger.info("Created table %s", table)
                return
            added = missing_headers(found.headers, headers)
            if added:
                # Assign a new list so the JSON column is flagged dirty.
                found.headers = [*found.headers, *added]
                found.updated_at = datetime.now(UTC)
                _logger.info("Added column(s) to %s: %s", table, ", ".join(added))

    def write_column(
        self, table: str, column: str, start_row: int, values: Sequence[Any]
    ) -> None:
        if not values:
            return
        with self._session() as session:
            found = self._require_table(session, table)
            idx = column_position(table, found.headers, column)
            row_count = session.scalar(
                select(func.count()).select_from(LedgerRow).where(LedgerRow.table_name == table)
            )
            check_row_range(table, row_count or 0, start_row, len(values))
            targets = session.scalars(
                select(LedgerRow)
                .where(
                    LedgerRow.table_name == table,
                    LedgerRow.position >= start_row,
                    LedgerRow.position < start_row + len(values),
                )
                .order_by(LedgerRow.position)
            ).all()
            if len(targets) != len(values):
                raise StorageAdapterError(
                    f"{table}: expected {len(values)} row(s) from position {start_row}, "
                    f"found {len(targets)}; row positions have gaps"
                )
            for row, value in zip(targets, values, strict=True):
                cells = list(row.cells)
                if len(cells) <= idx:
                    cells.extend([""] * (idx + 1 - len(cells)))
                cells[idx] = _jsonable(value)
                row.cells = cells


__all__ = ["SqlTableAdapter"]
