from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# ledger_tables
# ---------------------------


class LedgerTable(Base):
    """A named table (``Transactions``, ``Rules``...) and its header row."""

    __tablename__ = "ledger_tables"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    # Ordered list of header strings; position is the column index.
    headers: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


# ---------------------------
# ledger_rows
# ---------------------------


class LedgerRow(Base):
    """One data row; ``position`` is the 0-based data-row offset within its table."""

    __tablename__ = "ledger_rows"
    __table_args__ = (
        UniqueConstraint("table_name", "position", name="uq_ledger_rows_table_position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    table_name: Mapped[str] = mapped_column(
        String, ForeignKey("ledger_tables.name", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    # Cell values aligned with the table's headers; may be shorter than the header row.
    cells: Mapped[list[Any]] = mapped_column(JSON, nullable=False)
