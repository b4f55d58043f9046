"""DB helpers for tests: bootstrap a temporary SQLite ledger database."""

from __future__ import annotations

import os
from pathlib import Path

from ledger_db import Base
from ledger_db.client import get_engine, session_scope
from ledger_db.models.ledger import LedgerRow, LedgerTable
from sqlalchemy import event
from sqlalchemy import text as sql_text


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize the schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)

    # SQLite leaves FK enforcement off unless asked per connection
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):  # pragma: no cover - tiny bridge
        dbapi_conn.execute("PRAGMA foreign_keys = ON")

    Base.metadata.create_all(bind=engine)
    _assert_schema_in_sync(url)

    if set_default_env:
        os.environ.setdefault("LEDGER_DATABASE_URL", url)
    return url


def _assert_schema_in_sync(database_url: str) -> None:
    """ORM column sets match the SQLite tables that were created."""

    with session_scope(database_url=database_url) as session:
        for model in (LedgerTable, LedgerRow):
            expected = {c.name for c in model.__table__.columns}
            rows = session.execute(
                sql_text(f"PRAGMA table_info('{model.__tablename__}')")
            ).fetchall()
            got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
            assert expected == got, (
                f"{model.__tablename__} schema drift: missing={expected - got or '∅'}, "
                f"extra={got - expected or '∅'}"
            )


def count_rows(database_url: str, table_name: str) -> int:
    with session_scope(database_url=database_url) as session:
        return session.query(LedgerRow).filter(LedgerRow.table_name == table_name).count()
