import pytest
from sqlalchemy import delete

from ledger_db.client import session_scope
from ledger_db.models.ledger import LedgerRow
from ledger_ingest.errors import StorageAdapterError
from ledger_ingest.persistence import SqlTableAdapter
from tests.helpers.db import bootstrap_sqlite_db, count_rows


@pytest.fixture
def adapter(tmp_path) -> SqlTableAdapter:
    url = bootstrap_sqlite_db(tmp_path / "ledger.db")
    return SqlTableAdapter(url)


def test_missing_table_reads_empty(adapter):
    assert adapter.read_all("Transactions") == ([], [])


def test_append_ensure_and_write_column_round_trip(adapter):
    adapter.ensure_columns("T", ["Date", "Amount"])
    adapter.append_rows("T", [["2023-05-01", 3.5], ["2023-05-02", 1000.0]])
    adapter.append_rows("T", [["2023-05-03", 12]])
    adapter.ensure_columns("T", ["date", "Matched Rule ID"])

    headers, rows = adapter.read_all("T")
    assert headers == ["Date", "Amount", "Matched Rule ID"]
    assert rows == [["2023-05-01", 3.5], ["2023-05-02", 1000.0], ["2023-05-03", 12]]
    assert count_rows(adapter.database_url, "T") == 3

    adapter.write_column("T", "MATCHED RULE ID", 1, ["R1", ""])
    _, rows = adapter.read_all("T")
    assert rows == [
        ["2023-05-01", 3.5],
        ["2023-05-02", 1000.0, "R1"],
        ["2023-05-03", 12, ""],
    ]


def test_tables_are_independent(adapter):
    adapter.ensure_columns("A", ["x"])
    adapter.ensure_columns("B", ["y"])
    adapter.append_rows("A", [[1]])
    adapter.append_rows("B", [[2], [3]])
    assert adapter.read_all("A") == (["x"], [[1]])
    assert adapter.read_all("B") == (["y"], [[2], [3]])


def test_adapter_errors(adapter):
    with pytest.raises(StorageAdapterError):
        adapter.append_rows("Missing", [[1]])

    adapter.ensure_columns("T", ["A"])
    adapter.append_rows("T", [["a"]])
    with pytest.raises(StorageAdapterError, match="no column"):
        adapter.write_column("T", "B", 0, ["x"])
    with pytest.raises(StorageAdapterError, match="out of range"):
        adapter.write_column("T", "A", 1, ["x"])


def test_database_errors_are_wrapped(tmp_path):
    # No schema: every query hits a missing SQL table
    adapter = SqlTableAdapter(f"sqlite+pysqlite:///{tmp_path / 'empty.db'}")
    with pytest.raises(StorageAdapterError, match="Database error"):
        adapter.read_all("Transactions")

    adapter.create_schema()
    assert adapter.read_all("Transactions") == ([], [])


def test_write_column_over_a_position_gap_is_a_storage_error(adapter):
    adapter.ensure_columns("T", ["A"])
    adapter.append_rows("T", [["a"], ["b"], ["c"]])
    with session_scope(database_url=adapter.database_url) as session:
        session.execute(
            delete(LedgerRow).where(LedgerRow.table_name == "T", LedgerRow.position == 1)
        )

    with pytest.raises(StorageAdapterError, match="gaps"):
        adapter.write_column("T", "A", 0, ["x", "y"])
    assert adapter.read_all("T") == (["A"], [["a"], ["c"]])
