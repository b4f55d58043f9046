from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from ledger_ingest.cli import app
from ledger_ingest.fingerprint import fingerprint
from ledger_ingest.persistence import SqlTableAdapter
from ledger_ingest.schema import Table

from tests.helpers.db import bootstrap_sqlite_db, count_rows

BANK_CSV = (
    "Date,Description,Amount\n"
    "2023-05-01,Coffee,-3.50\n"
    "2023-05-01,Coffee,-3.50\n"
    "2023-05-02,Paycheck,1000.00\n"
)

CARD_CSV = (
    "Posted Date,Memo,Debit,Credit,Card No.\n"
    "05/03/2023,BLUE BOTTLE COFFEE,6.25,,1234\n"
    "05/04/2023,REFUND,,20.00,1234\n"
)


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path | str]:
    inbox = tmp_path / "inbox"
    archive = tmp_path / "archive"
    inbox.mkdir()
    (inbox / "bank.csv").write_text(BANK_CSV, encoding="utf-8")
    (inbox / "card.csv").write_text(CARD_CSV, encoding="utf-8")

    registry = tmp_path / "formats.json"
    registry.write_text(
        json.dumps(
            {
                fingerprint(["Date", "Description", "Amount"]): {
                    "name": "bank",
                    "dateFormat": "yyyy-MM-dd",
                    "amountColumn": "Amount",
                    "signConvention": "raw_sign",
                    "accountName": "Checking",
                    "institution": "First Bank",
                    "columnMap": {"Date": "Date", "Description": "Description"},
                },
                "card": {
                    "headers": ["Posted Date", "Memo", "Debit", "Credit", "Card No."],
                    "dateFormat": "MM/dd/yyyy",
                    "withdrawalColumn": "Debit",
                    "depositColumn": "Credit",
                    "accountName": "Visa",
                    "columnMap": {"Posted Date": "Date", "Memo": "Description"},
                },
            }
        ),
        encoding="utf-8",
    )

    db_url = bootstrap_sqlite_db(tmp_path / "ledger.db")
    monkeypatch.setenv("LEDGER_DATABASE_URL", db_url)
    monkeypatch.setenv("LEDGER_SOURCE_FOLDER", str(inbox))
    monkeypatch.setenv("LEDGER_ARCHIVE_FOLDER", str(archive))
    monkeypatch.setenv("LEDGER_REGISTRY_PATH", str(registry))
    return {"inbox": inbox, "archive": archive, "registry": registry, "db_url": db_url}


def test_ingest_then_categorize_from_the_cli(workspace):
    runner = CliRunner()
    db_url = str(workspace["db_url"])

    result = runner.invoke(app, ["ingest"])
    assert result.exit_code == 0, result.output
    assert "Appended 5 row(s)." in result.output
    assert count_rows(db_url, "Transactions") == 5
    assert sorted(p.name for p in Path(workspace["archive"]).iterdir()) == ["bank.csv", "card.csv"]
    assert list(Path(workspace["inbox"]).iterdir()) == []

    # Same exports dropped in again: nothing new is appended
    for name, text in (("bank.csv", BANK_CSV), ("card.csv", CARD_CSV)):
        (Path(workspace["inbox"]) / name).write_text(text, encoding="utf-8")
    again = runner.invoke(app, ["ingest"])
    assert again.exit_code == 0, again.output
    assert "Appended 0 row(s)." in again.output
    assert count_rows(db_url, "Transactions") == 5

    adapter = SqlTableAdapter(db_url)
    adapter.ensure_columns(
        "Rules",
        ["Rule ID", "ON", "Category Assigned by Rule", "Description Regex", "Min Amount"],
    )
    adapter.append_rows(
        "Rules",
        [
            ["COFFEE", "on", "Coffee", "coffee", ""],
            ["PAY", "on", "Income", "paycheck", 500],
        ],
    )

    categorized = runner.invoke(app, ["categorize"])
    assert categorized.exit_code == 0, categorized.output
    assert "Evaluated 5 row(s) with 2 rule(s); 4 matched." in categorized.output

    headers, rows = adapter.read_all("Transactions")
    table = Table("Transactions", headers)
    by_rule = [
        (table.value(r, "Description"), table.value(r, "Matched Rule ID")) for r in rows
    ]
    assert by_rule == [
        ("Coffee", "COFFEE"),
        ("[Possible Duplicate] Coffee", "COFFEE"),
        ("Paycheck", "PAY"),
        ("BLUE BOTTLE COFFEE", "COFFEE"),
        ("REFUND", ""),
    ]
    bank_row = table.row_to_record(rows[0])
    assert bank_row.institution == "First Bank"
    assert bank_row.source_file == "bank.csv"


def test_categorize_without_rules_table_exits_with_error(workspace):
    result = CliRunner().invoke(app, ["categorize"])
    assert result.exit_code == 1
    assert "Rules table not found" in result.output


def test_fingerprint_command_reports_registration(workspace):
    csv_path = Path(workspace["inbox"]) / "card.csv"
    result = CliRunner().invoke(
        app, ["fingerprint", "--csv-path", str(csv_path), "--registry", str(workspace["registry"])]
    )
    assert result.exit_code == 0, result.output
    assert fingerprint(["Posted Date", "Memo", "Debit", "Credit", "Card No."]) in result.output
    assert "Registered as card" in result.output
