import io

from rich.console import Console

from ledger_ingest import cli
from ledger_ingest.models import FileIssue, IngestionResult, UnmappedFile


def test_ingest_table_shows_file_names_with_brackets_verbatim(monkeypatch):
    out = Console(file=io.StringIO(), width=300, record=True)
    monkeypatch.setattr(cli, "console", out)

    cli._render_ingestion(
        IngestionResult(
            per_file_counts={"[a] bank.csv": 2},
            unmapped_files=[UnmappedFile("[b] odd.csv", "sha256:abc", ("x",))],
            file_errors=[FileIssue("[i] bad.csv", "not utf-8 [bytes]")],
        )
    )

    text = out.export_text()
    assert "[a] bank.csv" in text
    assert "[b] odd.csv" in text
    assert "[i] bad.csv" in text
    assert "not utf-8 [bytes]" in text
