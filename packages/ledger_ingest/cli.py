# ruff: noqa: I001
"""CLI for the ``ledger_ingest`` package.

Environment variables (``LEDGER_*``, ``RESEND_API_KEY``) are loaded from a
local ``.env`` using ``python-dotenv`` before delegating to command logic.
Business logic lives in ``ledger_ingest.api`` and the workflows; this module
only parses options, renders results and maps errors to exit codes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table as RichTable

from .errors import LedgerError
from .logging_setup import configure_logging
from .models import IngestionResult

app = typer.Typer(
    name="ledger-ingest",
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank CSV exports into the Transactions table and categorize them "
        "with the Rules table. Loads LEDGER_* settings from a local .env first."
    ),
)
console = Console()
err_console = Console(stderr=True)


def _fail(exc: Exception | str) -> typer.Exit:
    err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
    return typer.Exit(1)


def _render_ingestion(result: IngestionResult) -> None:
    table = RichTable(title="CSV import")
    table.add_column("File")
    table.add_column("New rows", justify="right")
    table.add_column("Status")
    row_errors: dict[str, int] = {}
    for issue in result.row_errors:
        row_errors[issue.source_file] = row_errors.get(issue.source_file, 0) + 1
    for name, count in result.per_file_counts.items():
        status = "ok"
        if name in row_errors:
            status = f"[yellow]{row_errors[name]} row error(s)[/yellow]"
        table.add_row(escape(name), str(count), status)
    for unmapped in result.unmapped_files:
        table.add_row(
            escape(unmapped.source_file), "0", f"[red]unmapped {unmapped.fingerprint}[/red]"
        )
    for issue in result.file_errors:
        table.add_row(escape(issue.source_file), "0", f"[red]{escape(issue.message)}[/red]")
    console.print(table)
    console.print(f"Appended {len(result.rows_to_append)} row(s).")


@app.command("ingest")
def ingest_cmd(
    source_folder: Annotated[
        Path | None, typer.Option(help="Folder of CSV exports (LEDGER_SOURCE_FOLDER).")
    ] = None,
    archive_folder: Annotated[
        Path | None,
        typer.Option(help="Move processed files here (LEDGER_ARCHIVE_FOLDER)."),
    ] = None,
    registry: Annotated[
        Path | None, typer.Option(help="Source format registry JSON (LEDGER_REGISTRY_PATH).")
    ] = None,
    database_url: Annotated[
        str | None, typer.Option(help="Override LEDGER_DATABASE_URL.")
    ] = None,
    time_zone: Annotated[
        str | None, typer.Option(help="IANA time zone for dates (LEDGER_TIME_ZONE).")
    ] = None,
) -> None:
    """Import every CSV in the source folder into the Transactions table."""

    from .api import ingest_csvs
    from .settings import load_settings

    try:
        settings = load_settings(
            source_folder=source_folder,
            archive_folder=archive_folder,
            registry_path=registry,
            database_url=database_url,
            time_zone=time_zone,
        )
        result = ingest_csvs(settings)
    except LedgerError as exc:
        raise _fail(exc) from exc
    _render_ingestion(result)


@app.command("categorize")
def categorize_cmd(
    database_url: Annotated[
        str | None, typer.Option(help="Override LEDGER_DATABASE_URL.")
    ] = None,
    start_row: Annotated[
        int | None,
        typer.Option(min=0, help="First data row to recompute (0-based)."),
    ] = None,
    num_rows: Annotated[
        int | None, typer.Option(min=0, help="Number of rows to recompute.")
    ] = None,
) -> None:
    """Apply the Rules table and write Category by Rule / Matched Rule ID."""

    from .api import categorize_transactions
    from .settings import load_settings

    try:
        settings = load_settings(database_url=database_url)
        result = categorize_transactions(settings, start_row=start_row, num_rows=num_rows)
    except LedgerError as exc:
        raise _fail(exc) from exc
    console.print(
        f"Evaluated {result.rows_evaluated} row(s) with {result.rules_loaded} rule(s); "
        f"{result.rows_matched} matched."
    )


@app.command("fingerprint")
def fingerprint_cmd(
    csv_path: Annotated[
        Path,
        typer.Option("--csv-path", dir_okay=False, help="CSV export to fingerprint."),
    ],
    registry: Annotated[
        Path | None, typer.Option(help="Also report whether this registry maps the file.")
    ] = None,
) -> None:
    """Print a CSV's header fingerprint to help register a new source format."""

    from .fingerprint import fingerprint, normalize_header_token
    from .ingestion import decode_csv
    from .registry import load_registry

    try:
        rows = decode_csv(csv_path.read_bytes())
    except OSError as exc:
        raise _fail(exc) from exc
    except ValueError as exc:
        raise _fail(f"{csv_path} is not a readable CSV: {exc}") from exc
    if not rows:
        raise _fail(f"{csv_path} is empty")

    headers = rows[0]
    fp = fingerprint(headers)
    console.print(fp)
    header_text = " | ".join(normalize_header_token(h) for h in headers)
    console.print(f"Header: [{header_text}]", markup=False)

    if registry is not None:
        try:
            config = load_registry(registry).lookup(fp)
        except LedgerError as exc:
            raise _fail(exc) from exc
        if config is None:
            console.print("[yellow]Not registered[/yellow]")
        else:
            console.print(f"[green]Registered[/green] as {escape(config.name or fp)}")


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and set up logging."""

    # override=False keeps already-set environment variables
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    app()
