"""Categorization workflow: Rules table + Transactions table -> audit columns.

Recomputes ``Category by Rule`` and ``Matched Rule ID`` from the current rules
and rows. Passing ``start_row``/``num_rows`` limits the pass to a slice of data
rows (0-based), which is what an edit-triggered re-categorization needs.
"""

from __future__ import annotations

from ..alerts import CATEGORIZE_TAG, AlertSink, LoggingAlertSink, notify_safely
from ..errors import ConfigurationError, LedgerError
from ..logging_setup import get_logger
from ..models import CategorizationResult
from ..rules import categorize_rows, compile_rules, rule_definitions_from_table
from ..schema import AUDIT_COLUMNS, CATEGORY_BY_RULE, MATCHED_RULE_ID, TRANSACTION_COLUMNS, Table
from ..settings import LedgerSettings
from ..tables import TableAdapter

_logger = get_logger("ledger_ingest.workflows.categorize")


def _row_slice(total: int, start_row: int | None, num_rows: int | None) -> tuple[int, int]:
    start = start_row or 0
    if start < 0 or (num_rows is not None and num_rows < 0):
        raise ConfigurationError("start_row and num_rows must not be negative")
    start = min(start, total)
    end = total if num_rows is None else min(start + num_rows, total)
    return start, end


def run_categorization(
    settings: LedgerSettings,
    *,
    table: TableAdapter,
    alerts: AlertSink | None = None,
    start_row: int | None = None,
    num_rows: int | None = None,
) -> CategorizationResult:
    """Apply the Rules table to the Transactions table.

    Rule compilation fails fast: one invalid pattern aborts the pass before
    anything is written.
    Errors are alerted and re-raised unchanged.
    """

    sink = alerts or LoggingAlertSink()
    try:
        rule_headers, rule_rows = table.read_all(settings.rules_table)
        if not rule_headers:
            raise ConfigurationError(f"{settings.rules_table} table not found")
        rules = compile_rules(
            rule_definitions_from_table(rule_headers, rule_rows, table_name=settings.rules_table)
        )

        headers, rows = table.read_all(settings.transactions_table)
        Table(settings.transactions_table, headers).require(TRANSACTION_COLUMNS)
        table.ensure_columns(settings.transactions_table, AUDIT_COLUMNS)
        headers, rows = table.read_all(settings.transactions_table)
        target = Table(settings.transactions_table, headers)

        start, end = _row_slice(len(rows), start_row, num_rows)
        records = target.rows_to_records(rows[start:end])
        categories, rule_ids = categorize_rows(records, rules)

        if records:
            table.write_column(settings.transactions_table, CATEGORY_BY_RULE, start, categories)
            table.write_column(settings.transactions_table, MATCHED_RULE_ID, start, rule_ids)
    except LedgerError as exc:
        notify_safely(sink, f"{CATEGORIZE_TAG} {type(exc).__name__}", str(exc))
        raise

    matched = sum(1 for r in rule_ids if r)
    _logger.info(
        "Categorized rows %d..%d: %d matched, %d rule(s) active",
        start,
        max(start, end - 1),
        matched,
        len(rules),
    )
    return CategorizationResult(
        rules_loaded=len(rules), rows_evaluated=len(records), rows_matched=matched
    )


__all__ = ["run_categorization"]
