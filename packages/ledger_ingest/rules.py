"""Rule engine: compile rule definitions and assign categories.

Rules are evaluated in definition order and the first rule whose every active
predicate holds wins. A record with a manual category never matches.

Bounds (``min_amount``/``max_amount``) are inclusive and compare against the
unsigned magnitude ``|deposit - withdrawal|``; a $5.00 withdrawal therefore
falls inside ``1..10`` and outside ``-10..0``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal
from typing import Any

from .errors import RuleCompilationError
from .logging_setup import get_logger
from .models import CategoryAssignment, Rule, TransactionRecord
from .parsing import build_regex, parse_number
from .schema import RULE_FIELD_LABELS, Table, rule_field_mapping

_logger = get_logger("ledger_ingest.rules")

ON_SENTINEL = "on"

_PATTERN_FIELDS: tuple[str, ...] = (
    "description_regex",
    "account_regex",
    "type_regex",
    "category_regex",
)


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _is_on(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return _text(value).lower() == ON_SENTINEL


def _compile_pattern(rule_id: str, field: str, value: Any) -> re.Pattern[str] | None:
    try:
        return build_regex(value)
    except re.error as exc:
        raise RuleCompilationError(
            rule_id, RULE_FIELD_LABELS[field], f"{exc} in pattern {_text(value)!r}"
        ) from exc


def _compile_bound(rule_id: str, field: str, value: Any) -> Decimal | None:
    raw = _text(value)
    if not raw:
        return None
    parsed = parse_number(raw)
    if parsed is None:
        raise RuleCompilationError(rule_id, RULE_FIELD_LABELS[field], f"not a number: {raw!r}")
    return parsed


def compile_rule(definition: Mapping[str, Any]) -> Rule | None:
    """Compile one definition; ``None`` when the rule is excluded.

    A rule is excluded when its id is blank, its status is not ``"on"``
    (case-insensitive) or it has no category to assign.
    """

    rule_id = _text(definition.get("id"))
    if not rule_id:
        return None
    if not _is_on(definition.get("status")):
        return None
    category = _text(definition.get("category"))
    if not category:
        return None

    patterns = {
        field: _compile_pattern(rule_id, field, definition.get(field))
        for field in _PATTERN_FIELDS
    }
    return Rule(
        id=rule_id,
        category=category,
        enabled=True,
        min_amount=_compile_bound(rule_id, "min_amount", definition.get("min_amount")),
        max_amount=_compile_bound(rule_id, "max_amount", definition.get("max_amount")),
        **patterns,
    )


def compile_rules(definitions: Iterable[Mapping[str, Any]]) -> list[Rule]:
    """Compile definitions in order, failing fast on the first invalid rule.

    Raises
    ------
    RuleCompilationError
        On an invalid regex or a non-numeric bound, naming the rule id and
        the offending column.
    """

    rules: list[Rule] = []
    skipped = 0
    for definition in definitions:
        rule = compile_rule(definition)
        if rule is None:
            skipped += 1
            continue
        rules.append(rule)
    _logger.debug("Compiled %d rule(s), skipped %d", len(rules), skipped)
    return rules


def rule_definitions_from_table(
    headers: Sequence[Any], rows: Iterable[Sequence[Any]], *, table_name: str = "Rules"
) -> list[dict[str, Any]]:
    """Turn Rules table rows into definitions keyed by rule field name.

    Raises ``MissingColumnsError`` when ``Rule ID``, ``ON`` or ``Category`` is
    absent from ``headers``.
    """

    table = Table(table_name, headers)
    positions = rule_field_mapping(table)
    definitions: list[dict[str, Any]] = []
    for row in rows:
        definitions.append(
            {key: (row[idx] if idx < len(row) else "") for key, idx in positions.items()}
        )
    return definitions


def _matches(rule: Rule, record: TransactionRecord) -> bool:
    checks = (
        (rule.description_regex, record.description),
        (rule.account_regex, record.account_name),
        (rule.type_regex, record.type),
        (rule.category_regex, record.category),
    )
    for pattern, value in checks:
        if pattern is not None and not pattern.search(value or ""):
            return False

    magnitude = abs(record.signed_amount)
    if rule.min_amount is not None and magnitude < rule.min_amount:
        return False
    if rule.max_amount is not None and magnitude > rule.max_amount:
        return False
    return True


def categorize(record: TransactionRecord, rules: Sequence[Rule]) -> CategoryAssignment | None:
    """Return the first matching rule's category, or ``None``."""

    if record.manual_category.strip():
        return None
    for rule in rules:
        if not rule.enabled:
            continue
        if _matches(rule, record):
            return CategoryAssignment(rule.category, rule.id)
    return None


def categorize_rows(
    records: Iterable[TransactionRecord], rules: Sequence[Rule]
) -> tuple[list[str], list[str]]:
    """Categorize ``records``; returns parallel ``(categories, rule_ids)``.

    Unmatched rows get ``""`` in both lists so a write-back clears stale values.
    """

    categories: list[str] = []
    rule_ids: list[str] = []
    for record in records:
        assignment = categorize(record, rules)
        categories.append(assignment.category if assignment else "")
        rule_ids.append(assignment.rule_id if assignment else "")
    return categories, rule_ids


__all__ = [
    "ON_SENTINEL",
    "compile_rule",
    "compile_rules",
    "rule_definitions_from_table",
    "categorize",
    "categorize_rows",
]
