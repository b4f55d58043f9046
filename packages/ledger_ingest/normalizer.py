"""Raw CSV row -> :class:`TransactionRecord`, driven by a :class:`SourceFormatConfig`.

Mapping rules
-------------
- Columns named in ``config.column_map`` are looked up by normalized header;
  a header missing from the file (or a short row) yields ``""``.
- ``Date`` is parsed with the configured patterns, then a generic parser,
  then falls back to the import timestamp. Output is ``YYYY-MM-DD`` in the
  configured time zone.
- Amounts come from either the single amount column split by sign
  convention, or from independent withdrawal/deposit columns. Stored amounts
  are never negative.
- A fixed ``accountName``/``institution`` on the config wins over mapped
  values.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from .errors import RowMappingError
from .fingerprint import normalize_header_token
from .models import SourceFormatConfig, TransactionRecord
from .parsing import ZERO, format_amount, format_iso_date, parse_currency, parse_date
from .schema import (
    ACCOUNT_NAME,
    CATEGORY,
    CHECK_NUMBER,
    DATE,
    DESCRIPTION,
    INSTITUTION,
    MANUAL_CATEGORY,
    TYPE,
    build_header_index,
)


def _cell(raw_row: Sequence[Any], header_index: Mapping[str, int], header: str | None) -> str:
    if not header:
        return ""
    idx = header_index.get(normalize_header_token(header))
    if idx is None or idx >= len(raw_row):
        return ""
    value = raw_row[idx]
    return "" if value is None else str(value).strip()


def _amount(
    raw_row: Sequence[Any], header_index: Mapping[str, int], column: str | None
) -> Decimal:
    raw = _cell(raw_row, header_index, column)
    value = parse_currency(raw)
    try:
        # Amounts must fit the two-place form used by dedup keys.
        format_amount(value)
    except ArithmeticError as exc:
        raise RowMappingError(f'Amount "{raw}" in column "{column}" is out of range') from exc
    return value


def resolve_amounts(
    raw_row: Sequence[Any],
    header_index: Mapping[str, int],
    config: SourceFormatConfig,
) -> tuple[Decimal, Decimal]:
    """Return ``(withdrawal, deposit)``, both non-negative."""

    if config.withdrawal_column or config.deposit_column:
        withdrawal = abs(_amount(raw_row, header_index, config.withdrawal_column))
        deposit = abs(_amount(raw_row, header_index, config.deposit_column))
        return withdrawal, deposit

    amount = _amount(raw_row, header_index, config.amount_column)
    if config.sign_convention == "positive_deposit":
        return (ZERO, abs(amount)) if amount >= 0 else (abs(amount), ZERO)
    return (abs(amount), ZERO) if amount >= 0 else (ZERO, abs(amount))


def _resolve_date(
    raw: str,
    config: SourceFormatConfig,
    import_timestamp: datetime,
    time_zone: str,
    strict_dates: bool,
) -> str:
    if raw:
        parsed = parse_date(raw, config.formats, time_zone)
        if parsed is not None:
            return parsed.isoformat()
        if strict_dates:
            raise RowMappingError(f'Unparseable date "{raw}"')
    return format_iso_date(import_timestamp, time_zone)


def normalize(
    raw_row: Sequence[Any],
    source_header_index: Mapping[str, int],
    config: SourceFormatConfig,
    source_file_name: str,
    import_timestamp: datetime,
    time_zone: str,
    *,
    strict_dates: bool = False,
) -> TransactionRecord:
    """Map one raw CSV row to a canonical record. Pure."""

    mapped: dict[str, str] = {}
    for source_header, target in config.column_map.items():
        value = _cell(raw_row, source_header_index, source_header)
        # Several source headers may feed one target; first non-empty wins.
        if not mapped.get(target):
            mapped[target] = value

    withdrawal, deposit = resolve_amounts(raw_row, source_header_index, config)

    return TransactionRecord(
        account_name=config.account_name or mapped.get(ACCOUNT_NAME, ""),
        institution=config.institution or mapped.get(INSTITUTION, ""),
        date=_resolve_date(
            mapped.get(DATE, ""), config, import_timestamp, time_zone, strict_dates
        ),
        type=mapped.get(TYPE, ""),
        description=mapped.get(DESCRIPTION, ""),
        withdrawal=withdrawal,
        deposit=deposit,
        check_number=mapped.get(CHECK_NUMBER, ""),
        category=mapped.get(CATEGORY, ""),
        source_file=source_file_name,
        manual_category=mapped.get(MANUAL_CATEGORY, ""),
    )


class RecordNormalizer:
    """Per-file normalizer: binds the header index and run parameters once.

    Usage
    -----
    normalizer = RecordNormalizer(headers, config, source_file="chase.csv", time_zone="UTC")
    record = normalizer.normalize(row)
    """

    def __init__(
        self,
        headers: Sequence[Any],
        config: SourceFormatConfig,
        *,
        source_file: str,
        time_zone: str,
        import_timestamp: datetime | None = None,
        strict_dates: bool = False,
    ) -> None:
        self.config = config
        self.header_index = build_header_index(headers)
        self.source_file = source_file
        self.time_zone = time_zone
        self.import_timestamp = import_timestamp or datetime.now(UTC)
        self.strict_dates = strict_dates

    def normalize(self, raw_row: Sequence[Any]) -> TransactionRecord:
        return normalize(
            raw_row,
            self.header_index,
            self.config,
            self.source_file,
            self.import_timestamp,
            self.time_zone,
            strict_dates=self.strict_dates,
        )


__all__ = ["normalize", "resolve_amounts", "RecordNormalizer"]
