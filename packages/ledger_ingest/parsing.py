"""Parsing helpers for currency, numbers, dates and rule regexes.

``parse_currency`` never raises: bank exports put all sorts of noise into
amount cells and a bad cell must coerce to zero rather than abort a file.
Date patterns may be given in the Java/Apps Script style used by registry
files (``MM/dd/yyyy``) or as ``strptime`` patterns (anything containing
``%``).
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from functools import lru_cache
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser

from .errors import ConfigurationError

ZERO = Decimal("0")
_CENT = Decimal("0.01")

# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_PAREN_RE = re.compile(r"^\((.*)\)$")
_WS_RE = re.compile(r"\s+")


def _to_decimal(raw: str) -> Decimal | None:
    try:
        d = Decimal(raw)
    except (InvalidOperation, ValueError):
        return None
    return d if d.is_finite() else None


def parse_currency(value: Any) -> Decimal:
    """Parse a currency cell into a signed ``Decimal``.

    - ``$`` and thousands separators are stripped;
    - a value fully wrapped in parentheses is negative (accounting notation);
    - anything that is not a valid number after cleaning becomes ``0``.
    """

    if value is None:
        return ZERO
    s = _WS_RE.sub("", str(value).replace("$", "").replace(",", ""))
    if not s:
        return ZERO
    negative = False
    m = _PAREN_RE.match(s)
    if m:
        negative = True
        s = m.group(1)
    d = _to_decimal(s)
    if d is None:
        return ZERO
    return -abs(d) if negative else d


def parse_number(value: Any) -> Decimal | None:
    """Parse a plain numeric cell (commas allowed); ``None`` when blank or invalid."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    s = str(value).replace(",", "").strip()
    if not s:
        return None
    return _to_decimal(s)


def format_amount(d: Decimal) -> str:
    """Exactly two decimals, half-up rounding, no exponent notation."""

    q = d.quantize(_CENT, rounding=ROUND_HALF_UP)
    return f"{q:.2f}"


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

# Longest tokens first so "MMMM" wins over "MM".
_JAVA_TOKENS: tuple[tuple[str, str], ...] = (
    ("yyyy", "%Y"),
    ("yy", "%y"),
    ("y", "%Y"),
    ("MMMM", "%B"),
    ("MMM", "%b"),
    ("MM", "%m"),
    ("M", "%m"),
    ("dd", "%d"),
    ("d", "%d"),
    ("EEEE", "%A"),
    ("EEE", "%a"),
    ("E", "%a"),
    ("HH", "%H"),
    ("H", "%H"),
    ("hh", "%I"),
    ("h", "%I"),
    ("mm", "%M"),
    ("m", "%M"),
    ("ss", "%S"),
    ("s", "%S"),
    ("SSS", "%f"),
    ("a", "%p"),
    ("XXX", "%z"),
    ("Z", "%z"),
)


@lru_cache(maxsize=128)
def to_strptime_pattern(pattern: str) -> str:
    """Translate a Java-style date pattern into a ``strptime`` pattern.

    Patterns that already contain ``%`` are returned unchanged. Text between
    single quotes is copied literally.
    """

    if "%" in pattern:
        return pattern
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "'":
            end = pattern.find("'", i + 1)
            if end == -1:
                end = n
            out.append(pattern[i + 1 : end].replace("%", "%%"))
            i = end + 1
            continue
        for token, directive in _JAVA_TOKENS:
            if pattern.startswith(token, i):
                out.append(directive)
                i += len(token)
                break
        else:
            out.append("%%" if ch == "%" else ch)
            i += 1
    return "".join(out)


def resolve_zone(time_zone: str) -> ZoneInfo:
    """Return the ``ZoneInfo`` for ``time_zone`` or raise ``ConfigurationError``."""

    try:
        return ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown time zone: {time_zone!r}") from exc


def _in_zone(dt: datetime, time_zone: str) -> date:
    # Naive values are taken as already local to the configured zone.
    if dt.tzinfo is None:
        return dt.date()
    return dt.astimezone(resolve_zone(time_zone)).date()


def parse_date_with_format(value: str, pattern: str, time_zone: str) -> date | None:
    try:
        dt = datetime.strptime(value, to_strptime_pattern(pattern))
    except ValueError:
        return None
    return _in_zone(dt, time_zone)


# Two defaults that differ in year, month and day; a parse that depends on
# them was missing one of those parts.
_PARTIAL_DATE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def parse_date_fallback(value: str, time_zone: str) -> date | None:
    """Generic date parse used when no configured pattern matches.

    Partial dates (``"12"``, ``"May 2023"``) return ``None`` instead of
    borrowing the missing parts from today.
    """

    try:
        first, second = (date_parser.parse(value, default=d) for d in _PARTIAL_DATE_DEFAULTS)
    except (ValueError, OverflowError):
        return None
    if first.date() != second.date():
        return None
    return _in_zone(first, time_zone)


def parse_date(value: Any, formats: Sequence[str], time_zone: str) -> date | None:
    """Try each pattern in ``formats``, then the generic parser; ``None`` if all fail."""

    s = str(value or "").strip()
    if not s:
        return None
    for fmt in formats:
        parsed = parse_date_with_format(s, fmt, time_zone)
        if parsed is not None:
            return parsed
    return parse_date_fallback(s, time_zone)


def format_iso_date(value: date | datetime, time_zone: str) -> str:
    """Render ``value`` as ``YYYY-MM-DD`` in ``time_zone``."""

    if isinstance(value, datetime):
        return _in_zone(value, time_zone).isoformat()
    return value.isoformat()


# ---------------------------------------------------------------------------
# Regex
# ---------------------------------------------------------------------------


def build_regex(value: Any) -> re.Pattern[str] | None:
    """Compile a case-insensitive pattern; ``None`` for blank input.

    ``re.error`` propagates so callers can attach rule context.
    """

    raw = str(value or "").strip()
    if not raw:
        return None
    return re.compile(raw, re.IGNORECASE)


__all__ = [
    "ZERO",
    "parse_currency",
    "parse_number",
    "format_amount",
    "to_strptime_pattern",
    "resolve_zone",
    "parse_date_with_format",
    "parse_date_fallback",
    "parse_date",
    "format_iso_date",
    "build_regex",
]
