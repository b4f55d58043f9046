"""Composite deduplication keys and the per-run working key set.

The key is the sole dedup fingerprint: two records with the same key are the
same transaction regardless of category, check number or manual overrides.

Key fields, joined with ``"|"``:
ISO date, withdrawal (2dp), deposit (2dp), description, account name, type.
Text fields are lowercased with whitespace collapsed and trimmed.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import replace
from enum import StrEnum

from .models import TransactionRecord
from .parsing import format_amount

KEY_SEPARATOR = "|"
DUPLICATE_PREFIX = "[Possible Duplicate] "

_WS_RE = re.compile(r"\s+")


def _norm_text(value: str) -> str:
    return _WS_RE.sub(" ", value).strip().lower()


def dedup_key(record: TransactionRecord) -> str:
    """Return the composite dedup key for ``record``."""

    return KEY_SEPARATOR.join(
        (
            record.date.strip(),
            format_amount(record.withdrawal),
            format_amount(record.deposit),
            _norm_text(record.description),
            _norm_text(record.account_name),
            _norm_text(record.type),
        )
    )


def build_existing_key_set(records: Iterable[TransactionRecord]) -> set[str]:
    """Keys for every stored record."""

    return {dedup_key(r) for r in records}


class KeyStatus(StrEnum):
    NEW = "new"
    KNOWN = "known"
    REPEAT_IN_FILE = "repeat_in_file"


class DedupKeySet:
    """Working key set owned by one ingestion run.

    - ``known``: historical keys plus keys accepted from earlier files in this
      run. A row whose key is known is dropped.
    - keys seen earlier in the *current* file are accepted again but flagged
      so the caller can mark them as possible duplicates.
    """

    def __init__(self, historical: Iterable[str] = ()) -> None:
        self._known: set[str] = set(historical)
        self._current_file: set[str] = set()

    def __len__(self) -> int:
        return len(self._known) + len(self._current_file - self._known)

    def __contains__(self, key: object) -> bool:
        return key in self._known or key in self._current_file

    def begin_file(self) -> None:
        """Promote the previous file's accepted keys to ``known``."""

        self._known |= self._current_file
        self._current_file = set()

    def discard_file(self) -> None:
        """Forget keys accepted from the current file (it failed midway)."""

        self._current_file = set()

    def classify(self, key: str) -> KeyStatus:
        if key in self._known:
            return KeyStatus.KNOWN
        if key in self._current_file:
            return KeyStatus.REPEAT_IN_FILE
        return KeyStatus.NEW

    def accept(self, key: str) -> None:
        self._current_file.add(key)


def mark_possible_duplicate(
    record: TransactionRecord, prefix: str = DUPLICATE_PREFIX
) -> TransactionRecord:
    """Return a copy of ``record`` with ``prefix`` prepended to its description."""

    return replace(record, description=f"{prefix}{record.description}")


__all__ = [
    "KEY_SEPARATOR",
    "DUPLICATE_PREFIX",
    "dedup_key",
    "build_existing_key_set",
    "KeyStatus",
    "DedupKeySet",
    "mark_possible_duplicate",
]
