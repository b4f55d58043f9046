"""Data models for ``ledger_ingest``.

- :class:`TransactionRecord`: one canonical bank transaction (frozen).
- :class:`SourceFormatConfig`: how to read one institution's CSV export,
  validated with pydantic from registry JSON.
- :class:`Rule` / :class:`CategoryAssignment`: compiled categorization rules
  and their result.
- Report types returned by the ingestion pipeline and the workflows.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal, NamedTuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from .parsing import ZERO

# ---------------------------------------------------------------------------
# Canonical transaction record
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransactionRecord:
    """A single canonical transaction row.

    Amounts are never negative; direction is encoded by which of
    ``withdrawal``/``deposit`` is populated. ``date`` is an ISO
    ``YYYY-MM-DD`` string. A non-empty ``manual_category`` marks a human
    override that rule-based categorization must not touch.
    """

    account_name: str = ""
    institution: str = ""
    date: str = ""
    type: str = ""
    description: str = ""
    withdrawal: Decimal = ZERO
    deposit: Decimal = ZERO
    check_number: str = ""
    category: str = ""
    source_file: str = ""
    manual_category: str = ""

    @property
    def signed_amount(self) -> Decimal:
        """Deposits positive, withdrawals negative."""
        return self.deposit - self.withdrawal


# ---------------------------------------------------------------------------
# Source format configuration
# ---------------------------------------------------------------------------

SignConvention = Literal["positive_deposit", "positive_withdrawal"]

# Older registry files used these names for "negative amount = money out".
_SIGN_ALIASES: dict[str, str] = {
    "raw_sign": "positive_deposit",
    "expenses_negative": "positive_deposit",
}


class SourceFormatConfig(BaseModel):
    """Describes how to interpret one bank's CSV export layout.

    Exactly one of ``amount_column`` or the ``withdrawal_column`` /
    ``deposit_column`` pair must be configured. ``column_map`` maps raw source
    header names to canonical text columns (``"Date"``, ``"Description"``,
    ``"Type"``...); targets are resolved case-, whitespace- and
    underscore-insensitively, so ``"check_number"`` means ``"Check Number"``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    name: str | None = None
    # When present, the registry derives the fingerprint from these headers.
    headers: tuple[str, ...] | None = None
    date_format: str | None = Field(
        default=None, validation_alias=AliasChoices("dateFormat", "date_format")
    )
    date_formats: tuple[str, ...] = Field(
        default=(), validation_alias=AliasChoices("dateFormats", "date_formats")
    )
    amount_column: str | None = Field(
        default=None, validation_alias=AliasChoices("amountColumn", "amount_column")
    )
    sign_convention: SignConvention = Field(
        default="positive_deposit",
        validation_alias=AliasChoices("signConvention", "sign_convention"),
    )
    withdrawal_column: str | None = Field(
        default=None, validation_alias=AliasChoices("withdrawalColumn", "withdrawal_column")
    )
    deposit_column: str | None = Field(
        default=None, validation_alias=AliasChoices("depositColumn", "deposit_column")
    )
    account_name: str | None = Field(
        default=None, validation_alias=AliasChoices("accountName", "account_name")
    )
    institution: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "institution", "financialInstitutionName", "financial_institution"
        ),
    )
    column_map: dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("columnMap", "column_map", "mapping"),
    )

    @field_validator("sign_convention", mode="before")
    @classmethod
    def _normalize_sign_convention(cls, v: object) -> object:
        if isinstance(v, str):
            s = v.strip().lower()
            return _SIGN_ALIASES.get(s, s)
        return v

    @field_validator("column_map")
    @classmethod
    def _resolve_targets(cls, v: dict[str, str]) -> dict[str, str]:
        from .schema import resolve_mapped_column  # local import avoids a cycle

        resolved: dict[str, str] = {}
        for source, target in v.items():
            column = resolve_mapped_column(target)
            if column is None:
                raise ValueError(
                    f"columnMap target {target!r} (from {source!r}) is not a mappable column; "
                    "amounts belong in amountColumn or withdrawalColumn/depositColumn"
                )
            resolved[source] = column
        return resolved

    @model_validator(mode="after")
    def _exactly_one_amount_layout(self) -> SourceFormatConfig:
        has_single = bool(self.amount_column)
        has_pair = bool(self.withdrawal_column or self.deposit_column)
        if has_single == has_pair:
            raise ValueError(
                "exactly one of amountColumn or withdrawalColumn/depositColumn must be set"
            )
        return self

    @property
    def formats(self) -> tuple[str, ...]:
        """Date patterns to try, primary first, without repeats."""

        ordered = [f for f in (self.date_format, *self.date_formats) if f]
        return tuple(dict.fromkeys(ordered))


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Rule:
    """A compiled categorization rule.

    Absent patterns or bounds mean "don't care" for that dimension. Bounds are
    inclusive and compare against the unsigned amount magnitude.
    """

    id: str
    category: str
    enabled: bool = True
    description_regex: re.Pattern[str] | None = None
    account_regex: re.Pattern[str] | None = None
    type_regex: re.Pattern[str] | None = None
    category_regex: re.Pattern[str] | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None


class CategoryAssignment(NamedTuple):
    """Category assigned by the first matching rule, with that rule's id."""

    category: str
    rule_id: str


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RowIssue:
    source_file: str
    row_number: int
    message: str


@dataclass(frozen=True, slots=True)
class FileIssue:
    source_file: str
    message: str


@dataclass(frozen=True, slots=True)
class UnmappedFile:
    source_file: str
    fingerprint: str
    headers: tuple[str, ...]


@dataclass(slots=True)
class IngestionResult:
    """Outcome of one ingestion run.

    ``rows_to_append`` is in file order, then row order. ``per_file_counts``
    holds the accepted-row count for every mapped file, in processing order.
    """

    rows_to_append: list[TransactionRecord] = field(default_factory=list)
    per_file_counts: dict[str, int] = field(default_factory=dict)
    unmapped_files: list[UnmappedFile] = field(default_factory=list)
    row_errors: list[RowIssue] = field(default_factory=list)
    file_errors: list[FileIssue] = field(default_factory=list)
    processed_files: list[str] = field(default_factory=list)

    @property
    def has_problems(self) -> bool:
        return bool(self.unmapped_files or self.row_errors or self.file_errors)


@dataclass(frozen=True, slots=True)
class CategorizationResult:
    rules_loaded: int
    rows_evaluated: int
    rows_matched: int


type SourceFile = tuple[str, bytes | str]
"""A ``(name, content)`` pair produced by a file source."""

type FormatMap = Mapping[str, SourceFormatConfig]


__all__ = [
    "TransactionRecord",
    "SignConvention",
    "SourceFormatConfig",
    "Rule",
    "CategoryAssignment",
    "RowIssue",
    "FileIssue",
    "UnmappedFile",
    "IngestionResult",
    "CategorizationResult",
    "SourceFile",
    "FormatMap",
]
