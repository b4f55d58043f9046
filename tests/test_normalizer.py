# ruff: noqa: E501
from datetime import UTC, datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from ledger_ingest.errors import RowMappingError
from ledger_ingest.models import SourceFormatConfig
from ledger_ingest.normalizer import RecordNormalizer, normalize
from ledger_ingest.schema import build_header_index

TZ = "America/Los_Angeles"
IMPORTED_AT = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)


def _single_amount(sign: str = "positive_deposit", **extra) -> SourceFormatConfig:
    data = {
        "dateFormat": "yyyy-MM-dd",
        "amountColumn": "Amount",
        "signConvention": sign,
        "columnMap": {"Date": "Date", "Description": "Description", "Type": "Type"},
    }
    data.update(extra)
    return SourceFormatConfig.model_validate(data)


def _normalize(headers, row, config, **kwargs):
    normalizer = RecordNormalizer(
        headers, config, source_file="bank.csv", time_zone=TZ, import_timestamp=IMPORTED_AT, **kwargs
    )
    return normalizer.normalize(row)


def test_negative_amount_positive_deposit_is_withdrawal():
    rec = _normalize(["Date", "Description", "Amount"], ["2023-05-01", "Coffee", "-12.50"], _single_amount())
    assert rec.withdrawal == Decimal("12.50")
    assert rec.deposit == Decimal("0")
    assert rec.date == "2023-05-01"
    assert rec.description == "Coffee"
    assert rec.source_file == "bank.csv"


def test_negative_amount_positive_withdrawal_is_deposit():
    config = _single_amount("positive_withdrawal")
    rec = _normalize(["Date", "Description", "Amount"], ["2023-05-01", "Refund", "-20.00"], config)
    assert rec.deposit == Decimal("20.00")
    assert rec.withdrawal == Decimal("0")

    rec = _normalize(["Date", "Description", "Amount"], ["2023-05-01", "Card", "15"], config)
    assert rec.withdrawal == Decimal("15")
    assert rec.deposit == Decimal("0")


def test_raw_sign_alias_means_positive_deposit():
    assert _single_amount("raw_sign").sign_convention == "positive_deposit"
    assert _single_amount("expenses_negative").sign_convention == "positive_deposit"


def test_dual_columns_are_read_independently_and_never_negative():
    config = SourceFormatConfig.model_validate(
        {
            "dateFormat": "MM/dd/yyyy",
            "withdrawalColumn": "Debit",
            "depositColumn": "Credit",
            "columnMap": {"Posted": "Date", "Memo": "Description"},
        }
    )
    headers = ["Posted", "Memo", "Debit", "Credit"]
    rec = _normalize(headers, ["05/03/2023", "Rent", "-$1,450.00", ""], config)
    assert rec.withdrawal == Decimal("1450.00")
    assert rec.deposit == Decimal("0")
    assert rec.date == "2023-05-03"


def test_missing_source_header_and_short_row_yield_empty_strings():
    config = _single_amount(columnMap={"Date": "Date", "Memo": "Description", "Type": "Type"})
    rec = _normalize(["Date", "Amount", "Type"], ["2023-05-01", "1.00"], config)
    assert rec.description == ""
    assert rec.type == ""
    assert rec.deposit == Decimal("1.00")


def test_fixed_account_and_institution_win_over_mapped_values():
    mapped = {"Date": "Date", "Acct": "account_name", "Bank": "Financial Institution"}
    headers = ["Date", "Acct", "Bank", "Amount"]
    row = ["2023-05-01", "From CSV", "CSV Bank", "1"]

    rec = _normalize(headers, row, _single_amount(columnMap=mapped))
    assert rec.account_name == "From CSV"
    assert rec.institution == "CSV Bank"

    fixed = _single_amount(columnMap=mapped, accountName="Checking", institution="First Bank")
    rec = _normalize(headers, row, fixed)
    assert rec.account_name == "Checking"
    assert rec.institution == "First Bank"


def test_headers_are_matched_case_and_whitespace_insensitively():
    rec = _normalize(
        ["  DATE ", "description", " Amount"], ["2023-05-01", "Coffee", "-3.50"], _single_amount()
    )
    assert rec.date == "2023-05-01"
    assert rec.description == "Coffee"
    assert rec.withdrawal == Decimal("3.50")


def test_unparseable_or_blank_date_falls_back_to_import_timestamp():
    headers = ["Date", "Description", "Amount"]
    rec = _normalize(headers, ["someday", "Coffee", "-1"], _single_amount())
    # 12:00 UTC is 04:00 the same day in Los Angeles
    assert rec.date == "2024-01-15"
    rec = _normalize(headers, ["", "Coffee", "-1"], _single_amount(), strict_dates=True)
    assert rec.date == "2024-01-15"


def test_strict_dates_raise_row_mapping_error():
    with pytest.raises(RowMappingError, match="someday"):
        _normalize(
            ["Date", "Description", "Amount"],
            ["someday", "Coffee", "-1"],
            _single_amount(),
            strict_dates=True,
        )


def test_normalize_function_is_pure():
    config = _single_amount()
    index = build_header_index(["Date", "Description", "Amount"])
    row = ["2023-05-01", "Coffee", "-3.50"]
    first = normalize(row, index, config, "a.csv", IMPORTED_AT, TZ)
    second = normalize(row, index, config, "a.csv", IMPORTED_AT, TZ)
    assert first == second
    assert row == ["2023-05-01", "Coffee", "-3.50"]


def test_column_map_targets_resolve_loosely():
    config = _single_amount(columnMap={"Chk": "check_number", "Cat": " category "})
    assert config.column_map == {"Chk": "Check Number", "Cat": "Category"}


@pytest.mark.parametrize(
    "data",
    [
        # both layouts
        {"amountColumn": "Amount", "withdrawalColumn": "Debit"},
        # neither layout
        {"dateFormat": "yyyy-MM-dd"},
        # amount columns are not mappable text fields
        {"amountColumn": "Amount", "columnMap": {"Amount": "Deposit"}},
        {"amountColumn": "Amount", "columnMap": {"X": "Nonsense"}},
        {"amountColumn": "Amount", "signConvention": "sideways"},
        {"amountColumn": "Amount", "unexpected": True},
    ],
)
def test_invalid_source_format_configs_are_rejected(data):
    with pytest.raises(ValidationError):
        SourceFormatConfig.model_validate(data)


def test_date_formats_primary_first_without_repeats():
    config = _single_amount(dateFormats=["MM/dd/yyyy", "yyyy-MM-dd", "d MMM yyyy"])
    assert config.formats == ("yyyy-MM-dd", "MM/dd/yyyy", "d MMM yyyy")
