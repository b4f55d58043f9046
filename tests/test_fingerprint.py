import hashlib

from ledger_ingest.fingerprint import (
    FINGERPRINT_PREFIX,
    fingerprint,
    normalize_header_token,
    strip_prefix,
)


def test_normalize_header_token_trims_lowercases_and_collapses():
    assert normalize_header_token("  Account \t  Name ") == "account name"
    assert normalize_header_token("DATE") == "date"


def test_fingerprint_ignores_case_and_whitespace():
    assert fingerprint(["  Date ", "Description"]) == fingerprint(["date", " description  "])


def test_fingerprint_changes_with_header_set_or_order():
    base = fingerprint(["Date", "Description", "Amount"])
    assert fingerprint(["Date", "Amount", "Description"]) != base
    assert fingerprint(["Date", "Description"]) != base
    assert fingerprint(["Date", "Description", "Amount", "Balance"]) != base


def test_fingerprint_format_and_empty_headers():
    expected = hashlib.sha256(b"date|description").hexdigest()
    assert fingerprint(["Date", "Description"]) == FINGERPRINT_PREFIX + expected
    assert fingerprint(["Date", "Description"], prefixed=False) == expected

    empty = fingerprint([])
    assert empty == FINGERPRINT_PREFIX + hashlib.sha256(b"").hexdigest()


def test_strip_prefix_accepts_prefixed_and_bare():
    bare = fingerprint(["a"], prefixed=False)
    assert strip_prefix(f"sha256:{bare}") == bare
    assert strip_prefix(f"  SHA256:{bare.upper()} ") == bare
    assert strip_prefix(bare) == bare
