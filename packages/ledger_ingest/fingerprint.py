"""Header fingerprints: the link between a raw CSV layout and its format.

The fingerprint is a SHA-256 over the normalized, pipe-joined header names.
Whitespace and case differences in the source headers do not change it; a
different header set or order does.
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Iterable

FINGERPRINT_PREFIX = "sha256:"

_WS_RE = re.compile(r"\s+")


def normalize_header_token(value: str) -> str:
    """Trim, lowercase and collapse internal whitespace runs to one space."""

    return _WS_RE.sub(" ", str(value).strip().lower())


def fingerprint(headers: Iterable[str], *, prefixed: bool = True) -> str:
    """Return the stable fingerprint for a header row.

    ``prefixed=True`` yields ``"sha256:<hex>"``; otherwise the bare lowercase
    hex digest. An empty header list still produces a hash.
    """

    joined = "|".join(normalize_header_token(h) for h in headers)
    digest = hashlib.sha256(joined.encode("utf-8")).hexdigest()
    return f"{FINGERPRINT_PREFIX}{digest}" if prefixed else digest


def strip_prefix(value: str) -> str:
    """Return the bare hex digest of a fingerprint, prefixed or not."""

    s = value.strip().lower()
    if s.startswith(FINGERPRINT_PREFIX):
        s = s[len(FINGERPRINT_PREFIX) :]
    return s


__all__ = ["FINGERPRINT_PREFIX", "normalize_header_token", "fingerprint", "strip_prefix"]
