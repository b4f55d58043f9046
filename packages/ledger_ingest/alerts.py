"""Alert sinks and the report text the workflows send through them.

``AlertSink.notify(title, details)`` is best-effort from the caller's point of
view: workflows go through :func:`notify_safely`, which logs and swallows a
failing sink so a broken mail setup never masks the original problem.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping, Sequence
from typing import Protocol

import resend

from .errors import ConfigurationError
from .logging_setup import get_logger
from .models import FileIssue, RowIssue, UnmappedFile

_logger = get_logger("ledger_ingest.alerts")

IMPORT_TAG = "[CSV Import]"
CATEGORIZE_TAG = "[Categorize]"


class AlertSink(Protocol):
    def notify(self, title: str, details: str) -> None: ...


class LoggingAlertSink:
    """Write alerts to the package logger at WARNING level."""

    def __init__(self, logger_name: str = "ledger_ingest.alerts") -> None:
        self._logger = get_logger(logger_name)

    def notify(self, title: str, details: str) -> None:
        self._logger.warning("%s\n%s", title, details)


class RecordingAlertSink:
    """Keep alerts in memory; used in tests."""

    def __init__(self) -> None:
        self.alerts: list[tuple[str, str]] = []

    def notify(self, title: str, details: str) -> None:
        self.alerts.append((title, details))

    @property
    def titles(self) -> list[str]:
        return [t for t, _ in self.alerts]


class ResendAlertSink:
    """Email alerts through Resend.

    Subject is ``"<subject_prefix>: <title>"``; the plain-text body repeats
    the title above the details.
    """

    def __init__(
        self,
        to: str | Sequence[str],
        *,
        api_key: str | None = None,
        subject_prefix: str = "Ledger ingest alert",
        from_address: str = "onboarding@resend.dev",
        from_name: str = "Ledger Ingest",
    ) -> None:
        self._api_key = api_key or os.environ.get("RESEND_API_KEY", "")
        if not self._api_key:
            raise ConfigurationError(
                "Resend API key required. Set RESEND_API_KEY or pass api_key."
            )
        self._to = [to] if isinstance(to, str) else list(to)
        self._subject_prefix = subject_prefix
        self._from = f"{from_name} <{from_address}>"
        resend.api_key = self._api_key

    def notify(self, title: str, details: str) -> None:
        params: resend.Emails.SendParams = {
            "from": self._from,
            "to": self._to,
            "subject": f"{self._subject_prefix}: {title}",
            "text": f"{title}\n\n{details}",
        }
        response = resend.Emails.send(params)
        _logger.debug("Alert email sent: %s", response)


def notify_safely(sink: AlertSink, title: str, details: str) -> bool:
    """Deliver an alert; log and return ``False`` if the sink fails."""

    try:
        sink.notify(title, details)
    except Exception as exc:  # noqa: BLE001
        _logger.error("Alert delivery failed for %r: %s", title, exc)
        return False
    return True


# ---------------------------------------------------------------------------
# Report text
# ---------------------------------------------------------------------------


def format_problem_files(
    unmapped: Iterable[UnmappedFile], file_errors: Iterable[FileIssue]
) -> str:
    """One line per problem file: ``name → reason``."""

    lines = [
        f"{u.source_file} → Unknown header hash: {u.fingerprint}\n"
        f"Header: [{' | '.join(u.headers)}]"
        for u in unmapped
    ]
    lines.extend(f"{f.source_file} → {f.message}" for f in file_errors)
    return "\n".join(lines)


def format_row_errors(issues: Sequence[RowIssue], limit: int) -> str:
    shown = [f"Row {i.row_number}: {i.message}" for i in issues[:limit]]
    hidden = len(issues) - len(shown)
    if hidden > 0:
        shown.append(f"... and {hidden} more")
    return "\n".join(shown)


def group_row_errors(issues: Iterable[RowIssue]) -> dict[str, list[RowIssue]]:
    grouped: dict[str, list[RowIssue]] = {}
    for issue in issues:
        grouped.setdefault(issue.source_file, []).append(issue)
    return grouped


def format_summary(per_file_counts: Mapping[str, int]) -> str:
    if not per_file_counts:
        return f"{IMPORT_TAG} No CSVs found."
    lines = [f"• {name}: {count} new rows" for name, count in per_file_counts.items()]
    return f"{IMPORT_TAG} Done:\n" + "\n".join(lines)


__all__ = [
    "IMPORT_TAG",
    "CATEGORIZE_TAG",
    "AlertSink",
    "LoggingAlertSink",
    "RecordingAlertSink",
    "ResendAlertSink",
    "notify_safely",
    "format_problem_files",
    "format_row_errors",
    "group_row_errors",
    "format_summary",
]
