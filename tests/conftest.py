"""Pytest configuration for test isolation.

Settings are read from ``LEDGER_*`` environment variables (and ``.env`` by the
CLI). A developer shell or a stray ``.env`` must not leak into tests, so an
autouse fixture clears every variable the settings loader reads and runs each
test from its own temporary working directory.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from ledger_db.client import dispose_engines
from ledger_ingest.settings import ENV_VARS


@pytest.fixture(autouse=True)
def _isolate_settings_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Unset all settings variables and chdir into a per-test directory."""

    for names in ENV_VARS.values():
        for name in names:
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("LEDGER_INGEST_LOG_LEVEL", raising=False)

    workdir = tmp_path / "cwd"
    workdir.mkdir(parents=True, exist_ok=True)
    monkeypatch.chdir(workdir)


@pytest.fixture(autouse=True)
def _dispose_db_engines() -> Iterator[None]:
    """Close engines cached by ``ledger_db.client`` once each test is done."""

    yield
    dispose_engines()
