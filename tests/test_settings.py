from pathlib import Path

import pytest
from pydantic import ValidationError

from ledger_ingest.errors import ConfigurationError
from ledger_ingest.settings import load_settings


def test_defaults_with_empty_environment():
    settings = load_settings({})
    assert settings.time_zone == "America/Los_Angeles"
    assert settings.transactions_table == "Transactions"
    assert settings.rules_table == "Rules"
    assert settings.duplicate_prefix == "[Possible Duplicate] "
    assert settings.strict_dates is False
    assert settings.max_reported_row_errors == 30
    assert settings.database_url is None
    assert settings.source_folder is None


def test_values_are_read_from_environment():
    settings = load_settings(
        {
            "LEDGER_SOURCE_FOLDER": "/data/incoming",
            "LEDGER_TIME_ZONE": "UTC",
            "LEDGER_STRICT_DATES": "true",
            "LEDGER_MAX_REPORTED_ROW_ERRORS": "5",
            "LEDGER_TRANSACTIONS_TABLE": " Ledger ",
            "LEDGER_DUPLICATE_PREFIX": "DUP: ",
        }
    )
    assert settings.source_folder == Path("/data/incoming")
    assert settings.time_zone == "UTC"
    assert settings.strict_dates is True
    assert settings.max_reported_row_errors == 5
    assert settings.transactions_table == "Ledger"
    assert settings.duplicate_prefix == "DUP: "


def test_database_url_falls_back_to_database_url_var():
    assert load_settings({"DATABASE_URL": "sqlite://"}).database_url == "sqlite://"
    both = {"DATABASE_URL": "sqlite://", "LEDGER_DATABASE_URL": "sqlite:///ledger.db"}
    assert load_settings(both).database_url == "sqlite:///ledger.db"


def test_blank_variables_count_as_unset():
    settings = load_settings({"LEDGER_TIME_ZONE": "  ", "LEDGER_DATABASE_URL": ""})
    assert settings.time_zone == "America/Los_Angeles"
    assert settings.database_url is None


def test_overrides_win_and_none_is_ignored():
    settings = load_settings(
        {"LEDGER_TIME_ZONE": "UTC", "LEDGER_REGISTRY_PATH": "/etc/formats.json"},
        time_zone="Europe/London",
        registry_path=None,
    )
    assert settings.time_zone == "Europe/London"
    assert settings.registry_path == Path("/etc/formats.json")


def test_reads_os_environ_by_default(monkeypatch):
    monkeypatch.setenv("LEDGER_RULES_TABLE", "My Rules")
    assert load_settings().rules_table == "My Rules"


@pytest.mark.parametrize(
    "environ",
    [
        {"LEDGER_TIME_ZONE": "Mars/Olympus_Mons"},
        {"LEDGER_MAX_REPORTED_ROW_ERRORS": "many"},
        {"LEDGER_MAX_REPORTED_ROW_ERRORS": "0"},
        {"LEDGER_STRICT_DATES": "sometimes"},
    ],
)
def test_invalid_values_raise_configuration_error(environ):
    with pytest.raises(ConfigurationError):
        load_settings(environ)


def test_require_database_url():
    with pytest.raises(ConfigurationError, match="LEDGER_DATABASE_URL"):
        load_settings({}).require_database_url()
    assert load_settings({"LEDGER_DATABASE_URL": "sqlite://"}).require_database_url() == "sqlite://"


def test_settings_are_frozen():
    settings = load_settings({})
    with pytest.raises(ValidationError):
        settings.time_zone = "UTC"  # type: ignore[misc]
