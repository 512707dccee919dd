"""
Unit tests for settings and logging configuration.
"""

import pytest
from pydantic import ValidationError

from inspi_db.config import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("MATCH_MERGE_STRATEGY", raising=False)

    settings = Settings(_env_file=None)

    assert settings.match_merge_strategy == "and"
    assert settings.index_efficiency_threshold == 30.0
    assert settings.index_size_warning_bytes == 100 * 1024 * 1024


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("MATCH_MERGE_STRATEGY", "overwrite")
    monkeypatch.setenv("INDEX_EFFICIENCY_THRESHOLD", "45")

    settings = Settings(_env_file=None)

    assert settings.match_merge_strategy == "overwrite"
    assert settings.index_efficiency_threshold == 45.0


@pytest.mark.parametrize("env, value", [
    ("INDEX_EFFICIENCY_THRESHOLD", "150"),
    ("INDEX_SIZE_WARNING_MB", "0"),
    ("MATCH_MERGE_STRATEGY", "union"),
])
def test_invalid_values_rejected(monkeypatch, env, value):
    monkeypatch.setenv(env, value)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_log_config_file_handler_uses_json_in_production():
    settings = Settings(_env_file=None, environment="production", log_file="/tmp/inspi.log")

    config = settings.log_config

    assert config["handlers"]["file"]["formatter"] == "json"
    assert config["formatters"]["json"]["()"] == "pythonjsonlogger.jsonlogger.JsonFormatter"
    assert set(config["root"]["handlers"]) == {"default", "file"}


def test_log_config_without_file():
    config = Settings(_env_file=None, log_file=None).log_config

    assert list(config["handlers"]) == ["default"]
