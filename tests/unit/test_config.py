"""Settings loading from YAML files and environment overrides."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from kakeibo.config import DEFAULT_DATABASE_URL, Settings, load_settings
from kakeibo.engine.utils.io import read_yaml, write_json


def test_defaults_without_file_or_environment() -> None:
    settings = load_settings(environ={})
    assert settings == Settings()
    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.cors_origins == ("*",)


def test_yaml_file_is_applied(tmp_path: Path) -> None:
    config = tmp_path / "kakeibo.yml"
    config.write_text(
        "database:\n"
        "  url: sqlite:///ledger.db\n"
        "logging:\n"
        "  level: debug\n"
        "  json: true\n"
        "cors_origins:\n"
        "  - http://localhost:3000\n",
        encoding="utf-8",
    )
    settings = load_settings(config, environ={})

    assert settings.database_url == "sqlite:///ledger.db"
    assert settings.log_level == "DEBUG"
    assert settings.json_logs is True
    assert settings.cors_origins == ("http://localhost:3000",)


def test_environment_overrides_file(tmp_path: Path) -> None:
    config = tmp_path / "kakeibo.yml"
    config.write_text("database:\n  url: sqlite:///ledger.db\nlogging:\n  json: true\n", encoding="utf-8")
    environ = {
        "KAKEIBO_CONFIG": str(config),
        "KAKEIBO_DATABASE_URL": "postgresql://ledger@db/kakeibo",
        "KAKEIBO_LOG_LEVEL": "warning",
        "KAKEIBO_JSON_LOGS": "0",
    }
    settings = load_settings(environ=environ)

    assert settings.database_url == "postgresql://ledger@db/kakeibo"
    assert settings.log_level == "WARNING"
    assert settings.json_logs is False


def test_missing_explicit_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "absent.yml", environ={})


def test_missing_file_from_environment_falls_back(tmp_path: Path) -> None:
    settings = load_settings(environ={"KAKEIBO_CONFIG": str(tmp_path / "absent.yml")})
    assert settings.database_url == DEFAULT_DATABASE_URL


def test_non_mapping_yaml_is_rejected(tmp_path: Path) -> None:
    config = tmp_path / "list.yml"
    config.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_settings(config, environ={})


def test_empty_yaml_yields_defaults(tmp_path: Path) -> None:
    config = tmp_path / "empty.yml"
    config.write_text("", encoding="utf-8")
    assert load_settings(config, environ={}) == Settings()


def test_write_json_is_sorted_and_newline_terminated(tmp_path: Path) -> None:
    target = write_json({"b": 1, "a": "家計簿"}, tmp_path / "out" / "history.json")
    text = target.read_text(encoding="utf-8")

    assert text.endswith("\n")
    assert text.index('"a"') < text.index('"b"')
    assert "家計簿" in text
    assert json.loads(text) == {"a": "家計簿", "b": 1}


def test_read_yaml_parses_mapping(tmp_path: Path) -> None:
    source = tmp_path / "data.yml"
    source.write_text("budget: 50000\n", encoding="utf-8")
    assert read_yaml(source) == {"budget": 50000}
