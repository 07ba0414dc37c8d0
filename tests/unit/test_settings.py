from __future__ import annotations

import pytest
from pydantic import ValidationError

from slugregistry.config.settings import DEFAULT_DB_URL, Settings, load_settings
from slugregistry.config.validated_settings import load_validated_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "SLUGREG_DB_URL",
        "SLUGREG_RESERVED_SLUGS",
        "SLUGREG_SCHEMA_AUTO_ENSURE",
        "SLUGREG_ENSURE_COOLDOWN",
        "SLUGREG_MAX_SUFFIX_ATTEMPTS",
        "SLUGREG_LOG_LEVEL",
        "SLUGREG_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_file():
    settings = load_settings()
    assert isinstance(settings, Settings)
    assert settings.database.url == DEFAULT_DB_URL
    assert settings.slugs.max_suffix_attempts == 20
    assert settings.slugs.schema_auto_ensure is True
    assert "admin" in settings.slugs.reserved


def test_yaml_file_is_validated(tmp_path):
    path = tmp_path / "slugs.yaml"
    path.write_text(
        "database:\n"
        "  url: sqlite:///custom.db\n"
        "slugs:\n"
        "  reserved: admin, help\n"
        "  max_suffix_attempts: 5\n"
        "  unknown_key: ignored\n"
        "logging:\n"
        "  level: DEBUG\n",
        encoding="utf-8",
    )
    settings = load_settings(str(path))
    assert settings.database.url == "sqlite:///custom.db"
    assert settings.slugs.reserved == ("admin", "help")
    assert settings.slugs.max_suffix_attempts == 5
    assert settings.logging.level == "DEBUG"


def test_invalid_yaml_values_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("slugs:\n  max_suffix_attempts: 0\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_validated_settings(path)


def test_env_overrides_file(monkeypatch, tmp_path):
    path = tmp_path / "slugs.yaml"
    path.write_text("database:\n  url: sqlite:///from-file.db\n", encoding="utf-8")
    monkeypatch.setenv("SLUGREG_CONFIG", str(path))
    monkeypatch.setenv("SLUGREG_DB_URL", "sqlite:///from-env.db")
    monkeypatch.setenv("SLUGREG_RESERVED_SLUGS", "root, staff")
    monkeypatch.setenv("SLUGREG_SCHEMA_AUTO_ENSURE", "false")
    monkeypatch.setenv("SLUGREG_ENSURE_COOLDOWN", "5")
    monkeypatch.setenv("SLUGREG_MAX_SUFFIX_ATTEMPTS", "7")
    monkeypatch.setenv("SLUGREG_LOG_LEVEL", "warning")

    settings = load_settings()
    assert settings.database.url == "sqlite:///from-env.db"
    assert settings.slugs.reserved == ("root", "staff")
    assert settings.slugs.schema_auto_ensure is False
    assert settings.slugs.ensure_cooldown_seconds == 5.0
    assert settings.slugs.max_suffix_attempts == 7
    assert settings.logging.level == "WARNING"
