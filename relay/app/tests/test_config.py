"""
Unit Tests for Configuration
============================

Tests for relay/app/config.py
"""

import pytest
from pydantic import ValidationError

from relay.app.config import (
    ErrorDetailMode,
    OriginMode,
    Settings,
    get_settings,
    validate_configuration,
)


def test_defaults_are_production_safe(monkeypatch):
    monkeypatch.delenv("ORIGIN_POLICY", raising=False)
    monkeypatch.delenv("ERROR_DETAIL", raising=False)
    settings = Settings(_env_file=None)

    assert settings.ORIGIN_POLICY is OriginMode.ALLOW_LIST
    assert settings.ERROR_DETAIL is ErrorDetailMode.REDACTED
    assert settings.security_policy.exposes_details is False
    assert settings.RETRY_AFTER_SECONDS == 30
    assert "https://wellabe-demo.vercel.app" in settings.allowed_origins_list


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("RETELL_API_KEY", "key_from_env")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://one.example.com , ,https://two.example.com/")
    monkeypatch.setenv("ERROR_DETAIL", "verbose")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.RETELL_API_KEY == "key_from_env"
    assert settings.allowed_origins_list == ["https://one.example.com", "https://two.example.com"]
    assert settings.security_policy.exposes_details is True
    assert settings.LOG_LEVEL == "DEBUG"


def test_blank_credential_counts_as_missing():
    assert Settings(_env_file=None, RETELL_API_KEY="   ").RETELL_API_KEY is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"LOG_LEVEL": "LOUD"},
        {"PROXY_PATH": "api/retell-proxy"},
        {"ORIGIN_POLICY": "anything"},
        {"RETRY_AFTER_SECONDS": 0},
        {"AGENT_ID_MIN_LENGTH": 0},
    ],
)
def test_invalid_values_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_validate_configuration_reports_missing_key_without_leaking():
    report = validate_configuration(Settings(_env_file=None, RETELL_API_KEY=None))

    assert report["valid"] is False
    assert any("RETELL_API_KEY" in error for error in report["errors"])


def test_validate_configuration_warns_on_permissive_policy():
    settings = Settings(
        _env_file=None,
        RETELL_API_KEY="key_super_secret_value",
        ORIGIN_POLICY="open",
        ERROR_DETAIL="verbose",
    )

    report = validate_configuration(settings)

    assert report["valid"] is True
    assert len(report["warnings"]) == 2
    assert "key_super_secret_value" not in str(report)


def test_validate_configuration_warns_on_plain_http_origin():
    settings = Settings(
        _env_file=None,
        RETELL_API_KEY="k",
        ALLOWED_ORIGINS="http://demo.example.com,http://localhost:3000",
    )

    report = validate_configuration(settings)

    assert report["warnings"] == ["Allowed origin uses plain HTTP: http://demo.example.com"]


def test_get_settings_is_cached():
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
