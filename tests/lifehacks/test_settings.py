"""Tests for :mod:`lifehacks.settings`."""

from __future__ import annotations

import logging

import pytest

from lifehacks.settings import (
    ANONYMOUS_MAX_FAVORITES,
    DEFAULT_API_BASE_URL,
    FAVORITES_PAGE_SIZE,
    FAVORITES_STORAGE_KEY,
    AppSettings,
)


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "API_BASE_URL",
        "REDIS_URL",
        "CORS_ALLOW_ORIGINS",
        "LOG_LEVEL",
        "REQUEST_TIMEOUT_SECONDS",
        "MAX_VISITOR_SESSIONS",
    ):
        monkeypatch.delenv(name, raising=False)


def test_constants() -> None:
    assert ANONYMOUS_MAX_FAVORITES == 5
    assert FAVORITES_PAGE_SIZE == 10
    assert FAVORITES_STORAGE_KEY == "lifehacking_favorites"


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = AppSettings(_env_file=None)

    assert settings.api_base_url == DEFAULT_API_BASE_URL
    assert settings.request_timeout_seconds == 30.0
    assert settings.max_visitor_sessions == 1000
    assert settings.cors_allow_origins == []
    assert settings.log_level_numeric == logging.INFO


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "https://api.example.com/ ")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", " https://a.example.com/ , ,https://b.example.com")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("MAX_VISITOR_SESSIONS", "25")

    settings = AppSettings(_env_file=None)

    assert settings.normalized_api_base_url == "https://api.example.com"
    assert settings.cors_allow_origins == ["https://a.example.com", "https://b.example.com"]
    assert settings.log_level_numeric == logging.DEBUG
    assert settings.max_visitor_sessions == 25


def test_unknown_log_level_falls_back_to_info() -> None:
    settings = AppSettings(_env_file=None, log_level="chatty")

    assert settings.log_level_numeric == logging.INFO


def test_optional_config_warnings_when_unset() -> None:
    warnings = AppSettings(_env_file=None).optional_config_warnings()

    assert any(warning.startswith("REDIS_URL is not set") for warning in warnings)
    assert any(warning.startswith("CORS_ALLOW_ORIGINS is not set") for warning in warnings)


def test_optional_config_warnings_silenced_by_explicit_values() -> None:
    settings = AppSettings(
        _env_file=None,
        redis_url="redis://cache:6379/0",
        cors_allow_origins_raw="https://app.example.com",
    )

    assert settings.optional_config_warnings() == []
