"""Centralized configuration management for the life hacks favorites backend."""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables defined in a local .env file before instantiating the
# settings singleton so every consumer importing :mod:`lifehacks.settings` sees the
# same values regardless of import order.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_API_BASE_URL = "http://localhost:5000"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_VISITOR_SESSIONS = 1000

# Anonymous visitors only ever see this many saved tips; authenticated users are
# unlimited and paginated server-side.
ANONYMOUS_MAX_FAVORITES = 5
FAVORITES_PAGE_SIZE = 10
FAVORITES_STORAGE_KEY = "lifehacking_favorites"


def _normalize_origin(origin: str) -> str:
    """Return the origin stripped of whitespace and trailing slashes."""

    return origin.strip().rstrip("/")


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``.

    Besides the raw environment values the class exposes a couple of derived
    helpers (normalised CORS origins, numeric log level) so the FastAPI wiring
    and the HTTP clients never repeat parsing logic.
    """

    _explicit_redis_url: bool = PrivateAttr(default=False)
    _explicit_cors_allow_origins: bool = PrivateAttr(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def __init__(
        self, **values: object
    ) -> None:  # noqa: D401 - short override explanation
        """Capture explicit overrides prior to delegating to ``BaseSettings``."""

        normalized_keys = {str(key).lower() for key in values}
        super().__init__(**values)
        self._explicit_redis_url = "redis_url" in normalized_keys
        self._explicit_cors_allow_origins = (
            "cors_allow_origins_raw" in normalized_keys
            or "cors_allow_origins" in normalized_keys
        )
        redis_env = os.getenv("REDIS_URL")
        if redis_env is not None and redis_env.strip():
            self._explicit_redis_url = True
        cors_env = os.getenv("CORS_ALLOW_ORIGINS")
        if cors_env is not None and cors_env.strip():
            self._explicit_cors_allow_origins = True

    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        alias="API_BASE_URL",
        description=(
            "Root URL of the life hacks REST API serving tips and the"
            " authenticated ``/api/me/favorites`` collection."
        ),
    )
    redis_url: str = Field(
        default=DEFAULT_REDIS_URL,
        alias="REDIS_URL",
        description=(
            "Redis connection string backing per-visitor favorites storage."
            " When Redis is unreachable an in-process store is used instead."
        ),
    )
    request_timeout_seconds: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        alias="REQUEST_TIMEOUT_SECONDS",
        gt=0,
        description="Timeout applied to every outbound call to the remote API.",
    )
    max_visitor_sessions: int = Field(
        default=DEFAULT_MAX_VISITOR_SESSIONS,
        alias="MAX_VISITOR_SESSIONS",
        ge=1,
        description=(
            "Upper bound on favorites controllers kept alive by the HTTP layer;"
            " the least recently used visitor is evicted first."
        ),
    )
    cors_allow_origins_raw: str | None = Field(
        default=None,
        alias="CORS_ALLOW_ORIGINS",
        description="Comma-separated list of CORS origins allowed to call the API.",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )

    @property
    def normalized_api_base_url(self) -> str:
        """Return ``api_base_url`` without a trailing slash."""

        return self.api_base_url.strip().rstrip("/")

    @property
    def cors_allow_origins(self) -> list[str]:
        """Return normalised CORS origins supplied via environment variables."""

        if not self.cors_allow_origins_raw:
            return []

        origins = [
            _normalize_origin(origin)
            for origin in self.cors_allow_origins_raw.split(",")
            if origin.strip()
        ]
        return [origin for origin in origins if origin]

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for unset optional configuration."""

        warnings: list[str] = []

        if not self._explicit_redis_url and self.redis_url == DEFAULT_REDIS_URL:
            warnings.append(
                "REDIS_URL is not set - visitor favorites will use the in-memory "
                "fallback store (lost on restart)"
            )

        if not self._explicit_cors_allow_origins and not self.cors_allow_origins:
            warnings.append(
                "CORS_ALLOW_ORIGINS is not set - using default localhost origins only "
                "(may cause CORS issues in production)"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()


# Module-level singleton; the getter remains available for dependency injection.
settings = get_settings()

__all__ = [
    "ANONYMOUS_MAX_FAVORITES",
    "AppSettings",
    "DEFAULT_API_BASE_URL",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_REDIS_URL",
    "FAVORITES_PAGE_SIZE",
    "FAVORITES_STORAGE_KEY",
    "get_settings",
    "settings",
]
