"""Helpers for constructing structured API error responses.

Every payload embeds the request id and a timezone-aware timestamp so that
errors raised from validation, favorites mutations, or unexpected failures
share one shape.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from fastapi import status

from lifehacks.schemas.error import (
    ErrorResponse,
    ErrorType,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from lifehacks.services.favorites.errors import (
    AuthenticationRequiredError,
    FavoritesError,
    FavoritesLimitError,
    RemoteFavoritesError,
)
from lifehacks.utils.request_context import get_request_id

__all__ = [
    "build_error_response",
    "build_favorites_error_response",
    "build_validation_error_response",
]

_UPSTREAM_RETRY_AFTER_SECONDS = 5


def _current_timestamp() -> datetime:
    """Return a timezone-aware timestamp; tests monkeypatch this for determinism."""

    return datetime.now(UTC)


def build_validation_error_response(
    *,
    errors: Sequence[ValidationErrorDetail],
    message: str,
    detail: str,
    status_code: int,
    path: str,
    request_id: str | None = None,
) -> ValidationErrorResponse:
    return ValidationErrorResponse(
        error_type=ErrorType.VALIDATION_ERROR,
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=request_id or get_request_id(),
        path=path,
        errors=list(errors),
    )


def build_error_response(
    *,
    error_type: ErrorType,
    message: str,
    detail: str | None,
    status_code: int,
    path: str,
    retry_after: int | None = None,
    request_id: str | None = None,
) -> ErrorResponse:
    """Construct a generic ``ErrorResponse`` enriched with metadata."""

    return ErrorResponse(
        error_type=error_type,
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=request_id or get_request_id(),
        path=path,
        retry_after=retry_after,
    )


def build_favorites_error_response(exc: FavoritesError, *, path: str) -> ErrorResponse:
    """Map a favorites exception onto the HTTP status the front-end expects.

    * :class:`FavoritesLimitError` → 409, so the page can offer sign-up.
    * :class:`AuthenticationRequiredError` → 401, prompting a fresh sign-in.
    * other :class:`RemoteFavoritesError` → 502 with a retry hint.
    """

    if isinstance(exc, FavoritesLimitError):
        return build_error_response(
            error_type=ErrorType.CONFLICT,
            message=str(exc),
            detail=f"limit={exc.limit}",
            status_code=status.HTTP_409_CONFLICT,
            path=path,
        )
    if isinstance(exc, AuthenticationRequiredError):
        return build_error_response(
            error_type=exc.error_type,
            message=exc.message,
            detail=exc.detail,
            status_code=status.HTTP_401_UNAUTHORIZED,
            path=path,
        )
    if isinstance(exc, RemoteFavoritesError):
        return build_error_response(
            error_type=exc.error_type,
            message=exc.message,
            detail=exc.detail,
            status_code=status.HTTP_502_BAD_GATEWAY,
            path=path,
            retry_after=_UPSTREAM_RETRY_AFTER_SECONDS,
        )
    return build_error_response(
        error_type=ErrorType.INTERNAL_ERROR,
        message="Favorites operation failed",
        detail=str(exc) or type(exc).__name__,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        path=path,
    )
