"""Exception taxonomy for the favorites subsystem.

Storage and lookup failures are absorbed close to where they happen; remote
failures travel up to the controller, which turns them into
:class:`~lifehacks.schemas.favorites.ErrorInfo` for the page to render.
"""

from __future__ import annotations

from lifehacks.schemas.error import ErrorType
from lifehacks.schemas.favorites import ErrorInfo


class FavoritesError(Exception):
    """Base class for every favorites failure."""


class StorageUnavailableError(FavoritesError):
    """Raised by a key-value store when the medium cannot be read or written."""


class TipNotFoundError(FavoritesError):
    """Raised by the tip lookup when a favorited tip no longer exists."""

    def __init__(self, tip_id: str) -> None:
        super().__init__(f"Tip {tip_id} not found")
        self.tip_id = tip_id


class FavoritesLimitError(FavoritesError):
    """Raised when an anonymous visitor tries to exceed the local favorites cap."""

    def __init__(self, limit: int) -> None:
        super().__init__(
            f"Anonymous users can only save up to {limit} favorites. "
            "Sign up for unlimited favorites!"
        )
        self.limit = limit


class RemoteFavoritesError(FavoritesError):
    """Failure reported by (or while reaching) the remote favorites API."""

    error_type: ErrorType = ErrorType.NETWORK_ERROR
    requires_reauthentication = False

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 0,
        error_type: ErrorType | None = None,
        detail: str | None = None,
        correlation_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type
        self.detail = detail
        self.correlation_id = correlation_id

    def to_info(self) -> ErrorInfo:
        """Project the exception onto the serialisable controller error."""

        return ErrorInfo(
            error_type=self.error_type,
            message=self.message,
            status_code=self.status_code or None,
            correlation_id=self.correlation_id,
            requires_reauthentication=self.requires_reauthentication,
            retryable=not self.requires_reauthentication,
        )


class AuthenticationRequiredError(RemoteFavoritesError):
    """Missing, expired, or rejected credentials; the user must sign in again."""

    error_type = ErrorType.AUTHENTICATION_ERROR
    requires_reauthentication = True


class RemoteServiceError(RemoteFavoritesError):
    """Network, timeout, or server-side failure; safe to retry."""


__all__ = [
    "AuthenticationRequiredError",
    "FavoritesError",
    "FavoritesLimitError",
    "RemoteFavoritesError",
    "RemoteServiceError",
    "StorageUnavailableError",
    "TipNotFoundError",
]
