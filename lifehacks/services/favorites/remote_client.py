"""HTTP clients for the authenticated ``/api/me/favorites`` endpoints.

:class:`RemoteFavoritesClient` is a pure query function: one round trip per
call, no caching, no state beyond the injected :class:`httpx.AsyncClient`.
Mutations go through :class:`RemoteFavoritesMutations`, which shares the
error translation but is otherwise independent of the query path.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from lifehacks.schemas.error import ErrorType
from lifehacks.schemas.favorites import (
    FavoritesPage,
    FilterDescriptor,
    OrderBy,
    SortDirection,
    SortOption,
)
from lifehacks.schemas.tips import TipSummary
from lifehacks.services.favorites.errors import (
    AuthenticationRequiredError,
    RemoteFavoritesError,
    RemoteServiceError,
)

logger = logging.getLogger(__name__)

FAVORITES_PATH = "/api/me/favorites"

SORT_MAPPINGS: dict[SortOption, tuple[OrderBy, SortDirection]] = {
    SortOption.NEWEST: (OrderBy.CREATED_AT, SortDirection.DESCENDING),
    SortOption.OLDEST: (OrderBy.CREATED_AT, SortDirection.ASCENDING),
    SortOption.ALPHABETICAL: (OrderBy.TITLE, SortDirection.ASCENDING),
}

_PROBLEM_CONTENT_TYPES = ("application/json", "application/problem+json")


def sort_mapping(option: SortOption) -> tuple[OrderBy, SortDirection]:
    """Return the server's ``(orderBy, sortDirection)`` pair for ``option``."""

    return SORT_MAPPINGS[option]


def path_segment(tip_id: str) -> str:
    """Percent-encode ``tip_id`` as a single URL path segment.

    Dot-only ids are encoded too so the client never resolves them as
    relative path steps.
    """

    if tip_id in {".", ".."}:
        return tip_id.replace(".", "%2E")
    return quote(tip_id, safe="")


def _bearer(auth_token: str | None) -> dict[str, str]:
    if not auth_token:
        raise AuthenticationRequiredError(
            "Your session has expired. Please sign in again.", status_code=401
        )
    return {"Authorization": f"Bearer {auth_token}"}


def error_from_response(response: httpx.Response) -> RemoteFavoritesError:
    """Translate a failed response (optionally RFC 7807) into a typed error."""

    status_code = response.status_code
    detail: str | None = None
    title: str | None = None
    correlation_id: str | None = None

    content_type = response.headers.get("content-type", "")
    if any(kind in content_type for kind in _PROBLEM_CONTENT_TYPES):
        try:
            problem = response.json()
        except ValueError as exc:
            logger.error("Failed to parse favorites API error response: %s", exc)
            problem = None
        if isinstance(problem, dict):
            detail = _problem_text(problem.get("detail"))
            title = _problem_text(problem.get("title"))
            correlation_id = _problem_text(problem.get("correlationId"))

    if correlation_id:
        logger.error("Favorites API error %s, correlation id %s", status_code, correlation_id)

    if status_code == 401:
        return AuthenticationRequiredError(
            "Your session has expired. Please sign in again.",
            status_code=status_code,
            detail=detail or title,
            correlation_id=correlation_id,
        )
    if status_code == 403:
        return AuthenticationRequiredError(
            "You do not have permission to perform this action.",
            status_code=status_code,
            error_type=ErrorType.AUTHORIZATION_ERROR,
            detail=detail or title,
            correlation_id=correlation_id,
        )

    if status_code == 404:
        message = detail or "This tip is no longer available."
        error_type = ErrorType.NOT_FOUND
    elif status_code == 409:
        message = detail or "This tip is already in your favorites."
        error_type = ErrorType.CONFLICT
    elif status_code >= 500:
        logger.error("Favorites API server error: %s", detail or "Unknown")
        message = "Something went wrong. Please try again later."
        error_type = ErrorType.NETWORK_ERROR
    else:
        message = detail or title or "An error occurred"
        error_type = ErrorType.NETWORK_ERROR

    return RemoteServiceError(
        message,
        status_code=status_code,
        error_type=error_type,
        detail=detail or title,
        correlation_id=correlation_id,
    )


def _transport_error(exc: httpx.HTTPError) -> RemoteServiceError:
    if isinstance(exc, httpx.TimeoutException):
        return RemoteServiceError(
            "Request timeout", status_code=0, error_type=ErrorType.TIMEOUT_ERROR
        )
    return RemoteServiceError(
        "Unable to reach the favorites service. Please try again.",
        status_code=0,
        detail=str(exc) or type(exc).__name__,
    )


def _problem_text(value: Any) -> str | None:
    if not value:
        return None
    return value if isinstance(value, str) else str(value)


def _unexpected_response(detail: str) -> RemoteServiceError:
    return RemoteServiceError(
        "Unexpected favorites response", status_code=0, detail=detail
    )


def _page_from_payload(payload: Any, *, page_size: int) -> FavoritesPage:
    """Normalise both known response envelopes into a :class:`FavoritesPage`.

    The documented shape is ``{items, totalItems, pageNumber, pageSize,
    totalPages}``; older deployments answer ``{favorites: [{tipId, addedAt,
    tipDetails}], metadata: {...}}``. Any other shape raises
    :class:`RemoteServiceError`.
    """

    if not isinstance(payload, dict):
        raise _unexpected_response(f"payload is {type(payload).__name__}")

    if "favorites" in payload:
        entries = payload.get("favorites") or []
        metadata = payload.get("metadata") or {}
        if not isinstance(entries, list) or not all(
            isinstance(entry, dict) for entry in entries
        ):
            raise _unexpected_response("favorites is not a list of objects")
        raw_items = [entry.get("tipDetails") for entry in entries]
    else:
        raw_items = payload.get("items") or []
        metadata = payload
        if not isinstance(raw_items, list):
            raise _unexpected_response("items is not a list")

    if not isinstance(metadata, dict):
        raise _unexpected_response("metadata is not an object")

    try:
        items = [TipSummary.model_validate(item) for item in raw_items if item]
        return FavoritesPage(
            items=items,
            total_items=metadata.get("totalItems", len(items)),
            page_number=metadata.get("pageNumber", 1),
            page_size=metadata.get("pageSize", page_size),
            total_pages=metadata.get("totalPages", 0),
        )
    except (ValidationError, TypeError, AttributeError) as exc:
        raise _unexpected_response(str(exc)) from exc


class RemoteFavoritesClient:
    """Server-side paginated, filtered, sorted favorites query."""

    def __init__(self, http: httpx.AsyncClient, *, base_url: str) -> None:
        self._http = http
        self._url = f"{base_url.rstrip('/')}{FAVORITES_PATH}"

    @staticmethod
    def build_params(descriptor: FilterDescriptor, page_size: int) -> dict[str, str]:
        """Return the query parameters sent for ``descriptor``."""

        order_by, sort_direction = sort_mapping(descriptor.sort_option)
        params: dict[str, str] = {}
        if descriptor.search_query:
            params["q"] = descriptor.search_query
        if descriptor.category_id:
            params["categoryId"] = descriptor.category_id
        params["orderBy"] = order_by.value
        params["sortDirection"] = sort_direction.value
        params["pageNumber"] = str(descriptor.page_number)
        params["pageSize"] = str(page_size)
        return params

    async def query(
        self, descriptor: FilterDescriptor, page_size: int, auth_token: str | None
    ) -> FavoritesPage:
        """Fetch one page of the caller's favorites.

        Raises:
            AuthenticationRequiredError: the token is missing or rejected.
            RemoteServiceError: transport, timeout, or server failure.
        """

        headers = _bearer(auth_token)
        params = self.build_params(descriptor, page_size)
        try:
            response = await self._http.get(self._url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Favorites query failed: %s", exc)
            raise _transport_error(exc) from exc

        if response.is_error:
            raise error_from_response(response)

        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteServiceError(
                "Unexpected favorites response", status_code=0, detail=str(exc)
            ) from exc
        return _page_from_payload(payload, page_size=page_size)


class RemoteFavoritesMutations:
    """Add/remove calls against the authenticated favorites collection."""

    def __init__(self, http: httpx.AsyncClient, *, base_url: str) -> None:
        self._http = http
        self._url = f"{base_url.rstrip('/')}{FAVORITES_PATH}"

    async def add(self, tip_id: str, auth_token: str | None) -> None:
        """Save ``tip_id``; an already-saved tip (409) counts as success."""

        await self._send("POST", tip_id, auth_token, tolerated_status=409)

    async def remove(self, tip_id: str, auth_token: str | None) -> None:
        """Forget ``tip_id``; an already-removed tip (404) counts as success."""

        await self._send("DELETE", tip_id, auth_token, tolerated_status=404)

    async def _send(
        self,
        method: str,
        tip_id: str,
        auth_token: str | None,
        *,
        tolerated_status: int,
    ) -> None:
        headers = _bearer(auth_token)
        try:
            response = await self._http.request(
                method, f"{self._url}/{path_segment(tip_id)}", headers=headers
            )
        except httpx.HTTPError as exc:
            logger.warning("Favorites %s for %s failed: %s", method, tip_id, exc)
            raise _transport_error(exc) from exc

        if response.status_code == tolerated_status:
            return
        if response.is_error:
            raise error_from_response(response)


__all__ = [
    "FAVORITES_PATH",
    "RemoteFavoritesClient",
    "RemoteFavoritesMutations",
    "SORT_MAPPINGS",
    "error_from_response",
    "path_segment",
    "sort_mapping",
]
