"""Resolve tip identifiers into display records via the public tips API."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import httpx
from pydantic import ValidationError

from lifehacks.schemas.tips import TipSummary
from lifehacks.services.favorites.errors import TipNotFoundError
from lifehacks.services.favorites.remote_client import error_from_response, path_segment

logger = logging.getLogger(__name__)

TIP_PATH = "/api/Tip"


@runtime_checkable
class TipLookup(Protocol):
    """Collaborator turning a favorite id into a :class:`TipSummary`."""

    async def fetch_tip_by_id(self, tip_id: str) -> TipSummary:
        """Return the tip or raise :class:`TipNotFoundError`."""
        ...


class HttpTipLookup:
    """:class:`TipLookup` backed by ``GET /api/Tip/{id}``."""

    def __init__(self, http: httpx.AsyncClient, *, base_url: str) -> None:
        self._http = http
        self._url = f"{base_url.rstrip('/')}{TIP_PATH}"

    async def fetch_tip_by_id(self, tip_id: str) -> TipSummary:
        try:
            response = await self._http.get(f"{self._url}/{path_segment(tip_id)}")
        except httpx.HTTPError as exc:
            logger.error(f"Failed to fetch tip {tip_id}: {exc}")
            raise TipNotFoundError(tip_id) from exc

        if response.status_code == 404:
            raise TipNotFoundError(tip_id)
        if response.is_error:
            raise error_from_response(response)

        try:
            return TipSummary.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("Tip %s returned an unreadable payload: %s", tip_id, exc)
            raise TipNotFoundError(tip_id) from exc
