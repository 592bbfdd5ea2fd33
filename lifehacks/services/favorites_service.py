"""Per-visitor favorites controllers served over HTTP.

The browser front-end talks to this backend instead of holding the
controller itself, so each visitor (identified by an opaque visitor id) gets a
long-lived :class:`FavoritesController` kept in a bounded LRU registry.

Workflow entry points used by :mod:`lifehacks.api.favorites`:
* ``view`` – apply identity + URL, return the rendered snapshot.
* ``load_more`` – same, then append the next remote page.
* ``add``/``remove`` – mutate the backend matching the visitor's identity.
* ``status`` – membership check for a single tip.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable

import httpx

from lifehacks.schemas.favorites import FavoritesView, FavoriteStatus
from lifehacks.services.favorites import (
    FavoritesController,
    Identity,
    LocalFavoritesStore,
    RemoteFavoritesClient,
    RemoteFavoritesMutations,
)
from lifehacks.services.favorites.codec import QueryInput
from lifehacks.services.tip_lookup import HttpTipLookup
from lifehacks.settings import get_settings
from lifehacks.storage import get_visitor_store

logger = logging.getLogger(__name__)

ControllerFactory = Callable[[str], Awaitable[FavoritesController]]

_http_client: httpx.AsyncClient | None = None
_registry: FavoritesSessionRegistry | None = None


class FavoritesSessionRegistry:
    """Bounded mapping of visitor id to controller, evicting the least recent."""

    def __init__(self, factory: ControllerFactory, *, max_sessions: int) -> None:
        self._factory = factory
        self._max_sessions = max_sessions
        self._controllers: OrderedDict[str, FavoritesController] = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._controllers)

    def __contains__(self, visitor_id: object) -> bool:
        return visitor_id in self._controllers

    async def get(self, visitor_id: str) -> FavoritesController:
        async with self._lock:
            controller = self._controllers.get(visitor_id)
            if controller is not None:
                self._controllers.move_to_end(visitor_id)
                return controller

            controller = await self._factory(visitor_id)
            self._controllers[visitor_id] = controller
            while len(self._controllers) > self._max_sessions:
                evicted, _ = self._controllers.popitem(last=False)
                logger.debug("Evicted favorites controller for visitor %s", evicted)
            return controller

    def clear(self) -> None:
        self._controllers.clear()


class FavoritesService:
    """Thin coordinator translating HTTP calls into controller transitions."""

    def __init__(self, registry: FavoritesSessionRegistry) -> None:
        self._registry = registry

    async def view(
        self, *, visitor_id: str, identity: Identity | None, query: QueryInput
    ) -> FavoritesView:
        controller = await self._open(visitor_id, identity, query)
        return controller.view(query)

    async def load_more(
        self, *, visitor_id: str, identity: Identity | None, query: QueryInput
    ) -> FavoritesView:
        controller = await self._open(visitor_id, identity, query)
        await controller.load_more()
        return controller.view(query)

    async def add(
        self, *, visitor_id: str, identity: Identity | None, tip_id: str
    ) -> None:
        controller = await self._registry.get(visitor_id)
        await controller.resolve_identity(identity)
        await controller.add_favorite(tip_id)

    async def remove(
        self, *, visitor_id: str, identity: Identity | None, tip_id: str
    ) -> None:
        controller = await self._registry.get(visitor_id)
        await controller.resolve_identity(identity)
        await controller.remove_favorite(tip_id)

    async def status(
        self, *, visitor_id: str, identity: Identity | None, tip_id: str
    ) -> FavoriteStatus:
        controller = await self._registry.get(visitor_id)
        await controller.resolve_identity(identity)
        return FavoriteStatus(
            tip_id=tip_id, is_favorite=await controller.is_favorite(tip_id)
        )

    async def _open(
        self, visitor_id: str, identity: Identity | None, query: QueryInput
    ) -> FavoritesController:
        controller = await self._registry.get(visitor_id)
        was_viewing = controller.is_viewing
        controller.open()
        reloaded = await controller.synchronize(identity, query)
        # Mutations made before the list was first shown did not refresh it.
        if not reloaded and not was_viewing:
            await controller.retry()
        return controller


def get_http_client() -> httpx.AsyncClient:
    """Return the shared outbound HTTP client, creating it on first use."""
    global _http_client

    if _http_client is None:
        settings = get_settings()
        _http_client = httpx.AsyncClient(
            timeout=settings.request_timeout_seconds,
            headers={"User-Agent": "LifeHacks-Favorites/0.1"},
        )
    return _http_client


async def close_http_client() -> None:
    """Close the shared outbound HTTP client gracefully."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


async def build_controller(visitor_id: str) -> FavoritesController:
    """Wire a controller for ``visitor_id`` against the configured backends."""

    settings = get_settings()
    http = get_http_client()
    base_url = settings.normalized_api_base_url
    storage = await get_visitor_store(visitor_id)
    return FavoritesController(
        local_store=LocalFavoritesStore(storage),
        remote_client=RemoteFavoritesClient(http, base_url=base_url),
        mutations=RemoteFavoritesMutations(http, base_url=base_url),
        tip_lookup=HttpTipLookup(http, base_url=base_url),
    )


def get_registry() -> FavoritesSessionRegistry:
    global _registry

    if _registry is None:
        _registry = FavoritesSessionRegistry(
            build_controller, max_sessions=get_settings().max_visitor_sessions
        )
    return _registry


async def get_favorites_service() -> FavoritesService:
    """FastAPI dependency that wires the service to the shared registry."""

    return FavoritesService(get_registry())


__all__ = [
    "FavoritesService",
    "FavoritesSessionRegistry",
    "build_controller",
    "close_http_client",
    "get_favorites_service",
    "get_http_client",
    "get_registry",
]
