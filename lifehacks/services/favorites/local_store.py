"""Durable per-visitor favorites kept outside of any account.

Favorites are a convenience feature: every storage failure is logged and
swallowed so that saving a tip can never block browsing.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from lifehacks.services.favorites.errors import StorageUnavailableError
from lifehacks.settings import ANONYMOUS_MAX_FAVORITES, FAVORITES_STORAGE_KEY

if TYPE_CHECKING:
    from lifehacks.storage import KeyValueStore

logger = logging.getLogger(__name__)


class LocalFavoritesStore:
    """Ordered, duplicate-free set of tip ids persisted in a :class:`KeyValueStore`.

    The stored list is unbounded; :meth:`effective_list` exposes only the
    earliest ``max_visible`` insertions, which is what anonymous visitors see.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        *,
        storage_key: str = FAVORITES_STORAGE_KEY,
        max_visible: int = ANONYMOUS_MAX_FAVORITES,
    ) -> None:
        self._storage = storage
        self._storage_key = storage_key
        self.max_visible = max_visible

    async def list(self) -> list[str]:
        """Return every stored id in insertion order."""

        try:
            raw = await self._storage.get(self._storage_key)
        except StorageUnavailableError as exc:
            logger.debug("Favorites storage unavailable on read: %s", exc)
            return []

        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Corrupted favorites data, initializing empty")
            await self.clear()
            return []

        if not isinstance(parsed, list):
            logger.warning("Favorites data is not a list, initializing empty")
            await self.clear()
            return []

        ids: list[str] = []
        for item in parsed:
            if isinstance(item, str) and item and item not in ids:
                ids.append(item)
        return ids

    async def effective_list(self) -> list[str]:
        """Return the first ``max_visible`` ids; later insertions stay hidden."""

        return (await self.list())[: self.max_visible]

    async def has(self, tip_id: str) -> bool:
        return tip_id in await self.list()

    async def count(self) -> int:
        return len(await self.list())

    async def add(self, tip_id: str) -> None:
        """Append ``tip_id`` unless it is already stored."""

        favorites = await self.list()
        if tip_id in favorites:
            return
        favorites.append(tip_id)
        await self._write(favorites)

    async def remove(self, tip_id: str) -> None:
        favorites = await self.list()
        if tip_id not in favorites:
            return
        await self._write([item for item in favorites if item != tip_id])

    async def clear(self) -> None:
        try:
            await self._storage.delete(self._storage_key)
        except StorageUnavailableError as exc:
            logger.debug("Failed to clear favorites: %s", exc)

    async def _write(self, favorites: list[str]) -> None:
        try:
            await self._storage.set(self._storage_key, json.dumps(favorites))
        except StorageUnavailableError as exc:
            logger.warning("Failed to persist favorites: %s", exc)
