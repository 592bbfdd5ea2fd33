"""Durable key-value storage backing anonymous visitors' favorites.

The browser's ``localStorage`` is modelled as an injected
:class:`KeyValueStore` so the favorites store never touches a global. Production
wiring namespaces a Redis database per visitor; tests (and environments without
Redis) use :class:`InMemoryKeyValueStore`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

from redis.asyncio import Redis as RedisClient
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from lifehacks.services.favorites.errors import StorageUnavailableError
from lifehacks.settings import get_settings

logger = logging.getLogger(__name__)

_VISITOR_PREFIX = "visitors"

_redis_client: RedisClient | None = None
_client_lock = asyncio.Lock()
_redis_disabled = False

# Shared by every fallback store so a visitor keeps their favorites across
# requests served by the same process.
_fallback_data: dict[str, str] = {}


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal async key-value contract.

    Implementations raise :class:`StorageUnavailableError` whenever the medium
    cannot be used (disabled, quota exceeded, connection lost).
    """

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Dictionary-backed store; ``available=False`` simulates a disabled medium."""

    def __init__(
        self,
        data: dict[str, str] | None = None,
        *,
        namespace: str = "",
        available: bool = True,
    ) -> None:
        self._data = data if data is not None else {}
        self._namespace = namespace
        self.available = available

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}" if self._namespace else key

    def _ensure_available(self) -> None:
        if not self.available:
            raise StorageUnavailableError("In-memory store disabled")

    async def get(self, key: str) -> str | None:
        self._ensure_available()
        return self._data.get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        self._ensure_available()
        self._data[self._key(key)] = value

    async def delete(self, key: str) -> None:
        self._ensure_available()
        self._data.pop(self._key(key), None)


class RedisKeyValueStore:
    """Redis-backed store whose keys live under a per-visitor namespace."""

    def __init__(self, redis: RedisClient | None, *, namespace: str) -> None:
        self._redis = redis
        self._namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def _client(self) -> RedisClient:
        if self._redis is None:
            raise StorageUnavailableError("Redis is not configured")
        return self._redis

    async def get(self, key: str) -> str | None:
        client = self._client()
        try:
            return await client.get(self._key(key))
        except RedisError as exc:
            raise StorageUnavailableError(f"Redis get failed for {key}: {exc}") from exc

    async def set(self, key: str, value: str) -> None:
        client = self._client()
        try:
            await client.set(self._key(key), value)
        except RedisError as exc:
            raise StorageUnavailableError(f"Redis set failed for {key}: {exc}") from exc

    async def delete(self, key: str) -> None:
        client = self._client()
        try:
            await client.delete(self._key(key))
        except RedisError as exc:
            raise StorageUnavailableError(
                f"Redis delete failed for {key}: {exc}"
            ) from exc


def visitor_namespace(visitor_id: str) -> str:
    return f"{_VISITOR_PREFIX}:{visitor_id}"


def _is_redis_connection_error(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` represents a Redis connection failure."""

    return isinstance(exc, (RedisConnectionError, RedisTimeoutError))


async def get_redis() -> RedisClient | None:
    """Get the shared Redis client, returning None if the connection fails."""
    global _redis_client, _redis_disabled

    if _redis_disabled:
        logger.debug("Redis connection disabled after previous failure; skipping attempt.")
        return None

    # Acquire the lock before checking the singleton to avoid a TOCTOU race.
    async with _client_lock:
        if _redis_client is not None:
            return _redis_client

        if _redis_disabled:
            return None

        try:
            client = RedisClient.from_url(
                get_settings().redis_url, decode_responses=True, encoding="utf-8"
            )
            await client.ping()
            _redis_client = client
            logger.info("Redis connection established successfully")
            return _redis_client
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                logger.warning(
                    f"Redis connection failed: {exc}. Visitor favorites fall back "
                    "to in-memory storage."
                )
                _redis_client = None
                _redis_disabled = True
                return None
            raise


async def close_redis() -> None:
    """Close the global Redis connection gracefully."""
    global _redis_client, _redis_disabled
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
    _redis_disabled = False


async def get_visitor_store(visitor_id: str) -> KeyValueStore:
    """Return the durable store for ``visitor_id``.

    Redis is preferred; when it is unreachable the visitor gets a namespace in
    the process-wide fallback dictionary instead.
    """

    namespace = visitor_namespace(visitor_id)
    redis = await get_redis()
    if redis is None:
        return InMemoryKeyValueStore(_fallback_data, namespace=namespace)
    return RedisKeyValueStore(redis, namespace=namespace)


__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "RedisKeyValueStore",
    "close_redis",
    "get_redis",
    "get_visitor_store",
    "visitor_namespace",
]
