"""Shared fixtures for the life hacks favorites test-suite."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from lifehacks.schemas.favorites import FavoritesPage, FilterDescriptor
from lifehacks.schemas.tips import TipSummary
from lifehacks.services.favorites import (
    FavoritesController,
    LocalFavoritesStore,
    RemoteFavoritesError,
    TipNotFoundError,
)
from lifehacks.storage import InMemoryKeyValueStore
from tests import _ensure_repo_on_path


def pytest_configure(config: pytest.Config) -> None:
    """Hook executed by pytest prior to running any tests."""

    _ensure_repo_on_path()


def make_tip(tip_id: str, **overrides: Any) -> TipSummary:
    """Build a minimal :class:`TipSummary` keyed by ``tip_id``."""

    payload: dict[str, Any] = {
        "id": tip_id,
        "title": f"Tip {tip_id}",
        "description": f"How to {tip_id}",
        "categoryId": "kitchen",
        "categoryName": "Kitchen",
        "tags": ["quick"],
    }
    payload.update(overrides)
    return TipSummary.model_validate(payload)


class FakeTipLookup:
    """In-memory tip catalogue; unknown ids raise :class:`TipNotFoundError`."""

    def __init__(self, tips: dict[str, TipSummary] | None = None) -> None:
        self.tips = dict(tips or {})
        self.calls: list[str] = []

    async def fetch_tip_by_id(self, tip_id: str) -> TipSummary:
        self.calls.append(tip_id)
        if tip_id not in self.tips:
            raise TipNotFoundError(tip_id)
        return self.tips[tip_id]


class FakeRemoteQuery:
    """Records every query and answers from a scripted responder."""

    def __init__(
        self,
        responder: Callable[[FilterDescriptor, int], FavoritesPage] | None = None,
    ) -> None:
        self.calls: list[tuple[FilterDescriptor, int, str | None]] = []
        self.responder = responder or (
            lambda descriptor, page_size: FavoritesPage(page_size=page_size)
        )
        self.error: RemoteFavoritesError | None = None

    async def query(
        self, descriptor: FilterDescriptor, page_size: int, auth_token: str | None
    ) -> FavoritesPage:
        self.calls.append((descriptor, page_size, auth_token))
        if self.error is not None:
            raise self.error
        return self.responder(descriptor, page_size)


class FakeMutations:
    """Records add/remove calls and optionally fails them."""

    def __init__(self) -> None:
        self.added: list[str] = []
        self.removed: list[str] = []
        self.error: RemoteFavoritesError | None = None

    async def add(self, tip_id: str, auth_token: str | None) -> None:
        if self.error is not None:
            raise self.error
        self.added.append(tip_id)

    async def remove(self, tip_id: str, auth_token: str | None) -> None:
        if self.error is not None:
            raise self.error
        self.removed.append(tip_id)


def paged_responder(
    tips: list[TipSummary], *, page_size_override: int | None = None
) -> Callable[[FilterDescriptor, int], FavoritesPage]:
    """Serve ``tips`` in slices matching the requested page number."""

    def _respond(descriptor: FilterDescriptor, page_size: int) -> FavoritesPage:
        size = page_size_override or page_size
        start = (descriptor.page_number - 1) * size
        total_pages = (len(tips) + size - 1) // size
        return FavoritesPage(
            items=tips[start : start + size],
            total_items=len(tips),
            page_number=descriptor.page_number,
            page_size=size,
            total_pages=total_pages,
        )

    return _respond


@pytest.fixture
def key_value_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def local_store(key_value_store: InMemoryKeyValueStore) -> LocalFavoritesStore:
    return LocalFavoritesStore(key_value_store)


@pytest.fixture
def tip_lookup() -> FakeTipLookup:
    return FakeTipLookup({f"t{index}": make_tip(f"t{index}") for index in range(1, 8)})


@pytest.fixture
def remote_query() -> FakeRemoteQuery:
    return FakeRemoteQuery()


@pytest.fixture
def mutations() -> FakeMutations:
    return FakeMutations()


@pytest.fixture
def controller(
    local_store: LocalFavoritesStore,
    remote_query: FakeRemoteQuery,
    mutations: FakeMutations,
    tip_lookup: FakeTipLookup,
) -> Iterator[FavoritesController]:
    controller = FavoritesController(
        local_store=local_store,
        remote_client=remote_query,
        mutations=mutations,
        tip_lookup=tip_lookup,
    )
    controller.open()
    yield controller
    controller.close()
