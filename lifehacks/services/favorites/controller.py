"""Stateful orchestrator behind the favorites page.

The controller decides which backend serves the visitor (local storage when
anonymous, the remote favorites API when authenticated), keeps the rendered
tip list and pagination position, and applies add/remove mutations.

Every (re)load bumps a generation counter. A request only writes its result
back when its generation is still current, so a slow response for an old
filter can never overwrite the list of a newer one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Protocol

from lifehacks.schemas.favorites import (
    ControllerState,
    ErrorInfo,
    FavoritesPage,
    FavoritesView,
    FilterDescriptor,
    PageState,
)
from lifehacks.schemas.tips import TipSummary
from lifehacks.services.favorites.codec import (
    QueryInput,
    active_filter_count,
    parse_query,
    serialize_query,
)
from lifehacks.services.favorites.errors import (
    FavoritesLimitError,
    RemoteFavoritesError,
)
from lifehacks.services.favorites.identity import AuthState, Identity
from lifehacks.services.favorites.local_store import LocalFavoritesStore
from lifehacks.services.tip_lookup import TipLookup
from lifehacks.settings import FAVORITES_PAGE_SIZE

logger = logging.getLogger(__name__)


class FavoritesQuery(Protocol):
    async def query(
        self, descriptor: FilterDescriptor, page_size: int, auth_token: str | None
    ) -> FavoritesPage: ...


class FavoritesMutations(Protocol):
    async def add(self, tip_id: str, auth_token: str | None) -> None: ...

    async def remove(self, tip_id: str, auth_token: str | None) -> None: ...


class FavoritesController:
    """Favorites reconciliation state machine.

    States move ``IDLE`` → ``LOADING`` → ``ANONYMOUS_LOADED`` |
    ``AUTHENTICATED_LOADED`` | ``ERROR``; ``LOADING_MORE`` is entered from
    ``AUTHENTICATED_LOADED`` only and always returns there.
    """

    def __init__(
        self,
        *,
        local_store: LocalFavoritesStore,
        remote_client: FavoritesQuery,
        mutations: FavoritesMutations,
        tip_lookup: TipLookup,
        page_size: int = FAVORITES_PAGE_SIZE,
    ) -> None:
        self._local_store = local_store
        self._remote_client = remote_client
        self._mutations = mutations
        self._tip_lookup = tip_lookup
        self._page_size = page_size

        self._state = ControllerState.IDLE
        self._identity: Identity | None = None
        self._identity_resolved = False
        self._descriptor = FilterDescriptor()
        self._items: list[TipSummary] = []
        self._page = PageState()
        self._error: ErrorInfo | None = None
        self._generation = 0
        self._viewing = False
        self._added_ids: set[str] = set()
        self._removed_ids: set[str] = set()

    # -- Read-only state ----------------------------------------------------

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def descriptor(self) -> FilterDescriptor:
        return self._descriptor

    @property
    def items(self) -> tuple[TipSummary, ...]:
        return tuple(self._items)

    @property
    def page(self) -> PageState:
        return self._page

    @property
    def error(self) -> ErrorInfo | None:
        return self._error

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None and self._identity.is_authenticated

    @property
    def is_viewing(self) -> bool:
        return self._viewing

    # -- Lifecycle ----------------------------------------------------------

    def open(self) -> None:
        """Mark the favorites list as on screen."""

        self._viewing = True

    def close(self) -> None:
        self._viewing = False

    def bind(self, auth_state: AuthState) -> Callable[[], None]:
        """Follow ``auth_state``; returns the unsubscribe callable."""

        return auth_state.subscribe(self.resolve_identity)

    # -- Transitions --------------------------------------------------------

    async def resolve_identity(self, identity: Identity | None) -> None:
        """React to identity resolution or an identity switch.

        Any change discards the previous list entirely and reloads from the
        backend matching the new identity. Re-announcing the current identity
        is a no-op.
        """

        if self._identity_resolved and identity == self._identity:
            return
        self._set_identity(identity)
        await self._reload()

    async def apply_query(self, query: QueryInput) -> None:
        """React to the page URL changing.

        Only a search/category/sort change reloads, and only for authenticated
        visitors; anonymous favorites are neither filtered nor paginated.
        """

        descriptor = parse_query(query)
        filters_changed = not descriptor.same_filters(self._descriptor)
        self._descriptor = descriptor
        if filters_changed and self._identity_resolved and self.is_authenticated:
            await self._reload()

    async def synchronize(self, identity: Identity | None, query: QueryInput) -> bool:
        """Apply an identity and a URL together, issuing at most one reload.

        Returns ``True`` when a reload was performed.
        """

        descriptor = parse_query(query)
        filters_changed = not descriptor.same_filters(self._descriptor)
        identity_changed = not self._identity_resolved or identity != self._identity
        self._descriptor = descriptor

        if identity_changed:
            self._set_identity(identity)
        elif not (filters_changed and self.is_authenticated):
            return False
        await self._reload()
        return True

    async def retry(self) -> None:
        """Re-run the initial load for the current identity and filters."""

        if self._identity_resolved:
            await self._reload()

    async def load_more(self) -> bool:
        """Append the next remote page; returns ``True`` when items were added.

        No-op for anonymous visitors, on the last page, or while any fetch is
        in flight. A failure keeps the loaded items and records the error.
        """

        if (
            self._state is not ControllerState.AUTHENTICATED_LOADED
            or not self.is_authenticated
            or not self._page.has_more
        ):
            return False

        generation = self._generation
        next_page = self._page.current_page + 1
        descriptor = self._descriptor.model_copy(update={"page_number": next_page})
        token = self._token()

        self._state = ControllerState.LOADING_MORE
        self._error = None
        try:
            page = await self._remote_client.query(descriptor, self._page_size, token)
        except RemoteFavoritesError as exc:
            if generation != self._generation:
                return False
            logger.warning("Loading favorites page %s failed: %s", next_page, exc)
            self._error = exc.to_info()
            self._state = ControllerState.AUTHENTICATED_LOADED
            return False

        if generation != self._generation:
            logger.debug("Discarding stale favorites page %s", next_page)
            return False

        self._items.extend(page.items)
        self._page = PageState(
            current_page=next_page,
            total_pages=max(page.total_pages, next_page),
        )
        self._state = ControllerState.AUTHENTICATED_LOADED
        return True

    # -- Mutations ----------------------------------------------------------

    async def add_favorite(self, tip_id: str) -> None:
        """Save ``tip_id`` for the current visitor.

        Raises:
            FavoritesLimitError: an anonymous visitor already holds the maximum.
            RemoteFavoritesError: the authenticated save failed.
        """

        if self.is_authenticated:
            await self._mutations.add(tip_id, self._token())
            self._removed_ids.discard(tip_id)
            self._added_ids.add(tip_id)
            return

        if await self._local_store.has(tip_id):
            return
        limit = self._local_store.max_visible
        if await self._local_store.count() >= limit:
            raise FavoritesLimitError(limit)
        await self._local_store.add(tip_id)
        await self._refresh_anonymous_view()

    async def remove_favorite(self, tip_id: str) -> None:
        """Forget ``tip_id`` for the current visitor.

        Authenticated removals drop the card immediately and put it back if
        the remote call fails. Page counters are left untouched either way.
        """

        if not self.is_authenticated:
            await self._local_store.remove(tip_id)
            await self._refresh_anonymous_view()
            return

        generation = self._generation
        index = next(
            (position for position, tip in enumerate(self._items) if tip.id == tip_id),
            None,
        )
        removed = self._items.pop(index) if index is not None else None
        try:
            await self._mutations.remove(tip_id, self._token())
        except RemoteFavoritesError:
            if removed is not None and generation == self._generation:
                self._items.insert(min(index, len(self._items)), removed)
            raise
        self._added_ids.discard(tip_id)
        self._removed_ids.add(tip_id)

    async def is_favorite(self, tip_id: str) -> bool:
        """Return membership for ``tip_id``.

        Authenticated answers are limited to the pages loaded so far plus the
        mutations made through this controller.
        """

        if not self.is_authenticated:
            return await self._local_store.has(tip_id)
        if tip_id in self._removed_ids:
            return False
        if tip_id in self._added_ids:
            return True
        return any(tip.id == tip_id for tip in self._items)

    # -- Rendering ----------------------------------------------------------

    def view(self, existing_query: QueryInput = None) -> FavoritesView:
        """Snapshot the controller, including the canonical URL for this page."""

        positioned = self._descriptor.model_copy(
            update={"page_number": self._page.current_page}
        )
        query = serialize_query(positioned, existing_query)
        anonymous = None if not self._identity_resolved else not self.is_authenticated
        return FavoritesView(
            state=self._state,
            is_anonymous=anonymous,
            items=list(self._items),
            current_page=self._page.current_page,
            total_pages=self._page.total_pages,
            has_more=self.is_authenticated and self._page.has_more,
            filters=self._descriptor,
            query=query,
            active_filter_count=active_filter_count(query),
            anonymous_limit=self._local_store.max_visible if anonymous else None,
            error=self._error,
        )

    # -- Internals ----------------------------------------------------------

    def _set_identity(self, identity: Identity | None) -> None:
        self._identity = identity
        self._identity_resolved = True
        self._items = []
        self._page = PageState()
        self._added_ids.clear()
        self._removed_ids.clear()

    def _token(self) -> str | None:
        return self._identity.auth_token if self._identity else None

    async def _refresh_anonymous_view(self) -> None:
        if self._viewing and self._identity_resolved:
            await self._reload()

    async def _reload(self) -> None:
        self._generation += 1
        generation = self._generation
        self._state = ControllerState.LOADING
        self._error = None
        if self.is_authenticated:
            await self._load_remote(generation)
        else:
            await self._load_local(generation)

    async def _load_local(self, generation: int) -> None:
        tip_ids = await self._local_store.effective_list()
        tips = await self._resolve_tips(tip_ids)
        if generation != self._generation:
            logger.debug("Discarding stale anonymous favorites load %s", generation)
            return
        self._items = tips
        self._page = PageState(current_page=1, total_pages=1)
        self._state = ControllerState.ANONYMOUS_LOADED

    async def _load_remote(self, generation: int) -> None:
        descriptor = self._descriptor.model_copy(update={"page_number": 1})
        try:
            page = await self._remote_client.query(
                descriptor, self._page_size, self._token()
            )
        except RemoteFavoritesError as exc:
            if generation != self._generation:
                return
            logger.warning("Loading favorites failed: %s", exc)
            self._items = []
            self._page = PageState()
            self._error = exc.to_info()
            self._state = ControllerState.ERROR
            return

        if generation != self._generation:
            logger.debug("Discarding stale favorites load %s", generation)
            return
        self._items = list(page.items)
        self._page = PageState(current_page=1, total_pages=max(page.total_pages, 1))
        self._state = ControllerState.AUTHENTICATED_LOADED

    async def _resolve_tips(self, tip_ids: Sequence[str]) -> list[TipSummary]:
        """Look tips up concurrently, keeping id order and dropping failures."""

        results = await asyncio.gather(
            *(self._tip_lookup.fetch_tip_by_id(tip_id) for tip_id in tip_ids),
            return_exceptions=True,
        )
        tips: list[TipSummary] = []
        for tip_id, result in zip(tip_ids, results):
            if isinstance(result, Exception):
                logger.debug("Dropping favorite %s from anonymous list: %s", tip_id, result)
                continue
            if isinstance(result, BaseException):
                raise result
            tips.append(result)
        return tips


__all__ = ["FavoritesController", "FavoritesMutations", "FavoritesQuery"]
