"""Pydantic schemas shared by the favorites codec, clients, and controller."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from lifehacks.schemas.error import ErrorType
from lifehacks.schemas.tips import TipSummary


class SortOption(str, Enum):
    """Closed set of sort choices accepted in the ``sortBy`` URL parameter."""

    NEWEST = "newest"
    OLDEST = "oldest"
    ALPHABETICAL = "alphabetical"


class OrderBy(str, Enum):
    """Sort field understood by the remote favorites endpoint."""

    CREATED_AT = "CreatedAt"
    UPDATED_AT = "UpdatedAt"
    TITLE = "Title"


class SortDirection(str, Enum):
    """Sort direction understood by the remote favorites endpoint."""

    ASCENDING = "Ascending"
    DESCENDING = "Descending"


class ControllerState(str, Enum):
    """States of :class:`~lifehacks.services.favorites.controller.FavoritesController`."""

    IDLE = "idle"
    ANONYMOUS_LOADED = "anonymous_loaded"
    AUTHENTICATED_LOADED = "authenticated_loaded"
    LOADING = "loading"
    LOADING_MORE = "loading_more"
    ERROR = "error"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FilterDescriptor(_CamelModel):
    """Validated search/category/sort/page state decoded from a URL.

    Instances are immutable; use ``model_copy(update=...)`` to derive a new
    descriptor.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    search_query: str = ""
    category_id: str | None = None
    sort_option: SortOption = SortOption.NEWEST
    page_number: int = Field(1, ge=1)

    def same_filters(self, other: FilterDescriptor) -> bool:
        """Return ``True`` when both descriptors select the same result set."""

        return (
            self.search_query == other.search_query
            and self.category_id == other.category_id
            and self.sort_option == other.sort_option
        )


class PageState(_CamelModel):
    """Incremental pagination position tracked by the controller."""

    current_page: int = Field(1, ge=1)
    total_pages: int = Field(1, ge=1)

    @model_validator(mode="after")
    def _current_within_total(self) -> PageState:
        if self.current_page > self.total_pages:
            raise ValueError("current_page cannot exceed total_pages")
        return self

    @property
    def has_more(self) -> bool:
        return self.current_page < self.total_pages


class FavoritesPage(_CamelModel):
    """Single page returned by the remote favorites query endpoint."""

    items: list[TipSummary] = Field(default_factory=list)
    total_items: int = Field(0, ge=0)
    page_number: int = Field(1, ge=1)
    page_size: int = Field(..., ge=1)
    total_pages: int = Field(0, ge=0)


class ErrorInfo(_CamelModel):
    """Failure retained by the controller for display and retry."""

    error_type: ErrorType
    message: str
    status_code: int | None = None
    correlation_id: str | None = None
    requires_reauthentication: bool = False
    retryable: bool = True


class FavoritesView(_CamelModel):
    """Snapshot of the controller rendered by the favorites page."""

    state: ControllerState
    is_anonymous: bool | None = Field(
        None, description="``None`` until the visitor's identity has been resolved."
    )
    items: list[TipSummary] = Field(default_factory=list)
    current_page: int = Field(1, ge=1)
    total_pages: int = Field(1, ge=1)
    has_more: bool = False
    filters: FilterDescriptor = Field(default_factory=FilterDescriptor)
    query: str = Field("", description="Canonical URL query string for this view")
    active_filter_count: int = Field(0, ge=0)
    anonymous_limit: int | None = None
    error: ErrorInfo | None = None


class FavoriteStatus(_CamelModel):
    """Membership answer for a single tip."""

    tip_id: str
    is_favorite: bool
