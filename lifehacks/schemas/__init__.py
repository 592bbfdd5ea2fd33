"""Pydantic schemas for API payloads and favorites state."""

from lifehacks.schemas.error import (  # noqa: F401
    ErrorResponse,
    ErrorType,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from lifehacks.schemas.favorites import (  # noqa: F401
    ControllerState,
    ErrorInfo,
    FavoritesPage,
    FavoritesView,
    FavoriteStatus,
    FilterDescriptor,
    OrderBy,
    PageState,
    SortDirection,
    SortOption,
)
from lifehacks.schemas.tips import TipImage, TipSummary  # noqa: F401
