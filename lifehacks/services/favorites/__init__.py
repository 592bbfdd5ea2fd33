"""Favorites domain components split by responsibility.

* :mod:`.codec` – URL query string ⇄ :class:`FilterDescriptor`.
* :mod:`.local_store` – anonymous visitors' saved ids.
* :mod:`.remote_client` – authenticated, server-paginated favorites API.
* :mod:`.controller` – the state machine tying identity, filters, and backend
  together.
"""

from .codec import active_filter_count, parse_query, serialize_query
from .controller import FavoritesController
from .errors import (
    AuthenticationRequiredError,
    FavoritesError,
    FavoritesLimitError,
    RemoteFavoritesError,
    RemoteServiceError,
    StorageUnavailableError,
    TipNotFoundError,
)
from .identity import AuthState, Identity
from .local_store import LocalFavoritesStore
from .remote_client import RemoteFavoritesClient, RemoteFavoritesMutations

__all__ = [
    "AuthState",
    "AuthenticationRequiredError",
    "FavoritesController",
    "FavoritesError",
    "FavoritesLimitError",
    "Identity",
    "LocalFavoritesStore",
    "RemoteFavoritesClient",
    "RemoteFavoritesError",
    "RemoteFavoritesMutations",
    "RemoteServiceError",
    "StorageUnavailableError",
    "TipNotFoundError",
    "active_filter_count",
    "parse_query",
    "serialize_query",
]
