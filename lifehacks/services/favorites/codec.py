"""Translate the favorites page URL query string to and from a FilterDescriptor.

The codec is the only place that knows the URL parameter names. It never raises:
malformed or hostile links simply decode to defaults.

* ``parse_query`` – query string (or mapping) to a defaulted descriptor.
* ``serialize_query`` – descriptor merged back into an existing query string,
  keeping foreign parameters and emitting the minimal canonical form.
* ``active_filter_count`` – badge counter for the mobile filter button.
* ``with_search``/``with_category``/``with_sort``/``with_page``/``reset_filters``
  – the transitions the page triggers from its controls.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from urllib.parse import parse_qsl, urlencode

from lifehacks.schemas.favorites import FilterDescriptor, SortOption

logger = logging.getLogger(__name__)

QUERY_PARAM = "q"
CATEGORY_PARAM = "categoryId"
SORT_PARAM = "sortBy"
SORT_DIRECTION_PARAM = "sortDir"
PAGE_PARAM = "page"

_OWNED_PARAMS = (QUERY_PARAM, CATEGORY_PARAM, SORT_PARAM, PAGE_PARAM)
_DEFAULT_SORT_DIRECTION = "desc"

QueryInput = str | Mapping[str, str] | None


def _query_pairs(query: QueryInput) -> list[tuple[str, str]]:
    if query is None:
        return []
    if isinstance(query, Mapping):
        return [(str(key), str(value)) for key, value in query.items()]
    try:
        return parse_qsl(query.lstrip("?"), keep_blank_values=True)
    except ValueError:
        logger.debug("Ignoring unparseable query string %r", query)
        return []


def _first(pairs: list[tuple[str, str]], name: str) -> str | None:
    return next((value for key, value in pairs if key == name), None)


def validate_sort_option(value: str | None) -> SortOption:
    """Return the matching :class:`SortOption`, defaulting to ``newest``."""

    try:
        return SortOption(value)
    except ValueError:
        return SortOption.NEWEST


def validate_page(value: str | None) -> int:
    """Return a 1-indexed page number, defaulting to ``1`` when invalid."""

    if value is None:
        return 1
    try:
        page = int(value.strip())
    except ValueError:
        return 1
    return page if page >= 1 else 1


def _descriptor_from_pairs(pairs: list[tuple[str, str]]) -> FilterDescriptor:
    return FilterDescriptor(
        search_query=_first(pairs, QUERY_PARAM) or "",
        category_id=_first(pairs, CATEGORY_PARAM) or None,
        sort_option=validate_sort_option(_first(pairs, SORT_PARAM)),
        page_number=validate_page(_first(pairs, PAGE_PARAM)),
    )


def parse_query(query: QueryInput) -> FilterDescriptor:
    """Decode ``q``, ``categoryId``, ``sortBy`` and ``page`` into a descriptor."""

    return _descriptor_from_pairs(_query_pairs(query))


def serialize_query(
    descriptor: FilterDescriptor, existing_query: QueryInput = None
) -> str:
    """Merge ``descriptor`` into ``existing_query`` and return the result.

    Parameters the descriptor does not own are preserved in their original
    order. Default values are omitted. When ``existing_query`` selects a
    different search/category/sort than ``descriptor`` the page is dropped,
    because a filter change invalidates the reader's position.
    """

    pairs = _query_pairs(existing_query)
    preserved = [(key, value) for key, value in pairs if key not in _OWNED_PARAMS]

    page = descriptor.page_number
    if existing_query is not None and not descriptor.same_filters(
        _descriptor_from_pairs(pairs)
    ):
        page = 1

    owned: list[tuple[str, str]] = []
    if descriptor.search_query:
        owned.append((QUERY_PARAM, descriptor.search_query))
    if descriptor.category_id:
        owned.append((CATEGORY_PARAM, descriptor.category_id))
    if descriptor.sort_option is not SortOption.NEWEST:
        owned.append((SORT_PARAM, descriptor.sort_option.value))
    if page > 1:
        owned.append((PAGE_PARAM, str(page)))

    return urlencode(preserved + owned)


def active_filter_count(query: QueryInput) -> int:
    """Count non-default filters present in ``query``.

    ``q`` and ``categoryId`` count when non-empty, ``sortBy`` when it is not
    ``newest`` and ``sortDir`` when it is not ``desc``.
    """

    pairs = _query_pairs(query)
    count = 0
    if _first(pairs, QUERY_PARAM):
        count += 1
    if _first(pairs, CATEGORY_PARAM):
        count += 1
    sort_by = _first(pairs, SORT_PARAM)
    if sort_by and sort_by != SortOption.NEWEST.value:
        count += 1
    sort_dir = _first(pairs, SORT_DIRECTION_PARAM)
    if sort_dir and sort_dir != _DEFAULT_SORT_DIRECTION:
        count += 1
    return count


def with_search(existing_query: QueryInput, search_query: str) -> str:
    current = parse_query(existing_query)
    return serialize_query(
        current.model_copy(update={"search_query": search_query}), existing_query
    )


def with_category(existing_query: QueryInput, category_id: str | None) -> str:
    current = parse_query(existing_query)
    return serialize_query(
        current.model_copy(update={"category_id": category_id or None}),
        existing_query,
    )


def with_sort(existing_query: QueryInput, sort_option: SortOption) -> str:
    current = parse_query(existing_query)
    return serialize_query(
        current.model_copy(update={"sort_option": sort_option}), existing_query
    )


def with_page(existing_query: QueryInput, page_number: int) -> str:
    current = parse_query(existing_query)
    return serialize_query(
        current.model_copy(update={"page_number": max(page_number, 1)}),
        existing_query,
    )


def reset_filters(existing_query: QueryInput) -> str:
    """Drop every owned parameter while keeping unrelated page state."""

    return serialize_query(FilterDescriptor(), existing_query)


__all__ = [
    "active_filter_count",
    "parse_query",
    "reset_filters",
    "serialize_query",
    "validate_page",
    "validate_sort_option",
    "with_category",
    "with_page",
    "with_search",
    "with_sort",
]
