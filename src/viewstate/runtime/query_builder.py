"""
Query parameter builder.

Turns resolved view state into the flat parameter map the list backend
expects: ``?page=2&limit=25&sortBy=name&sortOrder=asc&search=john``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl, urlencode

from viewstate.core.codec import serialize_filters
from viewstate.core.config import SORT_ASC, SORT_DESC
from viewstate.specs.state import FilterState, PaginationState, SortState

QueryParams = dict[str, Any]


def build_query_params(
    sorting: list[SortState] | None = None,
    pagination: PaginationState | None = None,
    search: str | None = None,
    filters: list[FilterState] | None = None,
    custom_params: Mapping[str, Any] | None = None,
) -> QueryParams:
    """
    Build backend query parameters from view state.

    Only the primary sort key is sent; the backend sorts on one column.
    Pagination goes out 1-based. ``custom_params`` are merged last, skipping
    ``None`` values, so they override anything derived above.

    Example:
        build_query_params(
            sorting=[SortState(id="email")],
            pagination=PaginationState(page_index=1, page_size=25),
            search=" john ",
        )
        # {"sortBy": "email", "sortOrder": "asc", "page": 2, "limit": 25, "search": "john"}
    """
    params: QueryParams = {}

    if sorting:
        primary = sorting[0]
        params["sortBy"] = primary.id
        params["sortOrder"] = SORT_DESC if primary.desc else SORT_ASC

    if pagination is not None:
        params["page"] = pagination.page_index + 1
        params["limit"] = pagination.page_size

    if search and search.strip():
        params["search"] = search.strip()

    if filters:
        params["filters"] = serialize_filters(filters)

    if custom_params:
        for key, value in custom_params.items():
            if value is not None:
                params[key] = value

    return params


@dataclass
class QueryBuilder:
    """
    Fluent front end for ``build_query_params``.

    Example:
        params = (
            QueryBuilder()
            .set_sorting([SortState(id="name")])
            .set_pagination(0, 25)
            .set_search("john")
            .build()
        )
    """

    sorting: list[SortState] = field(default_factory=list)
    pagination: PaginationState | None = None
    search: str = ""
    filters: list[FilterState] = field(default_factory=list)
    custom_params: QueryParams = field(default_factory=dict)

    def set_sorting(self, sorting: list[SortState]) -> QueryBuilder:
        self.sorting = list(sorting)
        return self

    def set_pagination(self, page_index: int, page_size: int) -> QueryBuilder:
        self.pagination = PaginationState(page_index=page_index, page_size=page_size)
        return self

    def set_search(self, search: str) -> QueryBuilder:
        self.search = search
        return self

    def add_filter(self, filter_state: FilterState) -> QueryBuilder:
        self.filters = [f for f in self.filters if f.id != filter_state.id]
        self.filters.append(filter_state)
        return self

    def add_params(self, params: Mapping[str, Any]) -> QueryBuilder:
        self.custom_params.update(params)
        return self

    def build(self) -> QueryParams:
        return build_query_params(
            sorting=self.sorting,
            pagination=self.pagination,
            search=self.search,
            filters=self.filters,
            custom_params=self.custom_params,
        )


# =============================================================================
# Helpers
# =============================================================================


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _format_param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def clean_query_params(params: Mapping[str, Any]) -> QueryParams:
    """Drop ``None`` and empty-string values."""
    return {k: v for k, v in params.items() if not _is_empty(v)}


def merge_query_params(base: Mapping[str, Any], override: Mapping[str, Any]) -> QueryParams:
    """Shallow merge; keys in ``override`` win."""
    return {**base, **override}


def to_search_params_string(params: Mapping[str, Any]) -> str:
    """Encode params as a query string, skipping empty values.

    Example:
        to_search_params_string({"page": 1, "limit": 25})  # "page=1&limit=25"
    """
    return urlencode([(k, _format_param(v)) for k, v in params.items() if not _is_empty(v)])


def from_search_params_string(query: str) -> dict[str, str]:
    """Decode a query string into a dict of strings (last value wins)."""
    return dict(parse_qsl(query.lstrip("?"), keep_blank_values=True))


def build_query_url(base_url: str, params: Mapping[str, Any]) -> str:
    """
    Append encoded params to ``base_url``.

    Example:
        build_query_url("/api/users", {"page": 1, "search": "john"})
        # "/api/users?page=1&search=john"
    """
    query = to_search_params_string(params)
    if not query:
        return base_url
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{query}"
