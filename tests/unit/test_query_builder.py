"""
Tests for the query parameter builder.

Tests the mapping from view state to backend parameters and the URL
helpers around it.
"""

from viewstate.runtime.query_builder import (
    QueryBuilder,
    build_query_params,
    build_query_url,
    clean_query_params,
    from_search_params_string,
    merge_query_params,
    to_search_params_string,
)
from viewstate.specs.state import FilterOperator, FilterState, PaginationState, SortState


class TestBuildQueryParams:
    """Tests for build_query_params."""

    def test_full_scenario(self) -> None:
        params = build_query_params(
            sorting=[SortState(id="name", desc=False)],
            pagination=PaginationState(page_index=1, page_size=25),
            search="  john ",
        )
        assert params == {
            "sortBy": "name",
            "sortOrder": "asc",
            "page": 2,
            "limit": 25,
            "search": "john",
        }

    def test_only_primary_sort_is_sent(self) -> None:
        params = build_query_params(
            sorting=[SortState(id="total", desc=True), SortState(id="name")]
        )
        assert params == {"sortBy": "total", "sortOrder": "desc"}

    def test_blank_search_omitted(self) -> None:
        assert "search" not in build_query_params(search="   ")

    def test_filters_serialized(self) -> None:
        params = build_query_params(
            filters=[
                FilterState(id="status", value="active"),
                FilterState(id="role", operator=FilterOperator.IN, value=["a", "b"]),
            ]
        )
        assert params == {"filters": "status:eq:active|role:in:a,b"}

    def test_custom_params_win_and_skip_none(self) -> None:
        params = build_query_params(
            pagination=PaginationState(page_index=0, page_size=10),
            custom_params={"limit": 99, "categoryId": "7", "brand": None},
        )
        assert params == {"page": 1, "limit": 99, "categoryId": "7"}

    def test_empty_state(self) -> None:
        assert build_query_params() == {}


class TestQueryBuilder:
    """Tests for the fluent builder."""

    def test_chained_build(self) -> None:
        params = (
            QueryBuilder()
            .set_sorting([SortState(id="email")])
            .set_pagination(1, 25)
            .set_search("john")
            .add_filter(FilterState(id="status", value="a"))
            .add_filter(FilterState(id="status", value="b"))
            .add_params({"tenant": "x"})
            .build()
        )
        assert params == {
            "sortBy": "email",
            "sortOrder": "asc",
            "page": 2,
            "limit": 25,
            "search": "john",
            "filters": "status:eq:b",
            "tenant": "x",
        }


class TestUrlHelpers:
    """Tests for URL and parameter helpers."""

    def test_build_query_url(self) -> None:
        url = build_query_url("/api/users", {"page": 1, "limit": 25, "search": "john"})
        assert url == "/api/users?page=1&limit=25&search=john"

    def test_build_query_url_without_params(self) -> None:
        assert build_query_url("/api/users", {"search": ""}) == "/api/users"

    def test_build_query_url_appends_to_existing_query(self) -> None:
        assert build_query_url("/api/users?x=1", {"page": 2}) == "/api/users?x=1&page=2"

    def test_clean_query_params(self) -> None:
        assert clean_query_params({"page": 1, "search": "", "limit": None, "flag": False}) == {
            "page": 1,
            "flag": False,
        }

    def test_merge_query_params(self) -> None:
        merged = merge_query_params({"page": 1, "limit": 10}, {"search": "john", "limit": 25})
        assert merged == {"page": 1, "limit": 25, "search": "john"}

    def test_search_params_string_round_trip(self) -> None:
        encoded = to_search_params_string({"page": 1, "filters": "status:eq:a|b", "x": None})
        assert encoded == "page=1&filters=status%3Aeq%3Aa%7Cb"
        assert from_search_params_string("?" + encoded) == {
            "page": "1",
            "filters": "status:eq:a|b",
        }

    def test_booleans_encode_lowercase(self) -> None:
        assert to_search_params_string({"inStock": True}) == "inStock=true"
