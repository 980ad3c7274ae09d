"""Tests for the keyed query cache and its keep-previous-data observer."""

import asyncio
from typing import Any

import pytest

from viewstate.core.errors import ConfigurationError, DataSourceError
from viewstate.runtime.query_cache import QueryCache, QueryObserver
from viewstate.specs.query import FetchResult


class GatedFetcher:
    """Fetcher whose calls block until released, per page."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.gates: dict[int, asyncio.Event] = {}
        self.failures: set[int] = set()

    def gate(self, page: int) -> asyncio.Event:
        return self.gates.setdefault(page, asyncio.Event())

    async def __call__(self, params: dict[str, Any]) -> FetchResult:
        self.calls.append(params)
        page = params["page"]
        await self.gate(page).wait()
        if page in self.failures:
            raise DataSourceError(f"page {page} failed", status_code=500)
        return FetchResult(items=[f"p{page}"])


class TestQueryCache:
    """Tests for QueryCache ordering rules."""

    def test_older_result_does_not_overwrite(self) -> None:
        cache = QueryCache()
        assert cache.put("k", FetchResult(items=["new"]), seq=2)
        assert not cache.put("k", FetchResult(items=["old"]), seq=1)
        entry = cache.get("k")
        assert entry is not None
        assert entry.result.items == ["new"]

    def test_least_recently_used_is_evicted(self) -> None:
        cache = QueryCache(max_entries=2)
        cache.put("a", FetchResult(), seq=1)
        cache.put("b", FetchResult(), seq=2)
        cache.get("a")
        cache.put("c", FetchResult(), seq=3)

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache
        assert len(cache) == 2

    def test_non_positive_size_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            QueryCache(max_entries=0)

    def test_invalidate(self) -> None:
        cache = QueryCache()
        cache.put("a", FetchResult(), seq=1)
        cache.put("b", FetchResult(), seq=2)
        cache.invalidate("a")
        assert "a" not in cache
        cache.invalidate()
        assert len(cache) == 0


class TestQueryObserver:
    """Tests for QueryObserver state transitions."""

    @pytest.mark.asyncio
    async def test_first_fetch_is_loading(self) -> None:
        fetcher = GatedFetcher()
        observer = QueryObserver(fetcher)

        observer.set_query("p1", {"page": 1})
        await asyncio.sleep(0)

        state = observer.state
        assert state.is_loading
        assert state.is_pending
        assert state.data is None

        fetcher.gate(1).set()
        await observer.settle()

        state = observer.state
        assert not state.is_loading
        assert state.data == ["p1"]
        assert not state.is_placeholder_data

    @pytest.mark.asyncio
    async def test_keeps_previous_data_while_fetching(self) -> None:
        fetcher = GatedFetcher()
        fetcher.gate(1).set()
        observer = QueryObserver(fetcher)
        observer.set_query("p1", {"page": 1})
        await observer.settle()

        observer.set_query("p2", {"page": 2})
        await asyncio.sleep(0)

        state = observer.state
        assert state.data == ["p1"]
        assert state.is_placeholder_data
        assert state.is_fetching
        assert state.is_refetching
        assert not state.is_loading

        fetcher.gate(2).set()
        await observer.settle()
        assert observer.state.data == ["p2"]
        assert not observer.state.is_placeholder_data

    @pytest.mark.asyncio
    async def test_out_of_order_results_only_render_current(self) -> None:
        fetcher = GatedFetcher()
        observer = QueryObserver(fetcher)

        observer.set_query("p1", {"page": 1})
        observer.set_query("p2", {"page": 2})
        await asyncio.sleep(0)

        fetcher.gate(2).set()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert observer.state.data == ["p2"]

        fetcher.gate(1).set()
        await observer.settle()

        assert observer.state.data == ["p2"]
        assert "p1" in observer.cache

    @pytest.mark.asyncio
    async def test_cached_key_shows_immediately_and_refreshes(self) -> None:
        fetcher = GatedFetcher()
        fetcher.gate(1).set()
        fetcher.gate(2).set()
        observer = QueryObserver(fetcher)
        observer.set_query("p1", {"page": 1})
        await observer.settle()
        observer.set_query("p2", {"page": 2})
        await observer.settle()

        observer.set_query("p1", {"page": 1})

        assert observer.state.data == ["p1"]
        assert not observer.state.is_placeholder_data
        assert observer.state.is_refetching
        await observer.settle()
        assert len(fetcher.calls) == 3

    @pytest.mark.asyncio
    async def test_error_is_captured(self) -> None:
        fetcher = GatedFetcher()
        fetcher.failures.add(1)
        fetcher.gate(1).set()
        changes: list[None] = []
        observer = QueryObserver(fetcher, on_change=lambda: changes.append(None))

        observer.set_query("p1", {"page": 1})
        await observer.settle()

        state = observer.state
        assert state.is_error
        assert isinstance(state.error, DataSourceError)
        assert not state.is_fetching
        assert changes

    @pytest.mark.asyncio
    async def test_refetch_starts_new_fetch(self) -> None:
        fetcher = GatedFetcher()
        fetcher.gate(1).set()
        observer = QueryObserver(fetcher)
        observer.set_query("p1", {"page": 1})
        await observer.settle()

        observer.refetch()
        await observer.settle()

        assert len(fetcher.calls) == 2

    @pytest.mark.asyncio
    async def test_uses_given_empty_cache(self) -> None:
        fetcher = GatedFetcher()
        fetcher.gate(1).set()
        cache = QueryCache()
        observer = QueryObserver(fetcher, cache=cache)

        observer.set_query("p1", {"page": 1})
        await observer.settle()

        assert observer.cache is cache
        assert "p1" in cache

    @pytest.mark.asyncio
    async def test_same_key_is_noop(self) -> None:
        fetcher = GatedFetcher()
        fetcher.gate(1).set()
        observer = QueryObserver(fetcher)
        observer.set_query("p1", {"page": 1})
        observer.set_query("p1", {"page": 1})
        await observer.settle()
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_close_cancels_in_flight(self) -> None:
        fetcher = GatedFetcher()
        observer = QueryObserver(fetcher)
        observer.set_query("p1", {"page": 1})
        await asyncio.sleep(0)

        observer.close()

        assert not observer.in_flight

    @pytest.mark.asyncio
    async def test_same_key_fetches_again_after_close(self) -> None:
        fetcher = GatedFetcher()
        observer = QueryObserver(fetcher)
        observer.set_query("p1", {"page": 1})
        await asyncio.sleep(0)
        observer.close()

        fetcher.gate(1).set()
        observer.set_query("p1", {"page": 1})
        await observer.settle()

        assert len(fetcher.calls) == 2
        assert observer.state.data == ["p1"]
