"""
Keyed fetch cache with a keep-previous-data observer.

``QueryCache`` stores the last result per cache key. A ``QueryObserver``
follows one "current" key at a time:

- switching to a key with cached data shows it immediately and refreshes it
  in the background;
- switching to an uncached key keeps showing the previous key's data
  (flagged as placeholder) until the new result lands;
- results for keys that are no longer current still fill the cache but are
  never displayed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, field
from typing import Any

from viewstate.core.config import DEFAULT_QUERY_CACHE_SIZE
from viewstate.core.errors import ConfigurationError
from viewstate.specs.query import FetchResult, QueryState

logger = logging.getLogger(__name__)

QueryKey = Hashable
Fetcher = Callable[[dict[str, Any]], Awaitable[FetchResult]]


@dataclass
class CacheEntry:
    """Last known result for one key."""

    result: FetchResult
    seq: int
    updated_at: float = field(default_factory=time.time)


class QueryCache:
    """
    Results by key, least recently used first out.

    Shared between observers of the same view if desired. Holding more than
    ``max_entries`` keys evicts the one used longest ago.
    """

    def __init__(self, max_entries: int = DEFAULT_QUERY_CACHE_SIZE) -> None:
        if max_entries < 1:
            raise ConfigurationError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._entries: OrderedDict[QueryKey, CacheEntry] = OrderedDict()

    def get(self, key: QueryKey) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def put(self, key: QueryKey, result: FetchResult, seq: int) -> bool:
        """Store ``result`` unless a newer fetch for the same key already landed."""
        existing = self._entries.get(key)
        if existing is not None and existing.seq > seq:
            return False
        self._entries[key] = CacheEntry(result=result, seq=seq)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted cached result for %s", evicted)
        return True

    def invalidate(self, key: QueryKey | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class QueryObserver:
    """Tracks the current key's fetch status and the data to display."""

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        cache: QueryCache | None = None,
        on_change: Callable[[], None] | None = None,
        name: str = "query",
    ) -> None:
        self._fetcher = fetcher
        self.cache = cache if cache is not None else QueryCache()
        self._on_change = on_change
        self.name = name

        self._key: QueryKey | None = None
        self._params: dict[str, Any] = {}
        self._seq = 0
        self._tasks: dict[asyncio.Task[None], QueryKey] = {}

        self._displayed: FetchResult | None = None
        self._displayed_key: QueryKey | None = None
        self._displayed_seq = -1
        self._error: BaseException | None = None
        self._error_key: QueryKey | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def key(self) -> QueryKey | None:
        return self._key

    @property
    def in_flight(self) -> bool:
        """True while any fetch, for any key, is running."""
        return bool(self._tasks)

    @property
    def is_fetching(self) -> bool:
        return any(k == self._key for k in self._tasks.values())

    @property
    def state(self) -> QueryState:
        data = list(self._displayed.items) if self._displayed is not None else None
        is_pending = self._displayed is None
        is_fetching = self.is_fetching
        is_error = self._error is not None and self._error_key == self._key
        return QueryState(
            data=data,
            is_pending=is_pending,
            is_loading=is_pending and is_fetching,
            is_fetching=is_fetching,
            is_refetching=is_fetching and not is_pending,
            is_placeholder_data=not is_pending and self._displayed_key != self._key,
            is_error=is_error,
            error=self._error if is_error else None,
        )

    @property
    def result(self) -> FetchResult | None:
        """The displayed result (possibly a previous key's placeholder)."""
        return self._displayed

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------

    def set_query(self, key: QueryKey, params: dict[str, Any]) -> None:
        """Make ``key`` current and fetch it. No-op if it is already current."""
        if key == self._key:
            return
        self._key = key
        self._params = dict(params)

        cached = self.cache.get(key)
        if cached is not None:
            self._show(key, cached.result, cached.seq)

        if not self.is_fetching:
            self._start_fetch(key, self._params)
        self._changed()

    def refetch(self) -> None:
        """Fetch the current key again, even if a fetch is in flight."""
        if self._key is None:
            return
        self._start_fetch(self._key, self._params)
        self._changed()

    async def settle(self) -> None:
        """Wait until no fetch is in flight (including ones started meanwhile)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Cancel in-flight fetches. The next ``set_query`` fetches again."""
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._key = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start_fetch(self, key: QueryKey, params: dict[str, Any]) -> None:
        self._seq += 1
        task = asyncio.get_running_loop().create_task(self._run(key, dict(params), self._seq))
        self._tasks[task] = key
        task.add_done_callback(self._forget)

    def _forget(self, task: asyncio.Task[None]) -> None:
        self._tasks.pop(task, None)

    async def _run(self, key: QueryKey, params: dict[str, Any], seq: int) -> None:
        try:
            result = await self._fetcher(params)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.debug("%s: fetch failed for %s: %s", self.name, params, exc)
            if key == self._key:
                self._error = exc
                self._error_key = key
            self._tasks.pop(asyncio.current_task(), None)  # type: ignore[arg-type]
            self._changed()
            return

        stored = self.cache.put(key, result, seq)
        self._tasks.pop(asyncio.current_task(), None)  # type: ignore[arg-type]
        if key != self._key:
            logger.debug("%s: result for stale key cached, not displayed", self.name)
            self._changed()
            return
        if stored:
            if self._error_key == key:
                self._error = None
                self._error_key = None
            self._show(key, result, seq)
        self._changed()

    def _show(self, key: QueryKey, result: FetchResult, seq: int) -> None:
        if key == self._displayed_key and seq < self._displayed_seq:
            return
        self._displayed = result
        self._displayed_key = key
        self._displayed_seq = seq

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
