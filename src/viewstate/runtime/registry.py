"""
Per-view store registry.

Components that observe the same view identity must share one store, or
their preferences and selections would diverge. A ``StoreRegistry`` is the
explicit arena for that: construction through ``get_or_create`` is
idempotent, and ``clear`` resets it for test isolation.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

from viewstate.core.errors import make_configuration_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreRegistry(Generic[T]):
    """Maps view identity -> store instance, one instance per identity."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._stores: dict[str, T] = {}
        self._lock = threading.Lock()

    def get_or_create(self, view_id: str, factory: Callable[[], T]) -> T:
        """Return the store for ``view_id``, building it on first request.

        Options passed to ``factory`` only matter on the first call for a
        view; later calls get the existing instance unchanged.
        """
        if not view_id:
            raise make_configuration_error(f"{self.kind} store needs a non-empty view id")
        with self._lock:
            store = self._stores.get(view_id)
            if store is None:
                store = factory()
                self._stores[view_id] = store
                logger.debug("Created %s store for view %r", self.kind, view_id)
            return store

    def get(self, view_id: str) -> T | None:
        return self._stores.get(view_id)

    def remove(self, view_id: str) -> bool:
        with self._lock:
            return self._stores.pop(view_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._stores.clear()

    def __contains__(self, view_id: object) -> bool:
        return view_id in self._stores

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._stores))

    def __len__(self) -> int:
        return len(self._stores)
