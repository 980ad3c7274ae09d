"""
Address bar abstraction.

The address bar is the source of truth for sorting, pagination, search and
filters. Channels read through it on every access and write back string
values; ``None`` removes a parameter. Listeners are told which keys changed
and whether the change came from outside the engine (back/forward or a
pasted URL), in which case every channel re-derives its value.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AddressChange:
    """Notification payload for address bar listeners."""

    keys: frozenset[str]
    external: bool


AddressListener = Callable[[AddressChange], None]


class AddressBar(Protocol):
    """Minimal contract every address bar implementation satisfies."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str | None) -> None: ...

    def update(self, values: Mapping[str, str | None]) -> None: ...

    def subscribe(self, listener: AddressListener) -> Callable[[], None]: ...

    def to_query_string(self) -> str: ...


def parse_query_string(query: str) -> dict[str, str]:
    """Parse ``a=1&b=2`` (or a full URL) into a dict. Later keys win."""
    if "?" in query or "://" in query:
        query = urlsplit(query).query
    return dict(parse_qsl(query.lstrip("?"), keep_blank_values=True))


class MemoryAddressBar:
    """
    In-process address bar with a navigation history.

    Engine writes replace the current history entry (like a router's
    ``replace`` mode); ``navigate`` pushes a new entry; ``back`` and
    ``forward`` move through history. ``navigate``, ``back`` and ``forward``
    are external writes.

    Example:
        bar = MemoryAddressBar("page=3&sort=name:asc")
        bar.get("page")  # "3"
        bar.set("page", None)
        bar.to_query_string()  # "sort=name%3Aasc"
    """

    def __init__(self, initial: str | Mapping[str, str] = "") -> None:
        params = parse_query_string(initial) if isinstance(initial, str) else dict(initial)
        self._history: list[dict[str, str]] = [params]
        self._cursor = 0
        self._listeners: list[AddressListener] = []

    @property
    def _params(self) -> dict[str, str]:
        return self._history[self._cursor]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, key: str) -> str | None:
        return self._params.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._params

    def __iter__(self) -> Iterator[str]:
        return iter(dict(self._params))

    def snapshot(self) -> dict[str, str]:
        """Copy of the current parameters."""
        return dict(self._params)

    def to_query_string(self) -> str:
        return urlencode(sorted(self._params.items()))

    # ------------------------------------------------------------------
    # Engine writes
    # ------------------------------------------------------------------

    def set(self, key: str, value: str | None) -> None:
        self.update({key: value})

    def update(self, values: Mapping[str, str | None]) -> None:
        """Apply several writes as one change. ``None`` removes a key."""
        params = dict(self._params)
        changed: set[str] = set()
        for key, value in values.items():
            if value is None:
                if key in params:
                    del params[key]
                    changed.add(key)
            elif params.get(key) != value:
                params[key] = value
                changed.add(key)

        if not changed:
            return

        self._history[self._cursor] = params
        self._notify(AddressChange(keys=frozenset(changed), external=False))

    # ------------------------------------------------------------------
    # External navigation
    # ------------------------------------------------------------------

    def navigate(self, query: str | Mapping[str, str]) -> None:
        """Push a new location (a pasted URL or a link click)."""
        params = parse_query_string(query) if isinstance(query, str) else dict(query)
        previous = self._params
        del self._history[self._cursor + 1 :]
        self._history.append(params)
        self._cursor += 1
        self._notify_external(previous, params)

    def back(self) -> bool:
        """Go back one history entry. Returns False at the start of history."""
        if self._cursor == 0:
            return False
        previous = self._params
        self._cursor -= 1
        self._notify_external(previous, self._params)
        return True

    def forward(self) -> bool:
        """Go forward one history entry. Returns False at the end of history."""
        if self._cursor >= len(self._history) - 1:
            return False
        previous = self._params
        self._cursor += 1
        self._notify_external(previous, self._params)
        return True

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: AddressListener) -> Callable[[], None]:
        """Register a change listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify_external(self, before: Mapping[str, str], after: Mapping[str, str]) -> None:
        changed = {k for k in set(before) | set(after) if before.get(k) != after.get(k)}
        if changed:
            logger.debug("External navigation changed %s", sorted(changed))
            self._notify(AddressChange(keys=frozenset(changed), external=True))

    def _notify(self, change: AddressChange) -> None:
        for listener in list(self._listeners):
            listener(change)
