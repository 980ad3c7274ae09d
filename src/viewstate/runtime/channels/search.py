"""
Search channel: an input-bound ``immediate`` value and a debounced
``committed`` value stored in the ``search`` parameter.

Every ``set`` restarts the debounce window. When the window elapses the
committed value catches up with the immediate one: an empty or
whitespace-only immediate value removes the parameter, anything else is
written as-is. ``clear`` skips the
window entirely.

The channel reports commits to listeners but does not act on them;
resetting pagination after a new search is the orchestrator's rule.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from viewstate.core.config import SEARCH_DEBOUNCE_DELAY_MS, UrlParam
from viewstate.runtime.address_bar import AddressBar, AddressChange
from viewstate.runtime.channels.base import AddressChannel
from viewstate.runtime.scheduling import Debouncer, LoopScheduler, Scheduler

logger = logging.getLogger(__name__)

CommitListener = Callable[[str, str], None]


class SearchChannel(AddressChannel):
    """Debounced search text bound to the ``search`` parameter."""

    def __init__(
        self,
        address_bar: AddressBar,
        prefix: str = "",
        debounce_ms: int = SEARCH_DEBOUNCE_DELAY_MS,
        scheduler: Scheduler | None = None,
    ) -> None:
        super().__init__(address_bar, prefix)
        self.debounce_ms = debounce_ms
        self._immediate = self.committed
        self._debouncer = Debouncer(
            self._commit,
            delay_ms=debounce_ms,
            scheduler=scheduler or LoopScheduler(),
        )
        self._commit_listeners: list[CommitListener] = []
        self._unsubscribe: Callable[[], None] | None = None
        self.open()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def immediate(self) -> str:
        return self._immediate

    @property
    def committed(self) -> str:
        return self._read(UrlParam.SEARCH) or ""

    @property
    def is_pending(self) -> bool:
        return self._pending_value() != self.committed

    @property
    def has_search(self) -> bool:
        return bool(self.committed.strip())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(self, text: str) -> None:
        """Update the immediate value and restart the debounce window."""
        self._immediate = text
        self._debouncer()

    def clear(self) -> None:
        """Clear both values now, without waiting for the window."""
        self._debouncer.cancel()
        self._immediate = ""
        self._write_committed("")

    def flush(self) -> None:
        """Commit a pending value immediately (e.g. on Enter)."""
        self._debouncer.flush()

    def subscribe_commit(self, listener: CommitListener) -> Callable[[], None]:
        """Call ``listener(previous, committed)`` whenever the committed value changes."""
        self._commit_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._commit_listeners:
                self._commit_listeners.remove(listener)

        return unsubscribe

    def open(self) -> None:
        """Follow external address changes. No-op if already attached."""
        if self._unsubscribe is None:
            self._immediate = self.committed
            self._unsubscribe = self.address_bar.subscribe(self._on_address_change)

    def close(self) -> None:
        """Stop the pending timer and detach from the address bar."""
        self._debouncer.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _pending_value(self) -> str:
        # Whitespace-only input removes the parameter.
        return self._immediate if self._immediate.strip() else ""

    def _commit(self) -> None:
        self._write_committed(self._pending_value())

    def _write_committed(self, text: str) -> None:
        previous = self.committed
        if text == previous:
            return
        self._write(UrlParam.SEARCH, text or None)
        logger.debug("Search committed %r -> %r", previous, text)
        for listener in list(self._commit_listeners):
            listener(previous, text)

    def _on_address_change(self, change: AddressChange) -> None:
        # Back/forward or a pasted URL: the address bar wins over typing.
        if change.external and self.param(UrlParam.SEARCH) in change.keys:
            self._debouncer.cancel()
            self._immediate = self.committed
