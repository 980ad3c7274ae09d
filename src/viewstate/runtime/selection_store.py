"""
Row selection store.

Transient, in-memory selection for one view. Two policy knobs are fixed at
creation: ``multi_select`` (false means at most one row is ever selected)
and ``max_selections`` (0 means unlimited). A mutation that would break
either is trimmed or ignored, never raised.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any

from viewstate.core.config import DEFAULT_MAX_SELECTIONS, DEFAULT_MULTI_ROW_SELECTION
from viewstate.core.errors import make_configuration_error
from viewstate.runtime.registry import StoreRegistry
from viewstate.specs.state import SelectionState

logger = logging.getLogger(__name__)

SelectionListener = Callable[[SelectionState], None]


class SelectionStore:
    """Selected row ids for one view."""

    def __init__(
        self,
        view_id: str,
        *,
        multi_select: bool = DEFAULT_MULTI_ROW_SELECTION,
        max_selections: int = DEFAULT_MAX_SELECTIONS,
    ) -> None:
        if not view_id:
            raise make_configuration_error("Selection store needs a non-empty view id")
        if max_selections < 0:
            raise make_configuration_error(
                f"max_selections must be >= 0, got {max_selections}", view_id
            )
        self.view_id = view_id
        self.multi_select = multi_select
        self.max_selections = max_selections
        self._selection: SelectionState = {}
        self._lock = threading.RLock()
        self._listeners: list[SelectionListener] = []

    @property
    def selection(self) -> SelectionState:
        return dict(self._selection)

    def _cap(self, ids: list[str]) -> list[str]:
        return ids[: self.max_selections] if self.max_selections > 0 else ids

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def toggle_row(self, row_id: str) -> None:
        """Select or deselect one row.

        In single mode selecting replaces the current selection. In multi
        mode a full selection ignores further selects.
        """
        with self._lock:
            selection = dict(self._selection)
            if selection.get(row_id):
                del selection[row_id]
            elif not self.multi_select:
                selection = {row_id: True}
            elif self.max_selections > 0 and len(selection) >= self.max_selections:
                logger.debug(
                    "Selection limit %d reached for %r, ignoring %r",
                    self.max_selections,
                    self.view_id,
                    row_id,
                )
                return
            else:
                selection[row_id] = True
            self._replace(selection)

    def toggle_all(self, row_ids: Iterable[str]) -> None:
        """Deselect ``row_ids`` if all are selected, otherwise select them.

        Selecting adds to the existing selection up to ``max_selections``.
        In single mode only the first id is selected.
        """
        ids = list(dict.fromkeys(row_ids))
        with self._lock:
            selection = dict(self._selection)
            if ids and all(selection.get(i) for i in ids):
                for i in ids:
                    selection.pop(i, None)
            elif not self.multi_select:
                selection = {ids[0]: True} if ids else {}
            else:
                for i in ids:
                    if i in selection:
                        continue
                    if self.max_selections > 0 and len(selection) >= self.max_selections:
                        break
                    selection[i] = True
            self._replace(selection)

    def select_rows(self, row_ids: Iterable[str]) -> None:
        """Replace the selection with ``row_ids``.

        Single mode keeps the last id; multi mode keeps the first
        ``max_selections`` ids.
        """
        ids = list(dict.fromkeys(row_ids))
        with self._lock:
            if not self.multi_select:
                self._replace({ids[-1]: True} if ids else {})
            else:
                self._replace({i: True for i in self._cap(ids)})

    def deselect_rows(self, row_ids: Iterable[str]) -> None:
        with self._lock:
            selection = dict(self._selection)
            for i in row_ids:
                selection.pop(i, None)
            self._replace(selection)

    def clear_selection(self) -> None:
        with self._lock:
            self._replace({})

    # ------------------------------------------------------------------
    # Derived
    # ------------------------------------------------------------------

    def get_selected_ids(self) -> list[str]:
        return [i for i, selected in self._selection.items() if selected]

    def get_selected_count(self) -> int:
        return len(self.get_selected_ids())

    def is_row_selected(self, row_id: str) -> bool:
        return bool(self._selection.get(row_id))

    def are_all_selected(self, row_ids: Iterable[str]) -> bool:
        ids = list(row_ids)
        return bool(ids) and all(self._selection.get(i) for i in ids)

    def are_some_selected(self, row_ids: Iterable[str]) -> bool:
        """True when some, but not all, of ``row_ids`` are selected."""
        ids = list(row_ids)
        selected = sum(1 for i in ids if self._selection.get(i))
        return 0 < selected < len(ids)

    def subscribe(self, listener: SelectionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _replace(self, selection: SelectionState) -> None:
        if selection == self._selection:
            return
        self._selection = selection
        snapshot = dict(selection)
        for listener in list(self._listeners):
            listener(snapshot)


selection_stores: StoreRegistry[SelectionStore] = StoreRegistry("selection")


def get_selection_store(
    view_id: str,
    *,
    registry: StoreRegistry[SelectionStore] | None = None,
    **options: Any,
) -> SelectionStore:
    """Get (or create) the selection store for a view."""
    target = registry if registry is not None else selection_stores
    return target.get_or_create(view_id, lambda: SelectionStore(view_id, **options))


def clear_selection_stores() -> None:
    selection_stores.clear()
