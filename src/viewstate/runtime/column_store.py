"""
Column preference store.

Per-view display preferences (visibility, order, widths, pinning), kept in
memory and written through to a ``PreferenceStorage`` backend under
``datatable.{view_id}.columns``. Payloads are versioned; a payload written
by another version is passed through the store's ``migrate`` function before
use, and anything unreadable falls back to the defaults.

Usage:
    store = get_column_store("orders", default_order=["id", "name"])
    store.toggle_visibility("email")
    store.pin_left("id")
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from viewstate.core.config import (
    COLUMN_PREFERENCES_VERSION,
    DEFAULT_COLUMN_WIDTH,
    MAX_COLUMN_WIDTH,
    MIN_COLUMN_WIDTH,
    column_preferences_key,
    get_settings,
)
from viewstate.core.errors import make_configuration_error
from viewstate.runtime.preference_storage import (
    FilePreferenceStorage,
    MemoryPreferenceStorage,
    PreferenceStorage,
)
from viewstate.runtime.registry import StoreRegistry
from viewstate.specs.state import (
    ColumnPinning,
    ColumnPreferences,
    PersistedColumnPreferences,
)

logger = logging.getLogger(__name__)

Migration = Callable[[dict[str, Any], int], dict[str, Any]]
PreferencesListener = Callable[[ColumnPreferences], None]

# Stands in for browser local storage when no backend is configured.
_default_storage = MemoryPreferenceStorage()


def default_preference_storage() -> PreferenceStorage:
    """File storage when ``VIEWSTATE_PREFERENCES_DIR`` is set, else process memory."""
    directory = get_settings().preferences_dir
    if directory:
        return FilePreferenceStorage(directory)
    return _default_storage


def clamp_width(width: float) -> float:
    return max(MIN_COLUMN_WIDTH, min(MAX_COLUMN_WIDTH, width))


def _unique(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(ids))


def _normalize_pinning(pinning: ColumnPinning) -> ColumnPinning:
    """Drop duplicates; a column listed on both sides stays on the left."""
    left = _unique(list(pinning.left))
    right = [c for c in _unique(list(pinning.right)) if c not in left]
    return ColumnPinning(left=left, right=right)


class ColumnStore:
    """Durable column preferences for one view."""

    def __init__(
        self,
        view_id: str,
        *,
        persist: bool = True,
        storage: PreferenceStorage | None = None,
        default_visibility: Mapping[str, bool] | None = None,
        default_order: list[str] | None = None,
        default_sizing: Mapping[str, float] | None = None,
        default_pinning: ColumnPinning | None = None,
        version: int = COLUMN_PREFERENCES_VERSION,
        migrate: Migration | None = None,
    ) -> None:
        if not view_id:
            raise make_configuration_error("Column store needs a non-empty view id")
        self.view_id = view_id
        self.persist = persist
        self.version = version
        self.storage_key = column_preferences_key(view_id)
        self._storage = storage if storage is not None else default_preference_storage()
        self._migrate = migrate
        self.defaults = ColumnPreferences(
            visibility=dict(default_visibility or {}),
            order=_unique(list(default_order or [])),
            sizing={k: clamp_width(v) for k, v in (default_sizing or {}).items()},
            pinning=_normalize_pinning(default_pinning or ColumnPinning()),
        )
        self._state = self.defaults
        self._hydrated = not persist
        self._lock = threading.RLock()
        self._listeners: list[PreferencesListener] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def state(self) -> ColumnPreferences:
        return self._state

    @property
    def hydrated(self) -> bool:
        """False until durable storage has been read back once."""
        return self._hydrated

    @property
    def visibility(self) -> dict[str, bool]:
        return dict(self._state.visibility)

    @property
    def order(self) -> list[str]:
        return list(self._state.order)

    @property
    def sizing(self) -> dict[str, float]:
        return dict(self._state.sizing)

    @property
    def pinning(self) -> ColumnPinning:
        return self._state.pinning

    def is_visible(self, column_id: str) -> bool:
        return self._state.visibility.get(column_id, True)

    def get_size(self, column_id: str) -> float:
        return self._state.sizing.get(column_id, DEFAULT_COLUMN_WIDTH)

    def get_pin_side(self, column_id: str) -> str | None:
        if column_id in self._state.pinning.left:
            return "left"
        if column_id in self._state.pinning.right:
            return "right"
        return None

    def subscribe(self, listener: PreferencesListener) -> Callable[[], None]:
        """Call ``listener(preferences)`` after every mutation."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Hydration
    # ------------------------------------------------------------------

    def hydrate(self) -> ColumnPreferences:
        """Read preferences back from storage.

        Never raises: a missing, corrupt or unmigratable payload leaves the
        defaults in place. ``hydrated`` is true afterwards either way.
        """
        with self._lock:
            if self.persist:
                loaded = self._load()
                if loaded is not None:
                    self._state = loaded
            self._hydrated = True
            state = self._state
        self._notify(state)
        return state

    def _load(self) -> ColumnPreferences | None:
        raw = self._storage.get(self.storage_key)
        if raw is None:
            return None

        try:
            payload = json.loads(raw)
            if not isinstance(payload, dict):
                raise ValueError(f"expected an object, got {type(payload).__name__}")
            stored_version = payload.get("version", 0)
            if stored_version != self.version:
                if self._migrate is None:
                    logger.warning(
                        "Column preferences for %r are version %s (expected %s) "
                        "and no migration is configured; using defaults",
                        self.view_id,
                        stored_version,
                        self.version,
                    )
                    return None
                try:
                    payload = self._migrate(payload, stored_version)
                except Exception as exc:
                    logger.warning(
                        "Migrating column preferences for %r from version %s failed, "
                        "using defaults: %s",
                        self.view_id,
                        stored_version,
                        exc,
                    )
                    return None
                logger.info(
                    "Migrated column preferences for %r from version %s to %s",
                    self.view_id,
                    stored_version,
                    self.version,
                )
            persisted = PersistedColumnPreferences.model_validate(payload)
        except (ValueError, TypeError, KeyError, ValidationError) as exc:
            logger.warning(
                "Could not load column preferences for %r, using defaults: %s",
                self.view_id,
                exc,
            )
            return None

        return ColumnPreferences(
            visibility=persisted.visibility,
            order=_unique(persisted.order),
            sizing={k: clamp_width(v) for k, v in persisted.sizing.items()},
            pinning=_normalize_pinning(persisted.pinning),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def toggle_visibility(self, column_id: str) -> None:
        """Flip a column's visibility. Columns without an entry count as visible."""

        def apply(s: ColumnPreferences) -> dict[str, Any]:
            visibility = dict(s.visibility)
            visibility[column_id] = not visibility.get(column_id, True)
            return {"visibility": visibility}

        self._mutate(apply)

    def set_visibility(self, visibility: Mapping[str, bool]) -> None:
        self._mutate(lambda s: {"visibility": dict(visibility)})

    def set_order(self, order: list[str]) -> None:
        self._mutate(lambda s: {"order": _unique(list(order))})

    def move_column(self, from_index: int, to_index: int) -> None:
        """Move the column at ``from_index`` so it ends up at ``to_index``."""

        def apply(s: ColumnPreferences) -> dict[str, Any] | None:
            order = list(s.order)
            if not 0 <= from_index < len(order):
                return None
            column_id = order.pop(from_index)
            order.insert(max(0, to_index), column_id)
            return {"order": order}

        self._mutate(apply)

    def set_size(self, column_id: str, width: float) -> None:
        """Set a column width, clamped to the allowed range."""

        def apply(s: ColumnPreferences) -> dict[str, Any]:
            sizing = dict(s.sizing)
            sizing[column_id] = clamp_width(width)
            return {"sizing": sizing}

        self._mutate(apply)

    def set_sizing(self, sizing: Mapping[str, float]) -> None:
        self._mutate(lambda s: {"sizing": {k: clamp_width(v) for k, v in sizing.items()}})

    def pin_left(self, column_id: str) -> None:
        def apply(s: ColumnPreferences) -> dict[str, Any]:
            left = list(s.pinning.left)
            if column_id not in left:
                left.append(column_id)
            right = [c for c in s.pinning.right if c != column_id]
            return {"pinning": ColumnPinning(left=left, right=right)}

        self._mutate(apply)

    def pin_right(self, column_id: str) -> None:
        def apply(s: ColumnPreferences) -> dict[str, Any]:
            right = list(s.pinning.right)
            if column_id not in right:
                right.append(column_id)
            left = [c for c in s.pinning.left if c != column_id]
            return {"pinning": ColumnPinning(left=left, right=right)}

        self._mutate(apply)

    def unpin(self, column_id: str) -> None:
        self._mutate(
            lambda s: {
                "pinning": ColumnPinning(
                    left=[c for c in s.pinning.left if c != column_id],
                    right=[c for c in s.pinning.right if c != column_id],
                )
            }
        )

    def set_pinning(self, pinning: ColumnPinning) -> None:
        """Replace pinning. A column listed on both sides stays on the left."""
        normalized = _normalize_pinning(pinning)
        self._mutate(lambda s: {"pinning": normalized})

    def reset(self) -> None:
        """Restore the defaults given at construction."""
        self._mutate(lambda s: self.defaults.model_dump())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _mutate(self, apply: Callable[[ColumnPreferences], dict[str, Any] | None]) -> None:
        with self._lock:
            update = apply(self._state)
            if update is None:
                return
            if "pinning" in update and isinstance(update["pinning"], dict):
                update["pinning"] = ColumnPinning(**update["pinning"])
            self._state = self._state.model_copy(update=update)
            state = self._state
            self._save(state)
        self._notify(state)

    def _save(self, state: ColumnPreferences) -> None:
        if not self.persist:
            return
        payload = PersistedColumnPreferences(
            visibility=state.visibility,
            order=state.order,
            sizing=state.sizing,
            pinning=state.pinning,
            version=self.version,
        )
        try:
            self._storage.set(self.storage_key, payload.model_dump_json(by_alias=True))
        except OSError as exc:
            logger.warning("Could not persist column preferences for %r: %s", self.view_id, exc)

    def _notify(self, state: ColumnPreferences) -> None:
        for listener in list(self._listeners):
            listener(state)


column_stores: StoreRegistry[ColumnStore] = StoreRegistry("column")


def get_column_store(
    view_id: str,
    *,
    registry: StoreRegistry[ColumnStore] | None = None,
    **options: Any,
) -> ColumnStore:
    """
    Get (or create and hydrate) the column store for a view.

    Options only apply when the store is first created; see ``ColumnStore``.
    """
    target = registry if registry is not None else column_stores

    def build() -> ColumnStore:
        store = ColumnStore(view_id, **options)
        store.hydrate()
        return store

    return target.get_or_create(view_id, build)


def clear_column_stores() -> None:
    """Drop every registered column store (preferences stay in storage)."""
    column_stores.clear()
