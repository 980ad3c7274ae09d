"""Sorting channel: ``sort=name:asc,createdAt:desc``."""

from __future__ import annotations

from typing import Literal

from viewstate.core.codec import deserialize_sorting, serialize_sorting
from viewstate.core.config import UrlParam
from viewstate.runtime.channels.base import AddressChannel
from viewstate.specs.state import SortState


class SortingChannel(AddressChannel):
    """Sort spec bound to the ``sort`` parameter."""

    @property
    def value(self) -> list[SortState]:
        return deserialize_sorting(self._read(UrlParam.SORT))

    @property
    def raw_value(self) -> str | None:
        return self._read(UrlParam.SORT)

    def set(self, sorting: list[SortState]) -> None:
        """Replace the sort spec. Empty removes the parameter."""
        self._write(UrlParam.SORT, serialize_sorting(sorting) if sorting else None)

    def toggle(self, column_id: str) -> None:
        """Cycle a column through none -> asc -> desc -> none.

        A column that is not the current sort replaces the whole spec,
        starting ascending.
        """
        current = next((s for s in self.value if s.id == column_id), None)
        if current is None:
            self.set([SortState(id=column_id, desc=False)])
        elif not current.desc:
            self.set([SortState(id=column_id, desc=True)])
        else:
            self.set([])

    def clear(self) -> None:
        self._write(UrlParam.SORT, None)

    def get_sort_direction(self, column_id: str) -> Literal["asc", "desc", False]:
        sort = next((s for s in self.value if s.id == column_id), None)
        if sort is None:
            return False
        return "desc" if sort.desc else "asc"

    def is_sorted(self, column_id: str) -> bool:
        return any(s.id == column_id for s in self.value)
