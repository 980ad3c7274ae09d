"""Filters channel: ``filters=status:eq:active|role:in:admin,user``."""

from __future__ import annotations

from typing import Any

from viewstate.core.codec import deserialize_filters, serialize_filters
from viewstate.core.config import UrlParam
from viewstate.runtime.channels.base import AddressChannel
from viewstate.specs.state import FilterOperator, FilterState


class FiltersChannel(AddressChannel):
    """Column filters bound to the ``filters`` parameter, one per column."""

    @property
    def value(self) -> list[FilterState]:
        return deserialize_filters(self._read(UrlParam.FILTERS))

    @property
    def raw_value(self) -> str | None:
        return self._read(UrlParam.FILTERS)

    @property
    def active_count(self) -> int:
        return len(self.value)

    @property
    def has_filters(self) -> bool:
        return self.active_count > 0

    def set(self, filters: list[FilterState]) -> None:
        """Replace all filters. Empty removes the parameter.

        Repeated column ids collapse to their last entry.
        """
        deduped: dict[str, FilterState] = {}
        for f in filters:
            deduped.pop(f.id, None)
            deduped[f.id] = f
        self._write(UrlParam.FILTERS, serialize_filters(list(deduped.values())) or None)

    def set_filter(
        self,
        column_id: str,
        value: Any,
        operator: FilterOperator | str = FilterOperator.EQ,
    ) -> None:
        """Upsert the filter for ``column_id`` (replaces any existing one)."""
        remaining = [f for f in self.value if f.id != column_id]
        remaining.append(FilterState(id=column_id, value=value, operator=FilterOperator(operator)))
        self.set(remaining)

    def clear_filter(self, column_id: str) -> None:
        self.set([f for f in self.value if f.id != column_id])

    def clear_all(self) -> None:
        self._write(UrlParam.FILTERS, None)

    def get_filter(self, column_id: str) -> FilterState | None:
        return next((f for f in self.value if f.id == column_id), None)

    def is_filtered(self, column_id: str) -> bool:
        return self.get_filter(column_id) is not None
