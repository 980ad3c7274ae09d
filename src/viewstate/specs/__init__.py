"""
viewstate specifications.

Pydantic models describing the engine's data: sort/filter/pagination
state, column preferences, the data source contract and the published
query/view snapshots.
"""

from viewstate.specs.query import (
    Envelope,
    FetchResult,
    PageButton,
    PaginationEnvelope,
    PaginationInfo,
    PaginationMeta,
    QueryState,
    ViewState,
)
from viewstate.specs.state import (
    LIST_OPERATORS,
    ColumnPinning,
    ColumnPreferences,
    FilterOperator,
    FilterSpec,
    FilterState,
    PaginationState,
    PersistedColumnPreferences,
    SelectionState,
    SortSpec,
    SortState,
)

__all__ = [
    # State
    "SortState",
    "SortSpec",
    "PaginationState",
    "FilterOperator",
    "FilterState",
    "FilterSpec",
    "LIST_OPERATORS",
    "ColumnPinning",
    "ColumnPreferences",
    "PersistedColumnPreferences",
    "SelectionState",
    # Query
    "Envelope",
    "FetchResult",
    "PaginationEnvelope",
    "PaginationMeta",
    "PaginationInfo",
    "PageButton",
    "QueryState",
    "ViewState",
]
