"""
View-state specification types.

Defines the sort, pagination, filter, column preference and selection
shapes shared by the channels, stores, builder and orchestrator.
"""

from __future__ import annotations

import time
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Sorting
# =============================================================================


class SortState(BaseModel):
    """
    One sort key.

    Example:
        SortState(id="name", desc=False)  # name ascending
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Column id")
    desc: bool = Field(default=False, description="Sort descending")


SortSpec = list[SortState]

# =============================================================================
# Pagination
# =============================================================================


class PaginationState(BaseModel):
    """0-based pagination, as the engine sees it internally."""

    model_config = ConfigDict(frozen=True)

    page_index: int = Field(default=0, ge=0, description="0-based page index")
    page_size: int = Field(gt=0, description="Items per page")


# =============================================================================
# Filters
# =============================================================================


class FilterOperator(StrEnum):
    """Supported column filter operators (wire spelling)."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    IN = "in"
    NOT_IN = "notIn"
    BETWEEN = "between"

    @property
    def takes_list(self) -> bool:
        """True for operators whose value is a list."""
        return self in LIST_OPERATORS


LIST_OPERATORS = frozenset({FilterOperator.IN, FilterOperator.NOT_IN})


class FilterState(BaseModel):
    """
    One active column filter.

    Example:
        FilterState(id="status", value="active")
        FilterState(id="role", operator=FilterOperator.IN, value=["admin", "user"])
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Column id")
    value: Any = Field(description="Scalar, or list for in/notIn")
    operator: FilterOperator = FilterOperator.EQ


FilterSpec = list[FilterState]

# =============================================================================
# Column preferences
# =============================================================================


class ColumnPinning(BaseModel):
    """Columns pinned to either edge. An id appears on at most one side."""

    model_config = ConfigDict(frozen=True)

    left: list[str] = Field(default_factory=list)
    right: list[str] = Field(default_factory=list)


class ColumnPreferences(BaseModel):
    """Per-view display preferences."""

    model_config = ConfigDict(frozen=True)

    visibility: dict[str, bool] = Field(default_factory=dict)
    order: list[str] = Field(default_factory=list)
    sizing: dict[str, float] = Field(default_factory=dict)
    pinning: ColumnPinning = Field(default_factory=ColumnPinning)


class PersistedColumnPreferences(ColumnPreferences):
    """Durable payload shape written to preference storage."""

    version: int = Field(default=1, description="Schema version of the payload")
    updated_at: int = Field(
        default_factory=lambda: int(time.time() * 1000),
        alias="updatedAt",
        description="Epoch milliseconds of the last write",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)


# =============================================================================
# Selection
# =============================================================================

# Only True entries are meaningful; absence means not selected.
SelectionState = dict[str, bool]
