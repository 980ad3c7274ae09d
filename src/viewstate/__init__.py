"""
viewstate - tabular view-state orchestration.

Keeps sorting, pagination, search and filters in the address bar, column
preferences in durable storage and row selection in memory, and turns all
of it into backend query parameters for a table or card grid.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from viewstate.core.errors import ConfigurationError, DataSourceError, ViewStateError
from viewstate.runtime import (
    GridOrchestrator,
    HttpDataSource,
    MemoryAddressBar,
    TableOrchestrator,
    ViewOrchestrator,
    build_query_params,
)

try:
    __version__ = version("viewstate")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "__version__",
    "ViewStateError",
    "ConfigurationError",
    "DataSourceError",
    "MemoryAddressBar",
    "HttpDataSource",
    "ViewOrchestrator",
    "TableOrchestrator",
    "GridOrchestrator",
    "build_query_params",
]
