"""
viewstate runtime.

This module provides:
- Address bar abstraction with an in-memory implementation
- Address-state channels (sorting, pagination, search, filters)
- Column preference and row selection stores with a per-view registry
- Query parameter builder
- Data sources (httpx adapter) and the keyed query cache
- Table and grid orchestrators

Example usage:
    >>> from viewstate.runtime import MemoryAddressBar, TableOrchestrator
    >>>
    >>> view = TableOrchestrator("orders", "/orders", source, address_bar=MemoryAddressBar())
    >>> view.start()
"""

from viewstate.runtime.address_bar import AddressBar, AddressChange, MemoryAddressBar
from viewstate.runtime.channels import (
    FiltersChannel,
    PaginationChannel,
    SearchChannel,
    SortingChannel,
)
from viewstate.runtime.column_store import ColumnStore, clear_column_stores, get_column_store
from viewstate.runtime.data_source import (
    CallableDataSource,
    DataSource,
    HttpDataSource,
    parse_response,
)
from viewstate.runtime.orchestrator import (
    GridOrchestrator,
    TableOrchestrator,
    ViewActions,
    ViewOrchestrator,
    generate_page_buttons,
)
from viewstate.runtime.preference_storage import (
    FilePreferenceStorage,
    MemoryPreferenceStorage,
    PreferenceStorage,
)
from viewstate.runtime.query_builder import (
    QueryBuilder,
    build_query_params,
    build_query_url,
    clean_query_params,
    from_search_params_string,
    merge_query_params,
    to_search_params_string,
)
from viewstate.runtime.query_cache import QueryCache, QueryObserver
from viewstate.runtime.registry import StoreRegistry
from viewstate.runtime.scheduling import Debouncer, LoopScheduler, ManualScheduler, Scheduler
from viewstate.runtime.selection_store import (
    SelectionStore,
    clear_selection_stores,
    get_selection_store,
)

__all__ = [
    # Address bar
    "AddressBar",
    "AddressChange",
    "MemoryAddressBar",
    # Channels
    "SortingChannel",
    "PaginationChannel",
    "SearchChannel",
    "FiltersChannel",
    # Stores
    "ColumnStore",
    "get_column_store",
    "clear_column_stores",
    "SelectionStore",
    "get_selection_store",
    "clear_selection_stores",
    "StoreRegistry",
    "PreferenceStorage",
    "MemoryPreferenceStorage",
    "FilePreferenceStorage",
    # Query
    "QueryBuilder",
    "build_query_params",
    "build_query_url",
    "clean_query_params",
    "merge_query_params",
    "to_search_params_string",
    "from_search_params_string",
    "DataSource",
    "CallableDataSource",
    "HttpDataSource",
    "parse_response",
    "QueryCache",
    "QueryObserver",
    # Scheduling
    "Scheduler",
    "LoopScheduler",
    "ManualScheduler",
    "Debouncer",
    # Orchestrators
    "ViewOrchestrator",
    "TableOrchestrator",
    "GridOrchestrator",
    "ViewActions",
    "generate_page_buttons",
]
