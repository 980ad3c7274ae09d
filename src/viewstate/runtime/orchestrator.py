"""
View orchestrator.

Wires the address-state channels, the column and selection stores, the query
builder and a data source into one object a renderer can consume: resolved
state, actions, the current page of items and pagination metadata.

Lifecycle:
    orchestrator = TableOrchestrator(
        view_id="orders",
        endpoint="/orders",
        data_source=HttpDataSource("https://api.example.com"),
        address_bar=MemoryAddressBar("page=2"),
    )
    orchestrator.start()          # subscribe + first fetch (needs a running loop)
    await orchestrator.settle()   # wait for in-flight fetches
    orchestrator.items
    orchestrator.actions.toggle_sort("name")
    orchestrator.close()

Address-bar writes are coalesced: several writes in one loop iteration (a
search commit followed by its page reset, say) produce a single fetch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from viewstate.core.codec import generate_cache_key
from viewstate.core.config import (
    DEFAULT_GRID_PAGE_SIZE,
    DEFAULT_GRID_PAGE_SIZE_OPTIONS,
    DEFAULT_MAX_SELECTIONS,
    DEFAULT_MULTI_ROW_SELECTION,
    DEFAULT_PAGE_SIZE,
    DEFAULT_PAGE_SIZE_OPTIONS,
    MAX_VISIBLE_PAGES,
    UrlParam,
    get_settings,
)
from viewstate.core.errors import make_configuration_error
from viewstate.core.logging import get_logger, log_with_context
from viewstate.runtime.address_bar import AddressBar, AddressChange, MemoryAddressBar
from viewstate.runtime.channels import (
    FiltersChannel,
    PaginationChannel,
    SearchChannel,
    SortingChannel,
)
from viewstate.runtime.column_store import ColumnStore, get_column_store
from viewstate.runtime.data_source import DataSource
from viewstate.runtime.preference_storage import PreferenceStorage
from viewstate.runtime.query_builder import QueryParams, build_query_params
from viewstate.runtime.query_cache import QueryCache, QueryObserver
from viewstate.runtime.registry import StoreRegistry
from viewstate.runtime.scheduling import Scheduler
from viewstate.runtime.selection_store import SelectionStore, get_selection_store
from viewstate.specs.query import (
    FetchResult,
    PageButton,
    PaginationInfo,
    PaginationMeta,
    QueryState,
    ViewState,
)
from viewstate.specs.state import ColumnPinning, FilterOperator, FilterState, SortState

logger = get_logger("orchestrator")

ChangeListener = Callable[[], None]


def default_row_id(item: Any) -> str:
    """``item["id"]`` for mappings, ``item.id`` otherwise."""
    if isinstance(item, Mapping):
        return str(item["id"])
    return str(item.id)


# =============================================================================
# Pagination helpers
# =============================================================================


def compute_pagination_meta(result: FetchResult | None, page_size: int) -> PaginationMeta:
    """Pagination metadata from a fetch result (zeroed before the first one)."""
    if result is None or result.envelope.pagination is None:
        return PaginationMeta(page_size=page_size)
    envelope = result.envelope.pagination
    return PaginationMeta(
        total=envelope.total,
        total_pages=envelope.total_pages,
        current_page=envelope.current_page,
        page_size=envelope.limit or page_size,
        has_next_page=envelope.has_next_page,
        has_previous_page=envelope.has_previous_page,
    )


def compute_pagination_info(meta: PaginationMeta, item_count: int) -> PaginationInfo:
    """Display summary for "Showing 11-20 of 95"."""
    if item_count > 0:
        start = (meta.current_page - 1) * meta.page_size + 1
        end = start + item_count - 1
    else:
        start = end = 0
    return PaginationInfo(
        current_page=meta.current_page,
        total_pages=meta.total_pages,
        page_size=meta.page_size,
        total=meta.total,
        start_index=start,
        end_index=end,
        current_page_size=item_count,
        has_next_page=meta.has_next_page,
        has_previous_page=meta.has_previous_page,
        is_first_page=meta.current_page <= 1,
        is_last_page=meta.current_page >= meta.total_pages,
    )


def generate_page_buttons(
    current_page: int,
    total_pages: int,
    max_visible: int = MAX_VISIBLE_PAGES,
) -> list[PageButton]:
    """
    Windowed page navigator: first, last, and pages around the current one.

    Example (10 pages, current 5, max_visible 5):
        1 ... 3 4 5 6 7 ... 10
    """
    if total_pages <= 0:
        return []

    pages: list[int | None] = []
    if total_pages <= max_visible:
        pages = list(range(1, total_pages + 1))
    else:
        half = max_visible // 2
        start = max(2, current_page - half)
        end = min(total_pages - 1, current_page + half)
        if current_page <= half + 1:
            end = max_visible - 1
        if current_page >= total_pages - half:
            start = total_pages - max_visible + 2

        pages.append(1)
        if start > 2:
            pages.append(None)
        pages.extend(range(start, end + 1))
        if end < total_pages - 1:
            pages.append(None)
        pages.append(total_pages)

    return [
        PageButton(page=0, is_ellipsis=True, label="...")
        if page is None
        else PageButton(page=page, is_current=page == current_page, label=str(page))
        for page in pages
    ]


# =============================================================================
# Actions
# =============================================================================


class ViewActions:
    """Every mutator a renderer may call, bound to one orchestrator."""

    def __init__(self, view: ViewOrchestrator) -> None:
        self._view = view

    # Sorting
    def set_sorting(self, sorting: list[SortState]) -> None:
        self._view.sorting_channel.set(sorting)

    def toggle_sort(self, column_id: str) -> None:
        self._view.sorting_channel.toggle(column_id)

    def clear_sort(self) -> None:
        self._view.sorting_channel.clear()

    # Pagination
    def set_page(self, page_index: int) -> None:
        self._view.pagination_channel.set_page(page_index)

    def set_page_size(self, size: int) -> None:
        self._view.pagination_channel.set_page_size(size)

    def next_page(self) -> None:
        self._view.pagination_channel.next_page()

    def previous_page(self) -> None:
        self._view.pagination_channel.previous_page()

    def first_page(self) -> None:
        self._view.pagination_channel.first_page()

    def last_page(self) -> None:
        self._view.pagination_channel.last_page(self._view.pagination.total_pages)

    def reset_pagination(self) -> None:
        self._view.pagination_channel.reset()

    # Search
    def set_search(self, text: str) -> None:
        self._view.search_channel.set(text)

    def clear_search(self) -> None:
        self._view.search_channel.clear()

    def flush_search(self) -> None:
        self._view.search_channel.flush()

    # Filters
    def set_filters(self, filters: list[FilterState]) -> None:
        self._view.filters_channel.set(filters)

    def set_filter(
        self,
        column_id: str,
        value: Any,
        operator: FilterOperator | str = FilterOperator.EQ,
    ) -> None:
        self._view.filters_channel.set_filter(column_id, value, operator)

    def clear_filter(self, column_id: str) -> None:
        self._view.filters_channel.clear_filter(column_id)

    def clear_filters(self) -> None:
        self._view.filters_channel.clear_all()

    # Columns
    def toggle_column_visibility(self, column_id: str) -> None:
        self._view.column_store.toggle_visibility(column_id)

    def set_column_visibility(self, visibility: Mapping[str, bool]) -> None:
        self._view.column_store.set_visibility(visibility)

    def set_column_order(self, order: list[str]) -> None:
        self._view.column_store.set_order(order)

    def move_column(self, from_index: int, to_index: int) -> None:
        self._view.column_store.move_column(from_index, to_index)

    def set_column_size(self, column_id: str, width: float) -> None:
        self._view.column_store.set_size(column_id, width)

    def set_column_sizing(self, sizing: Mapping[str, float]) -> None:
        self._view.column_store.set_sizing(sizing)

    def pin_column_left(self, column_id: str) -> None:
        self._view.column_store.pin_left(column_id)

    def pin_column_right(self, column_id: str) -> None:
        self._view.column_store.pin_right(column_id)

    def unpin_column(self, column_id: str) -> None:
        self._view.column_store.unpin(column_id)

    def set_column_pinning(self, pinning: ColumnPinning) -> None:
        self._view.column_store.set_pinning(pinning)

    def reset_columns(self) -> None:
        self._view.column_store.reset()

    # Selection
    def toggle_row_selection(self, row_id: str) -> None:
        self._view.selection_store.toggle_row(row_id)

    def toggle_all_rows_selection(self) -> None:
        """Toggle every row on the current page."""
        self._view.selection_store.toggle_all(self._view.row_ids)

    def select_rows(self, row_ids: Sequence[str]) -> None:
        self._view.selection_store.select_rows(row_ids)

    def deselect_rows(self, row_ids: Sequence[str]) -> None:
        self._view.selection_store.deselect_rows(row_ids)

    def set_row_selection(self, selection: Mapping[str, bool]) -> None:
        """Replace the selection from a ``{row_id: selected}`` map."""
        self._view.selection_store.select_rows([i for i, on in selection.items() if on])

    def clear_selection(self) -> None:
        self._view.selection_store.clear_selection()

    # Whole view
    def refetch(self) -> None:
        self._view.refetch()

    def reset_table(self) -> None:
        """Clear sorting, search, pagination and selection together."""
        self._view.search_channel.clear()
        self._view.address_bar.update(
            {
                self._view.sorting_channel.param(UrlParam.SORT): None,
                self._view.pagination_channel.param(UrlParam.PAGE): None,
                self._view.pagination_channel.param(UrlParam.PAGE_SIZE): None,
            }
        )
        self._view.selection_store.clear_selection()


# =============================================================================
# Orchestrators
# =============================================================================


class ViewOrchestrator:
    """
    Shared contract for table and grid views.

    Args:
        view_id: View identity; keys the column and selection stores
        endpoint: Backend endpoint passed to the data source
        data_source: Anything with ``async fetch(endpoint, params)``
        address_bar: Source of truth for sort/page/search/filters
            (a fresh ``MemoryAddressBar`` if omitted)
        default_page_size: Page size when the address bar has none
        state_prefix: Namespace for address parameters (``orders_page``)
        custom_params: Extra backend params, merged after derived ones
        derive_custom_params: ``filters -> params`` merged over ``custom_params``
        get_row_id: Row identity for selection (``item["id"]`` by default)
        enabled: When false, nothing is fetched
        scheduler: Timer source for the search debounce
        column_registry / selection_registry: Store arenas (process-wide by default)
        preference_storage: Column preference backend
        persist_columns: Write column preferences to storage
        multi_select / max_selections: Selection policy
        default_visibility / default_order / default_sizing / default_pinning:
            Column preference defaults
    """

    default_page_size: int = DEFAULT_PAGE_SIZE
    page_size_options: list[int] = DEFAULT_PAGE_SIZE_OPTIONS

    def __init__(
        self,
        view_id: str,
        endpoint: str,
        data_source: DataSource,
        *,
        address_bar: AddressBar | None = None,
        default_page_size: int | None = None,
        page_size_options: list[int] | None = None,
        state_prefix: str = "",
        custom_params: Mapping[str, Any] | None = None,
        derive_custom_params: Callable[[list[FilterState]], Mapping[str, Any]] | None = None,
        get_row_id: Callable[[Any], str] = default_row_id,
        enabled: bool = True,
        scheduler: Scheduler | None = None,
        search_debounce_ms: int | None = None,
        column_registry: StoreRegistry[ColumnStore] | None = None,
        selection_registry: StoreRegistry[SelectionStore] | None = None,
        query_cache: QueryCache | None = None,
        preference_storage: PreferenceStorage | None = None,
        persist_columns: bool = True,
        multi_select: bool = DEFAULT_MULTI_ROW_SELECTION,
        max_selections: int = DEFAULT_MAX_SELECTIONS,
        default_visibility: Mapping[str, bool] | None = None,
        default_order: list[str] | None = None,
        default_sizing: Mapping[str, float] | None = None,
        default_pinning: ColumnPinning | None = None,
    ) -> None:
        if not view_id:
            raise make_configuration_error("Orchestrator needs a non-empty view id")
        page_size = default_page_size if default_page_size is not None else self.default_page_size
        if page_size <= 0:
            raise make_configuration_error(
                f"default_page_size must be > 0, got {page_size}", view_id
            )
        if max_selections < 0:
            raise make_configuration_error(
                f"max_selections must be >= 0, got {max_selections}", view_id
            )

        self.view_id = view_id
        self.endpoint = endpoint
        self.data_source = data_source
        self.address_bar: AddressBar = address_bar if address_bar is not None else MemoryAddressBar()
        self.default_page_size = page_size
        if page_size_options is not None:
            self.page_size_options = list(page_size_options)
        self.state_prefix = state_prefix
        self.custom_params = dict(custom_params or {})
        self.derive_custom_params = derive_custom_params
        self.get_row_id = get_row_id
        self.enabled = enabled

        debounce_ms = (
            search_debounce_ms
            if search_debounce_ms is not None
            else get_settings().search_debounce_ms
        )
        self.sorting_channel = SortingChannel(self.address_bar, state_prefix)
        self.pagination_channel = PaginationChannel(self.address_bar, state_prefix, page_size)
        self.search_channel = SearchChannel(
            self.address_bar, state_prefix, debounce_ms=debounce_ms, scheduler=scheduler
        )
        self.filters_channel = FiltersChannel(self.address_bar, state_prefix)

        self.column_store = get_column_store(
            view_id,
            registry=column_registry,
            persist=persist_columns,
            storage=preference_storage,
            default_visibility=default_visibility,
            default_order=default_order,
            default_sizing=default_sizing,
            default_pinning=default_pinning,
        )
        self.selection_store = get_selection_store(
            view_id,
            registry=selection_registry,
            multi_select=multi_select,
            max_selections=max_selections,
        )

        self._observer = QueryObserver(
            self._fetch,
            cache=query_cache,
            on_change=self._emit,
            name=view_id,
        )
        self.actions = ViewActions(self)
        self._listeners: list[ChangeListener] = []
        self._unsubscribers: list[Callable[[], None]] = []
        self._sync_handle: asyncio.Handle | None = None
        self._started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to every state source and run the first fetch.

        Must be called from a running event loop.
        """
        if self._started:
            return
        self._started = True
        self.search_channel.open()
        self._unsubscribers = [
            self.address_bar.subscribe(self._on_address_change),
            self.search_channel.subscribe_commit(self._on_search_commit),
            self.column_store.subscribe(lambda _prefs: self._emit()),
            self.selection_store.subscribe(lambda _selection: self._emit()),
        ]
        logger.debug("Started view %r", self.view_id)
        self._sync_query()

    def close(self) -> None:
        """Detach from every source and cancel pending work."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        if self._sync_handle is not None:
            self._sync_handle.cancel()
            self._sync_handle = None
        self.search_channel.close()
        self._observer.close()
        self._started = False

    async def settle(self) -> None:
        """Apply pending address changes and wait for every in-flight fetch."""
        while True:
            if self._sync_handle is not None:
                self._sync_query()
            if not self._observer.in_flight:
                return
            await self._observer.settle()

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Call ``listener()`` whenever state, data or preferences change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def refetch(self) -> None:
        self._observer.refetch()

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    @property
    def query_params(self) -> QueryParams:
        filters = self.filters_channel.value
        extra = dict(self.custom_params)
        if self.derive_custom_params is not None:
            extra.update(self.derive_custom_params(filters))
        return build_query_params(
            sorting=self.sorting_channel.value,
            pagination=self.pagination_channel.value,
            search=self.search_channel.committed,
            filters=filters,
            custom_params=extra,
        )

    @property
    def query_key(self) -> tuple[str, str]:
        return generate_cache_key(self.view_id, self.query_params)

    @property
    def query(self) -> QueryState:
        return self._observer.state

    @property
    def items(self) -> list[Any]:
        result = self._observer.result
        return list(result.items) if result is not None else []

    @property
    def row_ids(self) -> list[str]:
        return [self.get_row_id(item) for item in self.items]

    # ------------------------------------------------------------------
    # Derived view state
    # ------------------------------------------------------------------

    @property
    def state(self) -> ViewState:
        search = self.search_channel
        return ViewState(
            sorting=self.sorting_channel.value,
            pagination=self.pagination_channel.value,
            search=search.immediate,
            committed_search=search.committed,
            is_searching=search.is_pending,
            has_search=search.has_search,
            filters=self.filters_channel.value,
            column_preferences=self.column_store.state,
            selection=self.selection_store.selection,
            selected_count=self.selection_store.get_selected_count(),
            selected_ids=self.selection_store.get_selected_ids(),
        )

    @property
    def pagination(self) -> PaginationMeta:
        return compute_pagination_meta(
            self._observer.result, self.pagination_channel.value.page_size
        )

    @property
    def pagination_info(self) -> PaginationInfo:
        return compute_pagination_info(self.pagination, len(self.items))

    def page_buttons(self, max_visible: int = MAX_VISIBLE_PAGES) -> list[PageButton]:
        meta = self.pagination
        return generate_page_buttons(meta.current_page, meta.total_pages, max_visible)

    @property
    def is_empty(self) -> bool:
        return not self.query.is_loading and not self.items

    @property
    def has_data(self) -> bool:
        return bool(self.items)

    @property
    def is_initial_loading(self) -> bool:
        return self.query.is_loading and not self.has_data

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _fetch(self, params: dict[str, Any]) -> FetchResult:
        try:
            return await self.data_source.fetch(self.endpoint, params)
        except Exception as exc:
            log_with_context(
                logger,
                logging.ERROR,
                f"Fetch failed for view {self.view_id!r}: {exc}",
                view_id=self.view_id,
                endpoint=self.endpoint,
                params=params,
            )
            raise

    def _on_address_change(self, change: AddressChange) -> None:
        if self._sync_handle is None:
            self._sync_handle = asyncio.get_running_loop().call_soon(self._sync_query)
        self._emit()

    def _on_search_commit(self, previous: str, committed: str) -> None:
        logger.debug("Search committed for %r, back to first page", self.view_id)
        self.pagination_channel.first_page()

    def _sync_query(self) -> None:
        if self._sync_handle is not None:
            self._sync_handle.cancel()
            self._sync_handle = None
        if not self._started or not self.enabled:
            return
        params = self.query_params
        self._observer.set_query(generate_cache_key(self.view_id, params), params)

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener()


class TableOrchestrator(ViewOrchestrator):
    """Orchestrator for column-based tables."""

    page_size_options = DEFAULT_PAGE_SIZE_OPTIONS

    def __init__(self, view_id: str, endpoint: str, data_source: DataSource, **options: Any):
        options.setdefault("default_page_size", get_settings().default_page_size)
        super().__init__(view_id, endpoint, data_source, **options)

    def visible_columns(self, columns: Sequence[str]) -> list[str]:
        """
        Resolve display order for ``columns``.

        Preference order first (unknown columns keep their given order after
        it), hidden columns dropped, pinned-left columns first and
        pinned-right columns last.
        """
        prefs = self.column_store.state
        known = set(columns)
        ordered = [c for c in prefs.order if c in known]
        ordered += [c for c in columns if c not in ordered]
        visible = [c for c in ordered if prefs.visibility.get(c, True)]

        left = [c for c in prefs.pinning.left if c in visible]
        right = [c for c in prefs.pinning.right if c in visible and c not in left]
        middle = [c for c in visible if c not in left and c not in right]
        return left + middle + right


class GridOrchestrator(ViewOrchestrator):
    """Orchestrator for card grids."""

    default_page_size = DEFAULT_GRID_PAGE_SIZE
    page_size_options = DEFAULT_GRID_PAGE_SIZE_OPTIONS
