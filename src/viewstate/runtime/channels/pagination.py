"""
Pagination channel: ``page=3&pageSize=25``.

The engine works with 0-based page indexes; the address bar and the backend
use 1-based page numbers. The conversion happens here and nowhere else.
Default values (page 1, the default page size) are removed from the address
bar rather than written, to keep shared URLs short.
"""

from __future__ import annotations

from viewstate.core.config import DEFAULT_PAGE_SIZE, UrlParam
from viewstate.core.errors import ConfigurationError
from viewstate.runtime.address_bar import AddressBar
from viewstate.runtime.channels.base import AddressChannel
from viewstate.specs.state import PaginationState


def to_address_page(page_index: int) -> int:
    """0-based page index -> 1-based address page number."""
    return max(0, page_index) + 1


def from_address_page(page: int) -> int:
    """1-based address page number -> 0-based page index."""
    return max(1, page) - 1


def _parse_positive_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if value > 0 else None


class PaginationChannel(AddressChannel):
    """0-based ``PaginationState`` bound to the ``page`` and ``pageSize`` parameters."""

    def __init__(
        self,
        address_bar: AddressBar,
        prefix: str = "",
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if default_page_size <= 0:
            raise ConfigurationError(f"default_page_size must be > 0, got {default_page_size}")
        super().__init__(address_bar, prefix)
        self.default_page_size = default_page_size

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def raw_page(self) -> int:
        """1-based page number as stored in the address bar (1 when absent or invalid)."""
        return _parse_positive_int(self._read(UrlParam.PAGE)) or 1

    @property
    def raw_page_size(self) -> int:
        return _parse_positive_int(self._read(UrlParam.PAGE_SIZE)) or self.default_page_size

    @property
    def value(self) -> PaginationState:
        return PaginationState(
            page_index=from_address_page(self.raw_page),
            page_size=self.raw_page_size,
        )

    @property
    def can_previous_page(self) -> bool:
        return self.value.page_index > 0

    def can_next_page(self, total_pages: int) -> bool:
        return self.value.page_index < total_pages - 1

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _page_param(self, page: int) -> str | None:
        return None if page <= 1 else str(page)

    def _size_param(self, size: int) -> str | None:
        return None if size == self.default_page_size else str(size)

    def set(self, pagination: PaginationState) -> None:
        """Write both page and page size in one address update."""
        self._write_many(
            {
                UrlParam.PAGE: self._page_param(to_address_page(pagination.page_index)),
                UrlParam.PAGE_SIZE: self._size_param(pagination.page_size),
            }
        )

    def set_page(self, page_index: int) -> None:
        self._write(UrlParam.PAGE, self._page_param(to_address_page(page_index)))

    def set_page_size(self, size: int) -> None:
        """Change the page size. Always returns to the first page."""
        if size <= 0:
            return
        self._write_many({UrlParam.PAGE_SIZE: self._size_param(size), UrlParam.PAGE: None})

    def next_page(self) -> None:
        self._write(UrlParam.PAGE, self._page_param(self.raw_page + 1))

    def previous_page(self) -> None:
        self._write(UrlParam.PAGE, self._page_param(self.raw_page - 1))

    def first_page(self) -> None:
        self._write(UrlParam.PAGE, None)

    def last_page(self, total_pages: int) -> None:
        self._write(UrlParam.PAGE, self._page_param(total_pages))

    def reset(self) -> None:
        """Back to page 1 at the default page size."""
        self._write_many({UrlParam.PAGE: None, UrlParam.PAGE_SIZE: None})
