"""
Address-state channels.

Four independent state slices, each bound to address-bar parameters
(optionally namespaced with a prefix so several views can share a page):

- SortingChannel: ``sort``
- PaginationChannel: ``page``, ``pageSize``
- SearchChannel: ``search`` (debounced)
- FiltersChannel: ``filters``
"""

from viewstate.runtime.channels.base import AddressChannel
from viewstate.runtime.channels.filters import FiltersChannel
from viewstate.runtime.channels.pagination import (
    PaginationChannel,
    from_address_page,
    to_address_page,
)
from viewstate.runtime.channels.search import SearchChannel
from viewstate.runtime.channels.sorting import SortingChannel

__all__ = [
    "AddressChannel",
    "SortingChannel",
    "PaginationChannel",
    "SearchChannel",
    "FiltersChannel",
    "to_address_page",
    "from_address_page",
]
