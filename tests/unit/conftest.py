"""Shared fixtures for viewstate unit tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from viewstate.runtime.address_bar import MemoryAddressBar
from viewstate.runtime.column_store import clear_column_stores
from viewstate.runtime.preference_storage import MemoryPreferenceStorage
from viewstate.runtime.scheduling import ManualScheduler
from viewstate.runtime.selection_store import clear_selection_stores


@pytest.fixture(autouse=True)
def _isolated_registries() -> Iterator[None]:
    """Every test starts with empty per-view store registries."""
    clear_column_stores()
    clear_selection_stores()
    yield
    clear_column_stores()
    clear_selection_stores()


@pytest.fixture
def address_bar() -> MemoryAddressBar:
    return MemoryAddressBar()


@pytest.fixture
def clock() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def storage() -> MemoryPreferenceStorage:
    return MemoryPreferenceStorage()
