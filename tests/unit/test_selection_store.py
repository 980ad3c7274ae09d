"""Tests for the row selection store."""

import pytest

from viewstate.core.errors import ConfigurationError
from viewstate.runtime.selection_store import SelectionStore, get_selection_store


class TestToggleRow:
    """Tests for single-row toggling."""

    def test_toggle_selects_and_deselects(self) -> None:
        store = get_selection_store("orders")
        store.toggle_row("a")
        assert store.is_row_selected("a")
        store.toggle_row("a")
        assert not store.is_row_selected("a")
        assert store.selection == {}

    def test_single_mode_replaces(self) -> None:
        store = get_selection_store("orders", multi_select=False)
        store.toggle_row("a")
        store.toggle_row("b")
        assert store.get_selected_ids() == ["b"]

    def test_capacity_rejects_extra_select(self) -> None:
        store = get_selection_store("orders", max_selections=2)
        for row_id in ("a", "b", "c"):
            store.toggle_row(row_id)
        assert store.get_selected_ids() == ["a", "b"]

    def test_capacity_still_allows_deselect(self) -> None:
        store = get_selection_store("orders", max_selections=1)
        store.toggle_row("a")
        store.toggle_row("a")
        store.toggle_row("b")
        assert store.get_selected_ids() == ["b"]


class TestBulkSelection:
    """Tests for toggle_all, select_rows and deselect_rows."""

    def test_toggle_all_selects_then_deselects(self) -> None:
        store = get_selection_store("orders")
        store.toggle_all(["a", "b", "c"])
        assert store.are_all_selected(["a", "b", "c"])
        store.toggle_all(["a", "b", "c"])
        assert store.get_selected_count() == 0

    def test_toggle_all_keeps_other_selections(self) -> None:
        store = get_selection_store("orders")
        store.toggle_row("z")
        store.toggle_all(["a", "b"])
        assert set(store.get_selected_ids()) == {"z", "a", "b"}

    def test_toggle_all_respects_capacity(self) -> None:
        store = get_selection_store("orders", max_selections=3)
        store.toggle_row("z")
        store.toggle_row("y")
        store.toggle_all(["a", "b", "c"])
        assert store.get_selected_count() == 3
        assert store.get_selected_ids() == ["z", "y", "a"]

    def test_toggle_all_single_mode_selects_first(self) -> None:
        store = get_selection_store("orders", multi_select=False)
        store.toggle_all(["a", "b", "c"])
        assert store.get_selected_ids() == ["a"]

    def test_toggle_all_empty(self) -> None:
        store = get_selection_store("orders")
        store.toggle_row("a")
        store.toggle_all([])
        assert store.get_selected_ids() == ["a"]

    def test_select_rows_replaces(self) -> None:
        store = get_selection_store("orders")
        store.toggle_row("old")
        store.select_rows(["a", "b"])
        assert store.get_selected_ids() == ["a", "b"]

    def test_select_rows_capped(self) -> None:
        store = get_selection_store("orders", max_selections=2)
        store.select_rows(["a", "b", "c", "d"])
        assert store.get_selected_ids() == ["a", "b"]

    def test_select_rows_single_mode_keeps_last(self) -> None:
        store = get_selection_store("orders", multi_select=False)
        store.select_rows(["a", "b", "c"])
        assert store.get_selected_ids() == ["c"]

    def test_deselect_rows(self) -> None:
        store = get_selection_store("orders")
        store.select_rows(["a", "b", "c"])
        store.deselect_rows(["a", "c", "missing"])
        assert store.get_selected_ids() == ["b"]

    def test_clear_selection(self) -> None:
        store = get_selection_store("orders")
        store.select_rows(["a", "b"])
        store.clear_selection()
        assert store.get_selected_count() == 0


class TestDerived:
    """Tests for derived selection queries."""

    def test_are_all_selected_false_for_empty(self) -> None:
        store = get_selection_store("orders")
        assert not store.are_all_selected([])

    def test_are_some_selected(self) -> None:
        store = get_selection_store("orders")
        store.select_rows(["a"])
        assert store.are_some_selected(["a", "b"])
        assert not store.are_some_selected(["a"])
        assert not store.are_some_selected(["b", "c"])
        assert not store.are_some_selected([])

    def test_listeners_see_changes_only(self) -> None:
        store = get_selection_store("orders")
        seen: list[dict[str, bool]] = []
        store.subscribe(seen.append)

        store.toggle_row("a")
        store.deselect_rows(["missing"])

        assert seen == [{"a": True}]


class TestSelectionRegistry:
    """Tests for per-view selection registration."""

    def test_same_view_same_instance(self) -> None:
        assert get_selection_store("orders") is get_selection_store("orders", max_selections=5)

    def test_views_are_independent(self) -> None:
        get_selection_store("orders").toggle_row("1")
        assert get_selection_store("products").get_selected_count() == 0

    def test_negative_capacity_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            SelectionStore("orders", max_selections=-1)

    def test_empty_view_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            get_selection_store("")
