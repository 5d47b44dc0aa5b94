"""
Tests for StatefulItems - Tri-state store of in-flight module work.

This test suite covers:
1. Storing and reading items per state
2. State transitions replacing the previous record
3. Removal and listing
"""

from modloader.core.stateful import ItemState, StatefulItems


class TestStatefulItems:
    """Test item storage by state."""

    def test_set_and_get_item(self):
        """An item is readable under the state it was stored with."""
        items = StatefulItems()
        meta = object()

        assert items.set_item(ItemState.LOADED, "a", meta) is meta
        assert items.get_item(ItemState.LOADED, "a") is meta
        assert items.has_item("a")
        assert items.has_item_with_state(ItemState.LOADED, "a")

    def test_get_item_in_other_state_returns_none(self):
        """Reading a name under the wrong state gives None."""
        items = StatefulItems()
        items.set_item(ItemState.PENDING, "a", "meta")

        assert items.get_item(ItemState.LOADED, "a") is None
        assert not items.has_item_with_state(ItemState.LOADING, "a")

    def test_missing_item(self):
        """Unknown names are absent from every state."""
        items = StatefulItems()

        assert not items.has_item("missing")
        assert items.get_item(ItemState.LOADED, "missing") is None
        assert items.get_state("missing") is None
        assert items.remove_item("missing") is None

    def test_name_occupies_one_state(self):
        """Setting a name under a new state moves it out of the old one."""
        items = StatefulItems()
        items.set_item(ItemState.LOADING, "a", "task")
        items.set_item(ItemState.LOADED, "a", "meta")

        assert items.get_state("a") is ItemState.LOADED
        assert not items.has_item_with_state(ItemState.LOADING, "a")
        assert len(items) == 1

    def test_remove_item(self):
        """Removing a name returns its item and forgets it."""
        items = StatefulItems()
        items.set_item(ItemState.LOADED, "a", "meta")

        assert items.remove_item("a") == "meta"
        assert "a" not in items
        assert len(items) == 0

    def test_names_by_state(self):
        """Names can be listed for one state or all of them."""
        items = StatefulItems()
        items.set_item(ItemState.LOADING, "a", 1)
        items.set_item(ItemState.PENDING, "b", 2)
        items.set_item(ItemState.LOADING, "c", 3)

        assert items.names(ItemState.LOADING) == ["a", "c"]
        assert items.names() == ["a", "b", "c"]
