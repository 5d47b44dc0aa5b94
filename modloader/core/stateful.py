"""
Stateful Items - Tri-state store for in-flight module work.

Each name occupies at most one record tagged with one of three states:
- LOADING: the fetch for the name is in flight (item is an asyncio future)
- PENDING: the meta is known but its dependencies are not resolved yet
- LOADED: the meta went through the whole pipeline and can be compiled

The store does not validate transitions. Callers check the current state
before moving a name, and moving is remove-then-set.
"""

from enum import Enum
from typing import Any


class ItemState(Enum):
    """State tags for stored items."""

    LOADING = "loading"
    PENDING = "pending"
    LOADED = "loaded"


class StatefulItems:
    """
    Keyed container of (state, item) records.

    Example:
        items = StatefulItems()
        items.set_item(ItemState.PENDING, "a", meta)
        items.get_state("a")  # ItemState.PENDING
    """

    def __init__(self):
        # name -> (state, item)
        self._items: dict[str, tuple[ItemState, Any]] = {}

    def has_item(self, name: str) -> bool:
        """Check if the name is stored in any state."""
        return name in self._items

    def has_item_with_state(self, state: ItemState, name: str) -> bool:
        """Check if the name is stored under the given state."""
        record = self._items.get(name)
        return record is not None and record[0] is state

    def get_item(self, state: ItemState | None, name: str) -> Any:
        """
        Get the item stored for a name under a state.

        Args:
            state: Expected state of the record
            name: Item name

        Returns:
            The item, or None if the name is missing or in another state
        """
        record = self._items.get(name)
        if record is None or record[0] is not state:
            return None
        return record[1]

    def set_item(self, state: ItemState, name: str, item: Any) -> Any:
        """Store an item under a state, replacing any previous record."""
        self._items[name] = (state, item)
        return item

    def remove_item(self, name: str) -> Any:
        """Remove a name and return its item, or None if it was not stored."""
        record = self._items.pop(name, None)
        return None if record is None else record[1]

    def get_state(self, name: str) -> ItemState | None:
        """Return the state currently holding the name."""
        record = self._items.get(name)
        return None if record is None else record[0]

    def names(self, state: ItemState | None = None) -> list[str]:
        """List stored names, optionally filtered by state."""
        if state is None:
            return list(self._items)
        return [name for name, (item_state, _) in self._items.items() if item_state is state]

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __len__(self) -> int:
        return len(self._items)
