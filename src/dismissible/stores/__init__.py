"""Storage backends for dismissible items."""

from dismissible.stores.base import ItemStore
from dismissible.stores.memory import InMemoryItemStore
from dismissible.stores.sqlite import SQLiteItemStore

__all__ = ["InMemoryItemStore", "ItemStore", "SQLiteItemStore"]
