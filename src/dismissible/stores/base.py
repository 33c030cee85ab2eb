"""ItemStore — persistence gateway for dismissible items."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dismissible.item import DismissibleItem


class ItemStore(ABC):
    """Abstract base for all item storage backends.

    Items are keyed by ``(user_id, item_id)``.  Implementations only need
    plain get/create/update; no transactional or compare-and-swap guarantee
    is expected by the core engine.
    """

    @abstractmethod
    async def get(self, user_id: str, item_id: str) -> DismissibleItem | None:
        """Return the stored item, or ``None`` if not found."""
        ...

    @abstractmethod
    async def create(self, item: DismissibleItem) -> DismissibleItem:
        """Persist a new item and return it."""
        ...

    @abstractmethod
    async def update(self, item: DismissibleItem) -> DismissibleItem:
        """Overwrite an existing item and return it."""
        ...

    async def get_many(self, user_id: str, item_ids: list[str]) -> dict[str, DismissibleItem]:
        """Return the found items keyed by item id.  Missing ids are omitted."""
        found: dict[str, DismissibleItem] = {}
        for item_id in item_ids:
            item = await self.get(user_id, item_id)
            if item is not None:
                found[item_id] = item
        return found

    async def create_many(self, items: list[DismissibleItem]) -> list[DismissibleItem]:
        """Persist several new items, returning them in the same order."""
        return [await self.create(item) for item in items]
