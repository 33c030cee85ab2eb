"""InMemoryItemStore — zero-config, dict-backed storage for development and testing."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dismissible.stores.base import ItemStore

if TYPE_CHECKING:
    from dismissible.item import DismissibleItem

logger = logging.getLogger(__name__)


class InMemoryItemStore(ItemStore):
    """In-memory store using a flat dict.  Data is lost on process exit."""

    def __init__(self) -> None:
        self._data: dict[str, DismissibleItem] = {}

    @staticmethod
    def _key(user_id: str, item_id: str) -> str:
        return f"{user_id}:{item_id}"

    async def get(self, user_id: str, item_id: str) -> DismissibleItem | None:
        item = self._data.get(self._key(user_id, item_id))
        logger.debug("Storage %s user_id=%s item_id=%s", "hit" if item else "miss", user_id, item_id)
        return item

    async def create(self, item: DismissibleItem) -> DismissibleItem:
        logger.debug("Storage create user_id=%s item_id=%s", item.user_id, item.id)
        self._data[self._key(item.user_id, item.id)] = item
        return item

    async def update(self, item: DismissibleItem) -> DismissibleItem:
        logger.debug("Storage update user_id=%s item_id=%s", item.user_id, item.id)
        self._data[self._key(item.user_id, item.id)] = item
        return item

    def clear(self) -> None:
        self._data.clear()

    @property
    def size(self) -> int:
        return len(self._data)
