"""DismissibleCore — the CRUD engine.

The only component that talks to the :class:`ItemStore`.  It enforces the
two-state invariant (active ⇄ dismissed) and knows nothing about hooks or
events.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dismissible._internal.clock import Clock, SystemClock
from dismissible.exceptions import (
    ItemAlreadyDismissedError,
    ItemNotDismissedError,
    ItemNotFoundError,
)
from dismissible.item import DismissibleItem
from dismissible.responses import (
    BatchGetOrCreateResponse,
    DismissResponse,
    GetOrCreateResponse,
    RestoreResponse,
)
from dismissible.validation import ItemValidator

if TYPE_CHECKING:
    from dismissible.stores.base import ItemStore

logger = logging.getLogger(__name__)


class DismissibleCore:
    """Pure item operations against a store, without side effects.

    Parameters:
        store:     Item persistence backend.
        validator: Checks every item before it is written.  Defaults to
                   :class:`ItemValidator`.
        clock:     Time source for ``created_at`` / ``dismissed_at``.
    """

    def __init__(
        self,
        store: ItemStore,
        *,
        validator: ItemValidator | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._validator = validator or ItemValidator()
        self._clock = clock or SystemClock()

    @property
    def store(self) -> ItemStore:
        return self._store

    # ── reads ────────────────────────────────────────────────

    async def get(self, item_id: str, user_id: str) -> DismissibleItem | None:
        logger.debug("Looking up item item_id=%s user_id=%s", item_id, user_id)
        return await self._store.get(user_id, item_id)

    async def get_many(self, item_ids: list[str], user_id: str) -> dict[str, DismissibleItem]:
        items = await self._store.get_many(user_id, item_ids)
        logger.debug(
            "Looked up items user_id=%s requested=%d found=%d",
            user_id,
            len(item_ids),
            len(items),
        )
        return items

    # ── creation ─────────────────────────────────────────────

    async def create(self, item_id: str, user_id: str) -> DismissibleItem:
        item = DismissibleItem(id=item_id, user_id=user_id, created_at=self._clock.now())
        self._validator.validate_or_raise(item)
        created = await self._store.create(item)
        logger.info("Created dismissible item item_id=%s user_id=%s", item_id, user_id)
        return created

    async def create_many(self, item_ids: list[str], user_id: str) -> list[DismissibleItem]:
        """Create several items sharing one ``created_at``.

        Every item is validated before the first write.
        """
        if not item_ids:
            return []

        now = self._clock.now()
        items = [DismissibleItem(id=i, user_id=user_id, created_at=now) for i in item_ids]
        for item in items:
            self._validator.validate_or_raise(item)

        created = await self._store.create_many(items)
        logger.info("Created dismissible items count=%d user_id=%s", len(created), user_id)
        return created

    async def get_or_create(self, item_id: str, user_id: str) -> GetOrCreateResponse:
        existing = await self.get(item_id, user_id)
        if existing is not None:
            return GetOrCreateResponse(item=existing, created=False)
        return GetOrCreateResponse(item=await self.create(item_id, user_id), created=True)

    async def batch_get_or_create(
        self,
        item_ids: list[str],
        user_id: str,
    ) -> BatchGetOrCreateResponse:
        unique_ids = list(dict.fromkeys(item_ids))
        existing = await self.get_many(unique_ids, user_id)
        retrieved = [existing[i] for i in unique_ids if i in existing]
        created = await self.create_many([i for i in unique_ids if i not in existing], user_id)
        return BatchGetOrCreateResponse(
            items=order_items(item_ids, retrieved + created),
            retrieved_items=retrieved,
            created_items=created,
        )

    # ── transitions ──────────────────────────────────────────

    async def dismiss(self, item_id: str, user_id: str) -> DismissResponse:
        """Mark an active item as dismissed.

        Raises:
            ItemNotFoundError: The item does not exist.
            ItemAlreadyDismissedError: The item is already dismissed.
            ItemValidationError: The dismissed item fails validation.
        """
        existing = await self._store.get(user_id, item_id)
        if existing is None:
            logger.warning("Cannot dismiss: item not found item_id=%s user_id=%s", item_id, user_id)
            raise ItemNotFoundError(item_id)
        if existing.is_dismissed:
            logger.warning(
                "Cannot dismiss: item already dismissed item_id=%s user_id=%s", item_id, user_id
            )
            raise ItemAlreadyDismissedError(item_id)

        previous = existing.clone()
        dismissed = existing.dismissed(self._clock.now())
        self._validator.validate_or_raise(dismissed)

        updated = await self._store.update(dismissed)
        logger.info("Item dismissed item_id=%s user_id=%s", item_id, user_id)
        return DismissResponse(item=updated, previous_item=previous)

    async def restore(self, item_id: str, user_id: str) -> RestoreResponse:
        """Bring a dismissed item back to the active state.

        Raises:
            ItemNotFoundError: The item does not exist.
            ItemNotDismissedError: The item is not dismissed.
            ItemValidationError: The restored item fails validation.
        """
        existing = await self._store.get(user_id, item_id)
        if existing is None:
            logger.warning("Cannot restore: item not found item_id=%s user_id=%s", item_id, user_id)
            raise ItemNotFoundError(item_id)
        if not existing.is_dismissed:
            logger.warning(
                "Cannot restore: item not dismissed item_id=%s user_id=%s", item_id, user_id
            )
            raise ItemNotDismissedError(item_id)

        previous = existing.clone()
        restored = existing.restored()
        self._validator.validate_or_raise(restored)

        updated = await self._store.update(restored)
        logger.info("Item restored item_id=%s user_id=%s", item_id, user_id)
        return RestoreResponse(item=updated, previous_item=previous)


def order_items(item_ids: list[str], items: list[DismissibleItem]) -> list[DismissibleItem]:
    """Arrange *items* in the order of *item_ids*.

    Every requested position gets an entry, so a repeated id yields the
    same item twice.  Items whose id is not in *item_ids* (a hook rewrote
    the ids) keep their relative order at the end.
    """
    by_id = {item.id: item for item in items}
    requested = set(item_ids)
    ordered = [by_id[i] for i in item_ids if i in by_id]
    return ordered + [item for item in items if item.id not in requested]
