"""Domain events emitted after every successful operation."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dismissible.context import RequestContext
    from dismissible.item import DismissibleItem

logger = logging.getLogger(__name__)


class DismissibleEvents:
    """Event names."""

    ITEM_CREATED = "dismissible.item.created"
    ITEM_RETRIEVED = "dismissible.item.retrieved"
    ITEM_DISMISSED = "dismissible.item.dismissed"
    ITEM_RESTORED = "dismissible.item.restored"

    ALL = (ITEM_CREATED, ITEM_RETRIEVED, ITEM_DISMISSED, ITEM_RESTORED)


@dataclass(frozen=True)
class ItemEvent:
    id: str
    item: DismissibleItem
    user_id: str
    context: RequestContext | None = None


class ItemCreatedEvent(ItemEvent):
    pass


class ItemRetrievedEvent(ItemEvent):
    pass


@dataclass(frozen=True)
class ItemTransitionEvent(ItemEvent):
    """Carries the record as it was before the transition."""

    previous_item: DismissibleItem | None = None


class ItemDismissedEvent(ItemTransitionEvent):
    pass


class ItemRestoredEvent(ItemTransitionEvent):
    pass


Listener = Callable[[Any], Any]


class EventEmitter:
    """In-process, fire-and-forget event bus.

    Listeners run in registration order.  :meth:`emit` never raises: a
    listener exception is logged and the next listener still runs.
    Coroutine listeners are scheduled on the running loop and not awaited;
    use :meth:`drain` to wait for them.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._pending: set[asyncio.Task[Any]] = set()

    def on(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def off(self, event: str, listener: Listener) -> None:
        """Remove *listener*; unknown listeners are ignored."""
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, payload: Any) -> None:
        for listener in list(self._listeners.get(event, ())):
            try:
                result = listener(payload)
            except Exception:
                logger.exception("Event listener failed event=%s", event)
                continue

            if asyncio.iscoroutine(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._make_done_callback(event))

    def _make_done_callback(self, event: str) -> Callable[[asyncio.Task[Any]], None]:
        def done(task: asyncio.Task[Any]) -> None:
            self._pending.discard(task)
            if task.cancelled():
                return
            exc = task.exception()
            if exc is not None:
                logger.error("Event listener failed event=%s", event, exc_info=exc)

        return done

    async def drain(self) -> None:
        """Wait until every scheduled coroutine listener has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
