"""Return values of the core engine and the service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dismissible.item import DismissibleItem


@dataclass(frozen=True)
class GetOrCreateResponse:
    item: DismissibleItem
    created: bool

    def to_dict(self) -> dict[str, Any]:
        return {"item": self.item.to_dict(), "created": self.created}


@dataclass(frozen=True)
class BatchGetOrCreateResponse:
    """``items`` follows the requested order; the other two lists are subsets."""

    items: list[DismissibleItem] = field(default_factory=list)
    retrieved_items: list[DismissibleItem] = field(default_factory=list)
    created_items: list[DismissibleItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [i.to_dict() for i in self.items],
            "retrieved_items": [i.to_dict() for i in self.retrieved_items],
            "created_items": [i.to_dict() for i in self.created_items],
        }


@dataclass(frozen=True)
class TransitionResponse:
    """Result of a state change: the new record and the record as read."""

    item: DismissibleItem
    previous_item: DismissibleItem

    def to_dict(self) -> dict[str, Any]:
        return {"item": self.item.to_dict(), "previous_item": self.previous_item.to_dict()}


class DismissResponse(TransitionResponse):
    pass


class RestoreResponse(TransitionResponse):
    pass
