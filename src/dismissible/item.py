"""DismissibleItem — the per-(user, item) record."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class DismissibleItem:
    """Immutable snapshot of one dismissible item.

    An item is *active* while ``dismissed_at`` is ``None`` and *dismissed*
    once it is set.  There is no other state.  Transitions never modify a
    record in place; they return a new one.

    Attributes:
        id:           Item identifier (e.g. ``"welcome-banner-v2"``).
        user_id:      Owner of the item.
        created_at:   Set once at creation, never changed afterwards.
        dismissed_at: When the item was dismissed, or ``None``.
    """

    id: str
    user_id: str
    created_at: datetime
    dismissed_at: datetime | None = None

    @property
    def is_dismissed(self) -> bool:
        return self.dismissed_at is not None

    # ── transitions ──────────────────────────────────────────

    def clone(self) -> DismissibleItem:
        return replace(self)

    def dismissed(self, at: datetime) -> DismissibleItem:
        """Return a dismissed copy of this item."""
        return replace(self, dismissed_at=at)

    def restored(self) -> DismissibleItem:
        """Return an active copy of this item."""
        return replace(self, dismissed_at=None)

    # ── serialization ────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat(),
            "dismissed_at": self.dismissed_at.isoformat() if self.dismissed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DismissibleItem:
        dismissed_at = data.get("dismissed_at")
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            created_at=_parse_datetime(data["created_at"]),
            dismissed_at=_parse_datetime(dismissed_at) if dismissed_at else None,
        )


def _parse_datetime(value: datetime | str) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)
