"""SQLiteItemStore — durable, single-file storage backend using aiosqlite."""

from __future__ import annotations

try:
    import aiosqlite
except ImportError as exc:
    raise ImportError(
        "SQLiteItemStore requires the 'aiosqlite' package. "
        "Install it with: pip install aiosqlite"
    ) from exc

from dismissible.exceptions import StoreError
from dismissible.item import DismissibleItem
from dismissible.stores.base import ItemStore

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS dismissible_items (
    user_id      TEXT NOT NULL,
    id           TEXT NOT NULL,
    created_at   TEXT NOT NULL,
    dismissed_at TEXT,
    PRIMARY KEY (user_id, id)
)
"""

_COLUMNS = "id, user_id, created_at, dismissed_at"


def _row_to_item(row: tuple[str, str, str, str | None]) -> DismissibleItem:
    return DismissibleItem.from_dict(
        {"id": row[0], "user_id": row[1], "created_at": row[2], "dismissed_at": row[3]}
    )


class SQLiteItemStore(ItemStore):
    """Persistent item store backed by a single SQLite file.

    Parameters:
        db_path: Path to the SQLite database file.  Use ``":memory:"``
                 for an in-memory database (useful for testing).
    """

    def __init__(self, db_path: str = "dismissible.db") -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def _connect(self) -> aiosqlite.Connection:
        if self._db is None:
            self._db = await aiosqlite.connect(self._db_path)
            await self._db.execute(_CREATE_TABLE)
            await self._db.commit()
        return self._db

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    # ── ItemStore protocol ───────────────────────────────────

    async def get(self, user_id: str, item_id: str) -> DismissibleItem | None:
        db = await self._connect()
        cursor = await db.execute(
            f"SELECT {_COLUMNS} FROM dismissible_items WHERE user_id = ? AND id = ?",
            (user_id, item_id),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_item(row)

    async def get_many(self, user_id: str, item_ids: list[str]) -> dict[str, DismissibleItem]:
        if not item_ids:
            return {}
        db = await self._connect()
        placeholders = ", ".join("?" for _ in item_ids)
        cursor = await db.execute(
            f"SELECT {_COLUMNS} FROM dismissible_items "
            f"WHERE user_id = ? AND id IN ({placeholders})",
            (user_id, *item_ids),
        )
        rows = await cursor.fetchall()
        return {row[0]: _row_to_item(row) for row in rows}

    async def create(self, item: DismissibleItem) -> DismissibleItem:
        await self.create_many([item])
        return item

    async def create_many(self, items: list[DismissibleItem]) -> list[DismissibleItem]:
        db = await self._connect()
        try:
            await db.executemany(
                f"INSERT INTO dismissible_items ({_COLUMNS}) VALUES (?, ?, ?, ?)",
                [_item_params(item) for item in items],
            )
            await db.commit()
        except aiosqlite.IntegrityError as e:
            await db.rollback()
            raise StoreError("create", str(e)) from e
        return items

    async def update(self, item: DismissibleItem) -> DismissibleItem:
        db = await self._connect()
        await db.execute(
            "UPDATE dismissible_items SET created_at = ?, dismissed_at = ? "
            "WHERE user_id = ? AND id = ?",
            (
                item.created_at.isoformat(),
                item.dismissed_at.isoformat() if item.dismissed_at else None,
                item.user_id,
                item.id,
            ),
        )
        await db.commit()
        return item


def _item_params(item: DismissibleItem) -> tuple[str, str, str, str | None]:
    data = item.to_dict()
    return (data["id"], data["user_id"], data["created_at"], data["dismissed_at"])
