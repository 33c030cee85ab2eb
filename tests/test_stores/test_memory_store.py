"""Tests for InMemoryItemStore."""

from datetime import UTC, datetime

from dismissible import DismissibleItem

NOW = datetime(2024, 1, 1, tzinfo=UTC)


def item(item_id, user_id="alice"):
    return DismissibleItem(id=item_id, user_id=user_id, created_at=NOW)


async def test_get_nonexistent(store):
    assert await store.get("alice", "banner") is None


async def test_create_and_get(store):
    created = await store.create(item("banner"))
    assert await store.get("alice", "banner") == created
    assert store.size == 1


async def test_keys_are_scoped_per_user(store):
    await store.create(item("banner", "alice"))
    await store.create(item("banner", "bob"))
    assert store.size == 2
    assert (await store.get("bob", "banner")).user_id == "bob"


async def test_update_overwrites(store):
    await store.create(item("banner"))
    dismissed = item("banner").dismissed(NOW)
    await store.update(dismissed)
    assert (await store.get("alice", "banner")).is_dismissed


async def test_get_many_omits_missing(store):
    await store.create_many([item("a"), item("c")])
    found = await store.get_many("alice", ["a", "b", "c"])
    assert sorted(found) == ["a", "c"]


async def test_clear(store):
    await store.create(item("banner"))
    store.clear()
    assert store.size == 0
