"""Tests for DismissibleCore."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from dismissible import (
    DismissibleCore,
    DismissibleItem,
    ItemAlreadyDismissedError,
    ItemNotDismissedError,
    ItemNotFoundError,
    ItemValidationError,
)
from dismissible.core import order_items
from dismissible.exceptions import FieldError


class RejectingValidator:
    def validate_or_raise(self, item):
        raise ItemValidationError([FieldError("id", "rejected")])


async def test_get_missing_returns_none(core):
    assert await core.get("banner", "alice") is None


async def test_create_then_get(core, clock):
    created = await core.create("banner", "alice")
    assert created.id == "banner"
    assert created.user_id == "alice"
    assert created.created_at == clock.now()
    assert created.dismissed_at is None
    assert await core.get("banner", "alice") == created


async def test_items_are_scoped_per_user(core):
    await core.create("banner", "alice")
    assert await core.get("banner", "bob") is None


async def test_get_or_create_is_idempotent(core, clock):
    first = await core.get_or_create("banner", "alice")
    clock.advance(60)
    second = await core.get_or_create("banner", "alice")
    assert first.created is True
    assert second.created is False
    assert second.item == first.item


async def test_dismiss_sets_timestamp_and_returns_pre_image(core, clock):
    created = await core.create("banner", "alice")
    clock.advance(10)
    result = await core.dismiss("banner", "alice")

    assert result.previous_item == created
    assert result.item.dismissed_at == clock.now()
    assert result.item.created_at == created.created_at
    assert (await core.get("banner", "alice")).is_dismissed


async def test_dismiss_missing_raises(core):
    with pytest.raises(ItemNotFoundError) as exc_info:
        await core.dismiss("banner", "alice")
    assert exc_info.value.item_id == "banner"
    assert exc_info.value.status_code == 400


async def test_dismiss_twice_raises(core):
    await core.create("banner", "alice")
    await core.dismiss("banner", "alice")
    with pytest.raises(ItemAlreadyDismissedError):
        await core.dismiss("banner", "alice")


async def test_restore_round_trip(core, clock):
    created = await core.create("banner", "alice")
    clock.advance(5)
    await core.dismiss("banner", "alice")
    result = await core.restore("banner", "alice")

    assert result.previous_item.is_dismissed
    assert result.item.dismissed_at is None
    assert result.item.created_at == created.created_at


async def test_restore_active_raises(core):
    await core.create("banner", "alice")
    with pytest.raises(ItemNotDismissedError):
        await core.restore("banner", "alice")


async def test_restore_missing_raises(core):
    with pytest.raises(ItemNotFoundError):
        await core.restore("banner", "alice")


async def test_validation_failure_skips_write(store, clock):
    store.create = AsyncMock()
    core = DismissibleCore(store, validator=RejectingValidator(), clock=clock)

    with pytest.raises(ItemValidationError):
        await core.create("banner", "alice")
    store.create.assert_not_called()


async def test_create_many_shares_timestamp(core, clock):
    items = await core.create_many(["a", "b", "c"], "alice")
    assert [i.id for i in items] == ["a", "b", "c"]
    assert {i.created_at for i in items} == {clock.now()}


async def test_create_many_empty_skips_store(store, clock):
    store.create_many = AsyncMock()
    core = DismissibleCore(store, clock=clock)
    assert await core.create_many([], "alice") == []
    store.create_many.assert_not_called()


async def test_create_many_validates_before_writing(store, clock):
    store.create_many = AsyncMock()
    core = DismissibleCore(store, clock=clock)
    with pytest.raises(ItemValidationError):
        await core.create_many(["ok", "not ok"], "alice")
    store.create_many.assert_not_called()


async def test_get_many_returns_found_only(core):
    await core.create("a", "alice")
    await core.create("c", "alice")
    found = await core.get_many(["a", "b", "c"], "alice")
    assert set(found) == {"a", "c"}


async def test_batch_get_or_create_preserves_input_order(core):
    await core.create("b", "alice")
    result = await core.batch_get_or_create(["a", "b", "c"], "alice")

    assert [i.id for i in result.items] == ["a", "b", "c"]
    assert [i.id for i in result.retrieved_items] == ["b"]
    assert [i.id for i in result.created_items] == ["a", "c"]


async def test_order_items_appends_unknown_ids(core):
    items = await core.create_many(["x", "a", "y"], "alice")
    ordered = order_items(["a"], items)
    assert [i.id for i in ordered] == ["a", "x", "y"]


async def test_batch_get_or_create_repeated_ids(core, store):
    result = await core.batch_get_or_create(["a", "a", "b"], "alice")

    assert [i.id for i in result.items] == ["a", "a", "b"]
    assert [i.id for i in result.created_items] == ["a", "b"]
    assert store.size == 2


def test_order_items_repeats_requested_positions():
    now = datetime(2024, 1, 1, tzinfo=UTC)
    a = DismissibleItem(id="a", user_id="alice", created_at=now)
    assert order_items(["a", "a"], [a]) == [a, a]
