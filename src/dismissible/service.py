"""DismissibleService — runs every operation through the hook pipeline."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dismissible.core import order_items
from dismissible.events import (
    DismissibleEvents,
    EventEmitter,
    ItemCreatedEvent,
    ItemDismissedEvent,
    ItemRestoredEvent,
    ItemRetrievedEvent,
)
from dismissible.hooks.runner import HookRunner
from dismissible.responses import (
    BatchGetOrCreateResponse,
    DismissResponse,
    GetOrCreateResponse,
    RestoreResponse,
)
from dismissible.validation import InputValidator

if TYPE_CHECKING:
    from dismissible.context import RequestContext
    from dismissible.core import DismissibleCore
    from dismissible.item import DismissibleItem

logger = logging.getLogger(__name__)


class DismissibleService:
    """Orchestrates input validation, hooks, the core engine and events.

    For every operation the sequence is fixed:

    1. validate the raw input (:class:`ItemValidationError` on failure);
    2. run the request gate, then the operation's pre-hooks; any block
       raises :class:`OperationBlockedError`;
    3. call :class:`DismissibleCore`;
    4. run the operation's post-hooks, emit the domain event, run the
       post-request hooks.

    Identity and context rewrites returned by a pre phase apply to every
    later phase, to the core call, to the emitted event and to the post
    hooks.  This is wider than request-gate-only threading: a rewrite made
    in ``on_before_get``, ``on_before_create``, ``on_before_dismiss`` or
    ``on_before_restore`` also changes what the core operates on.  Core
    errors propagate unchanged; post-hook failures never do.

    Parameters:
        core:            CRUD engine.
        hook_runner:     Ordered hook pipeline.
        events:          Event bus.  A private emitter is used when omitted.
        input_validator: Checks raw ids before any hook runs.
    """

    def __init__(
        self,
        core: DismissibleCore,
        hook_runner: HookRunner | None = None,
        *,
        events: EventEmitter | None = None,
        input_validator: InputValidator | None = None,
    ) -> None:
        self._core = core
        self._hooks = hook_runner or HookRunner()
        self._events = events or EventEmitter()
        self._input_validator = input_validator or InputValidator()

    @property
    def core(self) -> DismissibleCore:
        return self._core

    @property
    def hook_runner(self) -> HookRunner:
        return self._hooks

    @property
    def events(self) -> EventEmitter:
        return self._events

    # ── single item ──────────────────────────────────────────

    async def get_or_create(
        self,
        item_id: str,
        user_id: str,
        context: RequestContext | None = None,
    ) -> GetOrCreateResponse:
        """Return the user's item, creating it on first access."""
        logger.debug("get_or_create called item_id=%s user_id=%s", item_id, user_id)
        self._input_validator.validate_input(item_id, user_id)

        pre = await self._hooks.run_pre_request(item_id, user_id, context)
        HookRunner.raise_if_blocked(pre)

        existing = await self._core.get(pre.id, pre.user_id)

        if existing is not None:
            pre_get = await self._hooks.run_pre_get(pre.id, existing, pre.user_id, pre.context)
            HookRunner.raise_if_blocked(pre_get)
            rid, ruser, rctx = pre_get.id, pre_get.user_id, pre_get.context

            self._events.emit(
                DismissibleEvents.ITEM_RETRIEVED,
                ItemRetrievedEvent(id=rid, item=existing, user_id=ruser, context=rctx),
            )
            await self._hooks.run_post_get(rid, existing, ruser, rctx)
            await self._hooks.run_post_request(rid, existing, ruser, rctx)

            logger.debug("get_or_create completed item_id=%s created=%s", rid, False)
            return GetOrCreateResponse(item=existing, created=False)

        pre_create = await self._hooks.run_pre_create(pre.id, pre.user_id, pre.context)
        HookRunner.raise_if_blocked(pre_create)
        cid, cuser, cctx = pre_create.id, pre_create.user_id, pre_create.context

        created = await self._core.create(cid, cuser)

        await self._hooks.run_post_create(cid, created, cuser, cctx)
        self._events.emit(
            DismissibleEvents.ITEM_CREATED,
            ItemCreatedEvent(id=cid, item=created, user_id=cuser, context=cctx),
        )
        await self._hooks.run_post_request(cid, created, cuser, cctx)

        logger.debug("get_or_create completed item_id=%s created=%s", cid, True)
        return GetOrCreateResponse(item=created, created=True)

    async def dismiss(
        self,
        item_id: str,
        user_id: str,
        context: RequestContext | None = None,
    ) -> DismissResponse:
        logger.debug("dismiss called item_id=%s user_id=%s", item_id, user_id)
        self._input_validator.validate_input(item_id, user_id)

        pre = await self._hooks.run_pre_request(item_id, user_id, context)
        HookRunner.raise_if_blocked(pre)

        pre_dismiss = await self._hooks.run_pre_dismiss(pre.id, pre.user_id, pre.context)
        HookRunner.raise_if_blocked(pre_dismiss)
        rid, ruser, rctx = pre_dismiss.id, pre_dismiss.user_id, pre_dismiss.context

        result = await self._core.dismiss(rid, ruser)

        await self._hooks.run_post_dismiss(rid, result.item, ruser, rctx)
        self._events.emit(
            DismissibleEvents.ITEM_DISMISSED,
            ItemDismissedEvent(
                id=rid,
                item=result.item,
                user_id=ruser,
                context=rctx,
                previous_item=result.previous_item,
            ),
        )
        await self._hooks.run_post_request(rid, result.item, ruser, rctx)

        logger.debug("dismiss completed item_id=%s", rid)
        return result

    async def restore(
        self,
        item_id: str,
        user_id: str,
        context: RequestContext | None = None,
    ) -> RestoreResponse:
        logger.debug("restore called item_id=%s user_id=%s", item_id, user_id)
        self._input_validator.validate_input(item_id, user_id)

        pre = await self._hooks.run_pre_request(item_id, user_id, context)
        HookRunner.raise_if_blocked(pre)

        pre_restore = await self._hooks.run_pre_restore(pre.id, pre.user_id, pre.context)
        HookRunner.raise_if_blocked(pre_restore)
        rid, ruser, rctx = pre_restore.id, pre_restore.user_id, pre_restore.context

        result = await self._core.restore(rid, ruser)

        await self._hooks.run_post_restore(rid, result.item, ruser, rctx)
        self._events.emit(
            DismissibleEvents.ITEM_RESTORED,
            ItemRestoredEvent(
                id=rid,
                item=result.item,
                user_id=ruser,
                context=rctx,
                previous_item=result.previous_item,
            ),
        )
        await self._hooks.run_post_request(rid, result.item, ruser, rctx)

        logger.debug("restore completed item_id=%s", rid)
        return result

    # ── batch ────────────────────────────────────────────────

    async def batch_get_or_create(
        self,
        item_ids: list[str],
        user_id: str,
        context: RequestContext | None = None,
    ) -> BatchGetOrCreateResponse:
        """Get-or-create several items with one hook invocation per phase.

        Existing items go through the batch-get phases, missing ones through
        the batch-create phases.  ``items`` in the response follows the
        requested order.
        """
        logger.debug(
            "batch_get_or_create called item_count=%d user_id=%s", len(item_ids), user_id
        )
        self._input_validator.validate_batch(item_ids, user_id)

        pre = await self._hooks.run_pre_batch_request(item_ids, user_id, context)
        HookRunner.raise_if_blocked(pre)
        ids, uid, ctx = pre.item_ids, pre.user_id, pre.context

        # Repeated ids are looked up and created once; the response still
        # has one entry per requested position.
        unique_ids = list(dict.fromkeys(ids))
        found = await self._core.get_many(unique_ids, uid)
        existing = [found[i] for i in unique_ids if i in found]
        missing = [i for i in unique_ids if i not in found]

        retrieved: list[DismissibleItem] = []
        if existing:
            existing_ids = [item.id for item in existing]
            pre_get = await self._hooks.run_pre_batch_get(existing_ids, existing, uid, ctx)
            HookRunner.raise_if_blocked(pre_get)
            uid, ctx = pre_get.user_id, pre_get.context

            for item in existing:
                self._events.emit(
                    DismissibleEvents.ITEM_RETRIEVED,
                    ItemRetrievedEvent(id=item.id, item=item, user_id=uid, context=ctx),
                )
            await self._hooks.run_post_batch_get(pre_get.item_ids, existing, uid, ctx)
            retrieved = existing

        created: list[DismissibleItem] = []
        if missing:
            pre_create = await self._hooks.run_pre_batch_create(missing, uid, ctx)
            HookRunner.raise_if_blocked(pre_create)
            uid, ctx = pre_create.user_id, pre_create.context

            created = await self._core.create_many(list(dict.fromkeys(pre_create.item_ids)), uid)

            await self._hooks.run_post_batch_create(pre_create.item_ids, created, uid, ctx)
            for item in created:
                self._events.emit(
                    DismissibleEvents.ITEM_CREATED,
                    ItemCreatedEvent(id=item.id, item=item, user_id=uid, context=ctx),
                )

        items = order_items(ids, retrieved + created)
        await self._hooks.run_post_batch_request([i.id for i in items], items, uid, ctx)

        logger.debug(
            "batch_get_or_create completed retrieved=%d created=%d",
            len(retrieved),
            len(created),
        )
        return BatchGetOrCreateResponse(
            items=items,
            retrieved_items=retrieved,
            created_items=created,
        )
