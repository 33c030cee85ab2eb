"""HookRunner — holds the ordered hook list and runs lifecycle phases."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from dismissible.exceptions import OperationBlockedError
from dismissible.hooks import base as phases
from dismissible.hooks.base import hook_name, hook_priority, implemented_phases
from dismissible.result import BatchHookRunResult, HookRunResult

if TYPE_CHECKING:
    from dismissible.context import RequestContext
    from dismissible.item import DismissibleItem

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_REASON = "Operation blocked by lifecycle hook"

_NO_ITEM: Any = object()


async def _call(fn: Any, *args: Any) -> Any:
    result = fn(*args)
    if asyncio.iscoroutine(result):
        result = await result
    return result


class HookRunner:
    """Runs pre- and post-hook chains for every lifecycle phase.

    Hooks are sorted once, at construction, by ascending ``priority``
    (missing priority counts as ``0``; ties keep registration order).

    * **Pre** phases run low → high.  A hook raising aborts the chain and
      the exception propagates.  A hook returning ``proceed=False`` stops the
      chain; later hooks do not run.  Mutations are threaded into the
      arguments seen by the next hook.
    * **Post** phases run high → low.  Exceptions are logged and swallowed;
      the remaining post-hooks still run.

    The hook list is immutable, so one runner can serve concurrent calls.

    Parameters:
        hooks: Hook objects in registration order.
    """

    def __init__(self, hooks: Iterable[object] = ()) -> None:
        self._hooks: tuple[object, ...] = tuple(sorted(hooks, key=hook_priority))
        self._reversed: tuple[object, ...] = tuple(reversed(self._hooks))

    # ── introspection ────────────────────────────────────────

    @property
    def hooks(self) -> tuple[object, ...]:
        """Hooks in pre-phase order."""
        return self._hooks

    def list_hooks(self) -> list[str]:
        """Return the hook names in pre-phase order."""
        return [hook_name(h) for h in self._hooks]

    def get_hook(self, name: str) -> object | None:
        """Look up a registered hook by its name."""
        for hook in self._hooks:
            if hook_name(hook) == name:
                return hook
        return None

    # ── lifecycle ────────────────────────────────────────────

    async def setup(self) -> None:
        """Call ``setup()`` on every hook that defines it, in pre-phase order."""
        for hook in self._hooks:
            fn = getattr(hook, "setup", None)
            if callable(fn):
                await _call(fn)

    async def close(self) -> None:
        """Call ``close()`` on every hook that defines it, in reverse order."""
        for hook in self._reversed:
            fn = getattr(hook, "close", None)
            if callable(fn):
                await _call(fn)

    def export(self) -> dict[str, Any]:
        """Return a JSON-serializable snapshot of the registered hooks."""
        hooks = [
            h.export()
            if callable(getattr(h, "export", None))
            else {
                "name": hook_name(h),
                "priority": hook_priority(h),
                "phases": implemented_phases(h),
            }
            for h in self._hooks
        ]
        return {"hooks": hooks, "hook_count": len(hooks)}

    # ── blocking ─────────────────────────────────────────────

    @staticmethod
    def raise_if_blocked(result: HookRunResult | BatchHookRunResult) -> None:
        """Raise :class:`OperationBlockedError` when *result* did not proceed."""
        if not result.proceed:
            raise OperationBlockedError(result.reason or DEFAULT_BLOCK_REASON)

    # ── single-item chains ───────────────────────────────────

    async def run_pre(
        self,
        phase: str,
        item_id: str,
        user_id: str,
        context: RequestContext | None = None,
    ) -> HookRunResult:
        return await self._run_pre(phase, item_id, _NO_ITEM, user_id, context)

    async def run_pre_with_item(
        self,
        phase: str,
        item_id: str,
        item: DismissibleItem,
        user_id: str,
        context: RequestContext | None = None,
    ) -> HookRunResult:
        """Like :meth:`run_pre`, also passing a read-only item snapshot."""
        return await self._run_pre(phase, item_id, item, user_id, context)

    async def _run_pre(
        self,
        phase: str,
        item_id: str,
        item: Any,
        user_id: str,
        context: RequestContext | None,
    ) -> HookRunResult:
        current_id = item_id
        current_user_id = user_id
        current_context = context.copy() if context is not None else None

        for hook in self._hooks:
            fn = getattr(hook, phase, None)
            if not callable(fn):
                continue

            args = (current_id, current_user_id, current_context)
            if item is not _NO_ITEM:
                args = (current_id, item, current_user_id, current_context)

            try:
                result = await _call(fn, *args)
            except Exception:
                logger.exception(
                    "Error in hook %s.%s item_id=%s user_id=%s",
                    hook_name(hook),
                    phase,
                    current_id,
                    current_user_id,
                )
                raise

            if result is None:
                continue

            if not result.proceed:
                logger.debug(
                    "Hook %s.%s blocked operation item_id=%s user_id=%s reason=%s",
                    hook_name(hook),
                    phase,
                    current_id,
                    current_user_id,
                    result.reason,
                )
                return HookRunResult(
                    proceed=False,
                    id=current_id,
                    user_id=current_user_id,
                    context=current_context,
                    reason=result.reason,
                )

            mutations = result.mutations
            if mutations is not None:
                if mutations.id is not None:
                    current_id = mutations.id
                if mutations.user_id is not None:
                    current_user_id = mutations.user_id
                if mutations.context and current_context is not None:
                    current_context = current_context.patched(mutations.context)

        return HookRunResult(
            proceed=True,
            id=current_id,
            user_id=current_user_id,
            context=current_context,
        )

    async def run_post(
        self,
        phase: str,
        item_id: str,
        item: DismissibleItem,
        user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        await self._run_post(phase, (item_id, item, user_id, context), item_id, user_id)

    # ── batch chains ─────────────────────────────────────────

    async def run_pre_batch(
        self,
        phase: str,
        item_ids: list[str],
        user_id: str,
        context: RequestContext | None = None,
    ) -> BatchHookRunResult:
        return await self._run_pre_batch(phase, item_ids, _NO_ITEM, user_id, context)

    async def run_pre_batch_with_items(
        self,
        phase: str,
        item_ids: list[str],
        items: list[DismissibleItem],
        user_id: str,
        context: RequestContext | None = None,
    ) -> BatchHookRunResult:
        return await self._run_pre_batch(phase, item_ids, list(items), user_id, context)

    async def _run_pre_batch(
        self,
        phase: str,
        item_ids: list[str],
        items: Any,
        user_id: str,
        context: RequestContext | None,
    ) -> BatchHookRunResult:
        current_ids = list(item_ids)
        current_user_id = user_id
        current_context = context.copy() if context is not None else None

        for hook in self._hooks:
            fn = getattr(hook, phase, None)
            if not callable(fn):
                continue

            args = (current_ids, current_user_id, current_context)
            if items is not _NO_ITEM:
                args = (current_ids, items, current_user_id, current_context)

            try:
                result = await _call(fn, *args)
            except Exception:
                logger.exception(
                    "Error in hook %s.%s item_count=%d user_id=%s",
                    hook_name(hook),
                    phase,
                    len(current_ids),
                    current_user_id,
                )
                raise

            if result is None:
                continue

            if not result.proceed:
                logger.debug(
                    "Hook %s.%s blocked batch operation item_count=%d user_id=%s reason=%s",
                    hook_name(hook),
                    phase,
                    len(current_ids),
                    current_user_id,
                    result.reason,
                )
                return BatchHookRunResult(
                    proceed=False,
                    item_ids=current_ids,
                    user_id=current_user_id,
                    context=current_context,
                    reason=result.reason,
                )

            mutations = result.mutations
            if mutations is not None:
                if mutations.item_ids is not None:
                    current_ids = list(mutations.item_ids)
                if mutations.user_id is not None:
                    current_user_id = mutations.user_id
                if mutations.context and current_context is not None:
                    current_context = current_context.patched(mutations.context)

        return BatchHookRunResult(
            proceed=True,
            item_ids=current_ids,
            user_id=current_user_id,
            context=current_context,
        )

    async def run_post_batch(
        self,
        phase: str,
        item_ids: list[str],
        items: list[DismissibleItem],
        user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        await self._run_post(
            phase, (list(item_ids), list(items), user_id, context), item_ids, user_id
        )

    async def _run_post(
        self,
        phase: str,
        args: tuple[Any, ...],
        ids: str | list[str],
        user_id: str,
    ) -> None:
        for hook in self._reversed:
            fn = getattr(hook, phase, None)
            if not callable(fn):
                continue
            try:
                await _call(fn, *args)
            except Exception:
                # Post-hooks never fail the operation.
                logger.exception(
                    "Error in hook %s.%s ids=%s user_id=%s",
                    hook_name(hook),
                    phase,
                    ids,
                    user_id,
                )

    # ── named phases ─────────────────────────────────────────

    async def run_pre_request(
        self, item_id: str, user_id: str, context: RequestContext | None = None
    ) -> HookRunResult:
        """Global gate at the start of every single-item operation."""
        return await self.run_pre(phases.ON_BEFORE_REQUEST, item_id, user_id, context)

    async def run_post_request(
        self,
        item_id: str,
        item: DismissibleItem,
        user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        await self.run_post(phases.ON_AFTER_REQUEST, item_id, item, user_id, context)

    async def run_pre_get(
        self,
        item_id: str,
        item: DismissibleItem,
        user_id: str,
        context: RequestContext | None = None,
    ) -> HookRunResult:
        """Runs only when the item exists; hooks see the stored record."""
        return await self.run_pre_with_item(phases.ON_BEFORE_GET, item_id, item, user_id, context)

    async def run_post_get(
        self,
        item_id: str,
        item: DismissibleItem,
        user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        await self.run_post(phases.ON_AFTER_GET, item_id, item, user_id, context)

    async def run_pre_create(
        self, item_id: str, user_id: str, context: RequestContext | None = None
    ) -> HookRunResult:
        return await self.run_pre(phases.ON_BEFORE_CREATE, item_id, user_id, context)

    async def run_post_create(
        self,
        item_id: str,
        item: DismissibleItem,
        user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        await self.run_post(phases.ON_AFTER_CREATE, item_id, item, user_id, context)

    async def run_pre_dismiss(
        self, item_id: str, user_id: str, context: RequestContext | None = None
    ) -> HookRunResult:
        return await self.run_pre(phases.ON_BEFORE_DISMISS, item_id, user_id, context)

    async def run_post_dismiss(
        self,
        item_id: str,
        item: DismissibleItem,
        user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        await self.run_post(phases.ON_AFTER_DISMISS, item_id, item, user_id, context)

    async def run_pre_restore(
        self, item_id: str, user_id: str, context: RequestContext | None = None
    ) -> HookRunResult:
        return await self.run_pre(phases.ON_BEFORE_RESTORE, item_id, user_id, context)

    async def run_post_restore(
        self,
        item_id: str,
        item: DismissibleItem,
        user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        await self.run_post(phases.ON_AFTER_RESTORE, item_id, item, user_id, context)

    async def run_pre_batch_request(
        self, item_ids: list[str], user_id: str, context: RequestContext | None = None
    ) -> BatchHookRunResult:
        return await self.run_pre_batch(phases.ON_BEFORE_BATCH_REQUEST, item_ids, user_id, context)

    async def run_post_batch_request(
        self,
        item_ids: list[str],
        items: list[DismissibleItem],
        user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        await self.run_post_batch(
            phases.ON_AFTER_BATCH_REQUEST, item_ids, items, user_id, context
        )

    async def run_pre_batch_get(
        self,
        item_ids: list[str],
        items: list[DismissibleItem],
        user_id: str,
        context: RequestContext | None = None,
    ) -> BatchHookRunResult:
        return await self.run_pre_batch_with_items(
            phases.ON_BEFORE_BATCH_GET, item_ids, items, user_id, context
        )

    async def run_post_batch_get(
        self,
        item_ids: list[str],
        items: list[DismissibleItem],
        user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        await self.run_post_batch(phases.ON_AFTER_BATCH_GET, item_ids, items, user_id, context)

    async def run_pre_batch_create(
        self, item_ids: list[str], user_id: str, context: RequestContext | None = None
    ) -> BatchHookRunResult:
        return await self.run_pre_batch(phases.ON_BEFORE_BATCH_CREATE, item_ids, user_id, context)

    async def run_post_batch_create(
        self,
        item_ids: list[str],
        items: list[DismissibleItem],
        user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        await self.run_post_batch(
            phases.ON_AFTER_BATCH_CREATE, item_ids, items, user_id, context
        )
