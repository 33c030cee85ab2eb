"""LifecycleHook — optional base class for pipeline hooks.

A hook is any object exposing some of the phase methods listed in
:data:`HOOK_PHASES` and, optionally, an integer ``priority``.  The runner
looks each method up by name and skips hooks that do not define it, so
subclassing :class:`LifecycleHook` is a convenience, not a requirement.

Phase signatures (methods may be sync or async)::

    on_before_request(item_id, user_id, context) -> HookResult
    on_after_request(item_id, item, user_id, context) -> None
    on_before_get(item_id, item, user_id, context) -> HookResult
    on_after_get(item_id, item, user_id, context) -> None
    on_before_create / on_before_dismiss / on_before_restore
        (item_id, user_id, context) -> HookResult
    on_after_create / on_after_dismiss / on_after_restore
        (item_id, item, user_id, context) -> None
    on_before_batch_request / on_before_batch_create
        (item_ids, user_id, context) -> BatchHookResult
    on_before_batch_get(item_ids, items, user_id, context) -> BatchHookResult
    on_after_batch_request / on_after_batch_get / on_after_batch_create
        (item_ids, items, user_id, context) -> None

Returning ``None`` from a pre-hook is the same as returning ``allow()``.
"""

from __future__ import annotations

from typing import Any, ClassVar

ON_BEFORE_REQUEST = "on_before_request"
ON_AFTER_REQUEST = "on_after_request"
ON_BEFORE_GET = "on_before_get"
ON_AFTER_GET = "on_after_get"
ON_BEFORE_CREATE = "on_before_create"
ON_AFTER_CREATE = "on_after_create"
ON_BEFORE_DISMISS = "on_before_dismiss"
ON_AFTER_DISMISS = "on_after_dismiss"
ON_BEFORE_RESTORE = "on_before_restore"
ON_AFTER_RESTORE = "on_after_restore"
ON_BEFORE_BATCH_REQUEST = "on_before_batch_request"
ON_AFTER_BATCH_REQUEST = "on_after_batch_request"
ON_BEFORE_BATCH_GET = "on_before_batch_get"
ON_AFTER_BATCH_GET = "on_after_batch_get"
ON_BEFORE_BATCH_CREATE = "on_before_batch_create"
ON_AFTER_BATCH_CREATE = "on_after_batch_create"

PRE_PHASES = (
    ON_BEFORE_REQUEST,
    ON_BEFORE_GET,
    ON_BEFORE_CREATE,
    ON_BEFORE_DISMISS,
    ON_BEFORE_RESTORE,
    ON_BEFORE_BATCH_REQUEST,
    ON_BEFORE_BATCH_GET,
    ON_BEFORE_BATCH_CREATE,
)

POST_PHASES = (
    ON_AFTER_REQUEST,
    ON_AFTER_GET,
    ON_AFTER_CREATE,
    ON_AFTER_DISMISS,
    ON_AFTER_RESTORE,
    ON_AFTER_BATCH_REQUEST,
    ON_AFTER_BATCH_GET,
    ON_AFTER_BATCH_CREATE,
)

HOOK_PHASES = PRE_PHASES + POST_PHASES


def hook_priority(hook: object) -> int:
    """Return the hook's priority; hooks without one count as ``0``."""
    priority = getattr(hook, "priority", None)
    return 0 if priority is None else int(priority)


def hook_name(hook: object) -> str:
    return getattr(hook, "name", None) or type(hook).__name__


def implemented_phases(hook: object) -> list[str]:
    """Return the phase methods *hook* defines, in :data:`HOOK_PHASES` order."""
    return [phase for phase in HOOK_PHASES if callable(getattr(hook, phase, None))]


class LifecycleHook:
    """Convenience base for hooks.

    Subclasses define only the phase methods they care about.  The base
    class itself defines none, so the runner never calls a no-op.

    Class Variables:
        _hook_type: Type identifier used by the runner's hook factory.
        _hook_description: Human-readable description of the hook.
    """

    _hook_type: ClassVar[str] = "base"
    _hook_description: ClassVar[str] = ""

    priority: int = 0

    @property
    def name(self) -> str:
        return type(self).__name__

    async def setup(self) -> None:
        """Called once before the hook serves its first request.

        Use this to fetch remote state, validate configuration, etc.
        """

    async def close(self) -> None:
        """Release resources acquired in :meth:`setup`."""

    # ── introspection ─────────────────────────────────────────

    def export(self) -> dict[str, Any]:
        """Return a JSON-serializable snapshot of this hook.

        Subclasses should call ``super().export()`` and populate the
        ``"config"`` key in the returned dict.
        """
        return {
            "name": self.name,
            "type": self._hook_type,
            "description": self._hook_description,
            "priority": hook_priority(self),
            "phases": implemented_phases(self),
            "config": {},
        }
