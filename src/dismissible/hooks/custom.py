"""CustomHook — wrap plain callables as a lifecycle hook without subclassing."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from dismissible.exceptions import HookConfigError
from dismissible.hooks.base import HOOK_PHASES, POST_PHASES, LifecycleHook
from dismissible.result import BatchHookResult, HookResult

# Phase callables can be sync or async and take the phase's arguments.
PhaseFn = Callable[..., Any]


class CustomHook(LifecycleHook):
    """Builds a hook out of per-phase callables.

    Only the phases passed in are defined on the instance, so the runner
    skips this hook for every other phase.

    A pre-phase callable may return a :class:`HookResult` /
    :class:`BatchHookResult`, ``None`` (allow), or a plain ``bool``:
    ``True`` allows, ``False`` blocks with *deny_reason*.

    Parameters:
        name:        Hook name used in logs and exports.
        priority:    Lower runs earlier among pre-hooks.
        deny_reason: Reason used when a callable returns ``False``.
        **phase_fns: ``on_before_create=...``, ``on_after_request=...``, etc.

    Example:
        >>> quota = CustomHook(
        ...     name="quota",
        ...     on_before_create=lambda item_id, user_id, ctx: False,
        ...     deny_reason="Quota exceeded",
        ... )
    """

    _hook_type = "custom"
    _hook_description = "Callable-based hook"

    def __init__(
        self,
        *,
        name: str,
        priority: int = 0,
        deny_reason: str = "Custom hook check failed",
        **phase_fns: PhaseFn,
    ) -> None:
        unknown = sorted(set(phase_fns) - set(HOOK_PHASES))
        if unknown:
            raise HookConfigError(name, f"unknown phase(s): {', '.join(unknown)}")

        self._name = name
        self.priority = priority
        self._deny_reason = deny_reason
        self._phase_fns = dict(phase_fns)

        for phase, fn in phase_fns.items():
            setattr(self, phase, self._wrap(phase, fn))

    @property
    def name(self) -> str:
        return self._name

    def export(self) -> dict[str, Any]:
        data = super().export()
        data["config"] = {"deny_reason": self._deny_reason}
        return data

    def _wrap(self, phase: str, fn: PhaseFn) -> PhaseFn:
        is_post = phase in POST_PHASES
        result_type = BatchHookResult if "batch" in phase else HookResult

        async def run(*args: Any) -> Any:
            result = fn(*args)
            if asyncio.iscoroutine(result):
                result = await result
            if is_post:
                return None
            if isinstance(result, bool):
                return result_type.allow() if result else result_type.block(self._deny_reason)
            return result

        return run
