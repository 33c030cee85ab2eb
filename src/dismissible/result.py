"""Hook results — what a pre-hook returns and what the runner hands back."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dismissible.context import RequestContext


@dataclass(frozen=True)
class HookMutations:
    """Replacements a single-item pre-hook asks the runner to apply.

    ``id`` and ``user_id`` replace the current values wholesale.  ``context``
    is a shallow patch merged into the current context, and only when a
    context exists.
    """

    id: str | None = None
    user_id: str | None = None
    context: dict[str, Any] | None = None


@dataclass(frozen=True)
class BatchHookMutations:
    """Same as :class:`HookMutations` with a list of item ids."""

    item_ids: list[str] | None = None
    user_id: str | None = None
    context: dict[str, Any] | None = None


@dataclass(frozen=True)
class HookResult:
    """Immutable result returned by a single-item pre-hook.

    Attributes:
        proceed:   ``False`` stops the chain and blocks the operation.
        reason:    Human-readable explanation (mainly useful when blocking).
        mutations: Optional identity/context rewrites for downstream hooks
                   and for the core operation.
    """

    proceed: bool
    reason: str | None = None
    mutations: HookMutations | None = None

    # ── Factory helpers ──────────────────────────────────────

    @staticmethod
    def allow() -> HookResult:
        return HookResult(proceed=True)

    @staticmethod
    def block(reason: str | None = None) -> HookResult:
        return HookResult(proceed=False, reason=reason)

    @staticmethod
    def mutate(
        *,
        id: str | None = None,
        user_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> HookResult:
        return HookResult(
            proceed=True,
            mutations=HookMutations(id=id, user_id=user_id, context=context),
        )


@dataclass(frozen=True)
class BatchHookResult:
    """Immutable result returned by a batch pre-hook."""

    proceed: bool
    reason: str | None = None
    mutations: BatchHookMutations | None = None

    @staticmethod
    def allow() -> BatchHookResult:
        return BatchHookResult(proceed=True)

    @staticmethod
    def block(reason: str | None = None) -> BatchHookResult:
        return BatchHookResult(proceed=False, reason=reason)

    @staticmethod
    def mutate(
        *,
        item_ids: list[str] | None = None,
        user_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> BatchHookResult:
        return BatchHookResult(
            proceed=True,
            mutations=BatchHookMutations(item_ids=item_ids, user_id=user_id, context=context),
        )


@dataclass(frozen=True)
class HookRunResult:
    """Outcome of a whole pre-hook chain for a single item.

    ``id``, ``user_id`` and ``context`` are the values after every mutation
    applied so far, including when the chain was blocked part-way.
    """

    proceed: bool
    id: str
    user_id: str
    context: RequestContext | None = None
    reason: str | None = None


@dataclass(frozen=True)
class BatchHookRunResult:
    """Outcome of a whole pre-hook chain for a batch."""

    proceed: bool
    item_ids: list[str]
    user_id: str
    context: RequestContext | None = None
    reason: str | None = None
