"""
dismissible — Hello World

Every operation runs through the hook pipeline. Pre-hooks can rewrite
the request or block it, post-hooks only observe. Events fire once the
item has been stored.
"""

import asyncio

from dismissible import (
    DismissibleCore,
    DismissibleEvents,
    DismissibleService,
    EventEmitter,
    HookResult,
    HookRunner,
    OperationBlockedError,
    RequestContext,
    TooManyRequestsError,
)
from dismissible.config import RateLimitHookConfig
from dismissible.hooks import CustomHook, RateLimitHook
from dismissible.stores import InMemoryItemStore

# ─── Hooks ───


def tenant_prefix(item_id, user_id, context):
    # Scope every user id to the tenant named in the request headers.
    tenant = context.header("x-tenant") if context else None
    if tenant is None:
        return HookResult.allow()
    return HookResult.mutate(user_id=f"{tenant}-{user_id}")


def no_restore_for_legal(item_id, user_id, context):
    return not item_id.startswith("legal-")


def audit(item_id, item, user_id, context):
    print(f"  [audit] {user_id} -> {item_id} (dismissed={item.dismissed_at is not None})")


async def main():
    # ──────────────────────────────────────
    #  1. Wire the service
    # ──────────────────────────────────────
    events = EventEmitter()
    events.on(DismissibleEvents.ITEM_DISMISSED, lambda e: print(f"  [event] dismissed {e.id}"))

    hooks = HookRunner(
        [
            RateLimitHook(RateLimitHookConfig(enabled=True, points=3, duration=60)),
            CustomHook(name="tenant", priority=-10, on_before_request=tenant_prefix),
            CustomHook(
                name="legal_guard",
                on_before_restore=no_restore_for_legal,
                deny_reason="Legal notices cannot be restored",
            ),
            CustomHook(name="audit", on_after_request=audit),
        ]
    )
    service = DismissibleService(DismissibleCore(InMemoryItemStore()), hooks, events=events)

    ctx = RequestContext(headers={"x-tenant": "acme"}, ip="203.0.113.7")

    # ──────────────────────────────────────
    #  2. Show, dismiss
    # ──────────────────────────────────────
    print("=== Get or create, then dismiss ===\n")

    response = await service.get_or_create("welcome-banner", "alice", ctx)
    print(f"  created={response.created} user={response.item.user_id}")

    await service.dismiss("welcome-banner", "alice", ctx)

    # ──────────────────────────────────────
    #  3. A hook blocks the restore
    # ──────────────────────────────────────
    print("\n=== Blocked restore ===\n")

    try:
        await service.restore("legal-notice", "alice", ctx)
    except OperationBlockedError as e:
        print(f"  [DENIED] {e.reason}")

    # ──────────────────────────────────────
    #  4. Rate limit exhaustion
    # ──────────────────────────────────────
    print("\n=== Rate limit exhaustion ===\n")

    try:
        await service.batch_get_or_create(["tip-1", "tip-2"], "alice", ctx)
    except TooManyRequestsError as e:
        print(f"  [DENIED] {e.message} retry_after={e.retry_after}s")

    await events.drain()
    print("\nHooks JSON:", hooks.export())


if __name__ == "__main__":
    asyncio.run(main())
