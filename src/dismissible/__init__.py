"""dismissible — lifecycle orchestration for dismissible UI items.

Every operation (get-or-create, dismiss, restore, batch get-or-create) runs
through an ordered hook pipeline: pre-hooks may rewrite identity and
context or block the call, post-hooks observe the outcome and can never
fail it.
"""

from dismissible.config import DismissibleConfig
from dismissible.context import RequestContext
from dismissible.core import DismissibleCore
from dismissible.events import DismissibleEvents, EventEmitter
from dismissible.exceptions import (
    DismissibleError,
    HookConfigError,
    InvalidStateTransitionError,
    ItemAlreadyDismissedError,
    ItemNotDismissedError,
    ItemNotFoundError,
    ItemValidationError,
    OperationBlockedError,
    StoreError,
    TooManyRequestsError,
    UnauthorizedError,
)
from dismissible.hooks import HookRunner, LifecycleHook
from dismissible.item import DismissibleItem
from dismissible.responses import (
    BatchGetOrCreateResponse,
    DismissResponse,
    GetOrCreateResponse,
    RestoreResponse,
)
from dismissible.result import BatchHookResult, HookResult
from dismissible.service import DismissibleService

__all__ = [
    "BatchGetOrCreateResponse",
    "BatchHookResult",
    "DismissResponse",
    "DismissibleConfig",
    "DismissibleCore",
    "DismissibleError",
    "DismissibleEvents",
    "DismissibleItem",
    "DismissibleService",
    "EventEmitter",
    "GetOrCreateResponse",
    "HookConfigError",
    "HookResult",
    "HookRunner",
    "InvalidStateTransitionError",
    "ItemAlreadyDismissedError",
    "ItemNotDismissedError",
    "ItemNotFoundError",
    "ItemValidationError",
    "LifecycleHook",
    "OperationBlockedError",
    "RequestContext",
    "RestoreResponse",
    "StoreError",
    "TooManyRequestsError",
    "UnauthorizedError",
]
