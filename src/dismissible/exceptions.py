"""Custom exceptions for the dismissible package."""

from __future__ import annotations

from dataclasses import dataclass


class DismissibleError(Exception):
    """Base exception for all dismissible errors.

    Attributes:
        code:        Stable machine-readable error code.
        status_code: HTTP-style status a transport layer should map this to.
    """

    code = "DISMISSIBLE_ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class OperationBlockedError(DismissibleError):
    """Raised when a lifecycle hook declines to proceed (forbidden)."""

    code = "OPERATION_BLOCKED"
    status_code = 403

    def __init__(self, reason: str = "Operation blocked by lifecycle hook") -> None:
        self.reason = reason
        super().__init__(reason)


class UnauthorizedError(DismissibleError):
    """Raised by authentication hooks when the caller cannot be identified."""

    code = "UNAUTHORIZED"
    status_code = 401


class TooManyRequestsError(DismissibleError):
    """Raised by the rate limit hook.  ``retry_after`` is in whole seconds."""

    code = "TOO_MANY_REQUESTS"
    status_code = 429

    def __init__(self, message: str, retry_after: int | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message)


class ItemError(DismissibleError):
    """Client error about a specific item."""

    status_code = 400

    def __init__(self, message: str, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(message)


class ItemNotFoundError(ItemError):
    code = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str) -> None:
        super().__init__(f'Item with id "{item_id}" not found', item_id)


class InvalidStateTransitionError(ItemError):
    """The requested transition is illegal in the item's current state."""


class ItemAlreadyDismissedError(InvalidStateTransitionError):
    code = "ITEM_ALREADY_DISMISSED"

    def __init__(self, item_id: str) -> None:
        super().__init__(f'Item with id "{item_id}" is already dismissed', item_id)


class ItemNotDismissedError(InvalidStateTransitionError):
    code = "ITEM_NOT_DISMISSED"

    def __init__(self, item_id: str) -> None:
        super().__init__(f'Item with id "{item_id}" is not dismissed', item_id)


@dataclass(frozen=True)
class FieldError:
    """One failed constraint on one field."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ItemValidationError(DismissibleError):
    """Raised when input or a post-mutation item fails validation."""

    code = "VALIDATION_FAILED"
    status_code = 400

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = errors
        super().__init__("Validation failed: " + "; ".join(str(e) for e in errors))


class StoreError(DismissibleError):
    """Raised when an item store operation fails."""

    code = "STORE_ERROR"

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        msg = f"Store error during '{operation}'"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class HookConfigError(DismissibleError):
    """Raised when a hook is misconfigured."""

    code = "HOOK_CONFIG_ERROR"

    def __init__(self, hook_name: str, message: str) -> None:
        self.hook_name = hook_name
        super().__init__(f"Hook '{hook_name}' misconfigured: {message}")
