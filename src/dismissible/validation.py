"""Shape validation for operation input and for items before persistence.

Built on pydantic models; failures are flattened into :class:`FieldError`
lists so callers never have to deal with pydantic's error format.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError

from dismissible.exceptions import FieldError, ItemValidationError

if TYPE_CHECKING:
    from dismissible.item import DismissibleItem

ID_MIN_LENGTH = 1
ID_MAX_LENGTH = 64
ID_PATTERN = r"^[a-zA-Z0-9_-]+$"
BATCH_MAX_SIZE = 50

Identifier = Annotated[
    str,
    StringConstraints(min_length=ID_MIN_LENGTH, max_length=ID_MAX_LENGTH, pattern=ID_PATTERN),
]


class DismissibleInput(BaseModel):
    """Arguments of a single-item operation."""

    model_config = ConfigDict(strict=True)

    item_id: Identifier
    user_id: Identifier


class BatchInput(BaseModel):
    """Arguments of a batch operation."""

    model_config = ConfigDict(strict=True)

    item_ids: Annotated[list[Identifier], Field(min_length=1, max_length=BATCH_MAX_SIZE)]
    user_id: Identifier


class ItemSchema(BaseModel):
    """Shape every item must have before it is written."""

    model_config = ConfigDict(strict=True)

    id: Identifier
    user_id: Identifier
    created_at: datetime
    dismissed_at: datetime | None = None


def _field_errors(exc: ValidationError) -> list[FieldError]:
    errors: list[FieldError] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "__root__"
        errors.append(FieldError(field=loc, message=err["msg"]))
    return errors


class ItemValidator:
    """Validates items right before the core engine persists them."""

    def validate(self, item: DismissibleItem) -> list[FieldError]:
        """Return the list of field errors; empty means the item is valid."""
        try:
            ItemSchema(
                id=item.id,
                user_id=item.user_id,
                created_at=item.created_at,
                dismissed_at=item.dismissed_at,
            )
        except ValidationError as exc:
            return _field_errors(exc)
        return []

    def validate_or_raise(self, item: DismissibleItem) -> None:
        errors = self.validate(item)
        if errors:
            raise ItemValidationError(errors)


class InputValidator:
    """Validates the raw arguments of service operations."""

    def validate_input(self, item_id: str, user_id: str) -> None:
        try:
            DismissibleInput(item_id=item_id, user_id=user_id)
        except ValidationError as exc:
            raise ItemValidationError(_field_errors(exc)) from exc

    def validate_batch(self, item_ids: list[str], user_id: str) -> None:
        try:
            BatchInput(item_ids=item_ids, user_id=user_id)
        except ValidationError as exc:
            raise ItemValidationError(_field_errors(exc)) from exc
