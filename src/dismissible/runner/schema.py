# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Data transfer objects for runner input/output.

These Pydantic models define the JSON contract of
``python -m dismissible.runner``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from dismissible.context import RequestContext

Operation = Literal["get_or_create", "batch_get_or_create", "dismiss", "restore"]


class HookConfigSchema(BaseModel):
    """Single hook configuration.

    Attributes:
        name: Unique identifier for this hook instance
        type: Hook type (e.g., "rate_limit", "jwt_auth")
        config: Type-specific configuration parameters
    """

    name: str
    type: str
    config: dict[str, Any] = Field(default_factory=dict)


class StoreConfigSchema(BaseModel):
    """Item store configuration.

    Attributes:
        type: Store type ("memory" or "sqlite")
        path: Path to SQLite database file (for sqlite type)
    """

    type: str = "memory"
    path: str = ""


class RequestContextSchema(BaseModel):
    """Request metadata forwarded to the hook pipeline.

    Header names are lower-cased on conversion.
    """

    request_id: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    query: dict[str, Any] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)
    body: dict[str, Any] = Field(default_factory=dict)
    user: dict[str, Any] = Field(default_factory=dict)
    ip: str = ""
    method: str = ""
    url: str = ""
    origin: str = ""
    referer: str = ""
    user_agent: str = ""
    timestamp: datetime | None = None

    def to_context(self) -> RequestContext:
        data = self.model_dump(exclude_none=True)
        data["headers"] = {k.lower(): v for k, v in self.headers.items()}
        return RequestContext(**data)


class RunnerInput(BaseModel):
    """Complete input read from stdin.

    Attributes:
        operation: Service operation to run
        user_id: Owner of the item(s)
        item_id: Target item (single-item operations)
        item_ids: Target items (``batch_get_or_create``)
        context: Request metadata for hooks
        hooks: Hook configurations, in registration order
        store: Item store configuration
    """

    operation: Operation
    user_id: str
    item_id: str | None = None
    item_ids: list[str] | None = None
    context: RequestContextSchema | None = None
    hooks: list[HookConfigSchema] = Field(default_factory=list)
    store: StoreConfigSchema = Field(default_factory=StoreConfigSchema)

    @model_validator(mode="after")
    def _check_targets(self) -> RunnerInput:
        if self.operation == "batch_get_or_create":
            if self.item_ids is None:
                raise ValueError("batch_get_or_create requires 'item_ids'")
        elif self.item_id is None:
            raise ValueError(f"{self.operation} requires 'item_id'")
        return self


class RunnerOutput(BaseModel):
    """Complete output written to stdout.

    The runner always outputs valid JSON matching this schema,
    even on errors.

    Attributes:
        success: Whether the operation completed successfully
        result: Operation response (on success)
        error: Error message (on failure)
        error_type: Error class name (on failure)
        code: Machine-readable error code (on failure)
        status_code: HTTP-style status of the outcome
        details: Extra error data (field errors, retry_after)
    """

    success: bool
    result: Any = None
    error: str = ""
    error_type: str = ""
    code: str = ""
    status_code: int = 200
    details: dict[str, Any] = Field(default_factory=dict)
