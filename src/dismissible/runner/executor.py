# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Executor for running one dismissible operation from runner input.

Orchestrates the full execution flow:
1. Build the per-call hooks listed in the input
2. Create store and set the hooks up (deployment hooks once per executor)
3. Run the operation through DismissibleService
4. Return structured result, or the error mapped to code/status
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from dismissible.config import DismissibleConfig
from dismissible.core import DismissibleCore
from dismissible.exceptions import (
    DismissibleError,
    HookConfigError,
    ItemValidationError,
    TooManyRequestsError,
)
from dismissible.hooks import HookRunner, JwtAuthHook, RateLimitHook
from dismissible.service import DismissibleService
from dismissible.stores import InMemoryItemStore, ItemStore, SQLiteItemStore

from .factory import HookFactory
from .schema import RunnerInput, RunnerOutput, StoreConfigSchema

logger = logging.getLogger(__name__)


class ExecutionError(DismissibleError):
    """Raised when the runner input cannot be executed."""

    code = "EXECUTION_ERROR"
    status_code = 400


class Executor:
    """Executes one operation with hook enforcement.

    Responsibilities:
    - Create store from configuration
    - Build the hook pipeline (configured hooks plus hooks enabled in
      ``config``)
    - Dispatch to DismissibleService
    - Translate results and errors to output schema

    Example:
        executor = Executor()
        output = await executor.execute(input_data)

        # For testing with a prepared store:
        executor = Executor(store=InMemoryItemStore())
    """

    def __init__(
        self,
        store: ItemStore | None = None,
        config: DismissibleConfig | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            store: Optional store to use instead of creating from input.
            config: Deployment config; hooks enabled here are added to the
                    ones listed in the input.

        Hooks enabled in ``config`` are built once and shared by every
        :meth:`execute` call, so their state (rate limit windows, the JWKS
        cache) carries across operations.  They are set up on first use and
        released by :meth:`close`.  Hooks listed in the input live for one
        call only.
        """
        self._injected_store = store
        self._config = config or DismissibleConfig()
        self._hooks = self._config_hooks()
        self._hooks_ready = False

    @property
    def hooks(self) -> tuple[object, ...]:
        """Hooks built from the deployment config."""
        return tuple(self._hooks)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Executor:
        """Build an executor configured from ``DISMISSIBLE_*`` variables.

        Raises:
            HookConfigError: If the environment holds an invalid setting
        """
        try:
            config = DismissibleConfig.from_env(environ)
        except ValidationError as e:
            raise HookConfigError("environment", str(e)) from e
        return cls(config=config)

    async def execute(self, input_data: RunnerInput) -> RunnerOutput:
        """Execute the operation.

        Note:
            This method catches all exceptions and returns them as
            RunnerOutput errors, ensuring valid JSON is always returned.
        """
        try:
            return await self._execute_internal(input_data)
        except DismissibleError as e:
            return self.error_output(e)
        except Exception as e:
            logger.exception("Unexpected error while executing %s", input_data.operation)
            return RunnerOutput(
                success=False,
                error=str(e),
                error_type=type(e).__name__,
                code=DismissibleError.code,
                status_code=DismissibleError.status_code,
            )

    async def _execute_internal(self, input_data: RunnerInput) -> RunnerOutput:
        """Internal execution logic.

        Separated from execute() to allow exception propagation
        for testing while execute() catches all errors.
        """
        request_hooks = HookRunner(HookFactory().create_all(input_data.hooks))
        runner = HookRunner(self._hooks + list(request_hooks.hooks))

        owns_store = self._injected_store is None
        store: ItemStore | None = self._injected_store

        try:
            if store is None:
                store = self._create_store(self._store_config(input_data))
            await self._setup_config_hooks()
            await request_hooks.setup()
            service = DismissibleService(DismissibleCore(store), runner)
            context = input_data.context.to_context() if input_data.context else None

            if input_data.operation == "batch_get_or_create":
                response: Any = await service.batch_get_or_create(
                    input_data.item_ids or [], input_data.user_id, context
                )
            else:
                operation = getattr(service, input_data.operation)
                response = await operation(input_data.item_id, input_data.user_id, context)

            return RunnerOutput(success=True, result=response.to_dict())
        finally:
            await request_hooks.close()
            if owns_store and store is not None and hasattr(store, "close"):
                await store.close()

    async def _setup_config_hooks(self) -> None:
        if not self._hooks_ready:
            await HookRunner(self._hooks).setup()
            self._hooks_ready = True

    async def close(self) -> None:
        """Release the hooks built from the deployment config."""
        await HookRunner(self._hooks).close()
        self._hooks_ready = False

    def _store_config(self, input_data: RunnerInput) -> StoreConfigSchema:
        # An explicit "store" in the input wins over the deployment config.
        if "store" in input_data.model_fields_set:
            return input_data.store
        return StoreConfigSchema(**self._config.storage.model_dump())

    def _config_hooks(self) -> list[object]:
        hooks: list[object] = []
        if self._config.rate_limiter.enabled:
            hooks.append(RateLimitHook(self._config.rate_limiter))
        if self._config.jwt_auth.enabled:
            hooks.append(JwtAuthHook(config=self._config.jwt_auth))
        return hooks

    def _create_store(self, config: StoreConfigSchema) -> ItemStore:
        if config.type == "sqlite":
            if not config.path:
                raise ExecutionError("SQLite store requires 'path' configuration")
            return SQLiteItemStore(config.path)
        if config.type != "memory":
            raise ExecutionError(f"Unknown store type: '{config.type}'")
        return InMemoryItemStore()

    @staticmethod
    def error_output(error: DismissibleError) -> RunnerOutput:
        """Convert a dismissible error to RunnerOutput."""
        details: dict[str, Any] = {}
        if isinstance(error, ItemValidationError):
            details["errors"] = [{"field": e.field, "message": e.message} for e in error.errors]
        if isinstance(error, TooManyRequestsError) and error.retry_after is not None:
            details["retry_after"] = error.retry_after

        return RunnerOutput(
            success=False,
            error=error.message,
            error_type=type(error).__name__,
            code=error.code,
            status_code=error.status_code,
            details=details,
        )
