# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Runner submodule for executing dismissible operations from JSON.

Usage:
    python -m dismissible.runner < input.json > output.json

Exports:
    Executor: Runs one operation through the hook pipeline
    HookFactory: Creates hook instances from configuration
    RunnerInput: Input schema
    RunnerOutput: Output schema
"""

from .executor import ExecutionError, Executor
from .factory import HookFactory, HookFactoryError
from .schema import (
    HookConfigSchema,
    RequestContextSchema,
    RunnerInput,
    RunnerOutput,
    StoreConfigSchema,
)

__all__ = [
    "ExecutionError",
    "Executor",
    "HookConfigSchema",
    "HookFactory",
    "HookFactoryError",
    "RequestContextSchema",
    "RunnerInput",
    "RunnerOutput",
    "StoreConfigSchema",
]
