# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Command-line runner: one dismissible operation per invocation.

Usage:
    python -m dismissible.runner < input.json > output.json
    dismissible-runner < input.json

A ``RunnerInput`` document is read from stdin and a ``RunnerOutput``
document is always written to stdout, errors included.  Deployment
settings come from ``DISMISSIBLE_*`` environment variables; logs go to
stderr at ``DISMISSIBLE_LOG_LEVEL`` (default ``WARNING``).

Exit codes:
    0: The operation succeeded
    1: Invalid input or a failed operation (see ``code`` in the output)
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

from dismissible.exceptions import DismissibleError

from .executor import Executor
from .schema import RunnerInput, RunnerOutput


def _configure_logging() -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=os.environ.get("DISMISSIBLE_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _emit(output: RunnerOutput) -> int:
    print(output.model_dump_json())
    return 0 if output.success else 1


async def _run(executor: Executor, request: RunnerInput) -> RunnerOutput:
    try:
        return await executor.execute(request)
    finally:
        await executor.close()


def main() -> int:
    """Run the operation described on stdin and return the exit code."""
    _configure_logging()

    try:
        request = RunnerInput.model_validate_json(sys.stdin.read())
        executor = Executor.from_env()
    except DismissibleError as e:
        return _emit(Executor.error_output(e))
    except Exception as e:
        # Malformed JSON or a schema violation: still answer in JSON.
        return _emit(
            RunnerOutput(
                success=False,
                error=str(e),
                error_type=type(e).__name__,
                code="INVALID_INPUT",
                status_code=400,
            )
        )

    return _emit(asyncio.run(_run(executor, request)))


if __name__ == "__main__":
    sys.exit(main())
