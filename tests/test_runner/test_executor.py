"""Tests for the runner executor."""

import io
import json

import pytest

from dismissible import DismissibleConfig, HookConfigError
from dismissible.config import RateLimitHookConfig
from dismissible.exceptions import TooManyRequestsError, UnauthorizedError
from dismissible.runner import __main__ as runner_main
from dismissible.runner.executor import Executor
from dismissible.runner.schema import (
    HookConfigSchema,
    RequestContextSchema,
    RunnerInput,
    StoreConfigSchema,
)
from dismissible.stores import InMemoryItemStore


@pytest.fixture
def item_store():
    return InMemoryItemStore()


@pytest.fixture
def executor(item_store):
    return Executor(store=item_store)


class TestExecute:
    """Tests for Executor.execute()."""

    async def test_get_or_create(self, executor):
        """Test a successful get_or_create."""
        output = await executor.execute(
            RunnerInput(operation="get_or_create", user_id="alice", item_id="banner")
        )

        assert output.success
        assert output.status_code == 200
        assert output.result["created"] is True
        assert output.result["item"]["id"] == "banner"
        assert output.result["item"]["dismissed_at"] is None

    async def test_state_survives_across_calls_with_injected_store(self, executor):
        """Test that an injected store is reused and not closed."""
        await executor.execute(RunnerInput(operation="get_or_create", user_id="alice", item_id="banner"))
        output = await executor.execute(
            RunnerInput(operation="dismiss", user_id="alice", item_id="banner")
        )

        assert output.success
        assert output.result["item"]["dismissed_at"] is not None
        assert output.result["previous_item"]["dismissed_at"] is None

    async def test_batch(self, executor):
        """Test batch_get_or_create output shape."""
        output = await executor.execute(
            RunnerInput(operation="batch_get_or_create", user_id="alice", item_ids=["a", "b"])
        )

        assert output.success
        assert [i["id"] for i in output.result["items"]] == ["a", "b"]
        assert len(output.result["created_items"]) == 2

    async def test_not_found_maps_to_400(self, executor):
        """Test that core errors carry their code and status."""
        output = await executor.execute(
            RunnerInput(operation="restore", user_id="alice", item_id="banner")
        )

        assert not output.success
        assert output.error_type == "ItemNotFoundError"
        assert output.code == "ITEM_NOT_FOUND"
        assert output.status_code == 400

    async def test_validation_error_details(self, executor):
        """Test that field errors are reported."""
        output = await executor.execute(
            RunnerInput(operation="get_or_create", user_id="alice", item_id="not valid")
        )

        assert output.code == "VALIDATION_FAILED"
        assert output.status_code == 400
        assert output.details["errors"][0]["field"] == "item_id"

    async def test_config_rate_limit_spans_executions(self):
        """Test that the deployment rate limiter keeps state across calls."""
        executor = Executor(
            store=InMemoryItemStore(),
            config=DismissibleConfig(
                rate_limiter=RateLimitHookConfig(enabled=True, points=1, duration=60)
            ),
        )
        request = RunnerInput(
            operation="get_or_create",
            user_id="alice",
            item_id="banner",
            context=RequestContextSchema(ip="10.0.0.1"),
        )

        first = await executor.execute(request)
        second = await executor.execute(request)
        await executor.close()

        assert first.success
        assert not second.success
        assert second.code == "TOO_MANY_REQUESTS"
        assert second.status_code == 429
        assert second.details["retry_after"] == 60

    async def test_input_hooks_are_built(self, executor):
        """Test that hooks listed in the input join the pipeline."""
        output = await executor.execute(
            RunnerInput(
                operation="batch_get_or_create",
                user_id="alice",
                item_ids=["a"],
                hooks=[
                    HookConfigSchema(
                        name="rl", type="rate_limit", config={"points": 1, "duration": 60}
                    )
                ],
            )
        )
        assert output.success

    async def test_hook_config_error(self, executor):
        """Test that bad hook config maps to HOOK_CONFIG_ERROR."""
        output = await executor.execute(
            RunnerInput(
                operation="get_or_create",
                user_id="alice",
                item_id="banner",
                hooks=[HookConfigSchema(name="x", type="does_not_exist")],
            )
        )

        assert not output.success
        assert output.code == "HOOK_CONFIG_ERROR"
        assert output.status_code == 500

    async def test_unknown_store_type(self):
        """Test that an unknown store type is rejected."""
        output = await Executor().execute(
            RunnerInput(
                operation="get_or_create",
                user_id="alice",
                item_id="banner",
                store=StoreConfigSchema(type="redis"),
            )
        )

        assert output.code == "EXECUTION_ERROR"
        assert output.status_code == 400

    async def test_sqlite_store_from_input(self, tmp_path):
        """Test that the executor creates and closes a SQLite store."""
        store = StoreConfigSchema(type="sqlite", path=str(tmp_path / "items.db"))
        executor = Executor()

        await executor.execute(
            RunnerInput(operation="get_or_create", user_id="alice", item_id="banner", store=store)
        )
        output = await executor.execute(
            RunnerInput(operation="get_or_create", user_id="alice", item_id="banner", store=store)
        )

        assert output.result["created"] is False


class TestRunnerInput:
    """Tests for RunnerInput validation."""

    def test_single_item_requires_item_id(self):
        with pytest.raises(ValueError, match="item_id"):
            RunnerInput(operation="dismiss", user_id="alice")

    def test_batch_requires_item_ids(self):
        with pytest.raises(ValueError, match="item_ids"):
            RunnerInput(operation="batch_get_or_create", user_id="alice")

    def test_unknown_operation(self):
        with pytest.raises(ValueError):
            RunnerInput(operation="delete", user_id="alice", item_id="banner")

    def test_context_conversion_lowercases_headers(self):
        schema = RequestContextSchema(request_id="r1", headers={"Authorization": "Bearer t"})
        ctx = schema.to_context()
        assert ctx.request_id == "r1"
        assert ctx.header("authorization") == "Bearer t"


class TestFromEnv:
    """Tests for Executor.from_env()."""

    def test_invalid_env_raises_hook_config_error(self):
        with pytest.raises(HookConfigError):
            Executor.from_env({"DISMISSIBLE_RATE_LIMITER_POINTS": "zero"})

    def test_env_enables_hooks(self):
        executor = Executor.from_env({"DISMISSIBLE_RATE_LIMITER_ENABLED": "true"})
        assert [type(h).__name__ for h in executor.hooks] == ["RateLimitHook"]


class TestMain:
    """Tests for the stdin/stdout entry point."""

    def run(self, monkeypatch, capsys, payload):
        monkeypatch.setattr("sys.stdin", io.StringIO(payload))
        code = runner_main.main()
        return code, json.loads(capsys.readouterr().out)

    def test_success(self, monkeypatch, capsys):
        payload = json.dumps({"operation": "get_or_create", "user_id": "alice", "item_id": "banner"})
        code, out = self.run(monkeypatch, capsys, payload)

        assert code == 0
        assert out["success"] is True
        assert out["result"]["created"] is True

    def test_invalid_json(self, monkeypatch, capsys):
        code, out = self.run(monkeypatch, capsys, "{not json")

        assert code == 1
        assert out["success"] is False
        assert out["code"] == "INVALID_INPUT"

    def test_operation_error_exit_code(self, monkeypatch, capsys):
        payload = json.dumps({"operation": "dismiss", "user_id": "alice", "item_id": "banner"})
        code, out = self.run(monkeypatch, capsys, payload)

        assert code == 1
        assert out["code"] == "ITEM_NOT_FOUND"


class TestErrorOutput:
    """Tests for Executor.error_output()."""

    def test_rate_limit(self):
        output = Executor.error_output(TooManyRequestsError("slow down", retry_after=3))

        assert output.status_code == 429
        assert output.code == "TOO_MANY_REQUESTS"
        assert output.details == {"retry_after": 3}

    def test_unauthorized(self):
        output = Executor.error_output(UnauthorizedError("Missing or invalid bearer token"))

        assert not output.success
        assert output.status_code == 401
        assert output.error_type == "UnauthorizedError"
        assert output.details == {}
