"""Shared test fixtures."""

from datetime import UTC, datetime

import pytest

from dismissible import DismissibleCore, DismissibleService, EventEmitter, RequestContext
from dismissible.hooks import HookRunner
from dismissible.hooks.base import HOOK_PHASES
from dismissible.stores import InMemoryItemStore


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self._now = start

    def now(self) -> datetime:
        return datetime.fromtimestamp(self._now, tz=UTC)

    def advance(self, seconds: float) -> None:
        self._now += seconds


class RecordingHook:
    """Implements every phase; appends ``(name, phase, args)`` to a shared log."""

    def __init__(self, name, log, priority=0):
        self.name = name
        self.priority = priority
        self._log = log
        for phase in HOOK_PHASES:
            setattr(self, phase, self._recorder(phase))

    def _recorder(self, phase):
        def record(*args):
            self._log.append((self.name, phase, args))
            return None

        return record

    def phases(self):
        return [phase for name, phase, _ in self._log if name == self.name]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryItemStore()


@pytest.fixture
def core(store, clock):
    return DismissibleCore(store, clock=clock)


@pytest.fixture
def events():
    return EventEmitter()


@pytest.fixture
def make_service(core, events):
    def make(*hooks):
        return DismissibleService(core, HookRunner(hooks), events=events)

    return make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def log():
    return []


@pytest.fixture
def recorder(log):
    def make(name, priority=0):
        return RecordingHook(name, log, priority)

    return make


@pytest.fixture
def ctx():
    return RequestContext(
        request_id="req-1",
        headers={"x-forwarded-for": "203.0.113.7", "origin": "https://app.example.com"},
        ip="10.0.0.1",
        method="GET",
        url="/v1/users/alice/items/welcome-banner",
    )
