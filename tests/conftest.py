"""Pytest configuration and shared fixtures."""

import asyncio
from typing import Any, Dict, Optional

import pytest

from plan_app.backend.base import PlanBackend
from plan_app.channels.memory import InMemoryChannel
from plan_app.config.defaults import DebounceParams, get_default_config
from plan_app.data.models import DateRange, Environment
from plan_app.errors import ErrorRegistry
from plan_app.session import PlanSession

# Short debounce window so session tests stay fast
TEST_WAIT_MS = 10


class FakePlanBackend(PlanBackend):
    """
    Scripted plan backend.

    Set ``hold_run``/``hold_apply``/``hold_cancel`` to park the matching call
    until ``release(name)`` is called.
    """

    def __init__(self):
        self.run_payloads: list[dict] = []
        self.apply_payloads: list[dict] = []
        self.cancel_run_calls = 0
        self.cancel_apply_calls = 0

        self.run_response: Dict[str, Any] = {
            "backfills": [],
            "changes": {"added": ["sushi.orders", "sushi.customers"]},
            "start": "2023-01-01",
            "end": "2023-01-07",
        }
        self.apply_response: Dict[str, Any] = {"type": "virtual"}

        self.run_error: Optional[BaseException] = None
        self.apply_error: Optional[BaseException] = None
        self.cancel_error: Optional[BaseException] = None

        self.hold_run = False
        self.hold_apply = False
        self.hold_cancel = False
        self._gates: dict[str, asyncio.Event] = {}

    def release(self, name: str) -> None:
        self._gate(name).set()

    def _gate(self, name: str) -> asyncio.Event:
        if name not in self._gates:
            self._gates[name] = asyncio.Event()
        return self._gates[name]

    async def _hold(self, name: str, hold: bool) -> None:
        if hold:
            await self._gate(name).wait()

    async def run_plan(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.run_payloads.append(payload)
        await self._hold("run", self.hold_run)
        if self.run_error is not None:
            raise self.run_error
        return self.run_response

    async def apply_plan(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.apply_payloads.append(payload)
        await self._hold("apply", self.hold_apply)
        if self.apply_error is not None:
            raise self.apply_error
        return self.apply_response

    async def cancel_run(self) -> None:
        self.cancel_run_calls += 1
        await self._hold("cancel", self.hold_cancel)
        if self.cancel_error is not None:
            raise self.cancel_error

    async def cancel_apply(self) -> None:
        self.cancel_apply_calls += 1
        await self._hold("cancel", self.hold_cancel)
        if self.cancel_error is not None:
            raise self.cancel_error


async def settle(rounds: int = 5) -> None:
    """Let scheduled callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_debounce() -> None:
    """Sleep past the test debounce window."""
    await asyncio.sleep(TEST_WAIT_MS / 1000.0 * 3)
    await settle()


@pytest.fixture
def backend() -> FakePlanBackend:
    return FakePlanBackend()


@pytest.fixture
def channel() -> InMemoryChannel:
    return InMemoryChannel()


@pytest.fixture
def errors() -> ErrorRegistry:
    return ErrorRegistry()


@pytest.fixture
def config():
    """Default configuration with a short debounce window."""
    defaults = get_default_config()
    return type(defaults)(
        debounce=DebounceParams(wait_ms=TEST_WAIT_MS),
        channels=defaults.channels,
        plan_options=defaults.plan_options,
        logging=defaults.logging,
    )


@pytest.fixture
def environment() -> Environment:
    return Environment(name="dev", is_initial=False, is_default=False)


@pytest.fixture
def initial_range() -> DateRange:
    return DateRange(start="2023-01-01", end="2023-01-07")


@pytest.fixture
def make_session(backend, channel, errors, config, environment, initial_range):
    """Factory for plan sessions wired to the shared fakes."""

    def factory(**kwargs) -> PlanSession:
        params = {
            "backend": backend,
            "channel": channel,
            "environment": environment,
            "initial_range": initial_range,
            "config": config,
            "errors": errors,
            "session_id": "test-session",
        }
        params.update(kwargs)
        return PlanSession(**params)

    return factory


@pytest.fixture
def sample_progress() -> Dict[str, Any]:
    """Backfill progress message as streamed on the tasks topic."""
    return {
        "ok": True,
        "tasks": {
            "sushi.orders": {"completed": 2, "total": 5, "start": 1672531200000},
            "sushi.customers": {"completed": 0, "total": 3},
        },
        "queue": ["sushi.customers"],
        "updated_at": 1672531260000,
    }
