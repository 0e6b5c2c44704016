#!/usr/bin/env python3
"""
Basic Usage Example - Plan Session Orchestrator

This script drives a plan session against a simulated backend. It shows how
to:
- Build a session with configuration for an environment
- Run a plan and review the changes
- Apply it and follow backfill progress on the event channel
- Cancel an apply in flight

Run: python examples/basic_usage.py
"""

import asyncio
from typing import Any, Dict

from plan_app.backend.base import PlanBackend
from plan_app.channels.memory import InMemoryChannel
from plan_app.data.models import DateRange, Environment
from plan_app.logging import configure_logging
from plan_app.session import PlanSession
from plan_app.state.models import PlanState


class SimulatedPlanBackend(PlanBackend):
    """Backend that answers after a short delay and streams progress."""

    def __init__(self, channel: InMemoryChannel, delay: float = 0.2):
        self.channel = channel
        self.delay = delay
        self._backfill: asyncio.Task | None = None

    async def run_plan(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        print(f"  → run_plan for {payload['environment']} {payload.get('plan_dates')}")
        await asyncio.sleep(self.delay)
        self.channel.publish("tests", {"ok": True, "total": 4, "passed": 4})
        return {
            "backfills": [
                {"model_name": "sushi.orders", "interval": ["2023-01-01", "2023-01-07"], "batches": 3},
            ],
            "changes": {
                "added": ["sushi.customers"],
                "modified": {"direct": ["sushi.orders"], "indirect": ["sushi.revenue"]},
            },
            "start": payload.get("plan_dates", {}).get("start"),
            "end": payload.get("plan_dates", {}).get("end"),
        }

    async def apply_plan(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        print("  → apply_plan")
        await asyncio.sleep(self.delay)
        self._backfill = asyncio.create_task(self._stream_backfill(batches=3))
        return {"type": "physical"}

    async def cancel_run(self) -> None:
        print("  → cancel_run")

    async def cancel_apply(self) -> None:
        print("  → cancel_apply")
        if self._backfill is not None:
            self._backfill.cancel()

    async def _stream_backfill(self, batches: int) -> None:
        for completed in range(1, batches + 1):
            await asyncio.sleep(self.delay)
            self.channel.publish("tasks", {
                "ok": True,
                "tasks": {"sushi.orders": {"completed": completed, "total": batches}},
                "queue": [] if completed == batches else ["sushi.orders"],
            })
        self.channel.publish("report", {"ok": True, "status": "finished", "type": "apply"})


def print_session(session: PlanSession) -> None:
    view = session.snapshot()
    progress = ""
    if view.active_plan is not None:
        progress = f" progress={view.active_plan.completed}/{view.active_plan.total}"
    print(f"  state={view.state.value} action={view.action.value}{progress}")


async def review_and_apply() -> None:
    print("\n📋 Run, review and apply")
    channel = InMemoryChannel()
    backend = SimulatedPlanBackend(channel)
    initial_range = DateRange("2023-01-01", "2023-01-07")

    async with PlanSession.create(backend, channel, Environment(name="prod"), initial_range) as session:
        print_session(session)

        await session.run()
        view = session.snapshot()
        print(f"  added={list(view.changes.added)} direct={list(view.changes.direct)}")
        print(f"  backfills={[b.model_name for b in view.backfills]} tests={view.tests_report_messages}")
        print_session(session)

        await session.apply()
        while session.state == PlanState.APPLYING:
            await asyncio.sleep(0.1)
            print_session(session)


async def cancel_apply() -> None:
    print("\n🛑 Cancel an apply in flight")
    channel = InMemoryChannel()
    backend = SimulatedPlanBackend(channel)

    async with PlanSession.create(backend, channel, Environment(name="prod")) as session:
        await session.run()
        await session.apply()
        await asyncio.sleep(0.3)
        print_session(session)

        await session.cancel()
        print_session(session)


def main() -> None:
    configure_logging(level="WARNING")
    print("🚀 Plan session basic usage")
    asyncio.run(review_and_apply())
    asyncio.run(cancel_apply())
    print("\n✅ Done")


if __name__ == "__main__":
    main()
