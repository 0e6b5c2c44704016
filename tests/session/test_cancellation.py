"""Tests for the cancellation bridge."""

import asyncio

from conftest import FakePlanBackend
from plan_app.channels.adapter import ChannelEventAdapter
from plan_app.channels.memory import InMemoryChannel
from plan_app.data.models import BackfillProgress, TestsReport
from plan_app.errors import CancelPlanError, SupersededError
from plan_app.session.cancellation import CancellationBridge
from plan_app.state.context import PlanContext
from plan_app.state.models import PlanAction, PlanState
from plan_app.state.transitions import PlanStateStore


def make_bridge(backend, state, action):
    channel = InMemoryChannel()
    store = PlanStateStore("cancel-test", state=state, action=action)
    context = PlanContext()
    adapter = ChannelEventAdapter(channel, on_tests=lambda r: None, on_report=lambda r: None)
    failures = []
    bridge = CancellationBridge(backend, store, context, adapter, on_failure=failures.append)
    return bridge, store, context, adapter, channel, failures


class TestCancellationBridge:
    """Test CancellationBridge.cancel()."""

    def test_cancel_run_calls_run_cancel(self):
        async def scenario():
            backend = FakePlanBackend()
            bridge, store, context, _, _, failures = make_bridge(
                backend, PlanState.RUNNING, PlanAction.RUNNING
            )
            context.add_tests_report(TestsReport(ok=False, data={"test_orders": "failed"}))

            result = await bridge.cancel(PlanAction.RUNNING, lambda: True)

            assert result.ok
            assert backend.cancel_run_calls == 1
            assert backend.cancel_apply_calls == 0
            assert store.state == PlanState.CANCELLED
            assert store.action == PlanAction.RUN
            assert context.tests_report_errors == {}
            assert failures == []

        asyncio.run(scenario())

    def test_cancel_apply_stops_progress_and_clears_active_plan(self):
        async def scenario():
            backend = FakePlanBackend()
            bridge, store, _, adapter, channel, _ = make_bridge(
                backend, PlanState.APPLYING, PlanAction.APPLYING
            )
            adapter.start_progress_feed(lambda progress: None)
            store.set_active_plan(BackfillProgress())

            result = await bridge.cancel(PlanAction.APPLYING, lambda: True)

            assert result.ok
            assert backend.cancel_apply_calls == 1
            assert store.active_plan is None
            assert adapter.progress_active is False
            assert channel.subscriber_count("tasks") == 0

        asyncio.run(scenario())

    def test_cancelling_state_is_set_before_backend_call(self):
        async def scenario():
            backend = FakePlanBackend()
            backend.hold_cancel = True
            bridge, store, _, _, _, _ = make_bridge(backend, PlanState.RUNNING, PlanAction.RUNNING)

            task = asyncio.create_task(bridge.cancel(PlanAction.RUNNING, lambda: True))
            await asyncio.sleep(0)

            assert store.state == PlanState.CANCELLING
            assert store.action == PlanAction.CANCELLING

            backend.release("cancel")
            await task
            assert store.state == PlanState.CANCELLED

        asyncio.run(scenario())

    def test_failed_cancel_hands_over_to_failure_callback(self):
        async def scenario():
            backend = FakePlanBackend()
            backend.cancel_error = RuntimeError("no such run")
            bridge, store, _, _, _, failures = make_bridge(
                backend, PlanState.RUNNING, PlanAction.RUNNING
            )

            result = await bridge.cancel(PlanAction.RUNNING, lambda: True)

            assert result.failed
            assert len(failures) == 1
            assert isinstance(failures[0], CancelPlanError)
            assert failures[0].cause is backend.cancel_error
            assert store.state == PlanState.CANCELLING

        asyncio.run(scenario())

    def test_superseded_cancel_changes_nothing(self):
        async def scenario():
            backend = FakePlanBackend()
            backend.cancel_error = SupersededError(operation="cancel_run")
            bridge, store, _, _, _, failures = make_bridge(
                backend, PlanState.RUNNING, PlanAction.RUNNING
            )

            result = await bridge.cancel(PlanAction.RUNNING, lambda: True)

            assert result.superseded
            assert failures == []
            assert store.state == PlanState.CANCELLING
            assert store.action == PlanAction.CANCELLING

        asyncio.run(scenario())

    def test_stale_completion_is_ignored(self):
        async def scenario():
            backend = FakePlanBackend()
            backend.cancel_error = RuntimeError("late failure")
            bridge, store, _, _, _, failures = make_bridge(
                backend, PlanState.RUNNING, PlanAction.RUNNING
            )

            result = await bridge.cancel(PlanAction.RUNNING, lambda: False)

            assert result.failed
            assert failures == []
            assert store.action == PlanAction.CANCELLING

        asyncio.run(scenario())
