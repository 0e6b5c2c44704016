"""Tests for the plan state store."""

import pytest

from plan_app.data.models import BackfillProgress
from plan_app.errors import StateTransitionError
from plan_app.state.models import PlanAction, PlanState
from plan_app.state.transitions import PlanStateStore


class TestPlanStateStore:
    """Test PlanStateStore guards."""

    def test_defaults(self):
        store = PlanStateStore("store-test")
        assert store.state == PlanState.INIT
        assert store.action == PlanAction.NONE
        assert store.active_plan is None

    def test_set_state_and_action(self):
        store = PlanStateStore("store-test")
        store.set_state(PlanState.RUNNING, trigger="run")
        store.set_action(PlanAction.RUNNING, trigger="run")

        assert store.state == PlanState.RUNNING
        assert store.action == PlanAction.RUNNING

    def test_active_plan_only_while_applying(self):
        store = PlanStateStore("store-test", state=PlanState.RUNNING)

        with pytest.raises(StateTransitionError) as exc_info:
            store.set_active_plan(BackfillProgress())
        assert exc_info.value.attempted_transition == "active_plan"

        store.set_state(PlanState.APPLYING, trigger="apply")
        store.set_active_plan(BackfillProgress())
        assert store.active_plan is not None

    def test_clearing_active_plan_is_always_allowed(self):
        store = PlanStateStore("store-test", state=PlanState.FAILED)
        store.set_active_plan(None)
        assert store.active_plan is None

    @pytest.mark.parametrize("action", [PlanAction.RUNNING, PlanAction.APPLYING])
    def test_require_cancellable_returns_action(self, action):
        store = PlanStateStore("store-test", action=action)
        assert store.require_cancellable() == action

    @pytest.mark.parametrize("action", [
        PlanAction.NONE,
        PlanAction.RUN,
        PlanAction.APPLY,
        PlanAction.CANCELLING,
        PlanAction.RESETTING,
        PlanAction.DONE,
    ])
    def test_require_cancellable_fails_fast(self, action):
        store = PlanStateStore("store-test", action=action)
        with pytest.raises(StateTransitionError) as exc_info:
            store.require_cancellable()
        assert exc_info.value.current_action == action.value

    @pytest.mark.parametrize("state,action", [
        (PlanState.APPLYING, PlanAction.APPLYING),
        (PlanState.CANCELLING, PlanAction.CANCELLING),
        (PlanState.RUNNING, PlanAction.RUNNING),
        (PlanState.INIT, PlanAction.APPLYING),
    ])
    def test_require_can_apply_rejects_busy_session(self, state, action):
        store = PlanStateStore("store-test", state=state, action=action)
        with pytest.raises(StateTransitionError):
            store.require_can_apply()

    @pytest.mark.parametrize("state", [PlanState.INIT, PlanState.CANCELLED, PlanState.FAILED])
    def test_require_can_apply_allows_idle_session(self, state):
        store = PlanStateStore("store-test", state=state, action=PlanAction.APPLY)
        store.require_can_apply()
