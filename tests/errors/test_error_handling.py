"""
Error handling tests for the plan session orchestrator.

Tests cover the error hierarchy, the keyed error registry and how operation
failures are wrapped before they are recorded.
"""

import pytest
from unittest.mock import Mock

from plan_app.errors import (
    ApplyPlanError,
    CancelPlanError,
    ConfigError,
    ErrorKey,
    ErrorRegistry,
    MalformedPayloadError,
    MissingFieldError,
    PayloadError,
    PlanOperationError,
    RunPlanError,
    SessionClosedError,
    StateTransitionError,
    SupersededError,
    SystemFailureError,
)


class TestErrorClassification:
    """Test error classification system."""

    def test_payload_error_hierarchy(self):
        """Payload errors are recoverable and carry their details."""
        base_error = PayloadError("base error")
        assert base_error.recoverable is True
        assert base_error.context == {}

        malformed = MalformedPayloadError("bad frame", raw_data="{", expected_format="json object")
        assert isinstance(malformed, PayloadError)
        assert malformed.raw_data == "{"

        missing = MissingFieldError("no status", field="status", payload_type="report")
        assert isinstance(missing, PayloadError)
        assert missing.field == "status"
        assert missing.payload_type == "report"

    def test_system_failure_hierarchy(self):
        """Programming errors are not recoverable."""
        transition = StateTransitionError(
            "cannot cancel", current_state="init", current_action="run",
            attempted_transition="cancelling"
        )
        assert isinstance(transition, SystemFailureError)
        assert transition.recoverable is False
        assert transition.current_action == "run"

        closed = SessionClosedError("closed", session_id="abc")
        assert closed.session_id == "abc"

        config_error = ConfigError("invalid", errors=["debounce.wait_ms: bad"])
        assert config_error.errors == ["debounce.wait_ms: bad"]

    def test_superseded_error(self):
        error = SupersededError(operation="run_plan")
        assert str(error) == "Request superseded"
        assert error.operation == "run_plan"

    @pytest.mark.parametrize("error_class,operation", [
        (RunPlanError, "run"),
        (ApplyPlanError, "apply"),
        (CancelPlanError, "cancel"),
    ])
    def test_operation_errors_wrap_cause(self, error_class, operation):
        cause = RuntimeError("502 Bad Gateway")
        error = error_class.from_cause(cause, environment="dev")

        assert isinstance(error, PlanOperationError)
        assert str(error) == f"{operation} failed: 502 Bad Gateway"
        assert error.cause is cause
        assert error.environment == "dev"
        assert error.recoverable is True


class TestErrorRegistry:
    """Test the keyed error sink."""

    def test_add_and_replace(self):
        registry = ErrorRegistry()
        first, second = RuntimeError("first"), RuntimeError("second")

        registry.add_error(ErrorKey.RUN_PLAN, first)
        registry.add_error(ErrorKey.RUN_PLAN, second)

        assert len(registry) == 1
        assert registry.get(ErrorKey.RUN_PLAN) is second
        assert ErrorKey.RUN_PLAN in registry

    def test_errors_property_is_a_copy(self):
        registry = ErrorRegistry()
        registry.add_error(ErrorKey.GENERAL, RuntimeError("x"))

        registry.errors.clear()

        assert len(registry) == 1

    def test_listeners_receive_snapshots(self):
        registry = ErrorRegistry()
        listener = Mock()
        registry.add_listener(listener)
        error = RuntimeError("x")

        registry.add_error(ErrorKey.APPLY_PLAN, error)
        registry.remove_error(ErrorKey.APPLY_PLAN)

        assert listener.call_count == 2
        assert listener.call_args_list[0].args[0] == {ErrorKey.APPLY_PLAN: error}
        assert listener.call_args_list[1].args[0] == {}

    def test_removing_unknown_key_does_not_notify(self):
        registry = ErrorRegistry()
        listener = Mock()
        registry.add_listener(listener)

        registry.remove_error(ErrorKey.GENERAL)
        registry.clear()

        assert not listener.called

    def test_remove_listener(self):
        registry = ErrorRegistry()
        listener = Mock()
        remove = registry.add_listener(listener)

        remove()
        remove()
        registry.add_error("models", RuntimeError("x"))

        assert not listener.called

    def test_clear(self):
        registry = ErrorRegistry()
        registry.add_error(ErrorKey.GENERAL, RuntimeError("a"))
        registry.add_error("models", RuntimeError("b"))

        registry.clear()

        assert len(registry) == 0

