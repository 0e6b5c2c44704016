"""
Error classification for the plan session orchestrator.

Separates benign superseded requests from operational backend failures,
programming errors in the state machine, and malformed channel payloads.
"""

from .data_quality import (
    PayloadError,
    MalformedPayloadError,
    MissingFieldError,
)
from .operational import (
    SupersededError,
    PlanOperationError,
    RunPlanError,
    ApplyPlanError,
    CancelPlanError,
)
from .system_failures import (
    SystemFailureError,
    StateTransitionError,
    SessionClosedError,
    ConfigError,
)
from .sink import ErrorKey, ErrorRegistry

__all__ = [
    # Payload Errors
    "PayloadError",
    "MalformedPayloadError",
    "MissingFieldError",
    # Operational Errors
    "SupersededError",
    "PlanOperationError",
    "RunPlanError",
    "ApplyPlanError",
    "CancelPlanError",
    # System Failures
    "SystemFailureError",
    "StateTransitionError",
    "SessionClosedError",
    "ConfigError",
    # Error Sink
    "ErrorKey",
    "ErrorRegistry",
]
