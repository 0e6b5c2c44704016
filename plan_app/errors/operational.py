"""
Operational error classifications for backend plan calls.

A superseded request is benign and never surfaced. Every other failure of a
run, apply or cancel call is wrapped in a PlanOperationError so the session
can record it once under a stable error key.
"""

from typing import Optional


class SupersededError(Exception):
    """A request was aborted because a newer equivalent request replaced it."""

    def __init__(self, message: str = "Request superseded",
                 operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class PlanOperationError(Exception):
    """Backend rejected a plan operation."""

    operation = "plan"

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 environment: Optional[str] = None):
        super().__init__(message)
        self.cause = cause
        self.environment = environment
        self.recoverable = True

    @classmethod
    def from_cause(cls, cause: BaseException,
                   environment: Optional[str] = None) -> "PlanOperationError":
        """Wrap a backend exception."""
        return cls(
            f"{cls.operation} failed: {cause}",
            cause=cause,
            environment=environment,
        )


class RunPlanError(PlanOperationError):
    """Computing the plan diff failed."""

    operation = "run"


class ApplyPlanError(PlanOperationError):
    """Applying the plan failed."""

    operation = "apply"


class CancelPlanError(PlanOperationError):
    """Cancelling a run or apply failed."""

    operation = "cancel"
