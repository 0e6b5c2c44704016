"""
State machine data models for the plan lifecycle.

PlanState is the backend-confirmed phase of the plan. PlanAction is what the
user may do next; it can lead or lag the state, for example while a reset is
in progress.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..data.models import (
    Backfill,
    BackfillProgress,
    ChangeSet,
    DateRange,
    PlanOptions,
    PlanReport,
)


class PlanState(str, Enum):
    """Backend-facing lifecycle phase of the current plan."""
    INIT = "init"
    RUNNING = "running"
    APPLYING = "applying"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"
    FINISHED = "finished"


class PlanAction(str, Enum):
    """Next user affordance; also gates re-entrancy."""
    NONE = "none"
    RUN = "run"
    RUNNING = "running"
    APPLY = "apply"
    APPLYING = "applying"
    CANCELLING = "cancelling"
    RESETTING = "resetting"
    DONE = "done"


# States during which an operation owns the action
OPERATION_STATES = frozenset({
    PlanState.RUNNING,
    PlanState.APPLYING,
    PlanState.CANCELLING,
})

# Actions during which cancel() is valid
CANCELLABLE_ACTIONS = frozenset({
    PlanAction.RUNNING,
    PlanAction.APPLYING,
})


@dataclass(frozen=True)
class PlanFlags:
    """Inputs to the derived action, compared between effect flushes."""
    state: PlanState
    is_plan_ran: bool
    is_initial: bool
    has_changes: bool
    has_backfills: bool
    has_virtual_update: bool


@dataclass(frozen=True)
class PlanSessionView:
    """Read-only snapshot of a plan session for the rendering layer."""
    session_id: str
    state: PlanState
    action: PlanAction
    is_plan_ran: bool
    date_range: DateRange
    options: PlanOptions
    backfills: tuple[Backfill, ...] = ()
    changes: ChangeSet = field(default_factory=ChangeSet)
    tests_report_messages: dict = field(default_factory=dict)
    tests_report_errors: dict = field(default_factory=dict)
    plan_report: Optional[PlanReport] = None
    active_plan: Optional[BackfillProgress] = None

    @property
    def should_split_report(self) -> bool:
        """Test failures are shown next to the plan."""
        return bool(self.tests_report_errors)
