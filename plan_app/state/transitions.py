"""
Plan state store.

Owns the state, action and active plan of a session. Every change is
validated and logged here so that the session code never assigns these
fields directly.
"""

from typing import Optional

import structlog

from ..data.models import BackfillProgress
from ..errors import StateTransitionError
from ..logging.config import get_state_logger, log_action_change, log_state_transition
from .models import CANCELLABLE_ACTIONS, PlanAction, PlanState

logger = structlog.get_logger(__name__)
state_logger = get_state_logger(__name__)


class PlanStateStore:
    """Holds state/action/active plan for one plan session."""

    def __init__(
        self,
        session_id: str,
        state: PlanState = PlanState.INIT,
        action: PlanAction = PlanAction.NONE
    ):
        self.session_id = session_id
        self.logger = logger
        self._state = state
        self._action = action
        self._active_plan: Optional[BackfillProgress] = None

    @property
    def state(self) -> PlanState:
        return self._state

    @property
    def action(self) -> PlanAction:
        return self._action

    @property
    def active_plan(self) -> Optional[BackfillProgress]:
        return self._active_plan

    def set_state(self, new_state: PlanState, trigger: str) -> None:
        """Move to new_state; a no-op when already there."""
        if new_state == self._state:
            return

        old_state, self._state = self._state, new_state
        log_state_transition(
            state_logger,
            session_id=self.session_id,
            from_state=old_state.value,
            to_state=new_state.value,
            trigger=trigger
        )

    def set_action(self, new_action: PlanAction, trigger: str) -> None:
        """Set the next user action; a no-op when unchanged."""
        if new_action == self._action:
            return

        old_action, self._action = self._action, new_action
        log_action_change(
            state_logger,
            session_id=self.session_id,
            from_action=old_action.value,
            to_action=new_action.value,
            trigger=trigger
        )

    def set_active_plan(self, progress: Optional[BackfillProgress]) -> None:
        """
        Track the streaming backfill.

        Raises:
            StateTransitionError: If a backfill is attached outside an apply
        """
        if progress is not None and self._state != PlanState.APPLYING:
            raise StateTransitionError(
                "Active plan can only be tracked while applying",
                current_state=self._state.value,
                current_action=self._action.value,
                attempted_transition="active_plan"
            )

        if progress is None and self._active_plan is not None:
            self.logger.debug("Active plan cleared", session_id=self.session_id)

        self._active_plan = progress

    def require_cancellable(self) -> PlanAction:
        """
        Return the action being cancelled.

        Raises:
            StateTransitionError: If no run or apply is in flight
        """
        if self._action not in CANCELLABLE_ACTIONS:
            raise StateTransitionError(
                f"Cannot cancel while action is {self._action.value}",
                current_state=self._state.value,
                current_action=self._action.value,
                attempted_transition=PlanAction.CANCELLING.value
            )
        return self._action

    def require_can_apply(self) -> None:
        """
        Reject an apply while another apply or a cancel is in flight.

        Raises:
            StateTransitionError: If an apply, run or cancel owns the session
        """
        busy = (
            self._action in (PlanAction.APPLYING, PlanAction.CANCELLING)
            or self._state in (PlanState.RUNNING, PlanState.APPLYING, PlanState.CANCELLING)
        )
        if busy:
            raise StateTransitionError(
                f"Cannot apply while state is {self._state.value} "
                f"and action is {self._action.value}",
                current_state=self._state.value,
                current_action=self._action.value,
                attempted_transition=PlanAction.APPLYING.value
            )
