"""
Derived action logic for the plan state machine.

After every asynchronous completion the session resolves the next user
action from the plan state and the run outputs. derive_action() is the only
place that decision is made; ActionEffect re-runs it whenever one of its
inputs changed since the last flush.
"""

from typing import Optional

from ..logging.config import get_state_logger
from .models import OPERATION_STATES, PlanAction, PlanFlags, PlanState

state_logger = get_state_logger(__name__)


def derive_action(flags: PlanFlags) -> Optional[PlanAction]:
    """
    Resolve the next action.

    Args:
        flags: Current state and run output flags

    Returns:
        The action to set, or None when the current action must be kept
    """
    # An operation in flight owns the action
    if flags.state in OPERATION_STATES:
        return None

    # First plan of a fresh environment is started by the session itself
    if not flags.is_plan_ran and flags.is_initial:
        return None

    if not flags.is_plan_ran:
        return PlanAction.RUN

    nothing_to_apply = (
        not (flags.has_changes or flags.has_backfills)
        and not flags.has_virtual_update
    )
    if nothing_to_apply or flags.state == PlanState.FINISHED:
        return PlanAction.DONE

    if flags.state == PlanState.FAILED:
        return PlanAction.NONE

    return PlanAction.APPLY


class ActionEffect:
    """Runs derive_action() when its inputs change between flushes."""

    def __init__(self):
        self._last_flags: Optional[PlanFlags] = None

    def flush(self, flags: PlanFlags) -> Optional[PlanAction]:
        """
        Evaluate the derived action if flags differ from the last flush.

        Returns:
            The derived action, or None if nothing should change
        """
        if flags == self._last_flags:
            return None
        self._last_flags = flags

        action = derive_action(flags)
        state_logger.debug(
            "Derived action evaluated",
            state=flags.state.value,
            is_plan_ran=flags.is_plan_ran,
            has_changes=flags.has_changes,
            has_backfills=flags.has_backfills,
            has_virtual_update=flags.has_virtual_update,
            derived_action=action.value if action else None
        )
        return action

    def reset(self) -> None:
        """Forget the last flags so the next flush always evaluates."""
        self._last_flags = None
