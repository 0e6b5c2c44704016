"""
Cancellation bridge.

Maps a user cancel to the matching backend call: apply-cancel while an apply
is in flight, run-cancel otherwise. A superseded cancel leaves the session
untouched; a failed cancel hands over to the session reset.
"""

from typing import Callable

import structlog

from ..backend.base import CallResult, PlanBackend, call_backend
from ..channels.adapter import ChannelEventAdapter
from ..errors import CancelPlanError
from ..state.context import PlanContext
from ..state.models import PlanAction, PlanState
from ..state.transitions import PlanStateStore

logger = structlog.get_logger(__name__)


class CancellationBridge:
    """Issues the backend cancel call for the action in flight."""

    def __init__(
        self,
        backend: PlanBackend,
        store: PlanStateStore,
        context: PlanContext,
        adapter: ChannelEventAdapter,
        on_failure: Callable[[CancelPlanError], None]
    ):
        self.logger = logger.bind(session_id=store.session_id)
        self.backend = backend
        self.store = store
        self.context = context
        self.adapter = adapter
        self._on_failure = on_failure

    async def cancel(
        self,
        current_action: PlanAction,
        is_current: Callable[[], bool]
    ) -> CallResult:
        """
        Cancel the run or apply identified by current_action.

        Args:
            current_action: Action that was in flight when cancel was requested
            is_current: Returns False once a later operation took over

        Returns:
            Tagged result of the backend cancel call
        """
        self.context.reset_tests_report()
        self.store.set_state(PlanState.CANCELLING, trigger="cancel")
        self.store.set_action(PlanAction.CANCELLING, trigger="cancel")

        if current_action == PlanAction.APPLYING:
            operation = "cancel_apply"
            call = self.backend.cancel_apply()
            self.adapter.stop_progress_feed()
            self.store.set_active_plan(None)
        else:
            operation = "cancel_run"
            call = self.backend.cancel_run()

        self.logger.info("Cancel requested", operation=operation)
        result = await call_backend(call, operation)

        if not is_current():
            self.logger.debug("Cancel completion ignored", operation=operation, status=result.status.value)
            return result

        if result.ok:
            self.store.set_action(PlanAction.RUN, trigger=operation)
            self.store.set_state(PlanState.CANCELLED, trigger=operation)
        elif result.failed:
            self._on_failure(CancelPlanError.from_cause(result.error))

        return result
