"""Backfill progress observer for physical applies."""

from typing import Callable

from ..channels.adapter import ChannelEventAdapter
from ..data.models import BackfillProgress, PlanReport
from ..logging.config import get_state_logger
from ..state.context import PlanContext
from ..state.models import PlanState
from ..state.transitions import PlanStateStore

state_logger = get_state_logger(__name__)


class ProgressObserver:
    """
    Tracks the streaming backfill of a physical apply.

    Progress messages update the active plan while applying. An apply report
    with status ``finished`` completes the apply.
    """

    def __init__(
        self,
        store: PlanStateStore,
        context: PlanContext,
        adapter: ChannelEventAdapter,
        on_change: Callable[[], None]
    ):
        self.store = store
        self.context = context
        self.adapter = adapter
        self._on_change = on_change
        self.logger = state_logger.bind(session_id=store.session_id)

    def start(self) -> None:
        self.adapter.start_progress_feed(self.on_progress)

    def on_progress(self, progress: BackfillProgress) -> None:
        if self.store.state != PlanState.APPLYING:
            self.logger.debug("Progress ignored outside apply", state=self.store.state.value)
            return

        self.store.set_active_plan(progress)
        self.context.set_backfill_progress(progress)
        self.logger.debug(
            "Backfill progress",
            completed=progress.completed,
            total=progress.total,
            queued=len(progress.queue)
        )
        self._on_change()

    def on_report(self, report: PlanReport) -> None:
        if not report.is_finished or self.store.state != PlanState.APPLYING:
            return
        if report.type is not None and "apply" not in report.type.lower():
            return

        self.adapter.stop_progress_feed()
        self.store.set_active_plan(None)
        self.store.set_state(PlanState.FINISHED, trigger="backfill_finished")
        self._on_change()
