"""Session reset cleanup."""

import structlog

from ..channels.adapter import ChannelEventAdapter
from ..data.models import DateRange
from ..state.context import PlanContext
from ..state.transitions import PlanStateStore

logger = structlog.get_logger(__name__)


class SessionCleanup:
    """Returns the plan context to the baseline captured at session start."""

    def __init__(
        self,
        context: PlanContext,
        store: PlanStateStore,
        adapter: ChannelEventAdapter,
        initial_range: DateRange
    ):
        self.logger = logger
        self.context = context
        self.store = store
        self.adapter = adapter
        self.initial_range = initial_range

    def clean_up(self) -> None:
        """Clear run outputs, reports and the active plan; restore dates and options."""
        self.context.is_plan_ran = False
        self.context.reset_backfills()
        self.context.reset_changes()
        self.context.set_dates(self.initial_range)
        self.context.reset_options()
        self.context.set_plan_report(None)
        self.context.reset_tests_report()

        self.adapter.stop_progress_feed()
        self.store.set_active_plan(None)

        self.logger.info(
            "Plan session cleaned up",
            session_id=self.store.session_id,
            start=self.initial_range.start,
            end=self.initial_range.end
        )
