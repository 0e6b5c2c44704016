"""
Plan context holding the accumulated outputs of a session.

Backfills and changes are replaced on every run, tests reports are merged as
messages arrive, and the plan report keeps only the latest message.
"""

from typing import Any, Optional

import structlog

from ..data.models import (
    INITIAL_PLAN_RUN_OPTIONS,
    Backfill,
    BackfillProgress,
    ChangeSet,
    DateRange,
    PlanOptions,
    PlanReport,
    TestsReport,
)

logger = structlog.get_logger(__name__)


class PlanContext:
    """Accumulated plan outputs and options for one session."""

    def __init__(self, default_options: Optional[PlanOptions] = None):
        self.logger = logger
        self.default_options = default_options or PlanOptions()

        self.options: PlanOptions = self.default_options
        self.date_range = DateRange()
        self.is_initial_plan_run = False
        self.is_plan_ran = False

        self.backfills: tuple[Backfill, ...] = ()
        self.changes = ChangeSet()
        self.tests_report_messages: dict[str, Any] = {}
        self.tests_report_errors: dict[str, Any] = {}
        self.plan_report: Optional[PlanReport] = None
        self.backfill_progress: Optional[BackfillProgress] = None

    @property
    def has_changes(self) -> bool:
        return self.changes.has_changes

    @property
    def has_backfills(self) -> bool:
        return bool(self.backfills)

    @property
    def has_virtual_update(self) -> bool:
        return self.changes.has_virtual_update

    @property
    def auto_apply(self) -> bool:
        return self.options.auto_apply

    def mark_plan_ran(self) -> None:
        self.is_plan_ran = True

    def set_backfills(self, backfills: tuple[Backfill, ...]) -> None:
        self.backfills = tuple(backfills)

    def set_changes(self, changes: ChangeSet) -> None:
        """Replace the change set; missing categories become empty."""
        self.changes = ChangeSet().merge(changes)

    def set_dates(self, date_range: DateRange) -> None:
        self.date_range = date_range

    def set_initial_plan_run(self, is_initial_plan_run: bool) -> None:
        """Record whether this is the first plan of the environment."""
        self.is_initial_plan_run = is_initial_plan_run
        if is_initial_plan_run:
            self.options = self.options.with_changes(**INITIAL_PLAN_RUN_OPTIONS)

    def set_options(self, **changes: Any) -> PlanOptions:
        self.options = self.options.with_changes(**changes)
        return self.options

    def reset_backfills(self) -> None:
        self.backfills = ()
        self.backfill_progress = None

    def reset_changes(self) -> None:
        self.changes = ChangeSet()

    def reset_options(self) -> None:
        self.options = self.default_options
        if self.is_initial_plan_run:
            self.options = self.options.with_changes(**INITIAL_PLAN_RUN_OPTIONS)

    def add_tests_report(self, report: TestsReport) -> None:
        """Merge a tests message into messages or errors by its ok flag."""
        if report.ok:
            self.tests_report_messages = {**self.tests_report_messages, **report.data}
        else:
            self.tests_report_errors = {**self.tests_report_errors, **report.data}

    def reset_tests_report(self) -> None:
        self.tests_report_messages = {}
        self.tests_report_errors = {}

    def set_plan_report(self, report: Optional[PlanReport]) -> None:
        self.plan_report = report

    def set_backfill_progress(self, progress: Optional[BackfillProgress]) -> None:
        self.backfill_progress = progress
