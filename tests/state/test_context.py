"""Tests for the plan context accumulators."""

from plan_app.data.models import (
    Backfill,
    BackfillProgress,
    ChangeSet,
    PlanOptions,
    TestsReport,
)
from plan_app.state.context import PlanContext


class TestPlanContext:
    """Test PlanContext updates and resets."""

    def test_derived_flags(self):
        context = PlanContext()
        assert not context.has_changes
        assert not context.has_backfills
        assert not context.has_virtual_update

        context.set_changes(ChangeSet(metadata=("sushi.waiters",)))
        context.set_backfills((Backfill(model_name="sushi.orders"),))

        assert not context.has_changes
        assert context.has_virtual_update
        assert context.has_backfills

    def test_changes_are_replaced_per_run(self):
        context = PlanContext()
        context.set_changes(ChangeSet(added=("a",), removed=("b",)))
        context.set_changes(ChangeSet(direct=("c",)))

        assert context.changes == ChangeSet(direct=("c",))

    def test_initial_plan_run_forces_options(self):
        context = PlanContext(PlanOptions(skip_backfill=True, forward_only=True, no_gaps=True))
        context.set_initial_plan_run(True)

        assert context.options.skip_backfill is False
        assert context.options.forward_only is False
        assert context.options.no_gaps is False
        assert context.options.include_unmodified is True

    def test_reset_options_restores_defaults(self):
        defaults = PlanOptions(skip_tests=True)
        context = PlanContext(defaults)
        context.set_options(skip_tests=False, auto_apply=True)

        context.reset_options()

        assert context.options == defaults

    def test_tests_report_merge(self):
        context = PlanContext()
        context.add_tests_report(TestsReport(ok=True, data={"ok": True, "total": 2}))
        context.add_tests_report(TestsReport(ok=True, data={"ok": True, "passed": 2}))
        context.add_tests_report(TestsReport(ok=False, data={"ok": False, "test_a": "boom"}))

        assert context.tests_report_messages == {"ok": True, "total": 2, "passed": 2}
        assert context.tests_report_errors == {"ok": False, "test_a": "boom"}

        context.reset_tests_report()
        assert context.tests_report_messages == {}
        assert context.tests_report_errors == {}

    def test_reset_backfills_drops_progress(self):
        context = PlanContext()
        context.set_backfills((Backfill(model_name="sushi.orders"),))
        context.set_backfill_progress(BackfillProgress())

        context.reset_backfills()

        assert context.backfills == ()
        assert context.backfill_progress is None

    def test_auto_apply_follows_options(self):
        context = PlanContext()
        assert context.auto_apply is False
        context.set_options(auto_apply=True)
        assert context.auto_apply is True
