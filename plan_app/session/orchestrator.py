"""
Plan session orchestrator.

Owns one plan lifecycle for a mounted environment view. run(), apply(),
cancel(), reset() and close() are the only mutators; after each of them,
and after every channel message or recorded error, the derived action is
re-evaluated.

Every operation takes a generation token when it starts. A completion whose
token is no longer current was superseded by a later operation, a reset, a
recorded error or teardown, and is ignored.
"""

import asyncio
import uuid
from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable, Coroutine, Optional

import structlog

from ..backend.base import CallResult, CallStatus, PlanBackend, call_backend
from ..channels.adapter import ChannelEventAdapter
from ..channels.base import EventChannel
from ..config.defaults import DefaultConfig, get_default_config
from ..config.loader import ConfigLoader
from ..config.validation import ConfigValidator
from ..data.models import DateRange, Environment, PlanOptions, PlanReport, TestsReport
from ..data.parsers import parse_apply_result, parse_run_result
from ..data.payloads import build_apply_payload, build_plan_payload
from ..errors import (
    ApplyPlanError,
    CancelPlanError,
    ConfigError,
    ErrorKey,
    ErrorRegistry,
    PayloadError,
    RunPlanError,
    SessionClosedError,
    StateTransitionError,
)
from ..logging.config import configure_logging
from ..state.context import PlanContext
from ..state.machine import ActionEffect
from ..state.models import PlanAction, PlanFlags, PlanSessionView, PlanState
from ..state.transitions import PlanStateStore
from ..utils.debounce import DebouncedInvoker
from ..utils.time import DateLike, to_date_string
from .cancellation import CancellationBridge
from .cleanup import SessionCleanup
from .progress import ProgressObserver

logger = structlog.get_logger(__name__)


class PlanSession:
    """
    Orchestrates run, apply and cancel for a single plan.

    Usage::

        async with PlanSession(backend, channel, environment, initial_range) as session:
            await session.run()
            if session.action == PlanAction.APPLY:
                await session.apply()
    """

    def __init__(
        self,
        backend: PlanBackend,
        channel: EventChannel,
        environment: Environment,
        initial_range: Optional[DateRange] = None,
        config: Optional[DefaultConfig] = None,
        errors: Optional[ErrorRegistry] = None,
        on_close: Optional[Callable[[], None]] = None,
        is_initial_plan_run: bool = False,
        session_id: Optional[str] = None
    ):
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.config = config or get_default_config()
        self.environment = environment
        self.backend = backend
        self.errors = errors if errors is not None else ErrorRegistry()
        initial_range = initial_range or DateRange()
        self.initial_range = DateRange(
            start=to_date_string(initial_range.start),
            end=to_date_string(initial_range.end)
        )
        self.is_initial_plan_run = is_initial_plan_run
        self._on_close = on_close
        self.logger = logger.bind(session_id=self.session_id, environment=environment.name)

        self.store = PlanStateStore(self.session_id)
        self.context = PlanContext(PlanOptions(**asdict(self.config.plan_options)))
        self.context.set_dates(self.initial_range)

        self.adapter = ChannelEventAdapter(
            channel,
            on_tests=self._on_tests,
            on_report=self._on_report,
            params=self.config.channels,
            session_id=self.session_id
        )
        self.cleanup = SessionCleanup(self.context, self.store, self.adapter, self.initial_range)
        self.cancellation = CancellationBridge(
            backend, self.store, self.context, self.adapter, on_failure=self._on_cancel_failure
        )
        self.progress = ProgressObserver(self.store, self.context, self.adapter, on_change=self._flush)

        self._run_invoker = DebouncedInvoker(
            backend.run_plan,
            wait_ms=self.config.debounce.wait_ms,
            leading=self.config.debounce.leading,
            name="run_plan"
        )
        self._effect = ActionEffect()
        self._generation = 0
        self._tasks: set[asyncio.Task] = set()
        self._known_errors: dict = {}
        self._remove_error_listener: Optional[Callable[[], None]] = None
        self._started = False
        self._closed = False

    @classmethod
    def create(
        cls,
        backend: PlanBackend,
        channel: EventChannel,
        environment: Environment,
        initial_range: Optional[DateRange] = None,
        config_dir: Optional[str] = None,
        overrides: Optional[dict[str, Any]] = None,
        **kwargs: Any
    ) -> "PlanSession":
        """
        Build a session with configuration loaded for its environment.

        Logging is configured from the ``logging`` section of the loaded
        configuration.

        Raises:
            ConfigError: If the merged configuration is invalid
        """
        loader = ConfigLoader.create(Path(config_dir) if config_dir else None)
        config = loader.load(environment.name, overrides)
        configure_logging(**asdict(config.logging))
        return cls(backend, channel, environment, initial_range, config=config, **kwargs)

    # ------------------------------------------------------------------
    # Produced interface
    # ------------------------------------------------------------------

    @property
    def state(self) -> PlanState:
        return self.store.state

    @property
    def action(self) -> PlanAction:
        return self.store.action

    @property
    def active_plan(self):
        return self.store.active_plan

    @property
    def is_plan_ran(self) -> bool:
        return self.context.is_plan_ran

    @property
    def date_range(self) -> DateRange:
        return self.context.date_range

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def can_run(self) -> bool:
        """False while an apply, cancel or reset owns the session."""
        return not self._closed and self.store.action not in (
            PlanAction.APPLYING, PlanAction.CANCELLING, PlanAction.RESETTING
        ) and self.store.state not in (PlanState.APPLYING, PlanState.CANCELLING)

    def snapshot(self) -> PlanSessionView:
        return PlanSessionView(
            session_id=self.session_id,
            state=self.store.state,
            action=self.store.action,
            is_plan_ran=self.context.is_plan_ran,
            date_range=self.context.date_range,
            options=self.context.options,
            backfills=self.context.backfills,
            changes=self.context.changes,
            tests_report_messages=dict(self.context.tests_report_messages),
            tests_report_errors=dict(self.context.tests_report_errors),
            plan_report=self.context.plan_report,
            active_plan=self.store.active_plan,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "PlanSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.teardown()

    async def start(self) -> None:
        """Subscribe channels and seed the session; runs a fresh default environment."""
        self._ensure_open()
        if self._started:
            return
        self._started = True

        self.adapter.subscribe()
        self._known_errors = {}
        self._remove_error_listener = self.errors.add_listener(self._on_errors)

        self.context.set_dates(self.initial_range)
        self.context.set_initial_plan_run(self.is_initial_plan_run)

        self.logger.info(
            "Plan session started",
            is_initial=self.environment.is_initial,
            is_default=self.environment.is_default,
            is_initial_plan_run=self.is_initial_plan_run,
            start=self.initial_range.start,
            end=self.initial_range.end
        )

        # Errors recorded before start fail the session too
        self._on_errors(self.errors.errors)

        if self.environment.is_initial and self.environment.is_default and not self.errors:
            generation, future = self._begin_run()
            self._spawn(self._complete_run(generation, future))

        self._flush()

    async def teardown(self) -> None:
        """Release subscriptions and abort pending work. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._generation += 1

        self._run_invoker.cancel()
        self.adapter.unsubscribe()

        if self._remove_error_listener is not None:
            self._remove_error_listener()
            self._remove_error_listener = None

        current = asyncio.current_task()
        tasks = [task for task in self._tasks if task is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            # Results of aborted tasks are discarded
            await asyncio.gather(*tasks, return_exceptions=True)

        self.logger.info("Plan session torn down", state=self.store.state.value)

    # ------------------------------------------------------------------
    # External triggers
    # ------------------------------------------------------------------

    def update_options(self, **changes: Any) -> PlanOptions:
        """
        Replace plan options.

        Raises:
            ConfigError: If an option is unknown or has the wrong type
        """
        self._ensure_open()
        errors = ConfigValidator.validate_plan_options(changes)
        if errors:
            raise ConfigError(
                "Invalid plan options",
                errors=[f"{err.field}: {err.message} (got: {err.value})" for err in errors]
            )

        options = self.context.set_options(**changes)
        self.logger.debug("Plan options updated", changes=changes)
        self._flush()
        return options

    def update_dates(self, start: DateLike = None, end: DateLike = None) -> DateRange:
        """Replace the plan date range."""
        self._ensure_open()
        date_range = DateRange(start=to_date_string(start), end=to_date_string(end))
        self.context.set_dates(date_range)
        return date_range

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    async def run(self) -> CallResult:
        """
        Compute the plan diff.

        Calls made inside the debounce window share a single backend call.
        With auto-apply enabled a successful run chains into apply().
        """
        self._ensure_open()
        generation, future = self._begin_run()
        return await self._complete_run(generation, future)

    async def apply(self) -> CallResult:
        """
        Apply the computed plan.

        Raises:
            StateTransitionError: If a run, apply or cancel is in flight
        """
        self._ensure_open()
        self.store.require_can_apply()

        self.store.set_action(PlanAction.APPLYING, trigger="apply")
        self.store.set_state(PlanState.APPLYING, trigger="apply")
        self.context.reset_tests_report()
        generation = self._next_generation()

        # Progress can stream before the apply call returns
        self.progress.start()

        payload = build_apply_payload(
            self.environment, self.context.options, self.context.date_range,
            self.context.is_initial_plan_run
        )
        result = await call_backend(self.backend.apply_plan(payload), "apply_plan")

        if not self._is_current(generation):
            self.logger.debug("Apply completion ignored", status=result.status.value)
            return result

        if result.superseded:
            return result

        if result.ok:
            try:
                apply_result = parse_apply_result(result.value)
            except PayloadError as e:
                result = CallResult(status=CallStatus.FAILED, error=e, call_time_ms=result.call_time_ms)
            else:
                if apply_result.is_virtual:
                    self.adapter.stop_progress_feed()
                    self.store.set_state(PlanState.FINISHED, trigger="apply_virtual")
                self.logger.info("Plan applied", apply_type=apply_result.type.value)
                self._flush()
                return result

        # TODO: keep the computed plan on transient failures once a retry-without-reset policy exists
        self.errors.add_error(
            ErrorKey.APPLY_PLAN,
            ApplyPlanError.from_cause(result.error, environment=self.environment.name)
        )
        self.reset()
        if self.errors:
            self._fail(trigger="apply_failed")
        return result

    async def cancel(self) -> CallResult:
        """
        Cancel the run or apply in flight.

        Raises:
            StateTransitionError: If no run or apply is in flight
        """
        self._ensure_open()
        current_action = self.store.require_cancellable()
        generation = self._next_generation()

        if current_action == PlanAction.RUNNING:
            self._run_invoker.cancel()

        result = await self.cancellation.cancel(
            current_action, lambda: self._is_current(generation)
        )
        self._flush()
        return result

    def reset(self) -> None:
        """Return to a fresh session: initial dates and options, no run outputs."""
        self._ensure_open()
        self._next_generation()
        self._run_invoker.cancel()

        self.store.set_action(PlanAction.RESETTING, trigger="reset")
        self.errors.remove_error(ErrorKey.GENERAL)
        self.cleanup.clean_up()
        self.store.set_state(PlanState.INIT, trigger="reset")
        self.store.set_action(PlanAction.RUN, trigger="reset")
        self._flush()

    async def close(self) -> None:
        """Clear plan errors, clean up, notify the owner and tear down."""
        if self._closed:
            return

        for key in (ErrorKey.GENERAL, ErrorKey.RUN_PLAN, ErrorKey.APPLY_PLAN):
            self.errors.remove_error(key)
        self.cleanup.clean_up()

        if self._on_close is not None:
            self._on_close()

        await self.teardown()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _begin_run(self) -> tuple[int, "asyncio.Future"]:
        if not self.can_run:
            raise StateTransitionError(
                f"Cannot run while state is {self.store.state.value} "
                f"and action is {self.store.action.value}",
                current_state=self.store.state.value,
                current_action=self.store.action.value,
                attempted_transition=PlanAction.RUNNING.value
            )

        self.context.reset_tests_report()
        self.store.set_action(PlanAction.RUNNING, trigger="run")
        self.store.set_state(PlanState.RUNNING, trigger="run")
        generation = self._next_generation()

        payload = build_plan_payload(
            self.environment, self.context.options, self.context.date_range,
            self.context.is_initial_plan_run
        )
        return generation, self._run_invoker(payload)

    async def _complete_run(self, generation: int, future: "asyncio.Future") -> CallResult:
        result = await call_backend(future, "run_plan")

        if not self._is_current(generation):
            self.logger.debug("Run completion ignored", status=result.status.value)
            return result

        if result.superseded:
            return result

        if result.ok:
            try:
                run_result = parse_run_result(result.value)
            except PayloadError as e:
                result = CallResult(status=CallStatus.FAILED, error=e, call_time_ms=result.call_time_ms)

        if result.failed:
            self.errors.add_error(
                ErrorKey.RUN_PLAN,
                RunPlanError.from_cause(result.error, environment=self.environment.name)
            )
            self._flush()
            return result

        self.context.set_backfills(run_result.backfills)
        self.context.set_changes(run_result.changes)
        self.context.set_dates(DateRange(start=run_result.start, end=run_result.end))
        self.context.mark_plan_ran()
        self.store.set_state(PlanState.INIT, trigger="run_finished")

        self.logger.info(
            "Plan run finished",
            backfills=len(run_result.backfills),
            has_changes=run_result.changes.has_changes,
            has_virtual_update=run_result.changes.has_virtual_update,
            auto_apply=self.context.auto_apply
        )

        if self.context.auto_apply:
            await self.apply()
        else:
            self.store.set_action(PlanAction.RUN, trigger="run_finished")
            self._flush()

        return result

    def _on_tests(self, report: TestsReport) -> None:
        self.context.add_tests_report(report)

    def _on_report(self, report: PlanReport) -> None:
        self.context.set_plan_report(report)
        self.progress.on_report(report)

    def _on_errors(self, errors: dict) -> None:
        added = any(self._known_errors.get(key) is not error for key, error in errors.items())
        self._known_errors = errors
        if not added or self._closed:
            return

        self._fail(trigger="error_recorded")

    def _fail(self, trigger: str) -> None:
        # Any recorded error overrides the operation in flight
        self._next_generation()
        self.adapter.stop_progress_feed()
        self.store.set_active_plan(None)
        self.store.set_state(PlanState.FAILED, trigger=trigger)
        self._flush()

    def _on_cancel_failure(self, error: CancelPlanError) -> None:
        self.logger.warning("Cancel failed, resetting session", error=str(error))
        self.reset()

    def _flush(self) -> None:
        if self._closed:
            return

        action = self._effect.flush(PlanFlags(
            state=self.store.state,
            is_plan_ran=self.context.is_plan_ran,
            is_initial=self.environment.is_initial,
            has_changes=self.context.has_changes,
            has_backfills=self.context.has_backfills,
            has_virtual_update=self.context.has_virtual_update,
        ))
        if action is not None:
            self.store.set_action(action, trigger="derived")

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("Plan session is closed", session_id=self.session_id)

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(
                "Plan session task failed",
                error=str(error),
                error_type=type(error).__name__
            )
