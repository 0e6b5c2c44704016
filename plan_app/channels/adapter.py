"""
Event channel adapter for a plan session.

Subscribes to the tests and report topics for the lifetime of a session,
parses each message and forwards it to the session callbacks. Also owns the
backfill progress feed, which only runs while a physical apply is in flight.
"""

from typing import Any, Callable, Optional

from ..config.defaults import ChannelParams
from ..data.models import BackfillProgress, PlanReport, TestsReport
from ..data.parsers import parse_backfill_progress, parse_plan_report, parse_tests_report
from ..errors import PayloadError
from ..logging.config import get_channel_logger
from .base import EventChannel, Subscription

channel_logger = get_channel_logger(__name__)


class ChannelEventAdapter:
    """
    Routes channel messages into plan session callbacks.

    subscribe(), unsubscribe(), start_progress_feed() and
    stop_progress_feed() are idempotent, so teardown paths may call them
    more than once.
    """

    def __init__(
        self,
        channel: EventChannel,
        on_tests: Callable[[TestsReport], None],
        on_report: Callable[[PlanReport], None],
        params: Optional[ChannelParams] = None,
        session_id: str = ""
    ):
        self.channel = channel
        self.params = params or ChannelParams()
        self._on_tests = on_tests
        self._on_report = on_report
        self.logger = channel_logger.bind(session_id=session_id)

        self._subscriptions: list[Subscription] = []
        self._progress_subscription: Optional[Subscription] = None
        self._on_progress: Optional[Callable[[BackfillProgress], None]] = None

        self.dropped_count = 0

    @property
    def is_subscribed(self) -> bool:
        return bool(self._subscriptions)

    @property
    def progress_active(self) -> bool:
        return self._progress_subscription is not None

    def subscribe(self) -> None:
        """Subscribe to the tests and report topics once."""
        if self._subscriptions:
            return

        self._subscriptions = [
            self.channel.subscribe(self.params.tests_topic, self._handle_tests),
            self.channel.subscribe(self.params.report_topic, self._handle_report),
        ]
        self.logger.info(
            "Channel subscriptions established",
            topics=[self.params.tests_topic, self.params.report_topic]
        )

    def unsubscribe(self) -> None:
        """Release every subscription, including the progress feed."""
        self.stop_progress_feed()

        subscriptions, self._subscriptions = self._subscriptions, []
        if not subscriptions:
            return

        for subscription in subscriptions:
            subscription.unsubscribe()
        self.logger.info("Channel subscriptions released")

    def start_progress_feed(self, on_progress: Callable[[BackfillProgress], None]) -> None:
        """Subscribe to backfill progress until stop_progress_feed()."""
        if self._progress_subscription is not None:
            return

        self._on_progress = on_progress
        self._progress_subscription = self.channel.subscribe(
            self.params.tasks_topic, self._handle_progress
        )
        self.logger.debug("Progress feed started", topic=self.params.tasks_topic)

    def stop_progress_feed(self) -> None:
        subscription, self._progress_subscription = self._progress_subscription, None
        self._on_progress = None
        if subscription is None:
            return

        subscription.unsubscribe()
        self.logger.debug("Progress feed stopped", topic=self.params.tasks_topic)

    def _handle_tests(self, raw: Any) -> None:
        report = self._parse(parse_tests_report, raw, self.params.tests_topic)
        if report is not None:
            self._on_tests(report)

    def _handle_report(self, raw: Any) -> None:
        report = self._parse(parse_plan_report, raw, self.params.report_topic)
        if report is not None:
            self._on_report(report)

    def _handle_progress(self, raw: Any) -> None:
        progress = self._parse(parse_backfill_progress, raw, self.params.tasks_topic)
        if progress is not None and self._on_progress is not None:
            self._on_progress(progress)

    def _parse(self, parser: Callable[[Any], Any], raw: Any, topic: str) -> Any:
        try:
            return parser(raw)
        except PayloadError as e:
            self.dropped_count += 1
            self.logger.warning(
                "Dropped malformed channel message",
                topic=topic,
                error=str(e),
                error_type=type(e).__name__
            )
            return None
