"""In-process event channel."""

from collections import defaultdict
from typing import Any

import structlog

from .base import EventChannel, Handler, Subscription

logger = structlog.get_logger(__name__)


class InMemorySubscription(Subscription):
    """Subscription registered on an InMemoryChannel."""

    def __init__(self, channel: "InMemoryChannel", topic: str, handler: Handler):
        self._channel = channel
        self.topic = topic
        self.handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._channel._remove(self)


class InMemoryChannel(EventChannel):
    """
    Synchronous publish/subscribe channel for a single event loop.

    Messages are delivered in publish order. A failing handler is logged and
    does not stop delivery to the remaining subscribers.
    """

    def __init__(self):
        self.logger = logger
        self._subscribers: dict[str, list[InMemorySubscription]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> Subscription:
        subscription = InMemorySubscription(self, topic, handler)
        self._subscribers[topic].append(subscription)
        self.logger.debug("Subscribed", topic=topic, subscribers=len(self._subscribers[topic]))
        return subscription

    def publish(self, topic: str, payload: Any) -> int:
        """Deliver payload to every active subscriber and return how many received it."""
        delivered = 0
        for subscription in list(self._subscribers.get(topic, ())):
            if not subscription.active:
                continue
            try:
                subscription.handler(payload)
            except Exception:
                self.logger.exception("Subscriber failed", topic=topic)
                continue
            delivered += 1
        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    def _remove(self, subscription: InMemorySubscription) -> None:
        subscribers = self._subscribers.get(subscription.topic, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
        self.logger.debug("Unsubscribed", topic=subscription.topic, subscribers=len(subscribers))
