"""Publish/subscribe contract consumed by the plan session."""

from abc import ABC, abstractmethod
from typing import Any, Callable

Handler = Callable[[Any], None]


class Subscription(ABC):
    """Handle for one topic subscription."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """True until unsubscribe() is called."""

    @abstractmethod
    def unsubscribe(self) -> None:
        """Stop delivery to the handler. Calling it again has no effect."""


class EventChannel(ABC):
    """Streaming channel delivering messages per named topic."""

    @abstractmethod
    def subscribe(self, topic: str, handler: Handler) -> Subscription:
        """Deliver every message published on topic to handler, in order."""
