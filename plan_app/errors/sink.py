"""Keyed error sink shared between the plan session and other subsystems."""

from enum import Enum
from typing import Callable, Union

import structlog

logger = structlog.get_logger(__name__)


class ErrorKey(str, Enum):
    """Stable keys under which plan errors are recorded."""
    GENERAL = "general"
    RUN_PLAN = "run_plan"
    APPLY_PLAN = "apply_plan"


ErrorListener = Callable[[dict], None]
Key = Union[ErrorKey, str]


class ErrorRegistry:
    """
    Holds at most one error per key and notifies listeners on every change.

    Other subsystems may record errors under their own keys; the plan
    session treats any non-empty registry as a fatal condition.
    """

    def __init__(self):
        self.logger = logger
        self._errors: dict[Key, BaseException] = {}
        self._listeners: list[ErrorListener] = []

    @property
    def errors(self) -> dict[Key, BaseException]:
        """Copy of the recorded errors."""
        return dict(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __contains__(self, key: Key) -> bool:
        return key in self._errors

    def get(self, key: Key):
        return self._errors.get(key)

    def add_error(self, key: Key, error: BaseException) -> None:
        """Record an error, replacing any previous error under the same key."""
        self._errors[key] = error
        self.logger.warning(
            "Error recorded",
            key=getattr(key, "value", key),
            error=str(error),
            error_type=type(error).__name__
        )
        self._notify()

    def remove_error(self, key: Key) -> None:
        """Remove the error under key; unknown keys are ignored."""
        if key not in self._errors:
            return
        del self._errors[key]
        self.logger.debug("Error removed", key=getattr(key, "value", key))
        self._notify()

    def clear(self) -> None:
        if not self._errors:
            return
        self._errors.clear()
        self._notify()

    def add_listener(self, listener: ErrorListener) -> Callable[[], None]:
        """Register a change listener and return a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        snapshot = self.errors
        for listener in list(self._listeners):
            listener(snapshot)
