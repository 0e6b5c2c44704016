"""Base classes for plan backend calls."""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Generic, Optional, TypeVar

import structlog

from ..errors import SupersededError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CallStatus(Enum):
    """Outcome of a backend call."""
    SUCCESS = "success"
    SUPERSEDED = "superseded"
    FAILED = "failed"


@dataclass
class CallResult(Generic[T]):
    """Tagged result of a backend call."""
    status: CallStatus
    value: Optional[T] = None
    error: Optional[BaseException] = None
    call_time_ms: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status == CallStatus.SUCCESS

    @property
    def superseded(self) -> bool:
        return self.status == CallStatus.SUPERSEDED

    @property
    def failed(self) -> bool:
        return self.status == CallStatus.FAILED


class PlanBackend(ABC):
    """
    Backend that computes and applies plans for an environment.

    Implementations own transport, timeouts and request cancellation. A
    request aborted in favour of a newer one should raise SupersededError or
    let asyncio.CancelledError propagate.
    """

    @abstractmethod
    async def run_plan(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Compute the plan diff.

        Returns:
            Mapping with ``backfills``, ``changes``, ``start`` and ``end``
        """

    @abstractmethod
    async def apply_plan(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Apply the plan.

        Returns:
            Mapping with ``type`` (virtual or physical) and extra fields
        """

    @abstractmethod
    async def cancel_run(self) -> None:
        """Cancel an in-flight plan run."""

    @abstractmethod
    async def cancel_apply(self) -> None:
        """Cancel an in-flight plan apply."""


async def call_backend(call: Awaitable[T], operation: str) -> CallResult[T]:
    """
    Await a backend call and tag its outcome.

    A cancelled awaitable or SupersededError becomes SUPERSEDED. Cancellation
    of the calling task itself still propagates. Any other exception becomes
    FAILED.
    """
    start_time = time.monotonic()

    def elapsed() -> int:
        return int((time.monotonic() - start_time) * 1000)

    try:
        value = await call
    except asyncio.CancelledError as e:
        task = asyncio.current_task()
        if task is not None and task.cancelling():
            raise
        logger.debug("Backend call superseded", operation=operation)
        return CallResult(status=CallStatus.SUPERSEDED, error=e, call_time_ms=elapsed())
    except SupersededError as e:
        logger.debug("Backend call superseded", operation=operation)
        return CallResult(status=CallStatus.SUPERSEDED, error=e, call_time_ms=elapsed())
    except Exception as e:
        logger.warning(
            "Backend call failed",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__
        )
        return CallResult(status=CallStatus.FAILED, error=e, call_time_ms=elapsed())

    return CallResult(status=CallStatus.SUCCESS, value=value, call_time_ms=elapsed())
