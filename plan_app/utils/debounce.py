"""
Asyncio debounce helper for collapsing bursts of requests.

Repeated calls inside the wait window reset the timer. When the window
closes the wrapped coroutine function runs once with the arguments of the
last call, and every caller in the burst awaits the same future.
"""

import asyncio
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class DebouncedInvoker(Generic[T]):
    """
    Trailing-edge debounce around a coroutine function.

    With ``leading=True`` a call that arrives after a quiet period is invoked
    immediately and later calls inside the window join a single trailing
    invocation.
    """

    def __init__(
        self,
        func: Callable[..., Awaitable[T]],
        wait_ms: int = 1000,
        leading: bool = False,
        name: Optional[str] = None
    ):
        self._func = func
        self.wait = wait_ms / 1000.0
        self.leading = leading
        self.name = name or getattr(func, "__name__", "debounced")
        self.logger = logger.bind(debounced=self.name)

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._pending: Optional[asyncio.Future] = None
        self._args: tuple = ()
        self._kwargs: dict[str, Any] = {}
        self._tasks: set[asyncio.Task] = set()

        self.call_count = 0

    @property
    def pending(self) -> bool:
        """True while a timer is armed or an invocation is in flight."""
        return self._timer is not None or bool(self._tasks)

    def __call__(self, *args, **kwargs) -> "asyncio.Future[T]":
        loop = asyncio.get_running_loop()
        self._loop = loop
        self._args, self._kwargs = args, kwargs

        window_open = self._timer is not None
        if window_open:
            self._timer.cancel()
        self._timer = loop.call_later(self.wait, self._on_timer)

        if self.leading and not window_open:
            future = loop.create_future()
            self._start(future, args, kwargs)
            return future

        if self._pending is None or self._pending.done():
            self._pending = loop.create_future()
        else:
            self.logger.debug("Call collapsed into pending invocation")
        return self._pending

    def cancel(self) -> None:
        """Abort the armed timer, the shared future and any in-flight call."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

        for task in list(self._tasks):
            task.cancel()

        self.logger.debug("Debounced invoker cancelled")

    def _on_timer(self) -> None:
        self._timer = None
        future, self._pending = self._pending, None
        if future is None or future.done():
            return
        self._start(future, self._args, self._kwargs)

    def _start(self, future: asyncio.Future, args: tuple, kwargs: dict) -> None:
        self.call_count += 1
        task = self._loop.create_task(self._invoke(future, args, kwargs))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _invoke(self, future: asyncio.Future, args: tuple, kwargs: dict) -> None:
        try:
            result = await self._func(*args, **kwargs)
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except Exception as exc:
            if not future.done():
                future.set_exception(exc)
        else:
            if not future.done():
                future.set_result(result)
