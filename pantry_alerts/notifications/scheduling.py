"""Clock and cancellable timer abstractions.

The engine never reads the wall clock or starts timers directly; it goes
through these protocols so a virtual clock can drive it in tests.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


@runtime_checkable
class Clock(Protocol):
    def now(self) -> datetime: ...


@runtime_checkable
class TaskHandle(Protocol):
    def cancel(self) -> None: ...


@runtime_checkable
class TaskScheduler(Protocol):
    """Runs a coroutine callback once after a delay."""

    def call_later(self, delay_seconds: float, callback: TimerCallback) -> TaskHandle: ...


class SystemClock:
    """Local wall-clock time with the local UTC offset attached."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


class AsyncioScheduler:
    """TaskScheduler on top of the running asyncio event loop.

    Cancelling the returned handle stops a timer that has not fired yet;
    a callback that already started is left to finish.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def call_later(self, delay_seconds: float, callback: TimerCallback) -> TaskHandle:
        loop = asyncio.get_running_loop()

        def _fire() -> None:
            task = loop.create_task(self._run(callback))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return loop.call_later(delay_seconds, _fire)

    @staticmethod
    async def _run(callback: TimerCallback) -> None:
        try:
            await callback()
        except Exception:
            logger.exception("Scheduled callback failed")

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)
