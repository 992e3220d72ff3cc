"""
Daybook Backend — Timer Scheduling
===================================

What:  The clock abstraction behind reconnection retries and health checks.
Why:   The manager's state machine must be testable without waiting 30 seconds
       for a retry or 5 minutes for a health check. Tests inject a manual
       scheduler; production uses asyncio tasks.
How:   call_later() and call_every() take an async callback and return a
       handle whose cancel() stops the timer. Handles are idempotent: cancelling
       twice, or cancelling a timer that already fired, is a no-op.

Timer ownership:
    The manager owns at most one retry handle and one health-check handle.
    Both are cancelled on shutdown (StorageAvailabilityManager.stop()).
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

AsyncCallback = Callable[[], Awaitable[object]]


class ScheduledHandle(ABC):
    """A cancellable reference to a scheduled callback."""

    delay: float
    periodic: bool

    @abstractmethod
    def cancel(self) -> None:
        """Stop the timer. Safe to call more than once."""
        ...

    @property
    @abstractmethod
    def active(self) -> bool:
        """True while the callback is still due (or, for periodic timers, still armed)."""
        ...


class Scheduler(ABC):
    """Schedules async callbacks on the event loop."""

    @abstractmethod
    def call_later(self, delay: float, callback: AsyncCallback) -> ScheduledHandle:
        """Run `callback` once after `delay` seconds."""
        ...

    @abstractmethod
    def call_every(self, interval: float, callback: AsyncCallback) -> ScheduledHandle:
        """Run `callback` every `interval` seconds until cancelled."""
        ...


class TaskHandle(ScheduledHandle):
    """ScheduledHandle backed by an asyncio.Task."""

    def __init__(self, task: "asyncio.Task[None]", delay: float, periodic: bool):
        self._task = task
        self.delay = delay
        self.periodic = periodic

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()

    @property
    def active(self) -> bool:
        return not self._task.done()


class AsyncioScheduler(Scheduler):
    """
    Production scheduler: each timer is a task sleeping on the running loop.

    A failing callback is logged and never kills a periodic timer; the health
    check must keep firing even if one run raised.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        # Resolved lazily so the scheduler can be built at import time
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: AsyncCallback) -> TaskHandle:
        async def run_once() -> None:
            await asyncio.sleep(delay)
            await self._invoke(callback)

        task = self._get_loop().create_task(run_once())
        return TaskHandle(task, delay=delay, periodic=False)

    def call_every(self, interval: float, callback: AsyncCallback) -> TaskHandle:
        async def run_forever() -> None:
            while True:
                await asyncio.sleep(interval)
                await self._invoke(callback)

        task = self._get_loop().create_task(run_forever())
        return TaskHandle(task, delay=interval, periodic=True)

    @staticmethod
    async def _invoke(callback: AsyncCallback) -> None:
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Scheduled callback %r failed: %s", callback, e, exc_info=True)
