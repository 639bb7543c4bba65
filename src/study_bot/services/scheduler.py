"""Cancellable scheduled tasks and the deadline-based phase timer."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]


class ScheduledTask(Protocol):
    """Handle returned by a :class:`Scheduler`."""

    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """Source of time and of recurring/one-shot coroutine callbacks."""

    def now(self) -> datetime: ...

    def call_every(self, interval: float, callback: Callback) -> ScheduledTask: ...

    def call_soon(self, callback: Callback) -> ScheduledTask: ...


class AsyncioTask:
    """ScheduledTask backed by an ``asyncio.Task``.

    A callback may cancel its own task (a timer expiring, a session stopping
    from inside its tick); in that case only the flag is set and the loop
    exits after the callback returns, so the callback is not interrupted at
    its next await.
    """

    def __init__(self) -> None:
        self._task: asyncio.Task | None = None
        self._cancelled = False

    def cancel(self) -> None:
        if self._cancelled:
            # Already stopping: a callback still running finishes undisturbed
            return
        self._cancelled = True
        if self._task and not self._task.done() and self._task is not asyncio.current_task():
            self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler:
    """Scheduler running callbacks as tasks on the current event loop."""

    def now(self) -> datetime:
        return datetime.now()

    def call_every(self, interval: float, callback: Callback) -> AsyncioTask:
        handle = AsyncioTask()
        handle._task = asyncio.create_task(self._run_every(interval, callback, handle))
        return handle

    def call_soon(self, callback: Callback) -> AsyncioTask:
        handle = AsyncioTask()
        handle._task = asyncio.create_task(self._run_once(callback, handle))
        return handle

    async def _run_every(self, interval: float, callback: Callback, handle: AsyncioTask) -> None:
        while not handle.cancelled:
            try:
                await asyncio.sleep(interval)
            except asyncio.CancelledError:
                break
            if handle.cancelled:
                break
            try:
                await callback()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Error in scheduled callback %r", callback)

    async def _run_once(self, callback: Callback, handle: AsyncioTask) -> None:
        if handle.cancelled:
            return
        try:
            await callback()
        except Exception:
            logger.exception("Error in scheduled callback %r", callback)
        finally:
            handle._cancelled = True


class PhaseTimer:
    """Counts down one phase against an absolute deadline.

    Every tick recomputes ``time_left = max(0, deadline - now)`` and passes it
    to ``on_tick``. ``on_persist`` fires once per ``persist_every`` seconds of
    elapsed phase time. When the deadline is reached the tick task is
    cancelled and then ``on_expire`` runs.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        duration: float,
        on_expire: Callback,
        on_tick: Callable[[float], None] | None = None,
        on_persist: Callable[[float], Awaitable[None]] | None = None,
        tick_seconds: float = 1.0,
        persist_every: float = 30.0,
    ):
        self.scheduler = scheduler
        self.duration = max(0.0, duration)
        self.deadline = scheduler.now() + timedelta(seconds=self.duration)
        self.tick_seconds = tick_seconds
        self.persist_every = persist_every
        self._on_expire = on_expire
        self._on_tick = on_tick
        self._on_persist = on_persist
        self._last_persist = 0.0
        self._task: ScheduledTask | None = None
        self._expired = False

    def start(self) -> "PhaseTimer":
        self._task = self.scheduler.call_every(self.tick_seconds, self._tick)
        return self

    def time_left(self) -> float:
        """Seconds until the deadline, floored at zero."""
        return max(0.0, (self.deadline - self.scheduler.now()).total_seconds())

    def cancel(self) -> None:
        if self._task:
            self._task.cancel()

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.cancelled

    async def _tick(self) -> None:
        left = self.time_left()
        if self._on_tick:
            self._on_tick(left)

        if left <= 0:
            if self._expired:
                return
            self._expired = True
            self.cancel()
            await self._on_expire()
            return

        elapsed = self.duration - left
        if self._on_persist and elapsed - self._last_persist >= self.persist_every:
            self._last_persist = elapsed
            await self._on_persist(left)
