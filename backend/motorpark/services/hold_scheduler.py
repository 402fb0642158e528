"""
Deferred hold-release scheduling.

The seat hold engine never talks to timers directly; it schedules a release
per booking through a ``HoldScheduler`` and cancels it when payment lands.
Two implementations ship here:

- ``AsyncioHoldScheduler`` uses ``loop.call_later`` on the running event loop.
  Pending releases live only in process memory and are lost on restart, which
  is why the engine also sweeps expired holds on demand.
- ``ManualHoldScheduler`` keeps a virtual clock that only moves when
  ``advance()`` is awaited, for deterministic tests and the demo CLI.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

ReleaseCallback = Callable[[], Awaitable[None]]


class HoldScheduler(ABC):
    """Port for scheduling cancellable deferred callbacks keyed by booking id."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time as seen by the scheduler."""

    @abstractmethod
    def schedule(self, key: str, delay_seconds: float, callback: ReleaseCallback) -> None:
        """Run ``callback`` after ``delay_seconds``, replacing any job with the same key."""

    @abstractmethod
    def cancel(self, key: str) -> bool:
        """Cancel a pending job. Returns False when nothing was pending."""

    @abstractmethod
    def pending_keys(self) -> List[str]:
        """Keys of jobs that have not fired or been cancelled."""

    def shutdown(self) -> None:
        """Drop every pending job."""
        for key in self.pending_keys():
            self.cancel(key)


class AsyncioHoldScheduler(HoldScheduler):
    """
    Scheduler backed by the running asyncio event loop.

    Must be used from coroutines running on the loop; ``schedule`` looks the
    loop up with ``asyncio.get_running_loop()``.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or datetime.now
        self._handles: Dict[str, asyncio.TimerHandle] = {}
        self._tasks: Set[asyncio.Task] = set()

    def now(self) -> datetime:
        return self._clock()

    def schedule(self, key: str, delay_seconds: float, callback: ReleaseCallback) -> None:
        self.cancel(key)
        loop = asyncio.get_running_loop()

        def _fire() -> None:
            self._handles.pop(key, None)
            task = loop.create_task(callback())
            self._tasks.add(task)
            task.add_done_callback(lambda done: self._on_task_done(key, done))

        self._handles[key] = loop.call_later(max(0.0, delay_seconds), _fire)
        logger.debug(f"Scheduled release {key} in {delay_seconds:.1f}s")

    def _on_task_done(self, key: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Release {key} failed: {exc}", exc_info=exc)

    def cancel(self, key: str) -> bool:
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug(f"Cancelled release {key}")
        return True

    def pending_keys(self) -> List[str]:
        return list(self._handles)

    async def wait_for_running(self) -> None:
        """Wait for release callbacks that have already fired to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class ManualHoldScheduler(HoldScheduler):
    """
    Scheduler with a virtual clock.

    Jobs fire only inside ``advance()``, in due-time order, with the clock set
    to each job's due time while it runs.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime.now().replace(microsecond=0)
        self._jobs: Dict[str, Tuple[datetime, int, ReleaseCallback]] = {}
        self._sequence = 0

    def now(self) -> datetime:
        return self._now

    def schedule(self, key: str, delay_seconds: float, callback: ReleaseCallback) -> None:
        self._sequence += 1
        due_at = self._now + timedelta(seconds=max(0.0, delay_seconds))
        self._jobs[key] = (due_at, self._sequence, callback)

    def cancel(self, key: str) -> bool:
        return self._jobs.pop(key, None) is not None

    def pending_keys(self) -> List[str]:
        return [key for key, _ in sorted(self._jobs.items(), key=lambda item: item[1][:2])]

    def due_at(self, key: str) -> Optional[datetime]:
        job = self._jobs.get(key)
        return job[0] if job else None

    async def advance(
        self,
        seconds: float = 0,
        minutes: float = 0,
        run_due: bool = True,
    ) -> int:
        """
        Move the clock forward.

        Args:
            seconds: Seconds to advance
            minutes: Minutes to advance
            run_due: Fire jobs that fall due; when False only the clock moves
                and due jobs stay queued

        Returns:
            int: Number of jobs fired
        """
        target = self._now + timedelta(seconds=seconds, minutes=minutes)
        fired = 0

        while run_due:
            due = [
                (due_at, sequence, key)
                for key, (due_at, sequence, _) in self._jobs.items()
                if due_at <= target
            ]
            if not due:
                break

            due_at, _, key = min(due)
            _, _, callback = self._jobs.pop(key)
            self._now = max(self._now, due_at)
            await callback()
            fired += 1

        self._now = max(self._now, target)
        return fired

    async def run_pending(self) -> int:
        """Fire every job already due without moving the clock."""
        return await self.advance(0)
