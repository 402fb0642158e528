"""
Per-trip lock manager.

Every mutation of a trip's seat count (reserve, release, capacity updates)
runs under that trip's ``asyncio.Lock`` so that interleaved coroutines cannot
lose an update. Locks are process-local; running several worker processes
would need a shared lock or a compare-and-swap on booking status instead.
"""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from ..errors import LockTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class LockInfo:
    """Information about a held lock."""
    lock_key: str
    owner_id: str
    acquired_at: datetime
    wait_time_ms: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert lock info to dictionary."""
        return {
            "lock_key": self.lock_key,
            "owner_id": self.owner_id,
            "acquired_at": self.acquired_at.isoformat(),
            "wait_time_ms": self.wait_time_ms,
        }


@dataclass
class LockContentionMetrics:
    """Counters for lock acquisition."""
    acquisitions: int = 0
    timeouts: int = 0
    contended_acquisitions: int = 0
    total_wait_time_ms: float = 0.0
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def average_wait_time_ms(self) -> float:
        if not self.acquisitions:
            return 0.0
        return self.total_wait_time_ms / self.acquisitions

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "acquisitions": self.acquisitions,
            "timeouts": self.timeouts,
            "contended_acquisitions": self.contended_acquisitions,
            "average_wait_time_ms": self.average_wait_time_ms,
            "started_at": self.started_at.isoformat(),
        }


class TripLockManager:
    """
    Lock manager handing out one ``asyncio.Lock`` per trip.

    Features:
    - Lock acquisition with timeout
    - Ordered multi-trip locking for series-wide updates
    - Contention metrics
    """

    def __init__(self, timeout_seconds: float = 5.0):
        """
        Initialize the lock manager.

        Args:
            timeout_seconds: Default maximum wait for a lock
        """
        self.timeout_seconds = timeout_seconds
        self.instance_id = str(uuid.uuid4())[:8]
        self._locks: Dict[str, asyncio.Lock] = {}
        self.active_locks: Dict[str, LockInfo] = {}
        self.metrics = LockContentionMetrics()

        logger.info(f"TripLockManager initialized with instance ID: {self.instance_id}")

    def _lock_for(self, trip_id: str) -> asyncio.Lock:
        lock = self._locks.get(trip_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[trip_id] = lock
        return lock

    def is_locked(self, trip_id: str) -> bool:
        lock = self._locks.get(trip_id)
        return bool(lock and lock.locked())

    async def acquire_lock(
        self,
        trip_id: str,
        timeout_seconds: Optional[float] = None,
    ) -> LockInfo:
        """
        Acquire the lock for a trip.

        Args:
            trip_id: Trip to lock
            timeout_seconds: Maximum time to wait (default: manager timeout)

        Returns:
            LockInfo: Details of the acquired lock

        Raises:
            LockTimeoutError: If the lock is not acquired in time
        """
        timeout = timeout_seconds or self.timeout_seconds
        lock = self._lock_for(trip_id)
        contended = lock.locked()
        start_time = time.monotonic()

        try:
            await asyncio.wait_for(lock.acquire(), timeout=timeout)
        except asyncio.TimeoutError:
            self.metrics.timeouts += 1
            logger.warning(f"Failed to acquire lock for trip {trip_id} within {timeout}s")
            raise LockTimeoutError(f"Trip {trip_id} is busy, try again")

        wait_time_ms = (time.monotonic() - start_time) * 1000
        lock_info = LockInfo(
            lock_key=f"trip_lock:{trip_id}",
            owner_id=self.instance_id,
            acquired_at=datetime.now(),
            wait_time_ms=wait_time_ms,
        )
        self.active_locks[trip_id] = lock_info

        self.metrics.acquisitions += 1
        self.metrics.total_wait_time_ms += wait_time_ms
        if contended:
            self.metrics.contended_acquisitions += 1

        logger.debug(f"Lock acquired: {lock_info.lock_key} (wait: {wait_time_ms:.1f}ms)")
        return lock_info

    def release_lock(self, trip_id: str) -> bool:
        """
        Release a trip lock.

        Returns:
            bool: True if a held lock was released
        """
        lock = self._locks.get(trip_id)
        if lock is None or not lock.locked():
            logger.warning(f"Lock release for trip {trip_id} without holding it")
            return False

        self.active_locks.pop(trip_id, None)
        lock.release()
        logger.debug(f"Lock released: trip_lock:{trip_id}")
        return True

    @asynccontextmanager
    async def lock_context(
        self,
        trip_id: str,
        timeout_seconds: Optional[float] = None,
    ) -> AsyncIterator[LockInfo]:
        """
        Context manager for automatic lock acquisition and release.

        Usage:
            async with lock_manager.lock_context(trip_id):
                # protected mutation of the trip
                pass
        """
        lock_info = await self.acquire_lock(trip_id, timeout_seconds)
        try:
            yield lock_info
        finally:
            self.release_lock(trip_id)

    @asynccontextmanager
    async def lock_many(
        self,
        trip_ids: Iterable[str],
        timeout_seconds: Optional[float] = None,
    ) -> AsyncIterator[List[LockInfo]]:
        """
        Lock several trips at once.

        Locks are taken in sorted id order so two callers locking overlapping
        sets cannot deadlock.
        """
        ordered = sorted(set(trip_ids))
        acquired: List[str] = []
        infos: List[LockInfo] = []
        try:
            for trip_id in ordered:
                infos.append(await self.acquire_lock(trip_id, timeout_seconds))
                acquired.append(trip_id)
            yield infos
        finally:
            for trip_id in reversed(acquired):
                self.release_lock(trip_id)

    def get_metrics(self) -> Dict[str, Any]:
        metrics = self.metrics.to_dict()
        metrics["tracked_locks"] = len(self._locks)
        return metrics
