"""
Tests for per-trip locking.
"""

import asyncio
import pytest

from motorpark.errors import LockTimeoutError
from motorpark.services.lock_manager import TripLockManager


class TestTripLockManager:
    """Test lock acquisition, release and metrics."""

    @pytest.mark.asyncio
    async def test_lock_context_releases(self):
        locks = TripLockManager()

        async with locks.lock_context("trip_1") as info:
            assert locks.is_locked("trip_1")
            assert info.lock_key == "trip_lock:trip_1"

        assert not locks.is_locked("trip_1")
        assert locks.get_metrics()["acquisitions"] == 1

    @pytest.mark.asyncio
    async def test_timeout(self):
        locks = TripLockManager(timeout_seconds=0.05)
        await locks.acquire_lock("trip_1")

        with pytest.raises(LockTimeoutError):
            await locks.acquire_lock("trip_1")

        assert locks.get_metrics()["timeouts"] == 1
        assert locks.release_lock("trip_1")

    @pytest.mark.asyncio
    async def test_mutations_are_serialized(self):
        locks = TripLockManager()
        events = []

        async def worker(name):
            async with locks.lock_context("trip_1"):
                events.append(f"{name}:start")
                await asyncio.sleep(0.01)
                events.append(f"{name}:end")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a:start", "a:end", "b:start", "b:end"],
            ["b:start", "b:end", "a:start", "a:end"],
        )

    @pytest.mark.asyncio
    async def test_lock_many_releases_all(self):
        locks = TripLockManager()

        async with locks.lock_many(["trip_2", "trip_1", "trip_2"]) as infos:
            assert [i.lock_key for i in infos] == ["trip_lock:trip_1", "trip_lock:trip_2"]

        assert not locks.is_locked("trip_1")
        assert not locks.is_locked("trip_2")

    def test_release_unheld_lock(self):
        assert TripLockManager().release_lock("trip_1") is False
