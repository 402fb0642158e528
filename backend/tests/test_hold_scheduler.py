"""
Tests for the hold release schedulers.
"""

import asyncio
import logging
import pytest
from datetime import datetime, timedelta

from motorpark.services.hold_scheduler import AsyncioHoldScheduler, ManualHoldScheduler

START = datetime(2026, 3, 2, 8, 0)


class TestManualHoldScheduler:
    """Test the virtual clock scheduler."""

    @pytest.mark.asyncio
    async def test_jobs_fire_in_due_order(self):
        scheduler = ManualHoldScheduler(start=START)
        fired = []

        async def record(key):
            fired.append((key, scheduler.now()))

        scheduler.schedule("late", 120, lambda: record("late"))
        scheduler.schedule("early", 60, lambda: record("early"))

        assert await scheduler.advance(minutes=5) == 2
        assert fired == [
            ("early", START + timedelta(seconds=60)),
            ("late", START + timedelta(seconds=120)),
        ]
        assert scheduler.now() == START + timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_cancel_and_replace(self):
        scheduler = ManualHoldScheduler(start=START)
        fired = []

        async def record():
            fired.append(scheduler.now())

        scheduler.schedule("hold", 60, record)
        assert scheduler.cancel("hold") is True
        assert scheduler.cancel("hold") is False

        scheduler.schedule("hold", 30, record)
        scheduler.schedule("hold", 90, record)
        assert scheduler.due_at("hold") == START + timedelta(seconds=90)

        await scheduler.advance(minutes=2)
        assert fired == [START + timedelta(seconds=90)]

    @pytest.mark.asyncio
    async def test_advance_without_running(self):
        scheduler = ManualHoldScheduler(start=START)

        async def noop():
            return None

        scheduler.schedule("hold", 10, noop)

        assert await scheduler.advance(seconds=20, run_due=False) == 0
        assert scheduler.pending_keys() == ["hold"]
        assert await scheduler.run_pending() == 1


class TestAsyncioHoldScheduler:
    """Test the event loop scheduler."""

    @pytest.mark.asyncio
    async def test_callback_runs_after_delay(self):
        scheduler = AsyncioHoldScheduler()
        done = asyncio.Event()

        async def release():
            done.set()

        scheduler.schedule("hold", 0.01, release)
        await asyncio.wait_for(done.wait(), timeout=1)
        await scheduler.wait_for_running()

        assert scheduler.pending_keys() == []

    @pytest.mark.asyncio
    async def test_cancelled_callback_never_runs(self):
        scheduler = AsyncioHoldScheduler()
        calls = []

        async def release():
            calls.append(1)

        scheduler.schedule("hold", 0.01, release)
        assert scheduler.cancel("hold")
        await asyncio.sleep(0.05)

        assert calls == []

    def test_clock_override(self):
        scheduler = AsyncioHoldScheduler(clock=lambda: START)
        assert scheduler.now() == START

    @pytest.mark.asyncio
    async def test_failed_callback_is_logged(self, caplog):
        scheduler = AsyncioHoldScheduler()
        done = asyncio.Event()

        async def release():
            done.set()
            raise RuntimeError("store unavailable")

        with caplog.at_level(logging.ERROR, logger="motorpark.services.hold_scheduler"):
            scheduler.schedule("hold", 0.01, release)
            await asyncio.wait_for(done.wait(), timeout=1)
            await scheduler.wait_for_running()
            await asyncio.sleep(0)

        assert any(
            "Release hold failed: store unavailable" in record.getMessage()
            for record in caplog.records
        )
