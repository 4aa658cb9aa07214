"""
Tests for the client timer schedulers
"""
import asyncio

import pytest

from app.client.scheduler import AsyncioScheduler, ManualScheduler


class TestManualScheduler:
    @pytest.mark.asyncio
    async def test_jobs_fire_in_due_order(self):
        scheduler = ManualScheduler()
        fired = []
        scheduler.every(3, lambda: fired.append(("slow", scheduler.now)))
        scheduler.every(1, lambda: fired.append(("fast", scheduler.now)))

        await scheduler.advance(3)

        assert fired == [
            ("fast", 1.0),
            ("fast", 2.0),
            ("slow", 3.0),
            ("fast", 3.0),
        ]
        assert scheduler.now == 3.0

    @pytest.mark.asyncio
    async def test_nothing_fires_before_advance(self):
        scheduler = ManualScheduler()
        fired = []
        scheduler.every(1, lambda: fired.append(1))

        await scheduler.advance(0.5)

        assert fired == []

    @pytest.mark.asyncio
    async def test_async_callbacks_awaited(self):
        scheduler = ManualScheduler()
        fired = []

        async def job():
            await asyncio.sleep(0)
            fired.append(scheduler.now)

        scheduler.every(2, job)
        await scheduler.advance(5)

        assert fired == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_cancel(self):
        scheduler = ManualScheduler()
        fired = []
        token = scheduler.every(1, lambda: fired.append(scheduler.now))

        await scheduler.advance(2)
        token.cancel()
        await scheduler.advance(5)

        assert fired == [1.0, 2.0]
        assert token.cancelled
        assert scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_job_cancelling_another(self):
        scheduler = ManualScheduler()
        fired = []
        other = scheduler.every(1, lambda: fired.append("other"))

        def stopper():
            fired.append("stop")
            other.cancel()

        scheduler.every(1, stopper)
        await scheduler.advance(3)

        assert fired == ["other", "stop", "stop", "stop"]

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        scheduler = ManualScheduler()
        fired = []
        scheduler.every(1, lambda: fired.append("a"))
        scheduler.every(2, lambda: fired.append("b"))

        scheduler.cancel_all()
        await scheduler.advance(10)

        assert fired == []
        assert scheduler.pending == 0

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            ManualScheduler().every(0, lambda: None)


class TestAsyncioScheduler:
    @pytest.mark.asyncio
    async def test_runs_until_cancelled(self):
        scheduler = AsyncioScheduler()
        fired = []
        token = scheduler.every(0.01, lambda: fired.append(1))

        await asyncio.sleep(0.1)
        token.cancel()
        count = len(fired)
        await asyncio.sleep(0.05)

        assert count >= 2
        assert len(fired) == count

    @pytest.mark.asyncio
    async def test_failing_job_keeps_running(self):
        scheduler = AsyncioScheduler()
        calls = []

        def flaky():
            calls.append(1)
            raise RuntimeError("boom")

        scheduler.every(0.01, flaky)
        await asyncio.sleep(0.1)
        scheduler.cancel_all()

        assert len(calls) >= 2
