"""
Tests for the keyed timer scheduler.
"""

import asyncio

import pytest

from services.scheduler import TimerScheduler
from utils.types import TimerKind


def _recorder(calls, label):
    async def _cb():
        calls.append(label)

    return _cb


class TestTimerScheduler:
    @pytest.mark.asyncio
    async def test_fires_callback_after_delay(self):
        calls = []
        scheduler = TimerScheduler(clock=lambda: 0)
        scheduler.schedule((TimerKind.CLOSE, 1), 10, _recorder(calls, "close"))

        assert scheduler.is_scheduled((TimerKind.CLOSE, 1))
        await asyncio.sleep(0.05)

        assert calls == ["close"]
        assert not scheduler.is_scheduled((TimerKind.CLOSE, 1))

    @pytest.mark.asyncio
    async def test_rescheduling_replaces_previous_timer(self):
        calls = []
        scheduler = TimerScheduler(clock=lambda: 0)
        scheduler.schedule((TimerKind.CLOSE, 1), 10, _recorder(calls, "old"))
        scheduler.schedule((TimerKind.CLOSE, 1), 20, _recorder(calls, "new"))

        assert scheduler.count() == 1
        await asyncio.sleep(0.06)

        assert calls == ["new"]

    @pytest.mark.asyncio
    async def test_cancel_prevents_fire(self):
        calls = []
        scheduler = TimerScheduler(clock=lambda: 0)
        scheduler.schedule((TimerKind.DELETE, 5), 10, _recorder(calls, "delete"))

        assert scheduler.cancel((TimerKind.DELETE, 5)) is True
        assert scheduler.cancel((TimerKind.DELETE, 5)) is False
        await asyncio.sleep(0.03)

        assert calls == []

    @pytest.mark.asyncio
    async def test_keys_are_independent_per_kind_and_channel(self):
        scheduler = TimerScheduler(clock=lambda: 1000)
        noop = _recorder([], "x")
        scheduler.schedule((TimerKind.CLOSE, 1), 5000, noop)
        scheduler.schedule((TimerKind.CLOSE_WARNING, 1), 4000, noop)
        scheduler.schedule((TimerKind.CLOSE, 2), 5000, noop)

        assert scheduler.count(TimerKind.CLOSE) == 2
        assert scheduler.count(TimerKind.CLOSE_WARNING) == 1
        assert scheduler.due_at((TimerKind.CLOSE, 1)) == 6000

        scheduler.cancel_channel(1)
        assert scheduler.count() == 1
        await scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_break_scheduler(self):
        calls = []

        async def boom():
            raise RuntimeError("boom")

        scheduler = TimerScheduler(clock=lambda: 0)
        scheduler.schedule((TimerKind.CLOSE, 1), 5, boom)
        scheduler.schedule((TimerKind.CLOSE, 2), 10, _recorder(calls, "ok"))
        await asyncio.sleep(0.05)

        assert calls == ["ok"]

    @pytest.mark.asyncio
    async def test_shutdown_cancels_pending(self):
        calls = []
        scheduler = TimerScheduler(clock=lambda: 0)
        scheduler.schedule((TimerKind.CLOSE, 1), 20, _recorder(calls, "close"))

        await scheduler.shutdown()
        await asyncio.sleep(0.04)

        assert calls == []
        assert scheduler.count() == 0
