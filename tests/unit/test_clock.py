"""
Unit Tests for Countdown Clock

Uses short real durations for tick/expiry behaviour and an injected time
source for exact pause/resume arithmetic.
"""

import asyncio
import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "cognitive_trainer", "src"))

from cognitive_trainer.clock import Clock


class FakeTime:
    """Manually advanced monotonic time source (seconds)."""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestClockTiming:
    """Countdowns driven by the real event loop."""

    @pytest.mark.asyncio
    async def test_ticks_then_expires_once(self):
        clock = Clock(tick_interval_ms=10)
        ticks = []
        expired = []

        handle = clock.start_countdown(60, on_tick=ticks.append, on_expire=lambda: expired.append(True))
        await asyncio.sleep(0.3)

        assert expired == [True]
        assert handle.expired is True
        assert ticks[-1] == 0
        assert ticks == sorted(ticks, reverse=True)
        assert clock.remaining_ms(handle) == 0

    @pytest.mark.asyncio
    async def test_cancelled_countdown_never_fires(self):
        clock = Clock(tick_interval_ms=10)
        ticks = []
        expired = []

        handle = clock.start_countdown(80, on_tick=ticks.append, on_expire=lambda: expired.append(True))
        await asyncio.sleep(0.025)
        clock.cancel(handle)
        ticks_at_cancel = len(ticks)
        await asyncio.sleep(0.2)

        assert expired == []
        assert len(ticks) == ticks_at_cancel

    @pytest.mark.asyncio
    async def test_paused_countdown_does_not_expire(self):
        clock = Clock(tick_interval_ms=10)
        expired = []

        handle = clock.start_countdown(60, on_expire=lambda: expired.append(True))
        clock.pause(handle)
        frozen = clock.remaining_ms(handle)
        await asyncio.sleep(0.15)

        assert expired == []
        assert clock.remaining_ms(handle) == frozen

        clock.resume(handle)
        await asyncio.sleep(0.2)
        assert expired == [True]

    @pytest.mark.asyncio
    async def test_callback_errors_do_not_stop_countdown(self):
        clock = Clock(tick_interval_ms=10)
        expired = []

        def broken_tick(remaining_ms):
            raise RuntimeError("render failed")

        clock.start_countdown(40, on_tick=broken_tick, on_expire=lambda: expired.append(True))
        await asyncio.sleep(0.2)

        assert expired == [True]

    @pytest.mark.asyncio
    async def test_expire_callback_may_cancel_its_own_handle(self):
        clock = Clock(tick_interval_ms=10)
        calls = []
        handle = None

        def on_expire():
            calls.append(True)
            clock.cancel(handle)

        handle = clock.start_countdown(30, on_expire=on_expire)
        await asyncio.sleep(0.15)

        assert calls == [True]


class TestClockArithmetic:
    """Pause/resume bookkeeping with a fake time source."""

    @pytest.fixture
    def fake_time(self):
        return FakeTime()

    @pytest.mark.asyncio
    async def test_remaining_follows_time_source(self, fake_time):
        clock = Clock(tick_interval_ms=1000, time_source=fake_time)
        handle = clock.start_countdown(5000)

        fake_time.now = 1.5
        assert clock.remaining_ms(handle) == 3500

        clock.cancel(handle)

    @pytest.mark.asyncio
    async def test_pause_freezes_and_resume_continues(self, fake_time):
        clock = Clock(tick_interval_ms=1000, time_source=fake_time)
        handle = clock.start_countdown(5000)

        fake_time.now = 1.5
        clock.pause(handle)
        fake_time.now = 10.0
        assert clock.remaining_ms(handle) == 3500

        clock.resume(handle)
        fake_time.now = 11.0
        assert clock.remaining_ms(handle) == 2500

        clock.cancel(handle)
        fake_time.now = 20.0
        assert clock.remaining_ms(handle) == 2500

    @pytest.mark.asyncio
    async def test_operations_on_cancelled_handle_are_noops(self, fake_time):
        clock = Clock(tick_interval_ms=1000, time_source=fake_time)
        handle = clock.start_countdown(5000)

        clock.cancel(handle)
        clock.cancel(handle)
        clock.pause(handle)
        clock.resume(handle)

        assert handle.cancelled is True
        assert handle.paused is False
        assert handle.running is False

    @pytest.mark.asyncio
    async def test_resume_without_pause_is_noop(self, fake_time):
        clock = Clock(tick_interval_ms=1000, time_source=fake_time)
        handle = clock.start_countdown(5000)
        task = handle._task

        clock.resume(handle)

        assert handle._task is task
        clock.cancel(handle)

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            Clock(tick_interval_ms=0)
        with pytest.raises(ValueError):
            Clock().start_countdown(-1)
