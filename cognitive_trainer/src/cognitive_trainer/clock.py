"""
Countdown Clock

Cancellable periodic countdown on the asyncio event loop. Every timed
session owns one countdown; the clock never touches session state itself,
it only reports remaining time and expiry through callbacks.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], None]
ExpireCallback = Callable[[], None]


class CountdownHandle:
    """State of one countdown. Owned by the Clock that created it."""

    def __init__(self, duration_ms: int, on_tick: Optional[TickCallback], on_expire: Optional[ExpireCallback]):
        self.duration_ms = duration_ms
        self.on_tick = on_tick
        self.on_expire = on_expire
        self.cancelled = False
        self.paused = False
        self.expired = False
        # Remaining time when the current running segment began (ms)
        self._segment_remaining_ms: float = float(duration_ms)
        # Time source reading when the segment began; None while not running
        self._segment_started_at: Optional[float] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return not (self.cancelled or self.paused or self.expired)


class Clock:
    """
    Countdown scheduler.

    Ticks fire every tick_interval_ms while a countdown runs. Pausing
    freezes the exact remaining time; resuming continues from it. A
    cancelled countdown never fires another callback.
    """

    def __init__(
        self,
        tick_interval_ms: int = 1000,
        time_source: Callable[[], float] = time.monotonic
    ):
        """
        Initialize Clock.

        Args:
            tick_interval_ms: Tick cadence in milliseconds (default: 1000)
            time_source: Monotonic time function returning seconds
        """
        if tick_interval_ms <= 0:
            raise ValueError("tick_interval_ms must be positive")
        self.tick_interval_ms = tick_interval_ms
        self._time_source = time_source

    def _now_ms(self) -> float:
        return self._time_source() * 1000.0

    def _exact_remaining(self, handle: CountdownHandle) -> float:
        if handle.expired:
            return 0.0
        if handle._segment_started_at is None:
            return handle._segment_remaining_ms
        spent = self._now_ms() - handle._segment_started_at
        return max(0.0, handle._segment_remaining_ms - spent)

    def remaining_ms(self, handle: CountdownHandle) -> int:
        """Remaining time of a countdown right now, in whole milliseconds."""
        return max(0, int(round(self._exact_remaining(handle))))

    def start_countdown(
        self,
        duration_ms: int,
        on_tick: Optional[TickCallback] = None,
        on_expire: Optional[ExpireCallback] = None
    ) -> CountdownHandle:
        """
        Start a countdown. Must be called from a running event loop.

        Args:
            duration_ms: Countdown length in milliseconds
            on_tick: Called with the remaining milliseconds on every tick
            on_expire: Called once when the countdown reaches zero

        Returns:
            CountdownHandle used for pause/resume/cancel
        """
        if duration_ms < 0:
            raise ValueError("duration_ms must not be negative")
        handle = CountdownHandle(duration_ms, on_tick, on_expire)
        self._start_segment(handle)
        return handle

    def pause(self, handle: CountdownHandle):
        """Freeze the countdown. No-op unless it is running."""
        if not handle.running:
            return
        handle._segment_remaining_ms = self._exact_remaining(handle)
        handle._segment_started_at = None
        handle.paused = True
        self._stop_task(handle)

    def resume(self, handle: CountdownHandle):
        """Continue a paused countdown from its frozen remaining time."""
        if not handle.paused or handle.cancelled or handle.expired:
            return
        handle.paused = False
        self._start_segment(handle)

    def cancel(self, handle: CountdownHandle):
        """Stop the countdown for good. Idempotent."""
        if handle.cancelled:
            return
        if handle._segment_started_at is not None:
            handle._segment_remaining_ms = self._exact_remaining(handle)
            handle._segment_started_at = None
        handle.cancelled = True
        self._stop_task(handle)

    def _start_segment(self, handle: CountdownHandle):
        loop = asyncio.get_running_loop()
        handle._segment_started_at = self._now_ms()
        handle._task = loop.create_task(self._run(handle))

    def _stop_task(self, handle: CountdownHandle):
        task, handle._task = handle._task, None
        if task is None or task.done():
            return
        # A callback may pause or cancel its own countdown; the run loop
        # sees the flag and exits on its own in that case.
        if task is not asyncio.current_task():
            task.cancel()

    async def _run(self, handle: CountdownHandle):
        interval = self.tick_interval_ms
        while True:
            remaining = self._exact_remaining(handle)
            spent = handle._segment_remaining_ms - remaining
            until_tick = interval - (spent % interval)
            await asyncio.sleep(min(until_tick, remaining) / 1000.0)

            if handle.cancelled or handle.paused:
                return

            remaining_ms = self.remaining_ms(handle)
            if remaining_ms > 0:
                self._fire_tick(handle, remaining_ms)
                continue

            self._fire_tick(handle, 0)
            if handle.cancelled or handle.paused:
                return
            handle.expired = True
            handle._segment_remaining_ms = 0.0
            handle._segment_started_at = None
            handle._task = None
            if handle.on_expire is not None:
                try:
                    handle.on_expire()
                except Exception as e:
                    logger.error(f"❌ [Clock] Expiry callback failed: {e}", exc_info=e)
            return

    def _fire_tick(self, handle: CountdownHandle, remaining_ms: int):
        if handle.on_tick is None or handle.cancelled:
            return
        try:
            handle.on_tick(remaining_ms)
        except Exception as e:
            logger.error(f"❌ [Clock] Tick callback failed: {e}", exc_info=e)
