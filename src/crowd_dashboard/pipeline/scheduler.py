"""
Live Scheduler
==============

Periodic refresh driver for live mode.

While live mode is on, two independent timers run:
    - Tick: every `interval` seconds, re-trigger the pipeline with "now"
    - Countdown: every `countdown_step` seconds, decrement the displayed
      countdown, wrapping back to its start value at zero

Turning live mode on triggers one run immediately and resets the countdown.
Turning it off cancels both timers; runs already in flight are not aborted
and are discarded by the pipeline if superseded.

Ticks are spawned as tasks so a slow run never delays the timer. Overlapping
ticks are rejected by the pipeline's in-flight guard.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set


logger = logging.getLogger(__name__)


TickCallback = Callable[[bool], Awaitable[object]]


class LiveScheduler:
    """
    Tick and countdown timers for live mode.

    Attributes:
        interval: Seconds between ticks
        countdown_step: Seconds between countdown decrements
        countdown_start: Countdown value after a reset
        countdown: Current countdown value
        ticks: Number of ticks fired since construction
    """

    def __init__(
        self,
        on_tick: TickCallback,
        interval: float = 30.0,
        countdown_step: float = 1.0,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            on_tick: Coroutine function run on start and on every tick.
                Called with True for the immediate start tick, False after.
            interval: Seconds between ticks
            countdown_step: Seconds between countdown decrements
        """
        if interval <= 0 or countdown_step <= 0:
            raise ValueError("interval and countdown_step must be positive")

        self.on_tick = on_tick
        self.interval = interval
        self.countdown_step = countdown_step
        self.countdown_start = max(1, round(interval / countdown_step))
        self.countdown = self.countdown_start
        self.ticks = 0

        self._tick_task: Optional[asyncio.Task] = None
        self._countdown_task: Optional[asyncio.Task] = None
        self._runs: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        """Whether live mode is on."""
        return self._tick_task is not None

    def start(self) -> None:
        """
        Turn live mode on.

        Fires one tick immediately, resets the countdown and starts both
        timers. No-op if already running.
        """
        if self.running:
            return

        self.countdown = self.countdown_start
        self._fire(initial=True)
        self._tick_task = asyncio.create_task(self._tick_loop())
        self._countdown_task = asyncio.create_task(self._countdown_loop())
        logger.info(
            f"Live mode on: tick every {self.interval}s, "
            f"countdown from {self.countdown_start}"
        )

    async def stop(self) -> None:
        """Turn live mode off, cancelling both timers."""
        if not self.running:
            return

        tasks = [t for t in (self._tick_task, self._countdown_task) if t is not None]
        self._tick_task = None
        self._countdown_task = None

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self.countdown = self.countdown_start
        logger.info("Live mode off")

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self._fire(initial=False)

    async def _countdown_loop(self) -> None:
        while True:
            await asyncio.sleep(self.countdown_step)
            self.countdown -= 1
            if self.countdown <= 0:
                self.countdown = self.countdown_start

    def _fire(self, initial: bool) -> None:
        self.ticks += 1
        task = asyncio.create_task(self._run_tick(initial))
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)

    async def _run_tick(self, initial: bool) -> None:
        if not self.running:
            return
        try:
            await self.on_tick(initial)
        except Exception as e:
            # Timers keep running; the pipeline reports failures in its snapshot
            logger.error(f"Live tick failed: {e}")
