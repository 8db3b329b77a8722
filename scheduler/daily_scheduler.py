import asyncio
import logging
from datetime import datetime, timedelta
from functools import partial
from typing import Any, Awaitable, Callable, Optional

from models.settings import SchedulerConfig
from utils.time_utils import compute_next_run, local_aware, localnow, seconds_until

logger = logging.getLogger("gms_service")

CycleFn = Callable[[datetime], Awaitable[Any]]


class DailyScheduler:
    """
    Runs `cycle` once a day at the configured wall-clock time until stopped.

    The first run waits for the next occurrence of the target time. After it,
    a periodic timer anchored to that first run fires every `interval_seconds`;
    the next run is never re-derived from the wall clock, so long sleeps may
    drift. Ticks missed while a cycle overran are dropped, not replayed.

    The target time is read in `config.timezone` (host local time when unset)
    and the first delay is measured in real seconds, so a DST change before the
    first run does not move it off the wall-clock target.

    stop() is observed during the initial wait and between ticks. A cycle that
    is already running is allowed to finish.
    """

    def __init__(self, config: SchedulerConfig, cycle: CycleFn, clock: Optional[Callable[[], datetime]] = None):
        self.config = config
        self.cycle = cycle
        self.clock = clock or partial(localnow, config.timezone)
        self.interval = config.interval_seconds
        self.running = False
        self.next_run: Optional[datetime] = None
        self.cycles_run = 0
        self.last_result: Any = None
        self._stop = asyncio.Event()

    async def start(self):
        """Starts the daily loop. Returns once stop() has been observed."""
        if self.running:
            return

        self.running = True

        now = self.clock()
        self.next_run = compute_next_run(now, self.config.hour, self.config.minute, self.config.second)
        initial_delay = seconds_until(self.next_run, now)
        logger.info(f"Scheduler started. First run at {self.next_run.isoformat()} (in {initial_delay:.0f}s)")

        try:
            if await self._wait(initial_delay):
                logger.info("Stop requested before the first run.")
                return

            loop = asyncio.get_running_loop()
            anchor = loop.time()
            first_run = self.next_run
            ticks = 0

            while True:
                await self._tick()

                ticks += 1
                elapsed = loop.time() - anchor
                if elapsed > ticks * self.interval:
                    dropped = int(elapsed // self.interval) + 1 - ticks
                    logger.warning(f"Cycle overran the interval, dropping {dropped} tick(s)")
                    ticks += dropped
                self.next_run = first_run + timedelta(seconds=ticks * self.interval)

                if await self._wait(anchor + ticks * self.interval - loop.time()):
                    break
        finally:
            self.running = False
            # a stop request ends one run; the instance can be started again
            self._stop.clear()
            logger.info("Scheduler stopped.")

    def stop(self):
        self._stop.set()
        logger.info("Scheduler stop requested.")

    async def _wait(self, delay: float) -> bool:
        """Sleeps up to `delay` seconds. Returns True if stop() was called."""
        if self._stop.is_set():
            return True
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=max(delay, 0))
            return True
        except asyncio.TimeoutError:
            return False

    async def _tick(self):
        """Runs one cycle. Errors are logged and never end the loop."""
        started = self.clock()
        logger.info(f"The gms job starts at: {started.isoformat()}")
        try:
            self.last_result = await self.cycle(local_aware(started))
        except Exception as e:
            logger.error(f"Scheduler tick failed: {e}")
            return
        finally:
            self.cycles_run += 1
        logger.info(f"The gms job ends at: {self.clock().isoformat()}")
