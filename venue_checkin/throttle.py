"""Fixed-interval ticker used to pace outbound API calls."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0


class Ticker:
    """Emits one tick per interval; every awaited ``wait()`` consumes a tick.

    The first tick fires one full interval after ``start()`` (or after the
    first ``wait()`` when the ticker was never started explicitly). Ticks are
    never closer together than ``interval`` seconds. A late ``wait()`` fires
    immediately and the schedule restarts from that moment: missed ticks are
    dropped and the original phase is not kept.

    Not safe for concurrent waiters; it is owned by a single worker.
    """

    def __init__(
        self,
        interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._interval = float(interval)
        self._clock = clock
        self._sleep = sleep
        self._next_tick: float | None = None
        self.ticks = 0

    @classmethod
    def per_hour(cls, rate: float, **kwargs) -> "Ticker":
        """Build a ticker allowing *rate* ticks per hour."""

        if rate <= 0:
            raise ValueError("rate must be > 0")
        return cls(SECONDS_PER_HOUR / rate, **kwargs)

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def started(self) -> bool:
        return self._next_tick is not None

    def start(self) -> None:
        if self._next_tick is None:
            self._next_tick = self._clock() + self._interval

    async def wait(self) -> float:
        """Block until the next tick and return the time it fired."""

        self.start()
        assert self._next_tick is not None
        delay = self._next_tick - self._clock()
        if delay > 0:
            logger.debug("Ticker sleeping %.2fs", delay)
            await self._sleep(delay)
        fired = max(self._clock(), self._next_tick)
        self._next_tick = fired + self._interval
        self.ticks += 1
        return fired
