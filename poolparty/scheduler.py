"""
PoolParty Scheduler — shared wall-clock pulse boundaries.

Participants never talk to each other, so every cycle starts on a multiple
of the cycle length measured on the wall clock. Settling time absorbs the
skew between the two clocks.
"""

import asyncio
import math
import time

from .config import SAMPLE_OFFSET


def now_ms() -> float:
    return time.time() * 1000


async def sleep_ms(interval: float):
    """Sleep for interval milliseconds; past deadlines return immediately."""
    await asyncio.sleep(max(interval, 0) / 1000)


class PulseScheduler:
    """Computes cycle starts and pulse times for one config."""

    def __init__(self, config, clock=None):
        self.config = config
        self._clock = clock or now_ms

    def now(self) -> float:
        return self._clock()

    @property
    def cycle_ms(self) -> int:
        return self.config.cycle_ms

    def next_cycle_start(self) -> float:
        """Next multiple of cycle_ms at or after now."""
        interval = self.cycle_ms
        return math.ceil(self.now() / interval) * interval

    async def sleep_until(self, time_ms: float) -> float:
        await sleep_ms(time_ms - self.now())
        return self.now()

    async def wait_for_cycle(self) -> float:
        """Sleep to the next cycle boundary and return the boundary itself.

        Both participants compute the same boundary; the time they actually
        wake up differs by scheduler jitter.
        """
        t0 = self.next_cycle_start()
        await self.sleep_until(t0)
        return t0

    def pulse_start(self, t0: float, index: int) -> float:
        """Boundary of transfer pulse `index`; pulse 0 of the cycle is negotiation."""
        return t0 + (index + 1) * self.config.pulse_ms

    def sample_time(self, t0: float, index: int, offset: float = SAMPLE_OFFSET) -> float:
        """When the receiver reads transfer pulse `index`."""
        return t0 + (index + 1 + offset) * self.config.pulse_ms
