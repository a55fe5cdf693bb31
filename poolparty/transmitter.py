"""
PoolParty Transmitter — encode a payload as per-pulse pool headroom.

The sender starts each cycle holding the whole pool. At the start of
transfer pulse i it leaves exactly ``digit[i] + 1`` units free, which the
receiver measures a quarter pulse later. How the sender moves from one
level to the next is a pluggable strategy.
"""

import logging

from .bulk import consume, release
from .codec import integer_to_digits, integer_to_hex
from .config import DEFAULT_OVERSHOOT_MARGIN
from .scheduler import PulseScheduler

log = logging.getLogger("poolparty.transmitter")


# ── Pulse Adjustment Strategies ───────────────────────────────────

class PulseStrategy:
    """Moves the pool from one pulse's free level to the next.

    Every strategy must end with exactly `level` units free; they differ
    only in the traffic they generate on the way.
    """

    name = None

    async def adjust(self, pool, last_level: int, level: int):
        raise NotImplementedError


class DirectDelta(PulseStrategy):
    """Release or re-consume exactly the difference between levels."""

    name = "direct"

    async def adjust(self, pool, last_level: int, level: int):
        delta = level - last_level
        if delta > 0:
            await release(pool, delta)
        else:
            await consume(pool, -delta)


class OvershootTrim(PulseStrategy):
    """Grab everything back plus a margin, then release down to the level.

    Hides the size of the step and soaks up acquisitions that land late.
    """

    name = "overshoot"

    def __init__(self, margin: int = DEFAULT_OVERSHOOT_MARGIN):
        self.margin = margin

    async def adjust(self, pool, last_level: int, level: int):
        await consume(pool, last_level + self.margin)
        await release(pool, level)


STRATEGIES = {
    DirectDelta.name: DirectDelta,
    OvershootTrim.name: OvershootTrim,
}


def get_strategy(config) -> PulseStrategy:
    """Instantiate the strategy named by config.strategy."""
    if config.strategy == OvershootTrim.name:
        return OvershootTrim(config.overshoot_margin)
    return STRATEGIES[config.strategy]()


# ── Transmitter ───────────────────────────────────────────────────

class Transmitter:
    """Drives a pool through one cycle's transfer pulses."""

    def __init__(self, pool, scheduler: PulseScheduler = None,
                 strategy: PulseStrategy = None):
        self.pool = pool
        self.config = pool.config
        self.scheduler = scheduler or PulseScheduler(self.config)
        self.strategy = strategy or get_strategy(self.config)
        self.last_digits = []

    async def send(self, value: int, t0: float) -> str:
        """Send value during the cycle that started at t0; return its hex form."""
        config = self.config
        digits = integer_to_digits(value, config.list_size, config.max_value)
        await consume(self.pool, config.max_slots - self.pool.held())
        last_level = 0
        for i, digit in enumerate(digits):
            await self.scheduler.sleep_until(self.scheduler.pulse_start(t0, i))
            level = 1 + digit
            await self.strategy.adjust(self.pool, last_level, level)
            last_level = level
        self.last_digits = digits
        log.debug(f"📡 sent digits {digits} via {self.strategy.name}")
        return integer_to_hex(value, config.num_bits)
