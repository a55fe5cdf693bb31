"""
PoolParty Receiver — read a payload back by probing headroom each pulse.
"""

import logging

from .bulk import probe
from .codec import digits_to_integer, integer_to_hex
from .config import SAMPLE_OFFSET
from .scheduler import PulseScheduler

log = logging.getLogger("poolparty.receiver")


class Receiver:
    """Samples the pool once per transfer pulse.

    Samples are taken `sample_offset` pulses after each boundary so the
    transmitter's adjustment has settled.
    """

    def __init__(self, pool, scheduler: PulseScheduler = None,
                 sample_offset: float = SAMPLE_OFFSET):
        self.pool = pool
        self.config = pool.config
        self.scheduler = scheduler or PulseScheduler(self.config)
        self.sample_offset = sample_offset
        self.last_digits = []

    async def receive_digits(self, t0: float) -> list:
        digits = []
        for i in range(self.config.list_size):
            await self.scheduler.sleep_until(
                self.scheduler.sample_time(t0, i, self.sample_offset))
            headroom = await probe(self.pool, self.config.max_value)
            if headroom < 1:
                # Nothing free: the sender missed this pulse. Read it as 0 so
                # the hex keeps its width.
                log.warning(f"⚠️ pulse {i} read no headroom")
                headroom = 1
            digits.append(headroom - 1)
        self.last_digits = digits
        log.debug(f"📡 received digits {digits}")
        return digits

    async def receive(self, t0: float) -> str:
        """Receive during the cycle that started at t0; return the hex form."""
        config = self.config
        digits = await self.receive_digits(t0)
        value = digits_to_integer(digits, config.list_size, config.max_value)
        return integer_to_hex(value, config.num_bits)
