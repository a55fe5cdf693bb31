"""
PoolParty Sessions — run the channel unattended for a number of cycles.

Each cycle: wait for the shared boundary, negotiate, then send a random
payload or receive one. Results are logged and returned; comparing the
sender's and receiver's hex strings is the only way to spot a bad read.
"""

import asyncio
import logging
import random
import time

from .codec import random_payload
from .negotiate import negotiate, SENDER, RECEIVER
from .pool import CounterPool, SharedCapacity
from .receiver import Receiver
from .scheduler import PulseScheduler
from .trace import TraceRecorder
from .transmitter import Transmitter

log = logging.getLogger("poolparty.session")

DEFAULT_CYCLES = 10


class Participant:
    """One side of the channel: a pool plus the clock both sides share."""

    def __init__(self, pool, scheduler: PulseScheduler = None, rng=None,
                 name: str = "local"):
        self.pool = pool
        self.config = pool.config
        self.scheduler = scheduler or PulseScheduler(self.config)
        self.rng = rng or random.Random()
        self.name = name
        self.transmitter = Transmitter(pool, self.scheduler)
        self.receiver = Receiver(pool, self.scheduler)
        self.results = []

    async def run_cycle(self, cycle: int = 0) -> dict:
        self.pool.log()
        t0 = await self.scheduler.wait_for_cycle()
        self.pool.log()
        role = await negotiate(self.pool)
        t1 = time.perf_counter()
        if role == SENDER:
            result = await self.transmitter.send(random_payload(self.config, self.rng), t0)
            digits = self.transmitter.last_digits
        else:
            result = await self.receiver.receive(t0)
            digits = self.receiver.last_digits
        elapsed_ms = (time.perf_counter() - t1) * 1000
        verb = "send" if role == SENDER else "receive"
        icon = "📤" if role == SENDER else "📥"
        log.info(f"{icon} [{self.name}] {verb}: {result}, elapsed, ms: {round(elapsed_ms)}")
        return {
            "cycle": cycle,
            "role": role,
            "hex": result,
            "digits": list(digits),
            "t0": t0,
            "elapsed_ms": elapsed_ms,
        }

    async def run(self, cycles: int = DEFAULT_CYCLES) -> list:
        """Run a fixed number of cycles. There are no retries."""
        if isinstance(self.pool.recorder, TraceRecorder):
            self.pool.recorder.clear()
        self.results = []
        for cycle in range(cycles):
            self.results.append(await self.run_cycle(cycle))
        self.pool.log()
        return self.results

    def stats(self) -> dict:
        sent = sum(1 for r in self.results if r["role"] == SENDER)
        received = sum(1 for r in self.results if r["role"] == RECEIVER)
        recorder = self.pool.recorder
        return {
            "name": self.name,
            "cycles": len(self.results),
            "sent": sent,
            "received": received,
            "held": self.pool.held(),
            "trace": recorder.summary() if isinstance(recorder, TraceRecorder) else None,
        }


async def run_local_pair(config, cycles: int = DEFAULT_CYCLES,
                         acquire_delay_ms: float = 0, seed=None) -> dict:
    """Run two participants against one in-process pool and compare results."""
    capacity = SharedCapacity(config.max_slots)
    rng = random.Random(seed)
    participants = []
    for name in ("alice", "bob"):
        pool = CounterPool(config, capacity, recorder=TraceRecorder(),
                           acquire_delay_ms=acquire_delay_ms)
        participants.append(Participant(pool, rng=random.Random(rng.random()), name=name))

    results_a, results_b = await asyncio.gather(
        *(p.run(cycles) for p in participants))

    rows = []
    for a, b in zip(results_a, results_b):
        senders = [r for r in (a, b) if r["role"] == SENDER]
        receivers = [r for r in (a, b) if r["role"] == RECEIVER]
        sent = senders[0]["hex"] if len(senders) == 1 else None
        received = receivers[0]["hex"] if len(receivers) == 1 else None
        rows.append({
            "cycle": a["cycle"],
            "sent": sent,
            "received": received,
            "match": sent is not None and sent == received,
        })

    for p in participants:
        await p.pool.aclose()

    errors = sum(1 for r in rows if not r["match"])
    summary = {
        "cycles": cycles,
        "errors": errors,
        "num_bits": config.num_bits,
        "bits_per_second": config.bits_per_second,
        "participants": [p.stats() for p in participants],
        "capacity": capacity.stats(),
    }
    log.info(f"📊 {cycles - errors}/{cycles} payloads matched "
             f"({config.bits_per_second:.1f} bit/s raw)")
    return {"rows": rows, "summary": summary}
