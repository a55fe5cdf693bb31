"""
PoolParty Console — manual mode, one command per primitive.

Lets an operator poke the pool by hand: grab or drop units, probe, race for
the sender role, or run a single send/receive aligned to the next cycle.
"""

import asyncio
import logging
import sys
import time

from .bulk import consume, release, probe
from .codec import random_payload
from .negotiate import is_sender

log = logging.getLogger("poolparty.console")

QUIT_COMMANDS = ("quit", "exit", "q")


class Console:
    """Maps command names to pool operations for a Participant."""

    def __init__(self, participant):
        self.participant = participant
        pool = participant.pool
        config = participant.config
        self.commands = {
            "consume 1": lambda: consume(pool, 1),
            "consume all": lambda: consume(pool, config.max_slots * 2),
            "release 1": lambda: release(pool, 1),
            "release all": lambda: release(pool, pool.held()),
            "probe": lambda: probe(pool, config.max_slots),
            "is sender": lambda: is_sender(pool),
            "send": self._send,
            "receive": self._receive,
            "held": self._held,
        }

    async def _send(self):
        p = self.participant
        t0 = p.scheduler.next_cycle_start()
        return await p.transmitter.send(random_payload(p.config, p.rng), t0)

    async def _receive(self):
        p = self.participant
        t0 = p.scheduler.next_cycle_start()
        return await p.receiver.receive(t0)

    async def _held(self):
        return self.participant.pool.held()

    def help_text(self) -> str:
        names = ", ".join(self.commands)
        return f"Commands: {names}, help, quit"

    async def execute(self, name: str):
        """Run one command by name and log its result with elapsed time."""
        key = " ".join(name.lower().split())
        if key not in self.commands:
            raise KeyError(key)
        t1 = time.perf_counter()
        result = await self.commands[key]()
        elapsed_ms = (time.perf_counter() - t1) * 1000
        log.info(f"🕹️ {key}: {result}, elapsed, ms: {round(elapsed_ms)}")
        return result

    async def interact(self, stream=None, out=print):
        """Read commands line by line until EOF or quit."""
        stream = stream or sys.stdin
        loop = asyncio.get_running_loop()
        out(self.help_text())
        while True:
            # Read off-loop so held sockets keep being serviced
            line = await loop.run_in_executor(None, stream.readline)
            if not line:
                break
            command = " ".join(line.lower().split())
            if not command:
                continue
            if command in QUIT_COMMANDS:
                break
            if command == "help":
                out(self.help_text())
                continue
            try:
                result = await self.execute(command)
            except KeyError:
                out(f"❓ Unknown command: {command!r}")
                continue
            out(f"{command}: {result}")
