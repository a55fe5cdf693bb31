"""
PoolParty Pools — capacity-limited resource pools shared between participants.

A pool hands out units one at a time. Acquisition may finish later or
fail; a failed unit stays counted by held() until collect_garbage() prunes
it. None of the unit operations raise: every irregularity shows up as a
smaller count on the next read.
"""

import asyncio
import itertools
import logging
import threading
from collections import deque

log = logging.getLogger("poolparty.pool")

# ── Unit states ───────────────────────────────────────────────────

PENDING = "pending"
OPEN = "open"
DEAD = "dead"

_unit_ids = itertools.count(1)


class Unit:
    """One requested unit of capacity (a socket, a client, a counter slot)."""

    __slots__ = ("id", "state", "handle")

    def __init__(self):
        self.id = next(_unit_ids)
        self.state = PENDING
        self.handle = None

    @property
    def dead(self) -> bool:
        return self.state == DEAD

    def __repr__(self):
        return f"Unit({self.id}, {self.state})"


class ResourcePool:
    """Base class for pools.

    Subclasses keep their units in ``self._units`` (oldest first) and
    implement consume_one() and release_one(). The recorder, if given, is
    called with the held count whenever log() is called.
    """

    def __init__(self, config, recorder=None):
        self.config = config
        self.recorder = recorder
        self._units = deque()

    def log(self):
        if self.recorder is not None:
            self.recorder(self.held())

    def consume_one(self):
        raise NotImplementedError

    def release_one(self):
        raise NotImplementedError

    def held(self) -> int:
        """Units not yet observed dead."""
        return len(self._units)

    def collect_garbage(self):
        """Prune units that died without being released."""
        before = len(self._units)
        self._units = deque(u for u in self._units if not u.dead)
        pruned = before - len(self._units)
        if pruned:
            log.debug(f"🧹 pruned {pruned} dead units, {len(self._units)} held")

    async def aclose(self):
        """Release everything still held."""
        while self._units:
            self.release_one()

    def stats(self) -> dict:
        states = {PENDING: 0, OPEN: 0, DEAD: 0}
        for unit in self._units:
            states[unit.state] += 1
        return {"held": len(self._units), **states}


# ── In-process pool ───────────────────────────────────────────────

class SharedCapacity:
    """Bounded counter standing in for an intermediary's connection cap.

    try_acquire() is a compare-and-swap on the in-use count, so participants
    on any thread or event loop can never push it past capacity.
    """

    def __init__(self, capacity: int):
        self.capacity = capacity
        self._in_use = 0
        self._lock = threading.Lock()
        self.acquired = 0
        self.refused = 0

    def try_acquire(self) -> bool:
        with self._lock:
            if self._in_use >= self.capacity:
                self.refused += 1
                return False
            self._in_use += 1
            self.acquired += 1
            return True

    def release(self):
        with self._lock:
            if self._in_use > 0:
                self._in_use -= 1

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def free(self) -> int:
        return self.capacity - self._in_use

    def stats(self) -> dict:
        return {
            "capacity": self.capacity,
            "in_use": self._in_use,
            "acquired": self.acquired,
            "refused": self.refused,
        }


class CounterPool(ResourcePool):
    """Pool whose units are slots of a SharedCapacity.

    With acquire_delay_ms > 0 each slot is claimed later on the running
    event loop, like a connection that takes a while to open.
    """

    def __init__(self, config, capacity: SharedCapacity, recorder=None,
                 acquire_delay_ms: float = 0):
        super().__init__(config, recorder)
        self.capacity = capacity
        self.acquire_delay_ms = acquire_delay_ms

    def consume_one(self):
        unit = Unit()
        self._units.append(unit)
        if self.acquire_delay_ms > 0:
            loop = asyncio.get_running_loop()
            unit.handle = loop.call_later(self.acquire_delay_ms / 1000,
                                          self._acquire, unit)
        else:
            self._acquire(unit)

    def _acquire(self, unit: Unit):
        if unit.state != PENDING:
            return
        if self.capacity.try_acquire():
            unit.state = OPEN
        else:
            unit.state = DEAD

    def release_one(self):
        if not self._units:
            return
        unit = self._units.popleft()
        if unit.state == OPEN:
            self.capacity.release()
        elif unit.handle is not None:
            unit.handle.cancel()
        unit.state = DEAD
