"""
PoolParty WebSocket Pool — units are open WebSocket connections.

Browsers and reverse proxies cap how many sockets may be open at once, so
the number of connections that succeed measures the headroom left by the
other participant. Every failure mode (refused, rejected handshake, timeout,
server-side close) just turns the unit dead.
"""

import asyncio
import logging
import os

import websockets
from websockets.exceptions import WebSocketException

from .pool import ResourcePool, Unit, OPEN, DEAD

log = logging.getLogger("poolparty.ws")

DEFAULT_WS_URL = os.environ.get(
    "POOLPARTY_WS_URL", "wss://poolparty.privacytests.org/websockets")


class WebSocketPool(ResourcePool):
    """Pool of client connections to one WebSocket endpoint."""

    def __init__(self, config, url: str = DEFAULT_WS_URL, recorder=None,
                 open_timeout: float = 10.0):
        super().__init__(config, recorder)
        self.url = url
        self.open_timeout = open_timeout
        self.opened = 0
        self.failed = 0

    def consume_one(self):
        unit = Unit()
        unit.handle = asyncio.get_running_loop().create_task(self._hold(unit))
        self._units.append(unit)

    async def _hold(self, unit: Unit):
        """Open a socket and keep it until it closes or the task is cancelled."""
        try:
            async with websockets.connect(self.url,
                                          open_timeout=self.open_timeout) as ws:
                unit.state = OPEN
                self.opened += 1
                await ws.wait_closed()
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            self.failed += 1
            log.debug(f"💀 socket {unit.id} failed: {e}")
        finally:
            unit.state = DEAD

    def release_one(self):
        if not self._units:
            return
        unit = self._units.popleft()
        unit.handle.cancel()

    async def aclose(self):
        tasks = [u.handle for u in self._units]
        while self._units:
            self.release_one()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        log.info(f"🔌 closed pool for {self.url} "
                 f"(opened {self.opened}, failed {self.failed})")

    def stats(self) -> dict:
        base = super().stats()
        base.update({"url": self.url, "opened": self.opened, "failed": self.failed})
        return base
