"""
PoolParty Negotiation — pick sender and receiver by racing for the pool.

Both participants run this at the same cycle boundary. Whoever gets the
majority of the pool keeps it and sends; the other lets go and receives.
Only two participants are supported: with more, nobody may reach a
majority and everybody ends up receiving.
"""

import logging

from .bulk import consume, release

log = logging.getLogger("poolparty.negotiate")

SENDER = "sender"
RECEIVER = "receiver"


async def negotiate(pool) -> str:
    """Race for the whole pool and return SENDER or RECEIVER."""
    max_slots = pool.config.max_slots
    await release(pool, pool.held())
    await consume(pool, max_slots)
    held = pool.held()
    if held < max_slots / 2:
        log.debug(f"🎲 got {held}/{max_slots}, taking receiver role")
        await release(pool, held)
        return RECEIVER
    log.debug(f"🎲 got {held}/{max_slots}, taking sender role")
    return SENDER


async def is_sender(pool) -> bool:
    return await negotiate(pool) == SENDER
