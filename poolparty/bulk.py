"""
PoolParty Bulk Operations — batch consume/release and the headroom probe.

Every channel operation is built from these. Each batch is followed by the
pool's settling time so asynchronous acquisitions and closes can land
before the count is read.
"""

import logging

from .scheduler import sleep_ms

log = logging.getLogger("poolparty.bulk")


async def consume(pool, max_units: int) -> int:
    """Request up to max_units more units; return how many were actually gained."""
    pool.log()
    n_start = pool.held()
    for _ in range(max_units):
        pool.consume_one()
        pool.log()
    await sleep_ms(pool.config.settling_time_ms)
    pool.collect_garbage()
    n_finish = pool.held()
    pool.log()
    log.debug(f"➕ consume {max_units}: gained {n_finish - n_start}, holding {n_finish}")
    return n_finish - n_start


async def release(pool, max_units: int) -> int:
    """Release up to max_units units, oldest first; return how many were released."""
    pool.log()
    if max_units <= 0:
        return 0
    number_to_release = min(max_units, pool.held())
    for _ in range(number_to_release):
        pool.release_one()
        pool.log()
    await sleep_ms(pool.config.settling_time_ms)
    pool.log()
    log.debug(f"➖ release {max_units}: released {number_to_release}, holding {pool.held()}")
    return number_to_release


async def probe(pool, max_units: int) -> int:
    """Measure headroom: grab what's free, then hand exactly that much back."""
    consumed = await consume(pool, max_units)
    await release(pool, consumed)
    return consumed
