#!/usr/bin/env python3
"""PoolParty benchmark — decode accuracy vs pulse length on an in-process pool"""

import asyncio
import time

from poolparty.config import PoolConfig
from poolparty.session import run_local_pair

CYCLES = 5

# ── Scenarios ─────────────────────────────────────────────────────
# (label, pulse_ms, settling_ms, acquire_delay_ms, strategy)

SCENARIOS = [
    ("instant, direct",      40,  0,  0, "direct"),
    ("instant, overshoot",   40,  0,  0, "overshoot"),
    ("laggy, direct",       120, 20,  8, "direct"),
    ("laggy, overshoot",    120, 20,  8, "overshoot"),
    ("too laggy",           120,  5, 15, "direct"),
]


def sweep():
    print("=" * 60)
    print("  POOLPARTY CHANNEL SWEEP")
    print("=" * 60)
    print()

    for label, pulse_ms, settle, delay, strategy in SCENARIOS:
        config = PoolConfig.from_preset("chrome", pulse_ms=pulse_ms,
                                        settling_time_ms=settle, strategy=strategy)
        t0 = time.time()
        report = asyncio.run(run_local_pair(config, cycles=CYCLES,
                                            acquire_delay_ms=delay, seed=1))
        elapsed = time.time() - t0
        s = report["summary"]
        ok = s["cycles"] - s["errors"]
        print(f"  {label:<20} pulse={pulse_ms:>3}ms settle={settle:>2}ms lag={delay:>2}ms  "
              f"{ok}/{s['cycles']} ok  {s['bits_per_second']:6.1f} bit/s  ({elapsed:.1f}s)")
    print()


if __name__ == "__main__":
    sweep()
