"""
PoolParty Trace — held-count samples for diagnosing a run.

A recorder is handed to a pool and called after every mutation. Each run
starts from an empty recorder; nothing is shared between instances.
"""

import json
import time


class TraceRecorder:
    """Ordered (timestamp_ms, held) samples."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self.entries = []

    def __call__(self, held: int):
        self.entries.append((int(self._clock() * 1000), held))

    def __len__(self):
        return len(self.entries)

    def clear(self):
        self.entries = []

    def to_json(self) -> str:
        return json.dumps(self.entries)

    def dump(self, path):
        with open(path, "w") as f:
            f.write(self.to_json())

    def summary(self) -> dict:
        if not self.entries:
            return {"samples": 0, "min_held": None, "max_held": None, "span_ms": 0}
        held = [h for _, h in self.entries]
        return {
            "samples": len(self.entries),
            "min_held": min(held),
            "max_held": max(held),
            "span_ms": self.entries[-1][0] - self.entries[0][0],
        }
