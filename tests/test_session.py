"""Tests for automatic runs, the local pair, and the manual console."""

import asyncio
import io
import random

import pytest

from poolparty.console import Console
from poolparty.negotiate import SENDER
from poolparty.pool import CounterPool, SharedCapacity
from poolparty.session import Participant, run_local_pair
from poolparty.trace import TraceRecorder

from conftest import small_config, laggy_config


class TestParticipant:
    def setup_method(self):
        self.config = small_config()
        self.capacity = SharedCapacity(self.config.max_slots)
        self.recorder = TraceRecorder()
        self.pool = CounterPool(self.config, self.capacity, recorder=self.recorder)
        self.participant = Participant(self.pool, rng=random.Random(1), name="solo")

    def test_alone_always_sends(self):
        results = asyncio.run(self.participant.run(2))
        assert [r["role"] for r in results] == [SENDER, SENDER]
        assert all(len(r["hex"]) == self.config.hex_width for r in results)
        assert all(r["t0"] % self.config.cycle_ms == 0 for r in results)

    def test_trace_cleared_per_run(self):
        self.recorder(999)
        asyncio.run(self.participant.run(1))
        assert 999 not in [h for _, h in self.recorder.entries]
        assert len(self.recorder) > 0

    def test_plain_callback_recorder(self):
        samples = []
        pool = CounterPool(self.config, self.capacity, recorder=samples.append)
        results = asyncio.run(Participant(pool, name="plain").run(1))
        assert results[0]["role"] == SENDER
        assert samples
        assert Participant(pool).stats()["trace"] is None

    def test_stats(self):
        asyncio.run(self.participant.run(1))
        s = self.participant.stats()
        assert s["name"] == "solo"
        assert s["cycles"] == 1
        assert s["sent"] == 1
        assert s["received"] == 0
        assert s["trace"]["max_held"] == self.config.max_slots


class TestLocalPair:
    def test_all_payloads_match(self):
        report = asyncio.run(run_local_pair(small_config(), cycles=3, seed=7))
        rows = report["rows"]
        assert len(rows) == 3
        assert all(r["match"] for r in rows)
        assert report["summary"]["errors"] == 0
        for p in report["summary"]["participants"]:
            assert p["sent"] + p["received"] == 3
            assert p["held"] == 0

    def test_overshoot_with_lag(self):
        config = laggy_config(strategy="overshoot")
        report = asyncio.run(run_local_pair(config, cycles=2, acquire_delay_ms=8, seed=2))
        assert report["summary"]["errors"] == 0
        assert report["summary"]["bits_per_second"] == pytest.approx(12 * 1000 / 480)


class TestConsole:
    def setup_method(self):
        self.config = small_config()
        self.capacity = SharedCapacity(self.config.max_slots)
        self.pool = CounterPool(self.config, self.capacity)
        self.console = Console(Participant(self.pool))

    def run(self, command):
        return asyncio.run(self.console.execute(command))

    def test_primitives(self):
        assert self.run("consume 1") == 1
        assert self.run("held") == 1
        assert self.run("release all") == 1
        assert self.run("consume all") == 40
        assert self.run("probe") == 0
        assert self.run("release 1") == 1
        assert self.run("probe") == 1
        assert self.pool.held() == 39

    def test_is_sender_when_alone(self):
        assert self.run("is sender") is True
        assert self.pool.held() == 40

    def test_send_returns_hex(self):
        assert len(self.run("send")) == self.config.hex_width

    def test_command_names_normalized(self):
        assert self.run("  Consume   1 ") == 1

    def test_unknown_command(self):
        with pytest.raises(KeyError):
            self.run("dance")

    def test_interact(self):
        lines = []
        stream = io.StringIO("consume 1\n\nheld\nbogus\nhelp\nquit\nconsume 1\n")
        asyncio.run(self.console.interact(stream=stream, out=lines.append))
        assert "consume 1: 1" in lines
        assert "held: 1" in lines
        assert any("Unknown command" in line for line in lines)
        assert sum(1 for line in lines if line.startswith("Commands:")) == 2
        # Nothing after quit runs
        assert self.pool.held() == 1
