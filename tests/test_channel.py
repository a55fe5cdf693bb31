"""Tests for pulse scheduling, adjustment strategies, and end-to-end transfer."""

import asyncio

import pytest

from poolparty.bulk import consume
from poolparty.codec import integer_to_digits
from poolparty.config import PoolConfig
from poolparty.negotiate import negotiate, SENDER, RECEIVER
from poolparty.pool import CounterPool, SharedCapacity
from poolparty.receiver import Receiver
from poolparty.scheduler import PulseScheduler, sleep_ms
from poolparty.transmitter import (
    DirectDelta, OvershootTrim, Transmitter, get_strategy,
)

from conftest import small_config, laggy_config


class FakeClock:
    def __init__(self, t):
        self.t = t

    def __call__(self):
        return self.t


class TestScheduler:
    def setup_method(self):
        self.clock = FakeClock(1000.0)
        self.scheduler = PulseScheduler(PoolConfig.from_preset("chrome"), clock=self.clock)

    def test_cycle_start_rounds_up(self):
        assert self.scheduler.cycle_ms == 300
        assert self.scheduler.next_cycle_start() == 1200

    def test_cycle_start_on_boundary(self):
        self.clock.t = 1200.0
        assert self.scheduler.next_cycle_start() == 1200

    def test_pulse_times(self):
        assert self.scheduler.pulse_start(1200, 0) == 1250
        assert self.scheduler.pulse_start(1200, 4) == 1450
        assert self.scheduler.sample_time(1200, 0) == 1262.5
        assert self.scheduler.sample_time(1200, 4) == 1462.5
        assert self.scheduler.sample_time(1200, 1, offset=0.5) == 1325

    def test_sleep_until_past_returns_now(self):
        assert asyncio.run(self.scheduler.sleep_until(0)) == 1000.0

    def test_negative_sleep(self):
        asyncio.run(sleep_ms(-100))


class TestStrategies:
    def setup_method(self):
        self.config = small_config()
        self.capacity = SharedCapacity(self.config.max_slots)
        self.pool = CounterPool(self.config, self.capacity)
        asyncio.run(consume(self.pool, self.config.max_slots))

    def step(self, strategy, last, level):
        asyncio.run(strategy.adjust(self.pool, last, level))
        return self.capacity.free

    def test_direct_delta(self):
        s = DirectDelta()
        assert self.step(s, 0, 3) == 3
        assert self.step(s, 3, 7) == 7
        assert self.step(s, 7, 2) == 2
        assert self.step(s, 2, 2) == 2

    def test_overshoot_trim(self):
        s = OvershootTrim()
        assert self.step(s, 0, 5) == 5
        assert self.step(s, 5, 1) == 1
        assert self.step(s, 1, 16) == 16

    def test_overshoot_margin_is_tunable(self):
        s = OvershootTrim(margin=0)
        assert self.step(s, 0, 4) == 4
        assert self.step(s, 4, 9) == 9
        assert OvershootTrim(margin=12).margin == 12

    def test_get_strategy(self):
        assert isinstance(get_strategy(PoolConfig.from_preset("chrome")), DirectDelta)
        firefox = get_strategy(PoolConfig.from_preset("firefox"))
        assert isinstance(firefox, OvershootTrim)
        assert firefox.margin == 5
        custom = get_strategy(PoolConfig.from_preset("firefox", overshoot_margin=9))
        assert custom.margin == 9


async def transfer(config, value, acquire_delay_ms=0):
    """Negotiate roles on a fresh pool, then run one send/receive."""
    capacity = SharedCapacity(config.max_slots)
    tx_pool = CounterPool(config, capacity, acquire_delay_ms=acquire_delay_ms)
    rx_pool = CounterPool(config, capacity, acquire_delay_ms=acquire_delay_ms)
    assert await negotiate(tx_pool) == SENDER
    assert await negotiate(rx_pool) == RECEIVER

    scheduler = PulseScheduler(config)
    tx = Transmitter(tx_pool, scheduler)
    rx = Receiver(rx_pool, scheduler)
    t0 = scheduler.next_cycle_start()
    sent, received = await asyncio.gather(tx.send(value, t0), rx.receive(t0))
    return sent, received, tx, rx


class TestTransfer:
    @pytest.mark.parametrize("strategy", ["direct", "overshoot"])
    @pytest.mark.parametrize("value", [0, 1234, 16 ** 3 - 1])
    def test_roundtrip(self, strategy, value):
        config = small_config(strategy=strategy)
        sent, received, tx, rx = asyncio.run(transfer(config, value))
        assert sent == received
        assert len(sent) == config.hex_width
        assert rx.last_digits == tx.last_digits == integer_to_digits(value, 3, 16)

    def test_roundtrip_with_acquisition_lag(self):
        config = laggy_config(strategy="overshoot")
        sent, received, _, _ = asyncio.run(transfer(config, 2748, acquire_delay_ms=8))
        assert sent == received == "abc"

    def test_zero_encodes_as_all_zero_hex(self):
        sent, received, _, _ = asyncio.run(transfer(small_config(), 0))
        assert sent == received == "000"

    def test_missed_pulses_keep_hex_width(self):
        config = small_config()
        capacity = SharedCapacity(config.max_slots)
        hog = CounterPool(config, capacity)
        rx_pool = CounterPool(config, capacity)

        async def scenario():
            await consume(hog, config.max_slots)
            scheduler = PulseScheduler(config)
            rx = Receiver(rx_pool, scheduler)
            received = await rx.receive(scheduler.now() - config.cycle_ms)
            return received, rx.last_digits

        received, digits = asyncio.run(scenario())
        assert digits == [0, 0, 0]
        assert received == "000"
        assert len(received) == config.hex_width

    def test_free_units_track_digits(self):
        """During each pulse the pool has exactly digit + 1 free units."""
        config = small_config()
        capacity = SharedCapacity(config.max_slots)
        pool = CounterPool(config, capacity)
        scheduler = PulseScheduler(config)
        value = 9 + 4 * 16 + 15 * 256
        samples = []

        async def watch(t0):
            for i in range(config.list_size):
                await scheduler.sleep_until(scheduler.sample_time(t0, i, 0.5))
                samples.append(capacity.free)

        async def scenario():
            t0 = scheduler.next_cycle_start()
            await asyncio.gather(Transmitter(pool, scheduler).send(value, t0), watch(t0))

        asyncio.run(scenario())
        assert samples == [10, 5, 16]

    def test_sender_starts_from_full_pool(self):
        config = small_config()
        capacity = SharedCapacity(config.max_slots)
        pool = CounterPool(config, capacity)

        async def scenario():
            scheduler = PulseScheduler(config)
            return await Transmitter(pool, scheduler).send(0, scheduler.now() - config.cycle_ms)

        # With t0 in the past every pulse fires at once and ends on the last level
        assert asyncio.run(scenario()) == "000"
        assert capacity.free == 1
