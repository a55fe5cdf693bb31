"""Small, fast channel configs shared by the tests."""

from poolparty.config import PoolConfig


def small_config(**overrides) -> PoolConfig:
    values = {
        "list_size": 3,
        "max_slots": 40,
        "max_value": 16,
        "pulse_ms": 60,
        "settling_time_ms": 0,
        "strategy": "direct",
    }
    values.update(overrides)
    return PoolConfig(**values)


def laggy_config(**overrides) -> PoolConfig:
    """Slow enough to absorb an 8 ms acquisition delay."""
    values = {"pulse_ms": 120, "settling_time_ms": 20}
    values.update(overrides)
    return small_config(**values)
