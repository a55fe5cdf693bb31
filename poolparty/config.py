"""
PoolParty Configuration — channel constants shared by both participants.

Sender and receiver must agree on every value here before a run. Presets
are keyed by deployment variant; any field can be overridden from the
environment.
"""

import math
import os

# ── Presets ───────────────────────────────────────────────────────

PRESETS = {
    "chrome": {
        "list_size": 5,
        "max_slots": 255,
        "max_value": 128,
        "pulse_ms": 50,
        "settling_time_ms": 0,
        "strategy": "direct",
    },
    "firefox": {
        "list_size": 5,
        "max_slots": 255,
        "max_value": 128,
        "pulse_ms": 350,
        "settling_time_ms": 50,
        "strategy": "overshoot",
    },
}

DEFAULT_PRESET = "chrome"
DEFAULT_OVERSHOOT_MARGIN = 5
STRATEGY_NAMES = ("direct", "overshoot")
# Receivers sample this fraction of a pulse after each boundary
SAMPLE_OFFSET = 0.25

# Field name -> environment variable
ENV_OVERRIDES = {
    "list_size": "POOLPARTY_LIST_SIZE",
    "max_slots": "POOLPARTY_MAX_SLOTS",
    "max_value": "POOLPARTY_MAX_VALUE",
    "pulse_ms": "POOLPARTY_PULSE_MS",
    "settling_time_ms": "POOLPARTY_SETTLING_MS",
    "strategy": "POOLPARTY_STRATEGY",
    "overshoot_margin": "POOLPARTY_OVERSHOOT_MARGIN",
}


class ConfigError(ValueError):
    """Invalid channel configuration."""
    pass


class PoolConfig:
    """Capacity and timing constants for one channel."""

    def __init__(self, list_size: int = 5, max_slots: int = 255,
                 max_value: int = 128, pulse_ms: int = 50,
                 settling_time_ms: int = 0, strategy: str = "direct",
                 overshoot_margin: int = DEFAULT_OVERSHOOT_MARGIN):
        self.list_size = list_size
        self.max_slots = max_slots
        self.max_value = max_value
        self.pulse_ms = pulse_ms
        self.settling_time_ms = settling_time_ms
        self.strategy = strategy
        self.overshoot_margin = overshoot_margin
        self.validate()

    # ── Derived values ────────────────────────────────────────────

    @property
    def num_bits(self) -> float:
        return self.list_size * math.log2(self.max_value)

    @property
    def hex_width(self) -> int:
        return math.ceil(self.num_bits / 4)

    @property
    def max_payload(self) -> int:
        """Exclusive upper bound of the payload integer."""
        return self.max_value ** self.list_size

    @property
    def cycle_ms(self) -> int:
        """One negotiation pulse plus list_size transfer pulses."""
        return (self.list_size + 1) * self.pulse_ms

    @property
    def bits_per_second(self) -> float:
        return self.num_bits * 1000 / self.cycle_ms

    # ── Validation ────────────────────────────────────────────────

    def validate(self):
        """Raise ConfigError if the constants cannot carry a payload."""
        if self.list_size < 1:
            raise ConfigError(f"list_size must be >= 1: {self.list_size}")
        if self.max_value < 2:
            raise ConfigError(f"max_value must be >= 2: {self.max_value}")
        if self.max_value > self.max_slots:
            raise ConfigError(
                f"max_value ({self.max_value}) exceeds max_slots ({self.max_slots})")
        if self.pulse_ms <= 0:
            raise ConfigError(f"pulse_ms must be positive: {self.pulse_ms}")
        if self.settling_time_ms < 0:
            raise ConfigError(f"settling_time_ms must be >= 0: {self.settling_time_ms}")
        # A probe settles twice and must finish inside its pulse
        if 2 * self.settling_time_ms >= self.pulse_ms:
            raise ConfigError(
                f"settling_time_ms ({self.settling_time_ms}) must be under half "
                f"of pulse_ms ({self.pulse_ms})")
        if self.strategy not in STRATEGY_NAMES:
            raise ConfigError(
                f"Unknown strategy {self.strategy!r}, expected one of {STRATEGY_NAMES}")
        if self.overshoot_margin < 0:
            raise ConfigError(f"overshoot_margin must be >= 0: {self.overshoot_margin}")
        # Overshoot holds everything for one settle before trimming, so the
        # trim has to land before the receiver samples
        if (self.strategy == "overshoot"
                and self.settling_time_ms >= SAMPLE_OFFSET * self.pulse_ms):
            raise ConfigError(
                f"overshoot needs settling_time_ms ({self.settling_time_ms}) under "
                f"{SAMPLE_OFFSET} of pulse_ms ({self.pulse_ms})")

    # ── Construction ──────────────────────────────────────────────

    @classmethod
    def from_preset(cls, name: str = DEFAULT_PRESET, **overrides) -> "PoolConfig":
        """Build a config from a named preset, with optional field overrides."""
        key = name.lower()
        if key not in PRESETS:
            raise ConfigError(f"Unknown preset {name!r}, expected one of {sorted(PRESETS)}")
        values = dict(PRESETS[key])
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @classmethod
    def from_env(cls, preset: str = None, environ=None) -> "PoolConfig":
        """Build a config from POOLPARTY_PRESET plus per-field overrides."""
        environ = os.environ if environ is None else environ
        name = preset or environ.get("POOLPARTY_PRESET", DEFAULT_PRESET)
        overrides = {}
        for field, var in ENV_OVERRIDES.items():
            raw = environ.get(var)
            if raw is None or raw == "":
                continue
            if field == "strategy":
                overrides[field] = raw.strip().lower()
                continue
            try:
                overrides[field] = int(raw)
            except ValueError:
                raise ConfigError(f"{var} must be an integer: {raw!r}") from None
        return cls.from_preset(name, **overrides)

    def to_dict(self) -> dict:
        return {
            "list_size": self.list_size,
            "max_slots": self.max_slots,
            "max_value": self.max_value,
            "pulse_ms": self.pulse_ms,
            "settling_time_ms": self.settling_time_ms,
            "strategy": self.strategy,
            "overshoot_margin": self.overshoot_margin,
        }

    def __eq__(self, other):
        if not isinstance(other, PoolConfig):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        fields = ", ".join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"PoolConfig({fields})"
