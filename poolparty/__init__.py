"""PoolParty — Covert signaling between agents sharing a capacity-limited pool."""

__version__ = "0.1.0"

from .codec import integer_to_digits, digits_to_integer, integer_to_hex, hex_to_integer
from .config import PoolConfig, PRESETS
from .pool import ResourcePool, CounterPool, SharedCapacity
from .bulk import consume, release, probe
from .negotiate import negotiate, is_sender, SENDER, RECEIVER
from .transmitter import Transmitter, DirectDelta, OvershootTrim
from .receiver import Receiver
from .trace import TraceRecorder
