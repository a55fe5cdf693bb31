"""
PoolParty Codec — payload integer <-> pulse digits <-> fixed-width hex.

The transmitter emits digits least-significant first; the receiver folds
them back from the most significant index down. Both sides render the
payload as the same zero-padded hex string so results can be compared.
"""

import math
import random

from .config import PoolConfig


class CodecError(ValueError):
    """Value cannot be represented with the given channel constants."""
    pass


def integer_to_digits(value: int, list_size: int, max_value: int) -> list:
    """Split a payload integer into list_size base-max_value digits, LSB first."""
    if value < 0 or value >= max_value ** list_size:
        raise CodecError(
            f"Value {value} outside [0, {max_value}**{list_size})")
    digits = []
    feed = value
    for _ in range(list_size):
        remainder = feed % max_value
        digits.append(remainder)
        feed = (feed - remainder) // max_value
    return digits


def digits_to_integer(digits, list_size: int, max_value: int) -> int:
    """Fold digits back into an integer.

    No range checks: a receiver that misread a pulse still gets a value,
    it just won't match the sender's.
    """
    result = 0
    for i in range(list_size - 1, -1, -1):
        result = result * max_value + digits[i]
    return result


def integer_to_hex(value: int, num_bits: float) -> str:
    """Render value as exactly ceil(num_bits / 4) lowercase hex characters."""
    n_hex_digits = math.ceil(num_bits / 4)
    return format(value + 16 ** n_hex_digits, "x")[1:]


def hex_to_integer(text: str) -> int:
    """Parse a hex string produced by integer_to_hex."""
    cleaned = text.strip().lower().replace(" ", "")
    if cleaned.startswith("0x"):
        cleaned = cleaned[2:]
    try:
        return int(cleaned, 16)
    except ValueError:
        raise CodecError(f"Invalid hex string: {text!r}") from None


def random_payload(config: PoolConfig, rng=None) -> int:
    """Pick a uniformly random payload for one transfer."""
    rng = rng or random
    return rng.randrange(config.max_payload)


def describe(value: int, config: PoolConfig) -> dict:
    """Show how a payload travels over the channel."""
    digits = integer_to_digits(value, config.list_size, config.max_value)
    return {
        "value": value,
        "digits": digits,
        "levels": [d + 1 for d in digits],
        "hex": integer_to_hex(value, config.num_bits),
        "num_bits": config.num_bits,
        "hex_width": config.hex_width,
    }
