"""
Outcome Generator
Expands a 32-byte seed into uniform outcomes with a ChaCha20 keystream

The seed is the ChaCha20 key; the 16-byte counter/nonce block starts at zero,
so a given seed always yields the same keystream. Outcomes use rejection
sampling: each 32-bit word is masked to the bit width of the range size and
re-drawn while it falls outside the range, which avoids modulo bias.
"""

import struct

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

from .config import I64_MAX, I64_MIN
from .entropy import SEED_LENGTH
from .errors import InvalidEntropyInput, InvalidRange, RangeTooLarge

DRAW_BITS = 32
MAX_SPAN = 2 ** DRAW_BITS

_ZERO_BLOCK = bytes(16)


class OutcomeStream:
    """Deterministic pseudo-random word stream seeded with a 32-byte seed"""

    def __init__(self, seed):
        if not isinstance(seed, (bytes, bytearray)) or len(seed) != SEED_LENGTH:
            raise InvalidEntropyInput(f"seed must be {SEED_LENGTH} bytes")
        cipher = Cipher(algorithms.ChaCha20(bytes(seed), _ZERO_BLOCK), mode=None)
        self._keystream = cipher.encryptor()
        self.words_drawn = 0

    def read(self, n):
        """Next n keystream bytes."""
        return self._keystream.update(bytes(n))

    def next_u32(self):
        self.words_drawn += 1
        return struct.unpack("<I", self.read(4))[0]

    def uniform(self, low, high):
        """
        Uniform integer in the closed range [low, high]

        Args:
            low: Lower bound (i64)
            high: Upper bound (i64)

        Returns:
            int: Outcome value
        """
        span = validate_range(low, high)
        if span == 1:
            return low

        mask = (1 << (span - 1).bit_length()) - 1
        while True:
            value = self.next_u32() & mask
            if value < span:
                return low + value


def validate_range(low, high):
    """Check an outcome range and return its size."""
    for name, bound in (("low", low), ("high", high)):
        if isinstance(bound, bool) or not isinstance(bound, int):
            raise InvalidRange(f"{name} must be an integer, got {bound!r}")
        if not I64_MIN <= bound <= I64_MAX:
            raise InvalidRange(f"{name}={bound} is outside the signed 64-bit range")
    if low > high:
        raise InvalidRange(f"low ({low}) is greater than high ({high})")

    span = high - low + 1
    if span > MAX_SPAN:
        raise RangeTooLarge(f"range size {span} exceeds the {DRAW_BITS}-bit draw width")
    return span


def generate_outcome(seed, outcome_range):
    """Single outcome in [low, high] for the given seed."""
    low, high = outcome_range
    return OutcomeStream(seed).uniform(low, high)


def generate_outcomes(seed, outcome_range, count):
    """Several outcomes in [low, high] drawn from one continuing stream."""
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise InvalidRange(f"count must be a non-negative integer, got {count!r}")
    low, high = outcome_range
    validate_range(low, high)
    stream = OutcomeStream(seed)
    return [stream.uniform(low, high) for _ in range(count)]
