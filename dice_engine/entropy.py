"""
Entropy Mixer
Combines block entropy, sender, round nonce and player salt into a 32-byte seed

Algorithm:
1. Length-prefix block_entropy (4-byte big-endian length)
2. Length-prefix the UTF-8 sender identity
3. Encode the nonce as 8 bytes big-endian
4. Length-prefix player_salt
5. SHA-256 over the concatenation, in exactly that order

The fixed-width nonce and the length prefixes keep the encoding unambiguous:
no two distinct input tuples produce the same byte string.
"""

import hashlib
import struct

from .config import MAX_ENTROPY_LENGTH, MAX_SALT_LENGTH, U64_MAX
from .errors import InvalidEntropyInput

SEED_LENGTH = 32


def _length_prefixed(data):
    return struct.pack(">I", len(data)) + data


def _ensure_bytes(value, name, max_length, allow_empty=True):
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise InvalidEntropyInput(f"{name} must be bytes, got {type(value).__name__}")
    value = bytes(value)
    if not allow_empty and not value:
        raise InvalidEntropyInput(f"{name} must not be empty")
    if len(value) > max_length:
        raise InvalidEntropyInput(f"{name} is {len(value)} bytes (max {max_length})")
    return value


def encode_entropy_inputs(block_entropy, sender, nonce, player_salt, max_salt_length=MAX_SALT_LENGTH):
    """
    Build the canonical byte string that gets hashed into a seed

    Args:
        block_entropy: Host-supplied block-level bytes (non-empty)
        sender: Caller identity
        nonce: Pre-increment round nonce (u64)
        player_salt: Player-chosen bytes (may be empty)
        max_salt_length: Upper bound on the salt length

    Returns:
        bytes: block_entropy || sender || nonce || player_salt, length-prefixed
    """
    block_entropy = _ensure_bytes(block_entropy, "block_entropy", MAX_ENTROPY_LENGTH, allow_empty=False)
    player_salt = _ensure_bytes(player_salt, "player_salt", max_salt_length)

    if not isinstance(sender, str) or not sender:
        raise InvalidEntropyInput("sender must be a non-empty string")

    if isinstance(nonce, bool) or not isinstance(nonce, int) or not 0 <= nonce <= U64_MAX:
        raise InvalidEntropyInput(f"nonce must be an unsigned 64-bit integer, got {nonce!r}")

    return b"".join([
        _length_prefixed(block_entropy),
        _length_prefixed(sender.encode("utf-8")),
        struct.pack(">Q", nonce),
        _length_prefixed(player_salt),
    ])


def derive_seed(block_entropy, sender, nonce, player_salt, max_salt_length=MAX_SALT_LENGTH):
    """Hash the encoded entropy inputs into a 32-byte seed (pure, no side effects)."""
    encoded = encode_entropy_inputs(block_entropy, sender, nonce, player_salt, max_salt_length)
    return hashlib.sha256(encoded).digest()


class EntropySource:
    """Capability returning opaque block-level entropy bytes for one transaction"""

    def __call__(self, env):
        raise NotImplementedError


class BlockEntropySource(EntropySource):
    """
    Derives block entropy from the host-provided block info

    Uses env.block.random when the host supplies it, together with the block
    height, block time and chain id, hashed into 32 bytes.

    Trust boundary: the quality of these bytes is whatever the host gives.
    Height, time and chain id alone are predictable by anyone watching the
    chain; without a host random beacon the outcome is only as unpredictable
    as the player's inability to pick the block their transaction lands in.
    """

    def __call__(self, env):
        block = env.block
        parts = [
            struct.pack(">Q", block.height),
            struct.pack(">Q", block.time_ns),
            _length_prefixed(block.chain_id.encode("utf-8")),
            _length_prefixed(bytes(block.random or b"")),
        ]
        return hashlib.sha256(b"".join(parts)).digest()


class FixedEntropySource(EntropySource):
    """Returns the same bytes for every transaction (tests and replay)"""

    def __init__(self, value):
        self.value = _ensure_bytes(value, "fixed entropy", MAX_ENTROPY_LENGTH, allow_empty=False)

    def __call__(self, env):
        return self.value
