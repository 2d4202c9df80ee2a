"""
Provably Fair Utilities
Independent verification of settled rounds and fairness simulation

Verification steps for a round:
1. seed = SHA-256(len32(block_entropy) || block_entropy || len32(sender) || sender
                  || u64_be(nonce) || len32(salt) || salt)
2. Seed a ChaCha20 keystream with seed (zero nonce/counter block)
3. Draw 32-bit little-endian words, mask to the bit width of the face count,
   re-draw until the value is below the face count
4. outcome = outcome_low + value
"""

import logging

from .entropy import derive_seed
from .errors import DiceEngineError
from .outcome import OutcomeStream, generate_outcome, validate_range

logger = logging.getLogger(__name__)


def replay_round(block_entropy, sender, nonce, player_salt, outcome_range):
    """
    Recompute a round's seed and outcome from its public inputs

    Returns:
        dict: seed (hex), outcome, and the inputs used
    """
    seed = derive_seed(block_entropy, sender, nonce, player_salt)
    outcome = generate_outcome(seed, outcome_range)
    return {
        'seed': seed.hex(),
        'outcome': outcome,
        'sender': sender,
        'nonce': nonce,
        'block_entropy': bytes(block_entropy).hex(),
        'salt': bytes(player_salt).hex(),
        'outcome_range': list(outcome_range),
    }


def verify_round(block_entropy, sender, nonce, player_salt, outcome_range,
                 expected_seed, expected_outcome):
    """
    Verify a settled round by recomputing its seed and outcome

    Args:
        block_entropy: Block entropy the host supplied for the transaction
        sender: Player identity
        nonce: Pre-increment round nonce (round_id - 1)
        player_salt: Salt the player sent
        outcome_range: (low, high) faces at the time of the round
        expected_seed: Seed the contract reported (hex)
        expected_outcome: Outcome the contract reported

    Returns:
        True if both seed and outcome match, False otherwise
    """
    try:
        replayed = replay_round(block_entropy, sender, nonce, player_salt, outcome_range)
    except DiceEngineError as e:
        logger.warning(f"Round verification failed on invalid input: {e.kind}: {e.message}")
        return False

    if replayed['seed'] != str(expected_seed).lower():
        return False
    return replayed['outcome'] == expected_outcome


def chi_square(counts, expected):
    """Pearson chi-square statistic of observed counts against one expected count per bucket."""
    return sum((observed - expected) ** 2 / expected for observed in counts)


def simulate_rounds(num_simulations=100_000, outcome_range=(1, 6), block_entropy=b"simulation",
                    sender="simulator", player_salt=b"", start_nonce=0):
    """
    Derive outcomes for consecutive nonces and compare against a uniform distribution

    Returns:
        dict: Per-face expected/actual counts, variance and the chi-square statistic
    """
    low, high = outcome_range
    faces = validate_range(low, high)
    counts = [0] * faces

    for nonce in range(start_nonce, start_nonce + num_simulations):
        seed = derive_seed(block_entropy, sender, nonce, player_salt)
        counts[generate_outcome(seed, outcome_range) - low] += 1

    expected = num_simulations / faces
    results = []
    for offset, actual in enumerate(counts):
        results.append({
            'face': low + offset,
            'expected': expected,
            'actual': actual,
            'variance_percent': (actual - expected) / expected * 100,
        })

    return {
        'num_simulations': num_simulations,
        'faces': faces,
        'results': results,
        'chi_square': chi_square(counts, expected),
        'degrees_of_freedom': faces - 1,
    }


def naive_modulo_counts(seed, faces, num_draws):
    """
    Counts for the biased byte % faces mapping, as a baseline against rejection sampling

    Reads one keystream byte per draw, so any face count that does not divide
    256 over-weights the low faces.
    """
    stream = OutcomeStream(seed)
    counts = [0] * faces
    for byte in stream.read(num_draws):
        counts[byte % faces] += 1
    return counts


def rejection_sampled_counts(seed, faces, num_draws):
    """Counts for the same stream mapped with rejection sampling."""
    stream = OutcomeStream(seed)
    counts = [0] * faces
    for _ in range(num_draws):
        counts[stream.uniform(0, faces - 1)] += 1
    return counts

