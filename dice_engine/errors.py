"""
Dice Engine Errors
Every failure the engine can raise, each with a stable kind string
"""


class DiceEngineError(Exception):
    """Base class for all engine errors. Aborts the current transaction."""

    kind = "DiceEngineError"

    def __init__(self, message=None):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self):
        return {'kind': self.kind, 'message': self.message}


class InvalidRange(DiceEngineError):
    """Outcome range has low > high or a bound outside i64."""
    kind = "InvalidRange"


class RangeTooLarge(DiceEngineError):
    """Outcome range is wider than the generator's draw width."""
    kind = "RangeTooLarge"


class InvalidEntropyInput(DiceEngineError):
    """Malformed entropy field handed to the mixer (internal misuse)."""
    kind = "InvalidEntropyInput"


class BetOutOfBounds(DiceEngineError):
    """Stake below min_bet or above max_bet."""
    kind = "BetOutOfBounds"


class InsufficientHouseFunds(DiceEngineError):
    """House balance cannot cover a payout or withdrawal."""
    kind = "InsufficientHouseFunds"


class ArithmeticOverflow(DiceEngineError):
    """Checked arithmetic left the u128 (or u64 nonce) range."""
    kind = "ArithmeticOverflow"


class InvalidConfig(DiceEngineError):
    kind = "InvalidConfig"


class Unauthorized(DiceEngineError):
    kind = "Unauthorized"


class InvalidGuess(DiceEngineError):
    """Guess outside the die faces, inverted, or covering too many faces."""
    kind = "InvalidGuess"


class InvalidFunds(DiceEngineError):
    """Attached funds are missing, zero, split across coins or in the wrong denom."""
    kind = "InvalidFunds"


class StateError(DiceEngineError):
    """Persisted state is missing, already initialized or has an unknown version."""
    kind = "StateError"


class InvalidMessage(DiceEngineError):
    kind = "InvalidMessage"


class UnknownMessage(DiceEngineError):
    kind = "UnknownMessage"


class RoundStateError(DiceEngineError):
    """A round was driven through its states out of order."""
    kind = "RoundStateError"
