"""
Config Store
Admin-controlled wager parameters: bet bounds, payout multiplier, die faces
"""

import logging
from dataclasses import asdict, dataclass, fields, replace
from fractions import Fraction

from .config import DEFAULT_DENOM, DEFAULT_OUTCOME_HIGH, DEFAULT_OUTCOME_LOW, U128_MAX
from .errors import InvalidConfig, InvalidRange, RangeTooLarge, Unauthorized
from .outcome import validate_range

logger = logging.getLogger(__name__)

# Amount fields travel as decimal strings so u128 values survive JSON
_AMOUNT_FIELDS = ('min_bet', 'max_bet', 'payout_numerator', 'payout_denominator')


def _parse_uint(name, value):
    if isinstance(value, bool):
        raise InvalidConfig(f"{name} must be an unsigned integer")
    if isinstance(value, str):
        if not (value.isascii() and value.isdigit()):
            raise InvalidConfig(f"{name} must be an unsigned integer, got {value!r}")
        value = int(value)
    if not isinstance(value, int) or not 0 <= value <= U128_MAX:
        raise InvalidConfig(f"{name} must be an unsigned 128-bit integer, got {value!r}")
    return value


@dataclass(frozen=True)
class Config:
    """Wager configuration. Invalid combinations raise InvalidConfig on construction."""
    min_bet: int
    max_bet: int
    payout_numerator: int
    payout_denominator: int
    house_address: str
    admin_address: str
    denom: str = DEFAULT_DENOM
    outcome_low: int = DEFAULT_OUTCOME_LOW
    outcome_high: int = DEFAULT_OUTCOME_HIGH

    def __post_init__(self):
        for name in _AMOUNT_FIELDS:
            object.__setattr__(self, name, _parse_uint(name, getattr(self, name)))

        if self.min_bet < 1:
            raise InvalidConfig("min_bet must be at least 1")
        if self.min_bet > self.max_bet:
            raise InvalidConfig(f"min_bet ({self.min_bet}) exceeds max_bet ({self.max_bet})")
        if self.payout_denominator == 0:
            raise InvalidConfig("payout_denominator cannot be zero")
        if self.payout_numerator <= self.payout_denominator:
            raise InvalidConfig("payout multiplier must be greater than 1")

        for name in ('house_address', 'admin_address', 'denom'):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidConfig(f"{name} cannot be empty")

        try:
            faces = validate_range(self.outcome_low, self.outcome_high)
        except (InvalidRange, RangeTooLarge) as e:
            raise InvalidConfig(f"invalid outcome range: {e.message}")
        if faces < 2:
            raise InvalidConfig("outcome range needs at least two faces")

    @property
    def faces(self):
        return self.outcome_high - self.outcome_low + 1

    @property
    def multiplier(self):
        """Payout multiplier as an exact fraction (display only)."""
        return Fraction(self.payout_numerator, self.payout_denominator)

    def house_edge(self):
        """
        House edge of a single-face bet as an exact fraction

        A win returns the stake plus stake * multiplier, so the player's
        expected return per unit staked is (1 + multiplier) / faces.
        A negative value means the configuration favors the player.
        """
        return 1 - (1 + self.multiplier) / self.faces

    def to_dict(self):
        data = asdict(self)
        for name in _AMOUNT_FIELDS:
            data[name] = str(data[name])
        return data

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfig(f"unknown config fields: {', '.join(sorted(unknown))}")
        try:
            return cls(**data)
        except TypeError as e:
            raise InvalidConfig(str(e))


class ConfigStore:
    """Loads, saves and updates the persisted Config record"""

    def __init__(self, storage):
        self.storage = storage

    def load(self):
        from .state import load_config
        return load_config(self.storage)

    def save(self, config):
        from .state import save_config
        save_config(self.storage, config)

    def update(self, sender, changes):
        """
        Apply a partial config update (admin only)

        Args:
            sender: Caller identity
            changes: Dict of fields to change; None values are ignored

        Returns:
            Config: The validated, stored config
        """
        current = self.load()
        if sender != current.admin_address:
            raise Unauthorized(f"{sender} is not the admin")

        changes = {k: v for k, v in (changes or {}).items() if v is not None}
        known = {f.name for f in fields(Config)}
        unknown = set(changes) - known
        if unknown:
            raise InvalidConfig(f"unknown config fields: {', '.join(sorted(unknown))}")

        # replace() re-runs __post_init__, so the merged record is validated as a whole
        updated = replace(current, **changes)

        # The house balance counts coins of the current denom
        if updated.denom != current.denom:
            from .state import load_house_balance
            balance = load_house_balance(self.storage)
            if balance != 0:
                raise InvalidConfig(
                    f"cannot change denom from {current.denom} to {updated.denom} "
                    f"while the house holds {balance}"
                )

        self.save(updated)

        logger.info(f"⚙️ Config updated by {sender}: {', '.join(sorted(changes)) or 'no changes'}")
        return updated
