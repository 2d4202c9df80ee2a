"""
Contract Messages
Instantiate, execute and query messages, one dataclass per variant

JSON form mirrors the host wire format: a single-key object naming the
variant in snake_case, e.g. {"play": {"guess": 3, "salt": "c0ffee"}}.
Byte fields (salt) travel as hex strings.
"""

from dataclasses import dataclass, fields
from typing import Optional

from .errors import InvalidMessage, UnknownMessage


@dataclass(frozen=True)
class InstantiateMsg:
    min_bet: int
    max_bet: int
    payout_numerator: int
    payout_denominator: int
    admin: str
    house_address: Optional[str] = None
    denom: Optional[str] = None
    outcome_low: Optional[int] = None
    outcome_high: Optional[int] = None


# ── Execute ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Play:
    guess: int
    salt: bytes = b""
    guess_high: Optional[int] = None   # set for a range bet [guess, guess_high]


@dataclass(frozen=True)
class Deposit:
    pass


@dataclass(frozen=True)
class Withdraw:
    amount: int


@dataclass(frozen=True)
class UpdateConfig:
    min_bet: Optional[int] = None
    max_bet: Optional[int] = None
    payout_numerator: Optional[int] = None
    payout_denominator: Optional[int] = None
    house_address: Optional[str] = None
    admin_address: Optional[str] = None
    denom: Optional[str] = None
    outcome_low: Optional[int] = None
    outcome_high: Optional[int] = None

    def changes(self):
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


# ── Query ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class GetConfig:
    pass


@dataclass(frozen=True)
class GetHouseBalance:
    pass


@dataclass(frozen=True)
class GetRoundNonce:
    pass


EXECUTE_VARIANTS = {
    'play': Play,
    'deposit': Deposit,
    'withdraw': Withdraw,
    'update_config': UpdateConfig,
}

QUERY_VARIANTS = {
    'get_config': GetConfig,
    'get_house_balance': GetHouseBalance,
    'get_round_nonce': GetRoundNonce,
}

# Fields that arrive as decimal strings (u128) or hex strings (bytes)
_UINT_FIELDS = {'min_bet', 'max_bet', 'payout_numerator', 'payout_denominator', 'amount'}
_BYTES_FIELDS = {'salt'}


def _coerce(name, value):
    if name in _BYTES_FIELDS:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, str):
            try:
                return bytes.fromhex(value)
            except ValueError:
                raise InvalidMessage(f"{name} must be a hex string")
        raise InvalidMessage(f"{name} must be a hex string")
    if name in _UINT_FIELDS and isinstance(value, str):
        if not (value.isascii() and value.isdigit()):
            raise InvalidMessage(f"{name} must be an unsigned integer string, got {value!r}")
        return int(value)
    return value


def _build(cls, body):
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise InvalidMessage(f"{cls.__name__} body must be an object")

    known = {f.name for f in fields(cls)}
    unknown = set(body) - known
    if unknown:
        raise InvalidMessage(f"unknown fields for {cls.__name__}: {', '.join(sorted(unknown))}")

    kwargs = {name: _coerce(name, value) for name, value in body.items() if value is not None}
    try:
        return cls(**kwargs)
    except TypeError as e:
        raise InvalidMessage(f"{cls.__name__}: {e}")


def _parse_variant(data, variants, kind):
    if not isinstance(data, dict) or len(data) != 1:
        raise InvalidMessage(f"{kind} message must be an object with exactly one variant key")
    (name, body), = data.items()
    cls = variants.get(name)
    if cls is None:
        raise UnknownMessage(f"unknown {kind} message: {name}")
    return _build(cls, body)


def parse_instantiate_msg(data):
    return _build(InstantiateMsg, data)


def parse_execute_msg(data):
    return _parse_variant(data, EXECUTE_VARIANTS, 'execute')


def parse_query_msg(data):
    return _parse_variant(data, QUERY_VARIANTS, 'query')
