"""
Persisted Contract State
The three records the contract owns: config, house_balance, round_nonce

Each record is stored as JSON with a layout version:
    config        -> {"version": 1, "config": {...}}
    house_balance -> {"version": 1, "amount": "<u128 as decimal string>"}
    round_nonce   -> {"version": 1, "nonce": <u64>}
"""

import json

from .config import STATE_VERSION, U64_MAX, U128_MAX
from .config_store import Config
from .errors import ArithmeticOverflow, StateError

CONFIG_KEY = "config"
HOUSE_BALANCE_KEY = "house_balance"
ROUND_NONCE_KEY = "round_nonce"


def _load_record(storage, key):
    raw = storage.get(key)
    if raw is None:
        raise StateError(f"{key} not found (contract not instantiated?)")
    try:
        record = json.loads(raw)
    except ValueError:
        raise StateError(f"{key} record is not valid JSON")
    if not isinstance(record, dict) or record.get("version") != STATE_VERSION:
        raise StateError(f"{key} record has unsupported version {record.get('version') if isinstance(record, dict) else None!r}")
    return record


def _save_record(storage, key, **fields):
    storage.set(key, json.dumps({"version": STATE_VERSION, **fields}, sort_keys=True))


def is_instantiated(storage):
    return storage.get(CONFIG_KEY) is not None


def load_config(storage):
    record = _load_record(storage, CONFIG_KEY)
    try:
        return Config.from_dict(record["config"])
    except (KeyError, TypeError):
        raise StateError(f"{CONFIG_KEY} record has no readable config payload")


def save_config(storage, config):
    _save_record(storage, CONFIG_KEY, config=config.to_dict())


def load_house_balance(storage):
    record = _load_record(storage, HOUSE_BALANCE_KEY)
    try:
        amount = int(record["amount"])
    except (KeyError, TypeError, ValueError):
        raise StateError(f"{HOUSE_BALANCE_KEY} record has no readable amount")
    if not 0 <= amount <= U128_MAX:
        raise StateError(f"stored house balance {amount} is out of range")
    return amount


def save_house_balance(storage, amount):
    if not 0 <= amount <= U128_MAX:
        raise ArithmeticOverflow(f"house balance {amount} is out of u128 range")
    _save_record(storage, HOUSE_BALANCE_KEY, amount=str(amount))


def load_round_nonce(storage):
    record = _load_record(storage, ROUND_NONCE_KEY)
    nonce = record.get("nonce")
    if isinstance(nonce, bool) or not isinstance(nonce, int) or not 0 <= nonce <= U64_MAX:
        raise StateError(f"stored round nonce {nonce!r} is out of range")
    return nonce


def save_round_nonce(storage, nonce):
    if not 0 <= nonce <= U64_MAX:
        raise ArithmeticOverflow(f"round nonce {nonce} is out of u64 range")
    _save_record(storage, ROUND_NONCE_KEY, nonce=nonce)
