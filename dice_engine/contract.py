"""
Contract Entrypoints
instantiate / execute / query over one contract's storage

Each entrypoint runs inside one host transaction. Handlers raise a
DiceEngineError on failure and the host discards every write of that
transaction, including attached funds.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .config_store import Config, ConfigStore
from .errors import InvalidFunds, StateError, Unauthorized, UnknownMessage
from .messages import (
    Deposit,
    GetConfig,
    GetHouseBalance,
    GetRoundNonce,
    InstantiateMsg,
    Play,
    UpdateConfig,
    Withdraw,
)
from .rounds import RoundStateMachine
from .state import (
    is_instantiated,
    load_house_balance,
    load_round_nonce,
    save_config,
    save_house_balance,
    save_round_nonce,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BankSend:
    to_address: str
    denom: str
    amount: int


@dataclass
class Response:
    messages: List[BankSend] = field(default_factory=list)
    attributes: List[Tuple[str, str]] = field(default_factory=list)
    data: Dict = field(default_factory=dict)

    def add_attribute(self, key, value):
        self.attributes.append((key, str(value)))
        return self

    def attribute(self, key):
        for k, v in self.attributes:
            if k == key:
                return v
        return None


def _single_coin(env, denom):
    """The amount of the one coin attached to the message, which must be in denom."""
    funds = env.message.funds
    if len(funds) != 1 or funds[0].denom != denom or funds[0].amount <= 0:
        raise InvalidFunds(f"must attach exactly one non-zero {denom} coin")
    return funds[0].amount


def _no_funds(env):
    if any(coin.amount for coin in env.message.funds):
        raise InvalidFunds("this message does not accept funds")


# ── Instantiate ───────────────────────────────────────────────

def instantiate(storage, env, msg: InstantiateMsg):
    if is_instantiated(storage):
        raise StateError("contract is already instantiated")
    _no_funds(env)

    optional = {
        name: getattr(msg, name)
        for name in ('denom', 'outcome_low', 'outcome_high')
        if getattr(msg, name) is not None
    }
    config = Config(
        min_bet=msg.min_bet,
        max_bet=msg.max_bet,
        payout_numerator=msg.payout_numerator,
        payout_denominator=msg.payout_denominator,
        house_address=msg.house_address or msg.admin,
        admin_address=msg.admin,
        **optional,
    )
    save_config(storage, config)
    save_house_balance(storage, 0)
    save_round_nonce(storage, 0)

    logger.info(f"✅ Instantiated {env.contract_address} (admin {config.admin_address})")
    return (Response()
            .add_attribute('action', 'instantiate')
            .add_attribute('admin', config.admin_address))


# ── Execute ───────────────────────────────────────────────────

def _execute_play(storage, env, msg: Play, entropy_source):
    config = ConfigStore(storage).load()
    stake = _single_coin(env, config.denom)
    guess = msg.guess if msg.guess_high is None else (msg.guess, msg.guess_high)

    result = RoundStateMachine(storage).play(
        player=env.message.sender,
        stake=stake,
        guess=guess,
        player_salt=msg.salt,
        block_entropy=entropy_source(env),
    )

    response = Response(data=result.to_dict()).add_attribute('action', 'play')
    for key in ('round_id', 'player', 'stake', 'outcome', 'payout', 'nonce'):
        response.add_attribute(key, getattr(result, key))
    response.add_attribute('guess', f"{result.guess_low}..{result.guess_high}")
    response.add_attribute('won', 'true' if result.won else 'false')
    response.add_attribute('seed', result.seed.hex())
    if result.won:
        response.messages.append(BankSend(result.player, config.denom, result.player_transfer))
    return response


def _execute_deposit(storage, env, msg: Deposit, entropy_source):
    config = ConfigStore(storage).load()
    if env.message.sender != config.admin_address:
        raise Unauthorized(f"{env.message.sender} is not the admin")
    amount = _single_coin(env, config.denom)
    balance = RoundStateMachine(storage).admin_deposit(env.message.sender, amount)
    return (Response(data={'house_balance': str(balance)})
            .add_attribute('action', 'deposit')
            .add_attribute('amount', amount)
            .add_attribute('house_balance', balance))


def _execute_withdraw(storage, env, msg: Withdraw, entropy_source):
    _no_funds(env)
    machine = RoundStateMachine(storage)
    balance = machine.admin_withdraw(env.message.sender, msg.amount)
    config = machine.config_store.load()
    return Response(
        messages=[BankSend(config.house_address, config.denom, msg.amount)],
        data={'house_balance': str(balance)},
    ).add_attribute('action', 'withdraw').add_attribute('amount', msg.amount).add_attribute('house_balance', balance)


def _execute_update_config(storage, env, msg: UpdateConfig, entropy_source):
    _no_funds(env)
    config = RoundStateMachine(storage).update_config(env.message.sender, msg.changes())
    return Response(data=config.to_dict()).add_attribute('action', 'update_config')


_EXECUTE_HANDLERS = {
    Play: _execute_play,
    Deposit: _execute_deposit,
    Withdraw: _execute_withdraw,
    UpdateConfig: _execute_update_config,
}


def execute(storage, env, msg, entropy_source):
    """
    Dispatch an execute message to its handler

    Args:
        storage: Storage for this contract, inside the current transaction
        env: Env with block, sender and attached funds
        msg: Play, Deposit, Withdraw or UpdateConfig
        entropy_source: Callable returning block entropy for env

    Returns:
        Response
    """
    handler = _EXECUTE_HANDLERS.get(type(msg))
    if handler is None:
        raise UnknownMessage(f"unsupported execute message: {type(msg).__name__}")
    return handler(storage, env, msg, entropy_source)


# ── Query ─────────────────────────────────────────────────────

def _query_config(storage, msg):
    config = ConfigStore(storage).load()
    data = config.to_dict()
    data['house_edge'] = str(config.house_edge())
    return data


def _query_house_balance(storage, msg):
    return {'house_balance': str(load_house_balance(storage))}


def _query_round_nonce(storage, msg):
    return {'round_nonce': load_round_nonce(storage)}


_QUERY_HANDLERS = {
    GetConfig: _query_config,
    GetHouseBalance: _query_house_balance,
    GetRoundNonce: _query_round_nonce,
}


def query(storage, msg):
    handler = _QUERY_HANDLERS.get(type(msg))
    if handler is None:
        raise UnknownMessage(f"unsupported query message: {type(msg).__name__}")
    return handler(storage, msg)
