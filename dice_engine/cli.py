"""
Dice Engine CLI

Usage:
  dice-engine init --admin alice --min-bet 1 --max-bet 100 --payout 2/1
  dice-engine deposit --sender alice --amount 1000
  dice-engine play --sender bob --stake 50 --guess 3 --salt c0ffee
  dice-engine query balance
  dice-engine verify --block-entropy <hex> --sender bob --nonce 0 --seed <hex> --outcome 3
  dice-engine simulate --rounds 100000

Requirements:
  - env DATABASE_URL (defaults to sqlite:///dice_engine.db)
  - env CONTRACT_ADDRESS / CHAIN_ID optional
"""

import argparse
import json
import logging
import sys

from sqlalchemy import create_engine

from . import config
from .env import Coin
from .errors import DiceEngineError
from .host import ContractHost
from .logging_config import log_error, setup_logging
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
from .provably_fair import simulate_rounds, verify_round

logger = logging.getLogger(__name__)


def _faces(value):
    try:
        low, high = value.split(':', 1)
        return int(low), int(high)
    except ValueError:
        raise argparse.ArgumentTypeError("faces must look like LOW:HIGH, e.g. 1:6")


def _ratio(value):
    try:
        numerator, denominator = value.split('/', 1)
        return int(numerator), int(denominator)
    except ValueError:
        raise argparse.ArgumentTypeError("payout must look like NUM/DEN, e.g. 2/1")


def _hex(value):
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a hex string: {value!r}")


def build_parser():
    parser = argparse.ArgumentParser(prog='dice-engine', description='Provably fair dice wagering engine')
    parser.add_argument('--database-url', dest='database_url', default=None)
    parser.add_argument('--log-level', dest='log_level', default=None)
    sub = parser.add_subparsers(dest='command', required=True)

    init = sub.add_parser('init', help='instantiate the contract')
    init.add_argument('--admin', required=True)
    init.add_argument('--min-bet', dest='min_bet', type=int, required=True)
    init.add_argument('--max-bet', dest='max_bet', type=int, required=True)
    init.add_argument('--payout', type=_ratio, required=True, help='multiplier as NUM/DEN')
    init.add_argument('--house', dest='house_address', default=None)
    init.add_argument('--denom', default=None)
    init.add_argument('--faces', type=_faces, default=None, help='outcome range LOW:HIGH')

    deposit = sub.add_parser('deposit', help='admin: fund the house balance')
    deposit.add_argument('--sender', required=True)
    deposit.add_argument('--amount', type=int, required=True)

    withdraw = sub.add_parser('withdraw', help='admin: withdraw from the house balance')
    withdraw.add_argument('--sender', required=True)
    withdraw.add_argument('--amount', type=int, required=True)

    play = sub.add_parser('play', help='place a wager')
    play.add_argument('--sender', required=True)
    play.add_argument('--stake', type=int, required=True)
    play.add_argument('--guess', type=int, required=True)
    play.add_argument('--guess-high', dest='guess_high', type=int, default=None)
    play.add_argument('--salt', type=_hex, default=b'')
    play.add_argument('--block-random', dest='block_random', type=_hex, default=None,
                      help='operator testing hook: random beacon bytes for the block (hex); '
                           'never expose to players, whoever sets it can pick the outcome')

    update = sub.add_parser('update-config', help='admin: change config fields')
    update.add_argument('--sender', required=True)
    update.add_argument('--min-bet', dest='min_bet', type=int)
    update.add_argument('--max-bet', dest='max_bet', type=int)
    update.add_argument('--payout', type=_ratio)
    update.add_argument('--house', dest='house_address')
    update.add_argument('--admin', dest='admin_address')
    update.add_argument('--denom')
    update.add_argument('--faces', type=_faces)

    query = sub.add_parser('query', help='read contract state')
    query.add_argument('what', choices=['config', 'balance', 'nonce'])

    verify = sub.add_parser('verify', help='recompute a round from its public inputs')
    verify.add_argument('--block-entropy', dest='block_entropy', type=_hex, required=True)
    verify.add_argument('--sender', required=True)
    verify.add_argument('--nonce', type=int, required=True)
    verify.add_argument('--salt', type=_hex, default=b'')
    verify.add_argument('--faces', type=_faces, default=(1, 6))
    verify.add_argument('--seed', required=True)
    verify.add_argument('--outcome', type=int, required=True)

    simulate = sub.add_parser('simulate', help='check outcome uniformity over many nonces')
    simulate.add_argument('--rounds', type=int, default=100_000)
    simulate.add_argument('--faces', type=_faces, default=(1, 6))

    return parser


def _print(data):
    print(json.dumps(data, indent=2, default=str))


def _response(response):
    return {
        'attributes': dict(response.attributes),
        'messages': [vars(message) for message in response.messages],
        'data': response.data,
    }


def run(args, host):
    if args.command == 'init':
        low, high = args.faces or (None, None)
        return _response(host.instantiate(args.admin, InstantiateMsg(
            min_bet=args.min_bet,
            max_bet=args.max_bet,
            payout_numerator=args.payout[0],
            payout_denominator=args.payout[1],
            admin=args.admin,
            house_address=args.house_address,
            denom=args.denom,
            outcome_low=low,
            outcome_high=high,
        )))

    if args.command == 'query':
        msg = {'config': GetConfig(), 'balance': GetHouseBalance(), 'nonce': GetRoundNonce()}[args.what]
        return host.query(msg)

    denom = host.query(GetConfig())['denom']

    if args.command == 'deposit':
        return _response(host.execute(args.sender, Deposit(), funds=[Coin(denom, args.amount)]))

    if args.command == 'withdraw':
        return _response(host.execute(args.sender, Withdraw(amount=args.amount)))

    if args.command == 'play':
        block = host.next_block(random=args.block_random)
        return _response(host.execute(
            args.sender,
            Play(guess=args.guess, salt=args.salt, guess_high=args.guess_high),
            funds=[Coin(denom, args.stake)],
            block=block,
        ))

    if args.command == 'update-config':
        payout = args.payout or (None, None)
        faces = args.faces or (None, None)
        return _response(host.execute(args.sender, UpdateConfig(
            min_bet=args.min_bet,
            max_bet=args.max_bet,
            payout_numerator=payout[0],
            payout_denominator=payout[1],
            house_address=args.house_address,
            admin_address=args.admin_address,
            denom=args.denom,
            outcome_low=faces[0],
            outcome_high=faces[1],
        )))

    raise ValueError(f"unhandled command {args.command}")


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging('dice_engine', args.log_level or config.LOG_LEVEL, config.LOG_FILE)

    try:
        if args.command == 'verify':
            ok = verify_round(args.block_entropy, args.sender, args.nonce, args.salt,
                              args.faces, args.seed, args.outcome)
            _print({'verified': ok})
            return 0 if ok else 1

        if args.command == 'simulate':
            _print(simulate_rounds(args.rounds, args.faces))
            return 0

        engine = create_engine(args.database_url or config.DATABASE_URL, future=True)
        host = ContractHost(engine).setup()
        _print(run(args, host))
        return 0

    except DiceEngineError as e:
        log_error(logger, e, context=args.command)
        _print({'error': e.to_dict()})
        return 1


if __name__ == '__main__':
    sys.exit(main())
