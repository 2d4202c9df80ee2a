"""
Round State Machine
Drives one wager from bet to settlement, plus the admin balance operations

Lifecycle of a round:
    Idle -> EntropyDerived -> OutcomeComputed -> Settled

Everything that can fail (bounds, guess, entropy, funds, overflow) is
checked before the single write phase at the end of play(). A failed round
leaves the house balance and the round nonce untouched.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from .config import MAX_SALT_LENGTH, U64_MAX
from .config_store import ConfigStore
from .entropy import derive_seed
from .errors import ArithmeticOverflow, RoundStateError, Unauthorized
from . import ledger
from .outcome import generate_outcome
from .state import (
    load_house_balance,
    load_round_nonce,
    save_house_balance,
    save_round_nonce,
)

logger = logging.getLogger(__name__)


class RoundState(Enum):
    IDLE = "Idle"
    ENTROPY_DERIVED = "EntropyDerived"
    OUTCOME_COMPUTED = "OutcomeComputed"
    SETTLED = "Settled"


@dataclass(frozen=True)
class RoundResult:
    round_id: int
    player: str
    stake: int
    guess_low: int
    guess_high: int
    nonce: int
    block_entropy: bytes
    seed: bytes
    outcome: int
    won: bool
    payout: int
    player_transfer: int
    house_balance: int

    def to_dict(self):
        return {
            'round_id': self.round_id,
            'player': self.player,
            'stake': str(self.stake),
            'guess_low': self.guess_low,
            'guess_high': self.guess_high,
            'nonce': self.nonce,
            'block_entropy': self.block_entropy.hex(),
            'seed': self.seed.hex(),
            'outcome': self.outcome,
            'won': self.won,
            'payout': str(self.payout),
        }


class Round:
    """One wager in flight. Each step may only run from the state before it."""

    def __init__(self, player, stake, guess, nonce):
        self.player = player
        self.stake = stake
        self.guess = guess
        self.nonce = nonce
        self.state = RoundState.IDLE
        self.seed = None
        self.outcome = None
        self.settlement = None

    def _require(self, expected, new_state):
        if self.state is not expected:
            raise RoundStateError(
                f"cannot move to {new_state.value} from {self.state.value}"
            )

    def derive_entropy(self, block_entropy, player_salt, max_salt_length=MAX_SALT_LENGTH):
        self._require(RoundState.IDLE, RoundState.ENTROPY_DERIVED)
        self.seed = derive_seed(block_entropy, self.player, self.nonce, player_salt, max_salt_length)
        self.state = RoundState.ENTROPY_DERIVED
        return self.seed

    def compute_outcome(self, outcome_range):
        self._require(RoundState.ENTROPY_DERIVED, RoundState.OUTCOME_COMPUTED)
        self.outcome = generate_outcome(self.seed, outcome_range)
        self.state = RoundState.OUTCOME_COMPUTED
        return self.outcome

    def settle(self, config, house_balance):
        self._require(RoundState.OUTCOME_COMPUTED, RoundState.SETTLED)
        self.settlement = ledger.settle(self.stake, self.guess, self.outcome, config, house_balance)
        self.state = RoundState.SETTLED
        return self.settlement


class RoundStateMachine:
    """Wager and admin operations over one contract's storage"""

    def __init__(self, storage, max_salt_length=MAX_SALT_LENGTH):
        self.storage = storage
        self.config_store = ConfigStore(storage)
        self.max_salt_length = max_salt_length

    def play(self, player, stake, guess, player_salt, block_entropy):
        """
        Resolve one wager

        Args:
            player: Player identity (already holds the stake in the contract)
            stake: Amount wagered
            guess: Single face or (low, high) range
            player_salt: Player-chosen bytes mixed into the seed
            block_entropy: Host block-level entropy for this transaction

        Returns:
            RoundResult
        """
        config = self.config_store.load()
        nonce = load_round_nonce(self.storage)
        house_balance = load_house_balance(self.storage)

        # Validate before any entropy work so bad bets fail cheaply
        ledger.check_stake(stake, config)
        guess = ledger.check_guess(guess, config)
        if nonce >= U64_MAX:
            raise ArithmeticOverflow("round nonce exhausted")

        current = Round(player, stake, guess, nonce)
        current.derive_entropy(block_entropy, player_salt, self.max_salt_length)
        current.compute_outcome((config.outcome_low, config.outcome_high))
        settlement = current.settle(config, house_balance)

        # Write phase: nothing below can fail on valid values
        save_house_balance(self.storage, settlement.house_balance_after)
        save_round_nonce(self.storage, nonce + 1)

        result = RoundResult(
            round_id=nonce + 1,
            player=player,
            stake=stake,
            guess_low=guess[0],
            guess_high=guess[1],
            nonce=nonce,
            block_entropy=bytes(block_entropy),
            seed=current.seed,
            outcome=current.outcome,
            won=settlement.won,
            payout=settlement.payout,
            player_transfer=settlement.player_transfer,
            house_balance=settlement.house_balance_after,
        )

        logger.info(f"🎲 Round #{result.round_id} for {player}")
        logger.info(f"   Nonce: {nonce}")
        logger.info(f"   Seed: {current.seed.hex()}")
        logger.info(f"   Guess: {guess[0]}..{guess[1]}, Outcome: {current.outcome}")
        if settlement.won:
            logger.info(f"   🎉 Won {settlement.payout} (house balance {settlement.house_balance_after})")
        else:
            logger.info(f"   Lost {stake} (house balance {settlement.house_balance_after})")

        return result

    def _require_admin(self, sender):
        config = self.config_store.load()
        if sender != config.admin_address:
            raise Unauthorized(f"{sender} is not the admin")
        return config

    def admin_deposit(self, sender, amount):
        """Add funds to the house balance. Returns the new balance."""
        self._require_admin(sender)
        balance = ledger.deposit(load_house_balance(self.storage), amount)
        save_house_balance(self.storage, balance)
        logger.info(f"💰 House deposit of {amount} by {sender} (balance {balance})")
        return balance

    def admin_withdraw(self, sender, amount):
        """Remove funds from the house balance. Returns the new balance."""
        self._require_admin(sender)
        balance = ledger.withdraw(load_house_balance(self.storage), amount)
        save_house_balance(self.storage, balance)
        logger.info(f"💸 House withdrawal of {amount} by {sender} (balance {balance})")
        return balance

    def update_config(self, sender, changes):
        return self.config_store.update(sender, changes)
