"""
Wager Ledger
Stake validation, payout computation and house balance transitions

All amounts are u128. Every operation returns the new balance instead of
writing it; the round state machine persists it once the whole round is
known to succeed. Arithmetic is checked and fails closed with
ArithmeticOverflow, never wraps.
"""

from dataclasses import dataclass

from .config import U128_MAX
from .errors import (
    ArithmeticOverflow,
    BetOutOfBounds,
    InsufficientHouseFunds,
    InvalidFunds,
    InvalidGuess,
)


def _check_u128(value, what):
    if not 0 <= value <= U128_MAX:
        raise ArithmeticOverflow(f"{what} out of u128 range")
    return value


def checked_add(a, b):
    return _check_u128(a + b, f"{a} + {b}")


def checked_sub(a, b):
    return _check_u128(a - b, f"{a} - {b}")


def multiply_ratio(value, numerator, denominator):
    """floor(value * numerator / denominator) with a wide intermediate, result checked against u128."""
    if denominator == 0:
        raise ArithmeticOverflow("division by zero")
    _check_u128(value, "value")
    _check_u128(numerator, "numerator")
    _check_u128(denominator, "denominator")
    return _check_u128((value * numerator) // denominator, f"{value} * {numerator} / {denominator}")


@dataclass(frozen=True)
class Settlement:
    """Result of settling one wager"""
    won: bool
    payout: int
    house_balance_before: int
    house_balance_after: int
    player_transfer: int = 0     # stake + payout on a win


def check_stake(stake, config):
    if isinstance(stake, bool) or not isinstance(stake, int):
        raise BetOutOfBounds(f"stake must be an integer, got {stake!r}")
    if stake < config.min_bet or stake > config.max_bet:
        raise BetOutOfBounds(
            f"stake {stake} is outside [{config.min_bet}, {config.max_bet}]"
        )
    return stake


def normalize_guess(guess):
    """Accept a single face or a (low, high) pair and return (low, high)."""
    if isinstance(guess, (tuple, list)):
        if len(guess) != 2:
            raise InvalidGuess("guess range must be a (low, high) pair")
        low, high = guess
    else:
        low = high = guess
    for value in (low, high):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidGuess(f"guess must be an integer, got {value!r}")
    return low, high


def check_guess(guess, config):
    """
    Validate a guess against the die faces

    A range may not cover every face and must still pay more than the stake,
    i.e. payout_numerator / (payout_denominator * width) > 1.

    Returns:
        tuple: (low, high)
    """
    low, high = normalize_guess(guess)
    if low > high:
        raise InvalidGuess(f"guess low ({low}) is greater than high ({high})")
    if low < config.outcome_low or high > config.outcome_high:
        raise InvalidGuess(
            f"guess [{low}, {high}] is outside the faces [{config.outcome_low}, {config.outcome_high}]"
        )
    width = high - low + 1
    if width >= config.faces:
        raise InvalidGuess("guess covers every face")
    if config.payout_numerator <= config.payout_denominator * width:
        raise InvalidGuess(f"a {width}-face guess would not pay more than the stake")
    return low, high


def compute_payout(stake, guess, config):
    """Winnings for a winning guess: floor(stake * num / (den * width))."""
    low, high = normalize_guess(guess)
    width = high - low + 1
    return multiply_ratio(stake, config.payout_numerator, config.payout_denominator * width)


def settle(stake, guess, outcome, config, house_balance):
    """
    Settle one wager against the house balance

    The stake has already been transferred to the contract. On a loss it
    joins the house balance; on a win the payout leaves it and the player
    receives stake + payout.

    Args:
        stake: Amount wagered (u128)
        guess: Single face or (low, high) range
        outcome: Rolled face
        config: Active Config
        house_balance: House balance before settlement

    Returns:
        Settlement: won/payout and the balance before and after

    Raises:
        BetOutOfBounds, InvalidGuess, InsufficientHouseFunds, ArithmeticOverflow
    """
    check_stake(stake, config)
    low, high = check_guess(guess, config)
    _check_u128(house_balance, "house balance")

    won = low <= outcome <= high
    if won:
        payout = compute_payout(stake, (low, high), config)
        if payout > house_balance:
            raise InsufficientHouseFunds(
                f"payout {payout} exceeds house balance {house_balance}"
            )
        return Settlement(
            won=True,
            payout=payout,
            house_balance_before=house_balance,
            house_balance_after=checked_sub(house_balance, payout),
            player_transfer=checked_add(stake, payout),
        )

    return Settlement(
        won=False,
        payout=0,
        house_balance_before=house_balance,
        house_balance_after=checked_add(house_balance, stake),
    )


def deposit(house_balance, amount):
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidFunds("deposit amount must be positive")
    return checked_add(house_balance, amount)


def withdraw(house_balance, amount):
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidFunds("withdraw amount must be positive")
    if amount > house_balance:
        raise InsufficientHouseFunds(
            f"cannot withdraw {amount}, house balance is {house_balance}"
        )
    return checked_sub(house_balance, amount)
