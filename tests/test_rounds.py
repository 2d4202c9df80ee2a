"""
Test Round State Machine
Wager scenarios, nonce monotonicity and balance conservation
"""

import pytest

from dice_engine.errors import (
    BetOutOfBounds,
    InsufficientHouseFunds,
    InvalidFunds,
    RoundStateError,
    Unauthorized,
)
from dice_engine.rounds import Round, RoundState, RoundStateMachine
from dice_engine.state import load_house_balance, load_round_nonce

from conftest import ADMIN, PLAYER, find_block_entropy, funded_storage


def test_winning_round(storage):
    block_entropy = find_block_entropy(3)
    result = RoundStateMachine(storage).play(PLAYER, 50, 3, b"", block_entropy)

    assert result.outcome == 3
    assert result.won is True
    assert result.payout == 100
    assert result.player_transfer == 150
    assert result.round_id == 1
    assert result.nonce == 0
    assert load_house_balance(storage) == 900
    assert load_round_nonce(storage) == 1


def test_losing_round(storage):
    block_entropy = find_block_entropy(7)
    result = RoundStateMachine(storage).play(PLAYER, 50, 3, b"", block_entropy)

    assert result.outcome == 7
    assert result.won is False
    assert result.payout == 0
    assert load_house_balance(storage) == 1050
    assert load_round_nonce(storage) == 1


def test_house_cannot_cover_win():
    storage = funded_storage(house_balance=10)
    block_entropy = find_block_entropy(3)

    with pytest.raises(InsufficientHouseFunds):
        RoundStateMachine(storage).play(PLAYER, 50, 3, b"", block_entropy)

    assert load_house_balance(storage) == 10
    assert load_round_nonce(storage) == 0


@pytest.mark.parametrize("stake", [0, 101])
def test_stake_out_of_bounds_changes_nothing(storage, stake):
    with pytest.raises(BetOutOfBounds):
        RoundStateMachine(storage).play(PLAYER, stake, 3, b"", b"block")

    assert load_house_balance(storage) == 1000
    assert load_round_nonce(storage) == 0


def test_nonce_increments_once_per_round(storage):
    machine = RoundStateMachine(storage)
    round_ids = []
    for i in range(5):
        round_ids.append(machine.play(PLAYER, 1, 3, b"", f"entropy-{i}".encode()).round_id)

    assert round_ids == [1, 2, 3, 4, 5]
    assert load_round_nonce(storage) == 5


def test_same_inputs_different_rounds_use_different_seeds(storage):
    machine = RoundStateMachine(storage)
    first = machine.play(PLAYER, 1, 3, b"", b"same-block")
    second = machine.play(PLAYER, 1, 3, b"", b"same-block")
    assert first.seed != second.seed


def test_balance_is_conserved_over_many_rounds(storage):
    machine = RoundStateMachine(storage)
    expected = 1000
    for i in range(50):
        result = machine.play(PLAYER, 10, (i % 10) + 1, b"salt", f"entropy-{i}".encode())
        if result.won:
            expected -= result.payout
        else:
            expected += result.stake
        assert result.house_balance == expected

    assert load_house_balance(storage) == expected


def test_range_bet_pays_per_width():
    storage = funded_storage(payout_numerator=8)
    block_entropy = find_block_entropy(5)
    result = RoundStateMachine(storage).play(PLAYER, 10, (4, 6), b"", block_entropy)

    assert (result.guess_low, result.guess_high) == (4, 6)
    assert result.won is True
    # 10 * 8 / 3 faces, floored
    assert result.payout == 26
    assert load_house_balance(storage) == 974


def test_round_steps_must_run_in_order():
    current = Round(PLAYER, 10, (3, 3), 0)
    assert current.state is RoundState.IDLE

    with pytest.raises(RoundStateError):
        current.compute_outcome((1, 10))

    current.derive_entropy(b"block", b"")
    assert current.state is RoundState.ENTROPY_DERIVED
    with pytest.raises(RoundStateError):
        current.derive_entropy(b"block", b"")
    with pytest.raises(RoundStateError):
        current.settle(None, 1000)

    current.compute_outcome((1, 10))
    assert current.state is RoundState.OUTCOME_COMPUTED


def test_settled_round_cannot_settle_again(storage):
    from dice_engine.config_store import ConfigStore

    config = ConfigStore(storage).load()
    current = Round(PLAYER, 10, (3, 3), 0)
    current.derive_entropy(b"block", b"")
    current.compute_outcome((config.outcome_low, config.outcome_high))
    current.settle(config, 1000)
    assert current.state is RoundState.SETTLED

    with pytest.raises(RoundStateError):
        current.settle(config, 1000)


def test_admin_deposit_and_withdraw(storage):
    machine = RoundStateMachine(storage)
    assert machine.admin_deposit(ADMIN, 500) == 1500
    assert machine.admin_withdraw(ADMIN, 1200) == 300
    assert load_house_balance(storage) == 300


def test_withdraw_more_than_balance(storage):
    with pytest.raises(InsufficientHouseFunds):
        RoundStateMachine(storage).admin_withdraw(ADMIN, 1001)
    assert load_house_balance(storage) == 1000


def test_non_admin_cannot_move_house_funds(storage):
    machine = RoundStateMachine(storage)
    with pytest.raises(Unauthorized):
        machine.admin_deposit(PLAYER, 10)
    with pytest.raises(Unauthorized):
        machine.admin_withdraw(PLAYER, 10)
    with pytest.raises(Unauthorized):
        machine.update_config(PLAYER, {'max_bet': 5})
    assert load_house_balance(storage) == 1000


def test_zero_deposit_is_invalid(storage):
    with pytest.raises(InvalidFunds):
        RoundStateMachine(storage).admin_deposit(ADMIN, 0)
