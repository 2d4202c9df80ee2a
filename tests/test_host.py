"""
Test Contract Host
SQLite-backed transactions, persistence and independent verification
"""

import pytest
from sqlalchemy import text

from dice_engine.entropy import FixedEntropySource
from dice_engine.errors import BetOutOfBounds, InsufficientHouseFunds, StateError, Unauthorized
from dice_engine.host import ContractHost, MemoryContractHost
from dice_engine.messages import GetHouseBalance, GetRoundNonce, Play
from dice_engine.provably_fair import verify_round
from dice_engine.storage import SqlStorage, verify_contract_schema

from conftest import ADMIN, DENOM, FACES, PLAYER, find_block_entropy


def instantiate(host, house_balance=1000):
    host.instantiate(ADMIN, {
        'min_bet': "1",
        'max_bet': "100",
        'payout_numerator': "2",
        'payout_denominator': "1",
        'admin': ADMIN,
        'denom': DENOM,
        'outcome_low': FACES[0],
        'outcome_high': FACES[1],
    })
    if house_balance:
        host.execute(ADMIN, {'deposit': {}}, funds=[(DENOM, house_balance)])


def balance(host):
    return host.query(GetHouseBalance())['house_balance']


def nonce(host):
    return host.query(GetRoundNonce())['round_nonce']


def test_schema_is_created(engine, host):
    assert verify_contract_schema(engine) == {'contract_state': True}


def test_state_persists_across_transactions(host):
    instantiate(host)
    host.execute(ADMIN, {'deposit': {}}, funds=[(DENOM, 500)])
    assert balance(host) == "1500"
    assert nonce(host) == 0


def test_winning_play_through_host(engine):
    host = ContractHost(
        engine,
        contract_address="dice-test",
        chain_id="test-chain",
        entropy_source=FixedEntropySource(find_block_entropy(3)),
    ).setup()
    instantiate(host)

    response = host.execute(PLAYER, {'play': {'guess': 3}}, funds=[(DENOM, 50)])

    assert response.attribute('won') == 'true'
    assert balance(host) == "900"
    assert nonce(host) == 1


def test_failed_play_rolls_back(engine):
    host = ContractHost(
        engine,
        contract_address="dice-test",
        chain_id="test-chain",
        entropy_source=FixedEntropySource(find_block_entropy(3)),
    ).setup()
    instantiate(host, house_balance=10)

    with pytest.raises(InsufficientHouseFunds):
        host.execute(PLAYER, Play(guess=3), funds=[(DENOM, 50)])
    with pytest.raises(BetOutOfBounds):
        host.execute(PLAYER, Play(guess=3), funds=[(DENOM, 500)])

    assert balance(host) == "10"
    assert nonce(host) == 0


def test_rejected_admin_message_changes_nothing(host):
    instantiate(host)
    with pytest.raises(Unauthorized):
        host.execute(PLAYER, {'withdraw': {'amount': "100"}})
    assert balance(host) == "1000"


def test_writes_before_an_error_are_discarded(engine, host):
    instantiate(host)

    with pytest.raises(RuntimeError):
        with engine.begin() as conn:
            SqlStorage(conn, "dice-test").set("house_balance", '{"amount": "1", "version": 1}')
            raise RuntimeError("abort")

    assert balance(host) == "1000"


def test_contracts_are_isolated_by_address(engine, host):
    instantiate(host)
    other = ContractHost(engine, contract_address="other-dice", chain_id="test-chain").setup()

    with pytest.raises(StateError):
        other.query(GetHouseBalance())

    with engine.connect() as conn:
        count = conn.execute(text(
            "SELECT COUNT(*) FROM contract_state WHERE contract_address = 'dice-test'"
        )).scalar()
    assert count == 3


def test_block_height_advances(host):
    first = host.next_block()
    second = host.next_block(random=b"\x01")
    assert second.height == first.height + 1
    assert second.random == b"\x01"


def test_played_round_verifies_independently(host):
    instantiate(host)
    salt = b"player-salt"

    response = host.execute(PLAYER, Play(guess=5, salt=salt), funds=[(DENOM, 10)])
    data = response.data

    assert verify_round(
        bytes.fromhex(data['block_entropy']), PLAYER, data['nonce'], salt, FACES,
        data['seed'], data['outcome'],
    )
    # Any change to the inputs breaks verification
    assert not verify_round(
        bytes.fromhex(data['block_entropy']), PLAYER, data['nonce'] + 1, salt, FACES,
        data['seed'], data['outcome'],
    )
    assert not verify_round(
        bytes.fromhex(data['block_entropy']), "someone-else", data['nonce'], salt, FACES,
        data['seed'], data['outcome'],
    )


def test_start_height_follows_the_clock(engine):
    first = ContractHost(engine, clock=lambda: 1_700_000_000_000_000_000)
    later = ContractHost(engine, clock=lambda: 1_700_000_060_000_000_000)

    assert first.next_block().height == 1_700_000_000
    assert later.next_block().height == 1_700_000_060
    assert ContractHost(engine, start_height=7).next_block().height == 7


# ── In-memory host ────────────────────────────────────────────

def memory_host(block_entropy):
    host = MemoryContractHost(
        contract_address="dice-test",
        chain_id="test-chain",
        entropy_source=FixedEntropySource(block_entropy),
    ).setup()
    instantiate(host)
    return host


def test_memory_host_plays_a_round():
    host = memory_host(find_block_entropy(7))

    response = host.execute(PLAYER, {'play': {'guess': 3}}, funds=[(DENOM, 50)])

    assert response.attribute('won') == 'false'
    assert balance(host) == "1050"
    assert nonce(host) == 1


def test_memory_host_rejects_and_keeps_state():
    host = memory_host(find_block_entropy(3))
    host.execute(ADMIN, {'withdraw': {'amount': "995"}})

    with pytest.raises(InsufficientHouseFunds):
        host.execute(PLAYER, Play(guess=3), funds=[(DENOM, 50)])

    assert balance(host) == "5"
    assert nonce(host) == 0


def test_memory_host_discards_partial_writes():
    host = memory_host(b"block")

    def write_then_fail(storage):
        storage.set("house_balance", '{"amount": "1", "version": 1}')
        raise Unauthorized("abort")

    with pytest.raises(Unauthorized):
        host._run('test', ADMIN, write_then_fail)

    assert balance(host) == "1000"
