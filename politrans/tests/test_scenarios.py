"""
End-to-end walkthroughs on a fresh ledger:
admin = ADMIN, users = ALICE/BOB/CAROL, ceiling 100,000,000, supply 0.
"""

from politrans.errors import Err, ErrorCode, Ok

from .conftest import ADMIN, ALICE, BOB, CAROL


def _after_first_mint(token):
    assert token.mint(ADMIN, ALICE, 1_000) == Ok(True)
    return token


def test_first_mint(token):
    _after_first_mint(token)
    assert token.balance_of(ALICE) == 1_000
    assert token.total_supply() == 1_000


def test_mint_above_goal_on_fresh_state(token):
    before = token.snapshot()
    assert token.mint(ADMIN, ALICE, 200_000_000) == Err(ErrorCode.SUPPLY_CEILING_EXCEEDED)
    assert token.snapshot() == before
    assert token.events() == []


def test_overdraw_after_mint(token):
    _after_first_mint(token)
    assert token.transfer(ALICE, BOB, 2_000) == Err(ErrorCode.INSUFFICIENT_BALANCE)
    assert token.balance_of(ALICE) == 1_000
    assert token.balance_of(BOB) == 0


def test_delegated_spend(token):
    _after_first_mint(token)
    assert token.approve(ALICE, BOB, 500) == Ok(True)
    assert token.transfer_from(BOB, ALICE, CAROL, 300) == Ok(True)
    assert token.balance_of(ALICE) == 700
    assert token.balance_of(CAROL) == 300
    assert token.allowance(ALICE, BOB) == 200


def test_stake_then_partial_unstake(token):
    _after_first_mint(token)
    assert token.stake(ALICE, 400) == Ok(True)
    assert token.unstake(ALICE, 100) == Ok(True)
    assert token.balance_of(ALICE) == 700
    assert token.staked_of(ALICE) == 300


def test_pause_blocks_transfer_but_not_mint(token):
    _after_first_mint(token)
    assert token.set_paused(ADMIN, True) == Ok(True)
    assert token.transfer(ALICE, BOB, 1) == Err(ErrorCode.PAUSED)
    assert token.mint(ADMIN, ALICE, 1) == Ok(True)
