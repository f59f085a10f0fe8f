import pytest

from politrans.errors import Err, ErrorCode, Ok

from .conftest import ADMIN, ALICE, BOB, CAROL


def test_transfer_moves_balance(funded):
    assert funded.transfer(ALICE, CAROL, 250) == Ok(True)
    assert funded.balance_of(ALICE) == 750
    assert funded.balance_of(CAROL) == 250
    assert funded.total_supply() == 1_500


def test_transfer_exact_balance(funded):
    assert funded.transfer(BOB, ALICE, 500) == Ok(True)
    assert funded.balance_of(BOB) == 0
    assert funded.balance_of(ALICE) == 1_500


def test_transfer_insufficient_leaves_state_untouched(funded):
    before = funded.snapshot()
    assert funded.transfer(BOB, ALICE, 501) == Err(ErrorCode.INSUFFICIENT_BALANCE)
    assert funded.snapshot() == before


@pytest.mark.parametrize("amount", [0, -1])
def test_transfer_invalid_amount(funded, amount):
    assert funded.transfer(ALICE, BOB, amount) == Err(ErrorCode.INVALID_AMOUNT)


def test_self_transfer_nets_to_zero(funded):
    assert funded.transfer(ALICE, ALICE, 400) == Ok(True)
    assert funded.balance_of(ALICE) == 1_000
    assert funded.total_supply() == 1_500


def test_self_transfer_still_needs_balance(funded):
    assert funded.transfer(ALICE, ALICE, 1_001) == Err(ErrorCode.INSUFFICIENT_BALANCE)


def test_transfer_from_empty_account(token):
    assert token.transfer(CAROL, ALICE, 1) == Err(ErrorCode.INSUFFICIENT_BALANCE)


def test_admin_has_no_transfer_privilege(funded):
    # admin holds nothing; being admin does not let it move other balances
    assert funded.transfer(ADMIN, ALICE, 1) == Err(ErrorCode.INSUFFICIENT_BALANCE)


def test_transfer_does_not_touch_staked(funded):
    funded.stake(ALICE, 600).unwrap()
    assert funded.transfer(ALICE, BOB, 401) == Err(ErrorCode.INSUFFICIENT_BALANCE)
    assert funded.transfer(ALICE, BOB, 400) == Ok(True)
    assert funded.staked_of(ALICE) == 600
