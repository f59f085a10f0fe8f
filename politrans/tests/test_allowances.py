import pytest

from politrans.errors import Err, ErrorCode, Ok

from .conftest import ALICE, BOB, CAROL, DAVE


def test_approve_is_absolute(funded):
    assert funded.approve(ALICE, BOB, 300) == Ok(True)
    assert funded.approve(ALICE, BOB, 120) == Ok(True)
    assert funded.allowance(ALICE, BOB) == 120


def test_approve_zero_revokes(funded):
    funded.approve(ALICE, BOB, 300).unwrap()
    assert funded.approve(ALICE, BOB, 0) == Ok(True)
    assert funded.allowance(ALICE, BOB) == 0


def test_approve_is_not_capped_by_balance(funded):
    assert funded.approve(ALICE, BOB, 10**12) == Ok(True)
    assert funded.allowance(ALICE, BOB) == 10**12
    # the cap applies when spending
    assert funded.transfer_from(BOB, ALICE, CAROL, 1_001) == Err(ErrorCode.INSUFFICIENT_BALANCE)


def test_approve_self_rejected(funded):
    assert funded.approve(ALICE, ALICE, 10) == Err(ErrorCode.SELF_APPROVAL)
    assert funded.allowance(ALICE, ALICE) == 0


def test_approve_negative(funded):
    assert funded.approve(ALICE, BOB, -1) == Err(ErrorCode.INVALID_AMOUNT)


def test_allowances_are_directional(funded):
    funded.approve(ALICE, BOB, 50).unwrap()
    assert funded.allowance(ALICE, BOB) == 50
    assert funded.allowance(BOB, ALICE) == 0


def test_increase_and_decrease(funded):
    assert funded.increase_allowance(ALICE, BOB, 40) == Ok(True)
    assert funded.increase_allowance(ALICE, BOB, 60) == Ok(True)
    assert funded.allowance(ALICE, BOB) == 100
    assert funded.decrease_allowance(ALICE, BOB, 100) == Ok(True)
    assert funded.allowance(ALICE, BOB) == 0


def test_decrease_below_zero_rejected(funded):
    funded.approve(ALICE, BOB, 10).unwrap()
    assert funded.decrease_allowance(ALICE, BOB, 11) == Err(ErrorCode.INSUFFICIENT_ALLOWANCE)
    assert funded.allowance(ALICE, BOB) == 10


@pytest.mark.parametrize("op", ["increase_allowance", "decrease_allowance"])
@pytest.mark.parametrize("delta", [0, -3])
def test_relative_changes_need_positive_delta(funded, op, delta):
    assert getattr(funded, op)(ALICE, BOB, delta) == Err(ErrorCode.INVALID_AMOUNT)


def test_transfer_from_spends_allowance(funded):
    funded.approve(ALICE, BOB, 500).unwrap()
    assert funded.transfer_from(BOB, ALICE, CAROL, 300) == Ok(True)
    assert funded.balance_of(ALICE) == 700
    assert funded.balance_of(CAROL) == 300
    assert funded.allowance(ALICE, BOB) == 200
    # spender's own balance is untouched
    assert funded.balance_of(BOB) == 500


def test_transfer_from_exact_allowance(funded):
    funded.approve(ALICE, BOB, 200).unwrap()
    assert funded.transfer_from(BOB, ALICE, BOB, 200) == Ok(True)
    assert funded.allowance(ALICE, BOB) == 0
    assert funded.balance_of(BOB) == 700


def test_transfer_from_without_allowance(funded):
    assert funded.transfer_from(BOB, ALICE, CAROL, 1) == Err(ErrorCode.INSUFFICIENT_ALLOWANCE)


def test_transfer_from_allowance_checked_before_balance(token):
    # owner has nothing and granted nothing: allowance failure wins
    assert token.transfer_from(BOB, DAVE, CAROL, 5) == Err(ErrorCode.INSUFFICIENT_ALLOWANCE)


def test_transfer_from_insufficient_balance_keeps_allowance(funded):
    funded.approve(BOB, CAROL, 900).unwrap()
    assert funded.transfer_from(CAROL, BOB, DAVE, 600) == Err(ErrorCode.INSUFFICIENT_BALANCE)
    assert funded.allowance(BOB, CAROL) == 900
    assert funded.balance_of(BOB) == 500
    assert funded.balance_of(DAVE) == 0


def test_transfer_from_uses_callers_allowance_only(funded):
    funded.approve(ALICE, BOB, 100).unwrap()
    # CAROL holds no allowance even though BOB does
    assert funded.transfer_from(CAROL, ALICE, CAROL, 1) == Err(ErrorCode.INSUFFICIENT_ALLOWANCE)


def test_owner_spending_own_tokens_needs_allowance(funded):
    assert funded.transfer_from(ALICE, ALICE, BOB, 1) == Err(ErrorCode.INSUFFICIENT_ALLOWANCE)


@pytest.mark.parametrize("amount", [0, -1])
def test_transfer_from_invalid_amount(funded, amount):
    funded.approve(ALICE, BOB, 10).unwrap()
    assert funded.transfer_from(BOB, ALICE, CAROL, amount) == Err(ErrorCode.INVALID_AMOUNT)
