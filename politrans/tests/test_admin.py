import pytest

from politrans.errors import Err, ErrorCode, Ok
from politrans.types import ZERO_ADDRESS

from .conftest import ADMIN, ALICE, BOB, mk_token


def test_genesis_reads():
    token = mk_token(goal=5_000)
    assert token.admin() == ADMIN
    assert token.is_admin(ADMIN)
    assert not token.is_admin(ALICE)
    assert token.is_paused() is False
    assert token.total_supply() == 0
    assert token.campaign_goal() == 5_000
    assert token.balance_of(ALICE) == 0
    assert token.staked_of(ALICE) == 0
    assert token.allowance(ALICE, BOB) == 0


def test_metadata_defaults(token):
    assert token.name() == "PoliTrans Campaign Token"
    assert token.symbol() == "PTCT"
    assert token.decimals() == 6
    assert token.token_uri() is None
    info = token.info()
    assert info["admin"] == ADMIN
    assert info["total_supply"] == 0
    assert info["total_staked"] == 0


def test_transfer_admin_moves_the_role(token):
    assert token.transfer_admin(ADMIN, ALICE) == Ok(True)
    assert token.admin() == ALICE

    # old admin lost every privilege
    assert token.mint(ADMIN, BOB, 1) == Err(ErrorCode.NOT_AUTHORIZED)
    assert token.set_paused(ADMIN, True) == Err(ErrorCode.NOT_AUTHORIZED)
    assert token.set_campaign_goal(ADMIN, 1) == Err(ErrorCode.NOT_AUTHORIZED)

    # new admin has them
    assert token.mint(ALICE, BOB, 1) == Ok(True)


def test_transfer_admin_requires_admin(token):
    assert token.transfer_admin(ALICE, BOB) == Err(ErrorCode.NOT_AUTHORIZED)
    assert token.admin() == ADMIN


@pytest.mark.parametrize("null", [ZERO_ADDRESS, "", "   "])
def test_transfer_admin_rejects_null_identity(token, null):
    assert token.transfer_admin(ADMIN, null) == Err(ErrorCode.ZERO_ADDRESS)
    assert token.admin() == ADMIN


def test_non_admin_null_target_reports_not_authorized_first(token):
    assert token.transfer_admin(ALICE, ZERO_ADDRESS) == Err(ErrorCode.NOT_AUTHORIZED)


def test_transfer_admin_to_self_is_a_noop(token):
    assert token.transfer_admin(ADMIN, ADMIN) == Ok(True)
    assert token.admin() == ADMIN


def test_set_campaign_goal(token):
    token.mint(ADMIN, ALICE, 400).unwrap()
    assert token.set_campaign_goal(ADMIN, 400) == Ok(400)
    assert token.campaign_goal() == 400
    assert token.set_campaign_goal(ADMIN, 399) == Err(ErrorCode.SUPPLY_CEILING_EXCEEDED)
    assert token.campaign_goal() == 400
    assert token.set_campaign_goal(ADMIN, 10**30) == Ok(10**30)


def test_set_campaign_goal_requires_admin(token):
    assert token.set_campaign_goal(ALICE, 1) == Err(ErrorCode.NOT_AUTHORIZED)
    assert token.campaign_goal() == 100_000_000


def test_set_paused_returns_new_flag(token):
    assert token.set_paused(ADMIN, True) == Ok(True)
    assert token.is_paused()
    # idempotent
    assert token.set_paused(ADMIN, True) == Ok(True)
    assert token.set_paused(ADMIN, False) == Ok(False)
    assert not token.is_paused()


def test_wrong_types_raise_type_error(token):
    with pytest.raises(TypeError):
        token.mint(None, ALICE, 1)
    with pytest.raises(TypeError):
        token.mint(ADMIN, ALICE, "1")
    with pytest.raises(TypeError):
        token.mint(ADMIN, ALICE, True)
    with pytest.raises(TypeError):
        token.set_campaign_goal(ADMIN, 1.5)
    assert token.total_supply() == 0


@pytest.mark.parametrize("flag", ["false", 0, 1, None])
def test_set_paused_requires_a_real_bool(token, flag):
    with pytest.raises(TypeError):
        token.set_paused(ADMIN, flag)
    assert token.is_paused() is False
    assert token.events() == []
