from __future__ import annotations

import logging

import pytest

from politrans.ledger import CampaignToken
from politrans.state import LedgerState

# Principals borrowed from the Stacks devnet account list.
ADMIN = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
ALICE = "ST1SJ3DTE5DN7X54YDH5D64R3BCB6A2AG2ZQ8YPD5"
BOB = "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG"
CAROL = "ST2JHG361ZXG51QTKY2NQCVBPPRRE2KZB1HR05NNC"
DAVE = "ST2NEB84ASENDXKYGJPQW86YXQCEFEX2ZQPG87ND"

GOAL = 100_000_000


def mk_token(goal: int = GOAL, admin: str = ADMIN, **kwargs) -> CampaignToken:
    return CampaignToken(LedgerState.genesis(admin, goal), **kwargs)


@pytest.fixture
def token() -> CampaignToken:
    """Fresh ledger: ADMIN, ceiling 100M, nothing minted."""
    return mk_token()


@pytest.fixture
def funded(token: CampaignToken) -> CampaignToken:
    """ALICE holds 1_000, BOB holds 500."""
    token.mint(ADMIN, ALICE, 1_000).unwrap()
    token.mint(ADMIN, BOB, 500).unwrap()
    return token


@pytest.fixture(autouse=True)
def _reset_politrans_logger():
    # CLI invocations reconfigure the package logger against a captured stream.
    yield
    lg = logging.getLogger("politrans")
    for h in list(lg.handlers):
        lg.removeHandler(h)
    lg.propagate = True
    lg.setLevel(logging.NOTSET)
