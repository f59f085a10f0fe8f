from __future__ import annotations

"""
politrans.rpc.methods
---------------------

JSON-RPC style method implementations for the campaign token ledger.

Exposed methods (bind via `make_methods`):
  read:    token.info, token.balanceOf, token.stakedOf, token.allowance
  admin:   token.setPaused, token.setCampaignGoal, token.transferAdmin, token.mint
  holder:  token.burn, token.transfer, token.approve, token.increaseAllowance,
           token.decreaseAllowance, token.transferFrom, token.stake, token.unstake

Design:
  - Transport-agnostic. `make_methods` returns a dict of callables taking
    keyword parameters; `politrans.rpc.mount` serves the same callables over
    FastAPI.
  - Mutating methods receive ``caller`` from the host's authentication layer,
    never from the request body.
  - Ledger outcomes are returned as plain dicts:
        {"ok": true, "value": ...}
        {"ok": false, "error": {"code": 101, "name": "InsufficientBalance", "message": ...}}
  - Malformed parameters raise `RpcParamError` (a transport error, not a
    ledger outcome).

Amounts may be sent as JSON integers or decimal strings (for clients whose
JSON numbers lose precision above 2**53).
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..ledger import CampaignToken
from ..types import is_zero_address


class RpcParamError(ValueError):
    """A request parameter is missing or has the wrong shape."""

    code = -32602

    def __init__(self, message: str, *, param: Optional[str] = None) -> None:
        self.param = param
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": str(self), "param": self.param}


@dataclass
class TokenService:
    """What the methods need. Hosts wire the ledger (already hooked to a store)."""

    token: CampaignToken


# ---- Helpers ---------------------------------------------------------------

def _coerce_amount(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise RpcParamError(f"{name} must be an integer", param=name)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        s = value.strip()
        body = s[1:] if s[:1] in ("-", "+") else s
        if body.isdigit():
            return int(s)
    raise RpcParamError(f"{name} must be an integer or decimal string", param=name)


def _coerce_identity(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise RpcParamError(f"{name} must be a string principal", param=name)
    return value.strip()


def _require_caller(caller: Any) -> str:
    who = _coerce_identity(caller, "caller")
    if is_zero_address(who):
        raise RpcParamError("caller identity is required", param="caller")
    return who


def _coerce_flag(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0"):
        return value.strip().lower() in ("true", "1")
    raise RpcParamError(f"{name} must be a boolean", param=name)


# ---- JSON-RPC method factory ----------------------------------------------

def make_methods(service: TokenService) -> Dict[str, Callable[..., Any]]:
    """
    Build a mapping of JSON-RPC method name -> callable.
    Each callable returns plain JSON-serializable structures.
    """
    tok = service.token

    # read-only

    def token_info() -> Dict[str, Any]:
        return tok.info()

    def token_balance_of(*, identity: str) -> Dict[str, Any]:
        who = _coerce_identity(identity, "identity")
        return {"identity": who, "balance": tok.balance_of(who)}

    def token_staked_of(*, identity: str) -> Dict[str, Any]:
        who = _coerce_identity(identity, "identity")
        return {"identity": who, "staked": tok.staked_of(who)}

    def token_allowance(*, owner: str, spender: str) -> Dict[str, Any]:
        o = _coerce_identity(owner, "owner")
        s = _coerce_identity(spender, "spender")
        return {"owner": o, "spender": s, "allowance": tok.allowance(o, s)}

    # admin governance

    def token_set_paused(*, caller: str, paused: Any) -> Dict[str, Any]:
        return tok.set_paused(_require_caller(caller), _coerce_flag(paused, "paused")).to_dict()

    def token_set_campaign_goal(*, caller: str, goal: Any) -> Dict[str, Any]:
        return tok.set_campaign_goal(_require_caller(caller), _coerce_amount(goal, "goal")).to_dict()

    def token_transfer_admin(*, caller: str, newAdmin: Any) -> Dict[str, Any]:
        return tok.transfer_admin(_require_caller(caller), _coerce_identity(newAdmin, "newAdmin")).to_dict()

    def token_mint(*, caller: str, recipient: Any, amount: Any) -> Dict[str, Any]:
        return tok.mint(
            _require_caller(caller), _coerce_identity(recipient, "recipient"), _coerce_amount(amount, "amount")
        ).to_dict()

    # holder operations

    def token_burn(*, caller: str, amount: Any) -> Dict[str, Any]:
        return tok.burn(_require_caller(caller), _coerce_amount(amount, "amount")).to_dict()

    def token_transfer(*, caller: str, recipient: Any, amount: Any) -> Dict[str, Any]:
        return tok.transfer(
            _require_caller(caller), _coerce_identity(recipient, "recipient"), _coerce_amount(amount, "amount")
        ).to_dict()

    def token_approve(*, caller: str, spender: Any, amount: Any) -> Dict[str, Any]:
        return tok.approve(
            _require_caller(caller), _coerce_identity(spender, "spender"), _coerce_amount(amount, "amount")
        ).to_dict()

    def token_increase_allowance(*, caller: str, spender: Any, delta: Any) -> Dict[str, Any]:
        return tok.increase_allowance(
            _require_caller(caller), _coerce_identity(spender, "spender"), _coerce_amount(delta, "delta")
        ).to_dict()

    def token_decrease_allowance(*, caller: str, spender: Any, delta: Any) -> Dict[str, Any]:
        return tok.decrease_allowance(
            _require_caller(caller), _coerce_identity(spender, "spender"), _coerce_amount(delta, "delta")
        ).to_dict()

    def token_transfer_from(*, caller: str, owner: Any, recipient: Any, amount: Any) -> Dict[str, Any]:
        return tok.transfer_from(
            _require_caller(caller),
            _coerce_identity(owner, "owner"),
            _coerce_identity(recipient, "recipient"),
            _coerce_amount(amount, "amount"),
        ).to_dict()

    def token_stake(*, caller: str, amount: Any) -> Dict[str, Any]:
        return tok.stake(_require_caller(caller), _coerce_amount(amount, "amount")).to_dict()

    def token_unstake(*, caller: str, amount: Any) -> Dict[str, Any]:
        return tok.unstake(_require_caller(caller), _coerce_amount(amount, "amount")).to_dict()

    # Map JSON-RPC names → callables
    return {
        "token.info": token_info,
        "token.balanceOf": token_balance_of,
        "token.stakedOf": token_staked_of,
        "token.allowance": token_allowance,
        "token.setPaused": token_set_paused,
        "token.setCampaignGoal": token_set_campaign_goal,
        "token.transferAdmin": token_transfer_admin,
        "token.mint": token_mint,
        "token.burn": token_burn,
        "token.transfer": token_transfer,
        "token.approve": token_approve,
        "token.increaseAllowance": token_increase_allowance,
        "token.decreaseAllowance": token_decrease_allowance,
        "token.transferFrom": token_transfer_from,
        "token.stake": token_stake,
        "token.unstake": token_unstake,
    }


# Methods that mutate state and therefore need an authenticated caller.
MUTATING_METHODS = frozenset(
    {
        "token.setPaused",
        "token.setCampaignGoal",
        "token.transferAdmin",
        "token.mint",
        "token.burn",
        "token.transfer",
        "token.approve",
        "token.increaseAllowance",
        "token.decreaseAllowance",
        "token.transferFrom",
        "token.stake",
        "token.unstake",
    }
)


def call_method(
    methods: Dict[str, Callable[..., Any]],
    name: str,
    params: Optional[Dict[str, Any]] = None,
    *,
    caller: Optional[str] = None,
) -> Any:
    """
    Invoke `name` with keyword `params`, injecting `caller` for mutating
    methods (a ``caller`` key inside params is ignored). Raises KeyError for an
    unknown method and RpcParamError for bad/missing parameters.
    """
    fn = methods[name]
    kwargs = dict(params or {})
    kwargs.pop("caller", None)
    if name in MUTATING_METHODS:
        kwargs["caller"] = caller
    try:
        return fn(**kwargs)
    except TypeError as e:
        # Unknown/missing keyword parameters surface as TypeError from the call itself.
        raise RpcParamError(f"bad parameters for {name}: {e}") from e


__all__ = [
    "RpcParamError",
    "TokenService",
    "make_methods",
    "MUTATING_METHODS",
    "call_method",
]
