from __future__ import annotations

"""
PoliTrans Campaign Token — ledger core
--------------------------------------

Deterministic, integer-only custody ledger for a single fungible asset:

  • admin-gated minting bounded by an adjustable campaign ceiling
  • holder-initiated burn and transfer
  • owner→spender allowances (absolute `approve`, relative increase/decrease)
    and delegated `transfer_from`
  • a staked pool that moves value out of the free balance without touching
    total supply (no yield)
  • a global pause switch that freezes participant operations while leaving
    admin governance (`mint`, `set_paused`, `set_campaign_goal`,
    `transfer_admin`) available

Outcome convention
~~~~~~~~~~~~~~~~~~
Mutating operations return ``Ok(value)`` or ``Err(code)``; a failed
precondition never raises and never mutates. Preconditions are checked in a
fixed order, first failure wins:

    authorization → pause gate → amount > 0 → balance / allowance / ceiling

Wrong Python types (``amount="10"``, ``caller=None``) are programming errors
and raise ``TypeError``.

Concurrency
~~~~~~~~~~~
One `threading.RLock` guards the whole ledger. Every operation, read
accessors included, runs inside it, so concurrent callers are linearized.
Event emission and the optional ``on_commit`` hook run in the same critical
section, event first. If either raises, the operation's writes are reverted,
the event is retracted from the sink and the exception propagates to the host.

Typical flow
~~~~~~~~~~~~
    token = CampaignToken(LedgerState.genesis(admin, 100_000_000))
    token.mint(admin, alice, 1_000).unwrap()
    token.approve(alice, bob, 500)
    token.transfer_from(bob, alice, carol, 300)   # Ok(True)
    token.transfer(alice, bob, 10_000)            # Err(INSUFFICIENT_BALANCE)
"""

import functools
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import events as ev
from .config import DEFAULT_ADMIN, DEFAULT_CAMPAIGN_GOAL, LedgerConfig, TokenMetadata
from .errors import (Err, InsufficientAllowance, InsufficientBalance,
                     InsufficientStake, InvalidAmount, LedgerError,
                     NotAuthorized, Ok, Paused, Result, SelfApproval,
                     SupplyCeilingExceeded, ZeroAddress)
from .events import EventSink, InMemoryEventSink, LedgerEvent
from .logging import get_logger
from .state import LedgerState
from .types import Amount, Identity, is_zero_address, require_bool, require_identity, require_int

log = get_logger(__name__)

CommitHook = Callable[[LedgerState], None]

_MISSING = object()


class _WriteSet:
    """
    Undo journal for one operation. Writes go straight to the state; the
    previous value of every touched entry is remembered so `revert()` can
    restore it exactly (including absence).
    """

    def __init__(self, state: LedgerState) -> None:
        self._state = state
        self._undo: List[Tuple[str, Any, Any]] = []

    def _put(self, mapping_name: str, key: Any, value: Amount) -> None:
        mapping = getattr(self._state, mapping_name)
        self._undo.append((mapping_name, key, mapping.get(key, _MISSING)))
        mapping[key] = value

    def balance(self, who: Identity, value: Amount) -> None:
        self._put("balances", who, value)

    def staked(self, who: Identity, value: Amount) -> None:
        self._put("staked", who, value)

    def allowance(self, owner: Identity, spender: Identity, value: Amount) -> None:
        self._put("allowances", (owner, spender), value)

    def scalar(self, name: str, value: Any) -> None:
        self._undo.append(("@" + name, None, getattr(self._state, name)))
        setattr(self._state, name, value)

    def revert(self) -> None:
        for target, key, prev in reversed(self._undo):
            if target.startswith("@"):
                setattr(self._state, target[1:], prev)
                continue
            mapping = getattr(self._state, target)
            if prev is _MISSING:
                mapping.pop(key, None)
            else:
                mapping[key] = prev
        self._undo.clear()


# An operation body returns (ok_value, event_kind, event_fields).
_Body = Tuple[Any, str, Dict[str, Any]]


def _operation(fn: Callable[..., _Body]) -> Callable[..., Result]:
    op = fn.__name__

    @functools.wraps(fn)
    def wrapper(self: "CampaignToken", caller: Identity, *args: Any, **kwargs: Any) -> Result:
        require_identity(caller, "caller")
        with self._lock:
            ws = _WriteSet(self._state)
            try:
                value, kind, fields = fn(self, ws, caller, *args, **kwargs)
            except LedgerError as exc:
                ws.revert()
                log.debug("rejected", extra={"op": op, "caller": caller, "code": exc.name})
                return Err.from_exc(exc)
            try:
                self._commit(op, caller, kind, fields)
            except Exception:
                ws.revert()
                log.warning("commit failed; reverted", extra={"op": op, "caller": caller}, exc_info=True)
                raise
            log.debug("committed", extra={"op": op, "caller": caller})
            return Ok(value)

    return wrapper


def _require_positive(amount: Any, name: str = "amount") -> Amount:
    n = require_int(amount, name)
    if n <= 0:
        raise InvalidAmount(details={name: n})
    return n


class CampaignToken:
    """
    The ledger core. Owns one `LedgerState` passed in explicitly (no ambient
    globals), so tests can build a fresh ledger per case.
    """

    def __init__(
        self,
        state: Optional[LedgerState] = None,
        *,
        metadata: Optional[TokenMetadata] = None,
        event_sink: Optional[EventSink] = None,
        on_commit: Optional[CommitHook] = None,
    ) -> None:
        self._state = state if state is not None else LedgerState.genesis(DEFAULT_ADMIN, DEFAULT_CAMPAIGN_GOAL)
        self._meta = metadata or TokenMetadata()
        self._events: EventSink = event_sink if event_sink is not None else InMemoryEventSink()
        self._on_commit = on_commit
        self._lock = RLock()
        self._seq = int(self._events.last_seq())

    @classmethod
    def from_config(
        cls,
        cfg: LedgerConfig,
        *,
        state: Optional[LedgerState] = None,
        event_sink: Optional[EventSink] = None,
        on_commit: Optional[CommitHook] = None,
    ) -> "CampaignToken":
        st = state if state is not None else LedgerState.genesis(cfg.admin, cfg.campaign_goal)
        return cls(st, metadata=cfg.metadata, event_sink=event_sink, on_commit=on_commit)

    # ------------------------------------------------------------------ #
    # internals
    # ------------------------------------------------------------------ #

    def _commit(self, op: str, caller: Identity, kind: str, fields: Dict[str, Any]) -> None:
        # Event first, state last: a failed save retracts the event, and a
        # failed append never reaches the save.
        event = LedgerEvent(seq=self._seq + 1, kind=kind, caller=caller, op=op, fields=fields)
        self._events.append(event)
        if self._on_commit is not None:
            try:
                self._on_commit(self._state)
            except Exception:
                self._events.retract(event)
                raise
        self._seq = event.seq

    def _require_admin(self, caller: Identity) -> None:
        if caller != self._state.admin:
            raise NotAuthorized(details={"caller": caller})

    def _require_not_paused(self) -> None:
        if self._state.paused:
            raise Paused()

    def _require_balance(self, who: Identity, amount: Amount) -> Amount:
        bal = self._state.balance_of(who)
        if bal < amount:
            raise InsufficientBalance(details={"identity": who, "balance": bal, "required": amount})
        return bal

    # ------------------------------------------------------------------ #
    # authorization helper
    # ------------------------------------------------------------------ #

    def is_admin(self, caller: Identity) -> bool:
        with self._lock:
            return caller == self._state.admin

    # ------------------------------------------------------------------ #
    # admin governance (not pause-gated)
    # ------------------------------------------------------------------ #

    @_operation
    def set_paused(self, ws: _WriteSet, caller: Identity, pause: bool) -> _Body:
        self._require_admin(caller)
        flag = require_bool(pause, "pause")
        ws.scalar("paused", flag)
        return flag, ev.PAUSE_CHANGED, {"paused": flag}

    @_operation
    def set_campaign_goal(self, ws: _WriteSet, caller: Identity, new_goal: Amount) -> _Body:
        self._require_admin(caller)
        goal = require_int(new_goal, "new_goal")
        if goal < self._state.total_supply:
            raise SupplyCeilingExceeded(
                "campaign goal below current supply",
                details={"new_goal": goal, "total_supply": self._state.total_supply},
            )
        previous = self._state.campaign_goal
        ws.scalar("campaign_goal", goal)
        return goal, ev.CAMPAIGN_GOAL_CHANGED, {"previous": previous, "campaign_goal": goal}

    @_operation
    def transfer_admin(self, ws: _WriteSet, caller: Identity, new_admin: Identity) -> _Body:
        self._require_admin(caller)
        if is_zero_address(new_admin):
            raise ZeroAddress(details={"new_admin": new_admin})
        require_identity(new_admin, "new_admin")
        ws.scalar("admin", new_admin)
        return True, ev.ADMIN_CHANGED, {"previous": caller, "admin": new_admin}

    @_operation
    def mint(self, ws: _WriteSet, caller: Identity, recipient: Identity, amount: Amount) -> _Body:
        self._require_admin(caller)
        require_identity(recipient, "recipient")
        n = _require_positive(amount)
        st = self._state
        if st.total_supply + n > st.campaign_goal:
            raise SupplyCeilingExceeded(
                details={"total_supply": st.total_supply, "amount": n, "campaign_goal": st.campaign_goal}
            )
        ws.balance(recipient, st.balance_of(recipient) + n)
        ws.scalar("total_supply", st.total_supply + n)
        return True, ev.TRANSFER, {"sender": None, "recipient": recipient, "amount": n}

    # ------------------------------------------------------------------ #
    # participant operations (pause-gated)
    # ------------------------------------------------------------------ #

    @_operation
    def burn(self, ws: _WriteSet, caller: Identity, amount: Amount) -> _Body:
        self._require_not_paused()
        n = _require_positive(amount)
        bal = self._require_balance(caller, n)
        ws.balance(caller, bal - n)
        ws.scalar("total_supply", self._state.total_supply - n)
        return True, ev.TRANSFER, {"sender": caller, "recipient": None, "amount": n}

    @_operation
    def transfer(self, ws: _WriteSet, caller: Identity, recipient: Identity, amount: Amount) -> _Body:
        self._require_not_paused()
        require_identity(recipient, "recipient")
        n = _require_positive(amount)
        bal = self._require_balance(caller, n)
        ws.balance(caller, bal - n)
        # Read after the debit so a self-transfer nets to zero.
        ws.balance(recipient, self._state.balance_of(recipient) + n)
        return True, ev.TRANSFER, {"sender": caller, "recipient": recipient, "amount": n}

    @_operation
    def approve(self, ws: _WriteSet, caller: Identity, spender: Identity, amount: Amount) -> _Body:
        self._require_not_paused()
        require_identity(spender, "spender")
        if spender == caller:
            raise SelfApproval(details={"owner": caller})
        n = require_int(amount)
        if n < 0:
            raise InvalidAmount(details={"amount": n})
        ws.allowance(caller, spender, n)
        return True, ev.APPROVAL, {"owner": caller, "spender": spender, "amount": n}

    @_operation
    def increase_allowance(self, ws: _WriteSet, caller: Identity, spender: Identity, delta: Amount) -> _Body:
        self._require_not_paused()
        require_identity(spender, "spender")
        n = _require_positive(delta, "delta")
        new = self._state.allowance(caller, spender) + n
        ws.allowance(caller, spender, new)
        return True, ev.APPROVAL, {"owner": caller, "spender": spender, "amount": new}

    @_operation
    def decrease_allowance(self, ws: _WriteSet, caller: Identity, spender: Identity, delta: Amount) -> _Body:
        self._require_not_paused()
        require_identity(spender, "spender")
        n = _require_positive(delta, "delta")
        cur = self._state.allowance(caller, spender)
        if cur < n:
            raise InsufficientAllowance(details={"owner": caller, "spender": spender, "allowance": cur, "delta": n})
        ws.allowance(caller, spender, cur - n)
        return True, ev.APPROVAL, {"owner": caller, "spender": spender, "amount": cur - n}

    @_operation
    def transfer_from(
        self, ws: _WriteSet, caller: Identity, owner: Identity, recipient: Identity, amount: Amount
    ) -> _Body:
        self._require_not_paused()
        require_identity(owner, "owner")
        require_identity(recipient, "recipient")
        n = _require_positive(amount)
        allowed = self._state.allowance(owner, caller)
        if allowed < n:
            raise InsufficientAllowance(
                details={"owner": owner, "spender": caller, "allowance": allowed, "required": n}
            )
        bal = self._require_balance(owner, n)
        ws.allowance(owner, caller, allowed - n)
        ws.balance(owner, bal - n)
        ws.balance(recipient, self._state.balance_of(recipient) + n)
        return True, ev.TRANSFER, {"sender": owner, "recipient": recipient, "amount": n, "spender": caller}

    @_operation
    def stake(self, ws: _WriteSet, caller: Identity, amount: Amount) -> _Body:
        self._require_not_paused()
        n = _require_positive(amount)
        bal = self._require_balance(caller, n)
        ws.balance(caller, bal - n)
        ws.staked(caller, self._state.staked_of(caller) + n)
        return True, ev.STAKE, {"staker": caller, "amount": n}

    @_operation
    def unstake(self, ws: _WriteSet, caller: Identity, amount: Amount) -> _Body:
        self._require_not_paused()
        n = _require_positive(amount)
        locked = self._state.staked_of(caller)
        if locked < n:
            raise InsufficientStake(details={"identity": caller, "staked": locked, "required": n})
        ws.staked(caller, locked - n)
        ws.balance(caller, self._state.balance_of(caller) + n)
        return True, ev.UNSTAKE, {"staker": caller, "amount": n}

    # ------------------------------------------------------------------ #
    # read-only accessors (never fail, never mutate)
    # ------------------------------------------------------------------ #

    def name(self) -> str:
        return self._meta.name

    def symbol(self) -> str:
        return self._meta.symbol

    def decimals(self) -> int:
        return self._meta.decimals

    def token_uri(self) -> Optional[str]:
        return self._meta.token_uri

    def balance_of(self, who: Identity) -> Amount:
        with self._lock:
            return self._state.balance_of(who)

    def staked_of(self, who: Identity) -> Amount:
        with self._lock:
            return self._state.staked_of(who)

    def total_supply(self) -> Amount:
        with self._lock:
            return self._state.total_supply

    def allowance(self, owner: Identity, spender: Identity) -> Amount:
        with self._lock:
            return self._state.allowance(owner, spender)

    def admin(self) -> Identity:
        with self._lock:
            return self._state.admin

    def is_paused(self) -> bool:
        with self._lock:
            return self._state.paused

    def campaign_goal(self) -> Amount:
        with self._lock:
            return self._state.campaign_goal

    def info(self) -> Dict[str, Any]:
        """Metadata plus the process-wide scalars, read atomically."""
        with self._lock:
            st = self._state
            return {
                "name": self._meta.name,
                "symbol": self._meta.symbol,
                "decimals": self._meta.decimals,
                "token_uri": self._meta.token_uri,
                "admin": st.admin,
                "paused": st.paused,
                "total_supply": st.total_supply,
                "campaign_goal": st.campaign_goal,
                "total_staked": st.total_staked(),
            }

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return self._state.dump()

    def state_copy(self) -> LedgerState:
        with self._lock:
            return self._state.copy()

    def events(self, *, kind: Optional[str] = None, since_seq: int = 0) -> List[LedgerEvent]:
        return list(self._events.events(kind=kind, since_seq=since_seq))


__all__ = ["CampaignToken", "CommitHook"]
