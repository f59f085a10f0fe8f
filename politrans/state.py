from __future__ import annotations

"""
PoliTrans ledger state
----------------------

The four collections every ledger operation reads and writes:

  • admin / paused / total_supply / campaign_goal   (process-wide scalars)
  • balances[identity]                              (free holdings)
  • staked[identity]                                (locked holdings, outside supply)
  • allowances[(owner, spender)]                    (directional delegation)

Absent map entries read as zero, so identities and pairs come into existence
implicitly on first reference; nothing is materialized for a read.

The container is deliberately logic-free: ordering of checks, authorization
and the pause gate live in `politrans.ledger`, which also owns every write.
This module only offers default-zero lookups, invariant checks and
(de)serialization.
Persistence is delegated to higher layers (e.g. `politrans.store`) which
snapshot `LedgerState.dump()` and restore via `LedgerState.load()`.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from .errors import InvariantViolation
from .types import AllowanceKey, Amount, Identity, is_zero_address

SNAPSHOT_VERSION = 1


@dataclass
class LedgerState:
    admin: Identity
    campaign_goal: Amount
    paused: bool = False
    total_supply: Amount = 0
    balances: Dict[Identity, Amount] = field(default_factory=dict)
    staked: Dict[Identity, Amount] = field(default_factory=dict)
    allowances: Dict[AllowanceKey, Amount] = field(default_factory=dict)

    @classmethod
    def genesis(cls, admin: Identity, campaign_goal: Amount) -> "LedgerState":
        """Deployment-time state: no holders, not paused, zero supply."""
        if is_zero_address(admin):
            raise ValueError("admin must not be the null identity")
        if campaign_goal < 0:
            raise ValueError("campaign_goal must be non-negative")
        return cls(admin=admin, campaign_goal=int(campaign_goal))

    # --- default-zero lookups ---

    def balance_of(self, who: Identity) -> Amount:
        return self.balances.get(who, 0)

    def staked_of(self, who: Identity) -> Amount:
        return self.staked.get(who, 0)

    def allowance(self, owner: Identity, spender: Identity) -> Amount:
        return self.allowances.get((owner, spender), 0)

    # --- introspection ---

    def total_staked(self) -> Amount:
        return sum(self.staked.values())

    def check_invariants(self) -> None:
        """
        Raise InvariantViolation if the bookkeeping is inconsistent:
          - total_supply == sum(balances) + sum(staked)  (staking moves value
            between the two maps and never touches total_supply)
          - total_supply <= campaign_goal
          - no negative entries
          - admin is not the null identity
        """
        if is_zero_address(self.admin):
            raise InvariantViolation("admin is the null identity")
        for label, mapping in (("balance", self.balances), ("staked", self.staked), ("allowance", self.allowances)):
            for k, v in mapping.items():
                if isinstance(v, bool) or not isinstance(v, int) or v < 0:
                    raise InvariantViolation(f"negative or non-integer {label}", details={"key": str(k), "value": v})
        if self.campaign_goal < 0 or self.total_supply < 0:
            raise InvariantViolation("negative supply or ceiling")
        held = sum(self.balances.values()) + self.total_staked()
        if held != self.total_supply:
            raise InvariantViolation(
                "total supply does not match free + staked balances",
                details={"total_supply": self.total_supply, "held": held},
            )
        if self.total_supply > self.campaign_goal:
            raise InvariantViolation(
                "total supply above campaign ceiling",
                details={"total_supply": self.total_supply, "campaign_goal": self.campaign_goal},
            )

    # --- load/save ---

    def copy(self) -> "LedgerState":
        return LedgerState(
            admin=self.admin,
            campaign_goal=self.campaign_goal,
            paused=self.paused,
            total_supply=self.total_supply,
            balances=dict(self.balances),
            staked=dict(self.staked),
            allowances=dict(self.allowances),
        )

    def dump(self) -> Dict[str, Any]:
        """JSON-friendly snapshot. Zero entries are omitted (equivalent to absence)."""
        return {
            "version": SNAPSHOT_VERSION,
            "admin": self.admin,
            "paused": self.paused,
            "total_supply": self.total_supply,
            "campaign_goal": self.campaign_goal,
            "balances": {k: v for k, v in sorted(self.balances.items()) if v},
            "staked": {k: v for k, v in sorted(self.staked.items()) if v},
            "allowances": [
                {"owner": o, "spender": s, "amount": v}
                for (o, s), v in sorted(self.allowances.items())
                if v
            ],
        }

    @classmethod
    def load(cls, data: Mapping[str, Any]) -> "LedgerState":
        try:
            version = int(data.get("version", SNAPSHOT_VERSION))
        except (TypeError, ValueError) as e:
            raise InvariantViolation(f"bad snapshot version: {e}") from e
        if version != SNAPSHOT_VERSION:
            raise InvariantViolation(f"unsupported snapshot version {version}")
        try:
            st = cls(
                admin=str(data["admin"]),
                campaign_goal=int(data["campaign_goal"]),
                paused=bool(data.get("paused", False)),
                total_supply=int(data.get("total_supply", 0)),
                balances={str(k): int(v) for k, v in dict(data.get("balances", {})).items()},
                staked={str(k): int(v) for k, v in dict(data.get("staked", {})).items()},
                allowances={
                    (str(e["owner"]), str(e["spender"])): int(e["amount"])
                    for e in data.get("allowances", [])
                },
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvariantViolation(f"bad ledger snapshot: {e}") from e
        st.check_invariants()
        return st


__all__ = ["LedgerState", "SNAPSHOT_VERSION"]
