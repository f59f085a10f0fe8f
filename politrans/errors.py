from __future__ import annotations
# politrans/errors.py
"""
Error codes, exceptions and result values for the campaign token ledger.

Every mutating ledger operation reports its outcome as a *result value*:
``Ok(value)`` on success or ``Err(code)`` on a failed precondition. Codes are
stable integers so hosts (RPC, CLI, SDKs) can branch on them:

    100 NotAuthorized           caller is not the admin
    101 InsufficientBalance     free balance below the debit amount
    102 InsufficientStake       staked balance below the unstake amount
    103 SupplyCeilingExceeded   mint above ceiling / ceiling below supply
    104 Paused                  participant operation while paused
    105 ZeroAddress             address parameter is the null identity
    106 InvalidAmount           amount not strictly positive
    107 InsufficientAllowance   spend/decrease above the granted allowance
    108 SelfApproval            owner named as its own spender

Inside the ledger a failed precondition raises the matching ``LedgerError``
subclass; the operation wrapper turns it into ``Err`` before any state is
touched. ``Err.unwrap()`` goes the other way for callers that prefer
exceptions.

Exports:
- ErrorCode
- LedgerError and one subclass per code
- InvariantViolation
- Ok, Err, Result
- error_for
"""


import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Generic, Mapping, Optional, Type, TypeVar, Union

T = TypeVar("T")


class ErrorCode(IntEnum):
    NOT_AUTHORIZED = 100
    INSUFFICIENT_BALANCE = 101
    INSUFFICIENT_STAKE = 102
    SUPPLY_CEILING_EXCEEDED = 103
    PAUSED = 104
    ZERO_ADDRESS = 105
    INVALID_AMOUNT = 106
    INSUFFICIENT_ALLOWANCE = 107
    SELF_APPROVAL = 108

    @property
    def symbol(self) -> str:
        """CamelCase name used on the wire (e.g. ``InsufficientBalance``)."""
        return _SYMBOLS[self]

    @classmethod
    def parse(cls, value: Union[int, str, "ErrorCode"]) -> "ErrorCode":
        if isinstance(value, ErrorCode):
            return value
        if isinstance(value, int):
            return cls(value)
        s = str(value).strip()
        if s.isdigit():
            return cls(int(s))
        for code, sym in _SYMBOLS.items():
            if s == sym or s.upper() == code.name:
                return code
        raise ValueError(f"unknown error code {value!r}")


_SYMBOLS: Dict[ErrorCode, str] = {
    ErrorCode.NOT_AUTHORIZED: "NotAuthorized",
    ErrorCode.INSUFFICIENT_BALANCE: "InsufficientBalance",
    ErrorCode.INSUFFICIENT_STAKE: "InsufficientStake",
    ErrorCode.SUPPLY_CEILING_EXCEEDED: "SupplyCeilingExceeded",
    ErrorCode.PAUSED: "Paused",
    ErrorCode.ZERO_ADDRESS: "ZeroAddress",
    ErrorCode.INVALID_AMOUNT: "InvalidAmount",
    ErrorCode.INSUFFICIENT_ALLOWANCE: "InsufficientAllowance",
    ErrorCode.SELF_APPROVAL: "SelfApproval",
}


class LedgerError(Exception):
    """Base class for ledger precondition failures."""

    code: ErrorCode = ErrorCode.NOT_AUTHORIZED
    default_message: str = "ledger operation rejected"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.default_message
        self.details = dict(details or {})
        super().__init__(self.__str__())

    @property
    def name(self) -> str:
        return self.code.symbol

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": int(self.code), "name": self.name, "message": self.message}
        if self.details:
            out["details"] = self.details
        return out

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            try:
                packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"), default=str)
            except Exception:
                packed = str(self.details)
            return f"{self.name}({int(self.code)}): {self.message} [{packed}]"
        return f"{self.name}({int(self.code)}): {self.message}"


class NotAuthorized(LedgerError):
    code = ErrorCode.NOT_AUTHORIZED
    default_message = "caller is not the admin"


class InsufficientBalance(LedgerError):
    code = ErrorCode.INSUFFICIENT_BALANCE
    default_message = "insufficient balance"


class InsufficientStake(LedgerError):
    code = ErrorCode.INSUFFICIENT_STAKE
    default_message = "insufficient stake"


class SupplyCeilingExceeded(LedgerError):
    code = ErrorCode.SUPPLY_CEILING_EXCEEDED
    default_message = "supply ceiling exceeded"


class Paused(LedgerError):
    code = ErrorCode.PAUSED
    default_message = "ledger is paused"


class ZeroAddress(LedgerError):
    code = ErrorCode.ZERO_ADDRESS
    default_message = "null identity not allowed"


class InvalidAmount(LedgerError):
    code = ErrorCode.INVALID_AMOUNT
    default_message = "amount must be greater than zero"


class InsufficientAllowance(LedgerError):
    code = ErrorCode.INSUFFICIENT_ALLOWANCE
    default_message = "insufficient allowance"


class SelfApproval(LedgerError):
    code = ErrorCode.SELF_APPROVAL
    default_message = "owner cannot approve itself"


_BY_CODE: Dict[ErrorCode, Type[LedgerError]] = {
    cls.code: cls
    for cls in (
        NotAuthorized,
        InsufficientBalance,
        InsufficientStake,
        SupplyCeilingExceeded,
        Paused,
        ZeroAddress,
        InvalidAmount,
        InsufficientAllowance,
        SelfApproval,
    )
}


def error_for(code: Union[int, str, ErrorCode]) -> Type[LedgerError]:
    """Return the exception class for a code (int, symbol or enum member)."""
    return _BY_CODE[ErrorCode.parse(code)]


class InvariantViolation(Exception):
    """
    Ledger state breaks a bookkeeping invariant (supply conservation, ceiling,
    non-negativity). Never produced by a valid operation sequence; raised when
    loading a corrupted snapshot or by consistency checks.
    """

    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message
        self.details = dict(details or {})
        super().__init__(message)


# ---------------------------------------------------------------------------
# Result values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": True, "value": self.value}


@dataclass(frozen=True)
class Err:
    code: ErrorCode
    message: str = field(default="", compare=False)
    details: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def ok(self) -> bool:
        return False

    @property
    def name(self) -> str:
        return self.code.symbol

    def unwrap(self) -> Any:
        raise error_for(self.code)(self.message, details=self.details)

    def to_dict(self) -> Dict[str, Any]:
        err: Dict[str, Any] = {"code": int(self.code), "name": self.name, "message": self.message}
        if self.details:
            err["details"] = dict(self.details)
        return {"ok": False, "error": err}

    @classmethod
    def from_exc(cls, exc: LedgerError) -> "Err":
        return cls(code=exc.code, message=exc.message, details=dict(exc.details))


Result = Union[Ok[T], Err]


__all__ = [
    "ErrorCode",
    "LedgerError",
    "NotAuthorized",
    "InsufficientBalance",
    "InsufficientStake",
    "SupplyCeilingExceeded",
    "Paused",
    "ZeroAddress",
    "InvalidAmount",
    "InsufficientAllowance",
    "SelfApproval",
    "InvariantViolation",
    "Ok",
    "Err",
    "Result",
    "error_for",
]
