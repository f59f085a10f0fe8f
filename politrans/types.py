# -*- coding: utf-8 -*-
"""
politrans.types
===============

Identity and amount conventions shared by the ledger, its state container and
the host surfaces.

Identities
----------
An identity is an opaque principal string (Stacks-style ``ST…``/``SP…`` in
practice). The ledger only compares identities for equality; it never parses
them. One value is reserved as the *null identity*:

  - ``ZERO_ADDRESS`` (the testnet burn principal), and
  - any empty / whitespace-only string.

Amounts
-------
Amounts are Python ``int`` values of unbounded precision. Arithmetic never
wraps; subtraction is always preceded by an explicit sufficiency check in the
ledger. ``bool`` is rejected even though it subclasses ``int``.
"""

from __future__ import annotations

from typing import Any, Final, Tuple

Identity = str
Amount = int
AllowanceKey = Tuple[Identity, Identity]

ZERO_ADDRESS: Final[Identity] = "ST000000000000000000002AMW42H"


def is_zero_address(identity: Any) -> bool:
    """True for the reserved null identity (or an empty principal)."""
    if identity is None:
        return True
    if not isinstance(identity, str):
        return False
    s = identity.strip()
    return s == "" or s == ZERO_ADDRESS


def require_identity(identity: Any, name: str = "identity") -> Identity:
    """
    Ensure `identity` is a string principal. Programming errors (wrong type)
    raise TypeError; null-ness is a ledger condition and is checked by the
    operations that care about it.
    """
    if not isinstance(identity, str):
        raise TypeError(f"{name} must be str, got {type(identity).__name__}")
    return identity


def require_int(n: Any, name: str = "amount") -> int:
    if isinstance(n, bool) or not isinstance(n, int):
        raise TypeError(f"{name} must be int, got {type(n).__name__}")
    return n


def require_bool(flag: Any, name: str = "flag") -> bool:
    if not isinstance(flag, bool):
        raise TypeError(f"{name} must be bool, got {type(flag).__name__}")
    return flag


def is_printable_ascii(s: str) -> bool:
    return all(0x20 <= ord(ch) <= 0x7E for ch in s)


__all__ = [
    "Identity",
    "Amount",
    "AllowanceKey",
    "ZERO_ADDRESS",
    "is_zero_address",
    "require_identity",
    "require_int",
    "require_bool",
    "is_printable_ascii",
]
