"""
PoliTrans - campaign token ledger.

A single-asset custody ledger for a political-campaign token: admin-gated
minting under an adjustable campaign ceiling, holder transfers and burns,
delegated allowances, a staked pool and a global pause switch. Every
mutating operation returns ``Ok(value)`` or ``Err(code)``.

Core surface (eagerly imported):
- CampaignToken, LedgerState
- ErrorCode, Ok, Err, LedgerError
- TokenMetadata, LedgerConfig, load_config

Host surfaces (lazily loaded):
- store, rpc, cli
"""

from __future__ import annotations

import importlib
from typing import List

from .config import LedgerConfig, TokenMetadata, load_config
from .errors import Err, ErrorCode, LedgerError, Ok
from .ledger import CampaignToken
from .state import LedgerState
from .version import __version__

__all__: List[str] = [
    "__version__",
    "CampaignToken",
    "LedgerState",
    "ErrorCode",
    "LedgerError",
    "Ok",
    "Err",
    "TokenMetadata",
    "LedgerConfig",
    "load_config",
    # lazily importable modules
    "store",
    "rpc",
    "cli",
]

# --- Lazy module loader (PEP 562) ----------------------------------------------
# Keeps `import politrans` free of the FastAPI/Typer import cost.
_lazy_modules = {"store", "rpc", "cli"}


def __getattr__(name: str):
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules)
