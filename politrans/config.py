"""
politrans.config — deployment configuration for the campaign token ledger.

This module centralizes knobs for:
  • Genesis parameters (initial admin, campaign ceiling)
  • Token metadata (name, symbol, decimals, metadata URI)
  • Host wiring (snapshot path, event log path, logging level/format)

Configuration may be provided via environment variables. Safe defaults are chosen so a
local developer run works out of the box.

Environment variables (all optional):
  POLITRANS_ADMIN           -> initial admin principal
  POLITRANS_CAMPAIGN_GOAL   -> initial supply ceiling, e.g. "100_000_000" (default: 100000000)
  POLITRANS_TOKEN_NAME      -> token name (default: "PoliTrans Campaign Token")
  POLITRANS_TOKEN_SYMBOL    -> token symbol (default: "PTCT")
  POLITRANS_TOKEN_DECIMALS  -> integer in [0, 38] (default: 6)
  POLITRANS_TOKEN_URI       -> metadata URI (default: unset)
  POLITRANS_STATE_PATH      -> JSON snapshot file used by the CLI / HTTP host
  POLITRANS_EVENTS_PATH     -> JSONL event log (default: in-memory only)
  POLITRANS_LOG_LEVEL       -> DEBUG/INFO/WARNING/... (default: INFO)
  POLITRANS_LOG_FORMAT      -> json|text (default: text)

Programmatic usage:
    from politrans.config import get_config
    cfg = get_config()
    token = CampaignToken(LedgerState.genesis(cfg.admin, cfg.campaign_goal), metadata=cfg.metadata)

Note: This module does not perform any I/O beyond reading env vars.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from .types import is_printable_ascii, is_zero_address

# ----------------------------- defaults ------------------------------------

DEFAULT_ADMIN = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
DEFAULT_CAMPAIGN_GOAL = 100_000_000
DEFAULT_NAME = "PoliTrans Campaign Token"
DEFAULT_SYMBOL = "PTCT"
DEFAULT_DECIMALS = 6
MAX_DECIMALS = 38

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}

# ----------------------------- helpers -------------------------------------


def _parse_uint(value: Union[str, int], name: str) -> int:
    """
    Parse a non-negative integer; accepts "100_000_000" and "100,000,000".
    """
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    if isinstance(value, int):
        n = value
    else:
        s = str(value).strip().replace("_", "").replace(",", "")
        if not s.isdigit():
            raise ValueError(f"invalid {name}: {value!r}")
        n = int(s)
    if n < 0:
        raise ValueError(f"{name} must be non-negative")
    return n


def _opt_str(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = value.strip()
    return v or None


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class TokenMetadata:
    name: str = DEFAULT_NAME
    symbol: str = DEFAULT_SYMBOL
    decimals: int = DEFAULT_DECIMALS
    token_uri: Optional[str] = None


@dataclass(frozen=True)
class LedgerConfig:
    admin: str = DEFAULT_ADMIN
    campaign_goal: int = DEFAULT_CAMPAIGN_GOAL
    metadata: TokenMetadata = field(default_factory=TokenMetadata)
    state_path: Optional[Path] = None
    events_path: Optional[Path] = None
    log_level: str = "INFO"
    log_format: str = "text"

    def to_dict(self) -> Dict[str, object]:
        d = asdict(self)
        d["state_path"] = str(self.state_path) if self.state_path else None
        d["events_path"] = str(self.events_path) if self.events_path else None
        return d


# ------------------------------ loader --------------------------------------


def _validate_metadata(m: TokenMetadata) -> TokenMetadata:
    if not (1 <= len(m.name) <= 64) or not is_printable_ascii(m.name):
        raise ValueError("token name must be 1..64 printable ASCII characters")
    if not (1 <= len(m.symbol) <= 11) or not is_printable_ascii(m.symbol) or " " in m.symbol:
        raise ValueError("token symbol must be 1..11 printable ASCII characters without spaces")
    if not (0 <= m.decimals <= MAX_DECIMALS):
        raise ValueError(f"decimals must be in [0, {MAX_DECIMALS}]")
    return m


def validate_config(cfg: LedgerConfig) -> LedgerConfig:
    if is_zero_address(cfg.admin):
        raise ValueError("admin must not be the null identity")
    if cfg.campaign_goal < 0:
        raise ValueError("campaign_goal must be non-negative")
    if cfg.log_level.upper() not in _LOG_LEVELS:
        raise ValueError(f"unknown log level: {cfg.log_level!r}")
    if cfg.log_format not in ("json", "text"):
        raise ValueError("log_format must be 'json' or 'text'")
    _validate_metadata(cfg.metadata)
    return cfg


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, Union[str, int, Path, None]]] = None,
) -> LedgerConfig:
    """
    Build a LedgerConfig from environment and optional overrides.

    Args:
        env: mapping to read variables from (default: os.environ)
        overrides: explicit field overrides (win over env); keys support:
          'admin', 'campaign_goal', 'name', 'symbol', 'decimals', 'token_uri',
          'state_path', 'events_path', 'log_level', 'log_format'
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    def pick(key: str, var: str, default):
        if key in overrides:
            return overrides[key]
        return env.get(var, default)

    metadata = TokenMetadata(
        name=str(pick("name", "POLITRANS_TOKEN_NAME", DEFAULT_NAME)).strip(),
        symbol=str(pick("symbol", "POLITRANS_TOKEN_SYMBOL", DEFAULT_SYMBOL)).strip(),
        decimals=_parse_uint(pick("decimals", "POLITRANS_TOKEN_DECIMALS", DEFAULT_DECIMALS), "decimals"),
        token_uri=_opt_str(pick("token_uri", "POLITRANS_TOKEN_URI", None)),  # type: ignore[arg-type]
    )

    raw_state = pick("state_path", "POLITRANS_STATE_PATH", None)
    raw_events = pick("events_path", "POLITRANS_EVENTS_PATH", None)
    state_path = _opt_str(None if raw_state is None else str(raw_state))
    events_path = _opt_str(None if raw_events is None else str(raw_events))

    cfg = LedgerConfig(
        admin=str(pick("admin", "POLITRANS_ADMIN", DEFAULT_ADMIN)).strip(),
        campaign_goal=_parse_uint(
            pick("campaign_goal", "POLITRANS_CAMPAIGN_GOAL", DEFAULT_CAMPAIGN_GOAL), "campaign_goal"
        ),
        metadata=metadata,
        state_path=Path(state_path).expanduser() if state_path else None,
        events_path=Path(events_path).expanduser() if events_path else None,
        log_level=str(pick("log_level", "POLITRANS_LOG_LEVEL", "INFO")).strip().upper(),
        log_format=str(pick("log_format", "POLITRANS_LOG_FORMAT", "text")).strip().lower(),
    )
    return validate_config(cfg)


@lru_cache(maxsize=1)
def get_config() -> LedgerConfig:
    """
    Cached global config. Suitable for application bootstraps and module-level consumers.
    """
    return load_config()


# ----------------------------- pretty-print ---------------------------------


def summary(cfg: Optional[LedgerConfig] = None) -> str:
    """
    Return a human-friendly one-line summary of the most important knobs.
    """
    cfg = cfg or get_config()
    m = cfg.metadata
    return (
        "politrans{"
        f"admin={cfg.admin}, goal={cfg.campaign_goal}, "
        f"token={m.symbol}/{m.decimals}, uri={m.token_uri or '-'}, "
        f"state={cfg.state_path or '-'}, events={cfg.events_path or '-'}, "
        f"log={cfg.log_level}/{cfg.log_format}"
        "}"
    )


__all__ = [
    "DEFAULT_ADMIN",
    "DEFAULT_CAMPAIGN_GOAL",
    "TokenMetadata",
    "LedgerConfig",
    "load_config",
    "validate_config",
    "get_config",
    "summary",
]
