"""
politrans.logging
-----------------

Stdlib logging for the ledger and its hosts, with two output shapes:

- JSON lines (one object per record) for services and log shippers
- a compact console line for humans, colored on a TTY

Context such as ``trace_id``, ``caller`` and ``op`` lives in a `ContextVar`
and is merged into every record, so a request handler binds it once and all
nested log calls carry it:

    from politrans import logging as plog

    plog.configure(json=False, level="INFO")
    log = plog.get_logger(__name__)

    with plog.trace_scope():
        plog.bind(caller=caller, op="transfer")
        log.info("operation committed", extra={"amount": 10})

The HTTP host opens one `trace_scope()` per request. The CLI picks the format
from POLITRANS_LOG_FORMAT (text by default).
"""

from __future__ import annotations

import datetime as _dt
import json as _json
import logging
import os
import secrets
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional

ROOT_LOGGER = "politrans"

_CTX: ContextVar[Mapping[str, Any]] = ContextVar("politrans_log_ctx", default={})

# Shown first, in this order, on console lines.
CONSOLE_KEYS = ("trace_id", "component", "caller", "op")

# Attributes every LogRecord has; anything else on a record came from `extra=`.
_STD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


def context() -> Dict[str, Any]:
    return dict(_CTX.get())


def bind(**fields: Any) -> None:
    _CTX.set({**_CTX.get(), **{k: _jsonable(v) for k, v in fields.items()}})


def unbind(*keys: str) -> None:
    _CTX.set({k: v for k, v in _CTX.get().items() if k not in keys})


def clear_context() -> None:
    _CTX.set({})


def new_trace_id() -> str:
    return secrets.token_hex(6)


@contextmanager
def trace_scope(trace_id: Optional[str] = None) -> Iterator[str]:
    """Bind a trace id for the block; the previous context is restored on exit."""
    token = _CTX.set({**_CTX.get(), "trace_id": trace_id or new_trace_id()})
    try:
        yield _CTX.get()["trace_id"]
    finally:
        _CTX.reset(token)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _jsonable(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    if isinstance(v, dict):
        return {str(k): _jsonable(x) for k, x in v.items()}
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).hex()
    if isinstance(v, Path):
        return str(v)
    if is_dataclass(v) and not isinstance(v, type):
        return _jsonable(asdict(v))
    return str(v)


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: _jsonable(v) for k, v in vars(record).items() if k not in _STD_ATTRS and not k.startswith("_")}


def _timestamp(record: logging.LogRecord) -> str:
    ts = _dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc)
    return ts.isoformat(timespec="milliseconds")


class JSONFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, msg, context, extras."""

    def format(self, record: logging.LogRecord) -> str:
        out: Dict[str, Any] = {
            "ts": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        out.update(context())
        for k, v in _extra_fields(record).items():
            out.setdefault(k, v)
        if record.exc_info:
            out["exc"] = self.formatException(record.exc_info)
        return _json.dumps(out, default=str, separators=(",", ":"))


_COLORS = {
    logging.DEBUG: "\x1b[90m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[1;35m",
}
_RESET = "\x1b[0m"


class TextFormatter(logging.Formatter):
    """
    Console line:
      12:34:56.789 INFO    politrans.cli trace_id=3f9a0c caller=ST1… op=mint | operation committed
    """

    def __init__(self, color: bool = False) -> None:
        super().__init__()
        self._color = color

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        pairs = [(k, ctx[k]) for k in CONSOLE_KEYS if ctx.get(k) is not None]
        pairs += [(k, v) for k, v in _extra_fields(record).items() if k not in ctx]
        level = f"{record.levelname:<7}"
        if self._color:
            level = f"{_COLORS.get(record.levelno, '')}{level}{_RESET}"
        head = f"{_timestamp(record)[11:23]} {level} {record.name}"
        if pairs:
            head += " " + " ".join(f"{k}={v}" for k, v in pairs)
        line = f"{head} | {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def _is_tty(stream: Any) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty()) and "NO_COLOR" not in os.environ


def _want_json(flag: Optional[bool], stream: Any) -> bool:
    if flag is not None:
        return flag
    fmt = os.environ.get("POLITRANS_LOG_FORMAT", "").strip().lower()
    if fmt in ("json", "text"):
        return fmt == "json"
    return not _is_tty(stream)


def configure(
    *,
    json: Optional[bool] = None,
    level: str | int = "INFO",
    stream: Any = None,
    file_path: Optional[Path | str] = None,
) -> None:
    """
    (Re)configure the ``politrans`` logger tree. Existing handlers are
    replaced, so calling this twice is safe.

    json=None decides from POLITRANS_LOG_FORMAT, falling back to JSON when
    `stream` is not a TTY. `file_path` adds a JSON file handler.
    """
    stream = sys.stderr if stream is None else stream
    lvl = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    if not isinstance(lvl, int):
        lvl = logging.INFO

    logger = logging.getLogger(ROOT_LOGGER)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        if isinstance(h, logging.FileHandler):
            h.close()
    logger.setLevel(lvl)
    logger.propagate = False

    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter() if _want_json(json, stream) else TextFormatter(color=_is_tty(stream)))
    logger.addHandler(handler)

    if file_path:
        path = Path(file_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setFormatter(JSONFormatter())
        logger.addHandler(fh)

    # uvicorn access lines stay quiet unless debugging
    logging.getLogger("uvicorn.access").setLevel(max(lvl, logging.WARNING))


def configure_from_config(cfg: Any) -> None:
    """Configure from a `politrans.config.LedgerConfig`."""
    configure(json=(cfg.log_format == "json"), level=cfg.log_level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or ROOT_LOGGER)


__all__ = [
    "configure",
    "configure_from_config",
    "get_logger",
    "context",
    "bind",
    "unbind",
    "clear_context",
    "trace_scope",
    "new_trace_id",
    "JSONFormatter",
    "TextFormatter",
]
