from __future__ import annotations

"""
politrans.cli
-------------

Operator CLI for a campaign token ledger kept in a JSON snapshot file.

Every mutating command locks the snapshot, loads it, runs exactly one ledger
operation as ``--caller`` and, when it commits, writes the snapshot back
atomically before releasing the lock, so concurrent invocations serialize.
Output is JSON on stdout. A rejected operation prints the error dict and
exits with status 1; usage/config problems exit with status 2.

Examples
--------
# Create a ledger owned by the deploying identity
politrans --state campaign.json init --admin ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM --goal 100000000

# Mint, transfer, inspect
export POLITRANS_STATE_PATH=campaign.json
politrans --caller ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM mint ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG 1000
politrans --caller ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG transfer ST2JHG361ZXG51QTKY2NQCVBPPRRE2KZB1HR05NNC 250
politrans balance ST2JHG361ZXG51QTKY2NQCVBPPRRE2KZB1HR05NNC

# Serve the same ledger over HTTP
politrans serve --port 8600
"""

import json
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import typer

from . import logging as plog
from .config import LedgerConfig, load_config, summary
from .errors import InvariantViolation, Result
from .events import EventSink, JsonlEventSink, NullEventSink
from .ledger import CampaignToken
from .state import LedgerState
from .store import SnapshotStore, StoreLocked
from .types import is_zero_address
from .version import __version__

app = typer.Typer(
    name="politrans",
    add_completion=False,
    no_args_is_help=True,
    help="Campaign token ledger: admin, supply, transfers, allowances and staking.",
)

log = plog.get_logger(__name__)

DEFAULT_STATE_FILE = "politrans-state.json"
LOCK_TIMEOUT_S = 10.0


@dataclass
class CliContext:
    config: LedgerConfig
    state_path: Path
    caller: Optional[str] = None


# -------------------- utils --------------------


def _emit(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, sort_keys=True))


def _fail(message: str, code: int = 2) -> None:
    typer.echo(f"error: {message}", err=True)
    raise typer.Exit(code)


def _ctx(ctx: typer.Context) -> CliContext:
    obj = ctx.obj
    if not isinstance(obj, CliContext):
        _fail("internal: CLI context not initialized")
    return obj


def _event_sink(cfg: LedgerConfig) -> EventSink:
    if cfg.events_path is not None:
        return JsonlEventSink(cfg.events_path)
    return NullEventSink()


@contextmanager
def _locked(store: SnapshotStore) -> Iterator[None]:
    try:
        with store.locked(timeout=LOCK_TIMEOUT_S):
            yield
    except StoreLocked as e:
        _fail(str(e))


@contextmanager
def _session(c: CliContext) -> Iterator[CampaignToken]:
    """Load the snapshot under its lock; the lock is held until the block ends."""
    store = SnapshotStore(c.state_path)
    with _locked(store):
        if not store.exists():
            _fail(f"no ledger at {store.path}; run `politrans init` first")
        try:
            state = store.load()
        except InvariantViolation as e:
            _fail(str(e))
        sink = _event_sink(c.config)
        try:
            yield CampaignToken.from_config(c.config, state=state, event_sink=sink, on_commit=store.save)
        finally:
            sink.close()


def _caller(c: CliContext) -> str:
    if c.caller is None or is_zero_address(c.caller):
        _fail("--caller (or POLITRANS_CALLER) is required for this command")
    return c.caller.strip()


def _report(op: str, result: Result) -> None:
    payload: Dict[str, Any] = {"op": op, **result.to_dict()}
    _emit(payload)
    if not result.ok:
        log.info("operation rejected", extra={"op": op, "code": result.name})
        raise typer.Exit(1)
    log.info("operation committed", extra={"op": op})


def _run(ctx: typer.Context, op: str, *args: Any) -> None:
    c = _ctx(ctx)
    caller = _caller(c)
    with _session(c) as token:
        plog.bind(caller=caller, op=op)
        result = getattr(token, op)(caller, *args)
    _report(op, result)


# -------------------- global options --------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    state: Optional[Path] = typer.Option(
        None,
        "--state",
        help=f"Ledger snapshot file (default: {DEFAULT_STATE_FILE}).",
        envvar="POLITRANS_STATE_PATH",
    ),
    caller: Optional[str] = typer.Option(
        None,
        "--caller",
        help="Identity executing mutating commands.",
        envvar="POLITRANS_CALLER",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override POLITRANS_LOG_LEVEL."),
) -> None:
    """
    Campaign token ledger CLI.

    Configuration comes from POLITRANS_* environment variables; --state and
    --caller override them for one invocation.
    """
    overrides: Dict[str, Any] = {}
    if state is not None:
        overrides["state_path"] = state
    if log_level:
        overrides["log_level"] = log_level
    try:
        cfg = load_config(overrides=overrides)
    except ValueError as e:
        _fail(f"invalid configuration: {e}")
    plog.configure_from_config(cfg)
    ctx.obj = CliContext(
        config=cfg,
        state_path=cfg.state_path or Path(DEFAULT_STATE_FILE),
        caller=caller,
    )


# -------------------- setup & inspection --------------------


@app.command("init")
def init_cmd(
    ctx: typer.Context,
    admin: Optional[str] = typer.Option(None, "--admin", help="Initial admin (default: POLITRANS_ADMIN)."),
    goal: Optional[int] = typer.Option(None, "--goal", min=0, help="Campaign goal / supply ceiling."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing snapshot."),
) -> None:
    """Create a fresh ledger snapshot."""
    c = _ctx(ctx)
    store = SnapshotStore(c.state_path)
    who = (admin or c.config.admin).strip()
    try:
        state = LedgerState.genesis(who, c.config.campaign_goal if goal is None else goal)
    except ValueError as e:
        _fail(str(e))
    with _locked(store):
        if store.exists() and not force:
            _fail(f"{store.path} already exists (use --force to overwrite)")
        store.save(state)
    log.info("ledger initialized", extra={"path": str(store.path), "admin": who})
    _emit({"path": str(store.path), "admin": state.admin, "campaign_goal": state.campaign_goal})


@app.command("info")
def info_cmd(ctx: typer.Context) -> None:
    """Token metadata and global scalars."""
    with _session(_ctx(ctx)) as token:
        info = token.info()
    _emit(info)


@app.command("balance")
def balance_cmd(ctx: typer.Context, identity: str = typer.Argument(..., help="Identity to inspect.")) -> None:
    """Free and staked balance of an identity."""
    with _session(_ctx(ctx)) as token:
        out = {"identity": identity, "balance": token.balance_of(identity), "staked": token.staked_of(identity)}
    _emit(out)


@app.command("allowance")
def allowance_cmd(ctx: typer.Context, owner: str, spender: str) -> None:
    """Remaining allowance granted by OWNER to SPENDER."""
    with _session(_ctx(ctx)) as token:
        remaining = token.allowance(owner, spender)
    _emit({"owner": owner, "spender": spender, "allowance": remaining})


@app.command("events")
def events_cmd(
    ctx: typer.Context,
    kind: Optional[str] = typer.Option(None, "--kind", help="Only this event kind (e.g. Transfer)."),
    since: int = typer.Option(0, "--since", min=0, help="Only events with seq > SINCE."),
) -> None:
    """Print events recorded in POLITRANS_EVENTS_PATH."""
    c = _ctx(ctx)
    if c.config.events_path is None:
        _fail("POLITRANS_EVENTS_PATH is not set")
    sink = JsonlEventSink(c.config.events_path)
    try:
        items = sink.events(kind=kind, since_seq=since)
    finally:
        sink.close()
    _emit([e.to_dict() for e in items])


@app.command("config")
def config_cmd(ctx: typer.Context) -> None:
    """Show the effective configuration."""
    c = _ctx(ctx)
    typer.echo(summary(c.config))


@app.command("version")
def version_cmd() -> None:
    typer.echo(__version__)


# -------------------- admin governance --------------------


@app.command("mint")
def mint_cmd(ctx: typer.Context, recipient: str, amount: int) -> None:
    """Mint AMOUNT to RECIPIENT (admin only, bounded by the campaign goal)."""
    _run(ctx, "mint", recipient, amount)


@app.command("pause")
def pause_cmd(ctx: typer.Context) -> None:
    """Freeze participant operations (admin only)."""
    _run(ctx, "set_paused", True)


@app.command("unpause")
def unpause_cmd(ctx: typer.Context) -> None:
    """Resume participant operations (admin only)."""
    _run(ctx, "set_paused", False)


@app.command("set-goal")
def set_goal_cmd(ctx: typer.Context, goal: int) -> None:
    """Replace the campaign goal; must not drop below the current supply."""
    _run(ctx, "set_campaign_goal", goal)


@app.command("transfer-admin")
def transfer_admin_cmd(ctx: typer.Context, new_admin: str) -> None:
    """Hand the admin role to NEW_ADMIN."""
    _run(ctx, "transfer_admin", new_admin)


# -------------------- holder operations --------------------


@app.command("burn")
def burn_cmd(ctx: typer.Context, amount: int) -> None:
    _run(ctx, "burn", amount)


@app.command("transfer")
def transfer_cmd(ctx: typer.Context, recipient: str, amount: int) -> None:
    _run(ctx, "transfer", recipient, amount)


@app.command("approve")
def approve_cmd(ctx: typer.Context, spender: str, amount: int) -> None:
    """Set SPENDER's allowance to exactly AMOUNT (0 revokes)."""
    _run(ctx, "approve", spender, amount)


@app.command("increase-allowance")
def increase_allowance_cmd(ctx: typer.Context, spender: str, delta: int) -> None:
    _run(ctx, "increase_allowance", spender, delta)


@app.command("decrease-allowance")
def decrease_allowance_cmd(ctx: typer.Context, spender: str, delta: int) -> None:
    _run(ctx, "decrease_allowance", spender, delta)


@app.command("transfer-from")
def transfer_from_cmd(ctx: typer.Context, owner: str, recipient: str, amount: int) -> None:
    """Spend OWNER's allowance granted to --caller."""
    _run(ctx, "transfer_from", owner, recipient, amount)


@app.command("stake")
def stake_cmd(ctx: typer.Context, amount: int) -> None:
    _run(ctx, "stake", amount)


@app.command("unstake")
def unstake_cmd(ctx: typer.Context, amount: int) -> None:
    _run(ctx, "unstake", amount)


# -------------------- HTTP host --------------------


@app.command("serve")
def serve_cmd(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8600, "--port"),
) -> None:
    """
    Serve the ledger over REST + JSON-RPC (FastAPI/uvicorn).

    The server holds the snapshot lock while it runs; other commands on the
    same file exit with status 2 until it stops.
    """
    from .rpc.methods import TokenService
    from .rpc.mount import create_app

    c = _ctx(ctx)
    # Lazy import so the CLI works without uvicorn for non-serving commands
    import uvicorn

    with _session(c) as token:
        app_ = create_app(TokenService(token))
        log.info("serving ledger", extra={"host": host, "port": port, "path": str(c.state_path)})
        uvicorn.run(app_, host=host, port=port, log_level=c.config.log_level.lower(), workers=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
