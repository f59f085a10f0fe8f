"""
politrans.store — durable JSON snapshots of the ledger state.

A single JSON file holds the whole `LedgerState.dump()`. Writes go to a
sibling temp file which is fsync'ed and atomically renamed over the target,
so a crash leaves either the old or the new snapshot, never a torn one.

Wiring with the ledger (save after every committed operation):

    store = SnapshotStore("campaign.json")
    with store.locked():
        state = store.load() if store.exists() else LedgerState.genesis(admin, goal)
        token = CampaignToken(state, on_commit=store.save)
        token.transfer(alice, bob, 10)

Several processes may share one snapshot file. Each must hold `locked()`
from `load()` until its last `save()`; the lock is an exclusive POSIX
`flock` on a sibling ``.<name>.lock`` file, so load/operate/save cycles are
linearized across processes.

`load()` re-checks the bookkeeping invariants and refuses inconsistent files.
"""

from __future__ import annotations

import fcntl
import json
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from .errors import InvariantViolation
from .logging import get_logger
from .state import LedgerState

log = get_logger(__name__)

_LOCK_POLL_S = 0.05


class StoreLocked(RuntimeError):
    """Another process held the snapshot lock for longer than the timeout."""


def _atomic_write(path: Path, data: bytes) -> None:
    tmp = path.with_name("." + path.name + ".tmp")
    with open(tmp, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)  # atomic on POSIX


class SnapshotStore:
    """Persist the ledger state in a single JSON file (atomic writes)."""

    def __init__(self, path: Union[str, os.PathLike[str]]) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock_path(self) -> Path:
        return self._path.with_name("." + self._path.name + ".lock")

    def exists(self) -> bool:
        return self._path.is_file()

    @contextmanager
    def locked(self, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold the exclusive snapshot lock for the block. ``timeout=None`` waits
        forever; otherwise `StoreLocked` is raised once `timeout` seconds pass.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.lock_path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            if timeout is None:
                fcntl.flock(fd, fcntl.LOCK_EX)
            else:
                deadline = time.monotonic() + timeout
                while True:
                    try:
                        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                        break
                    except BlockingIOError:
                        if time.monotonic() >= deadline:
                            raise StoreLocked(f"{self._path} is locked by another process") from None
                        time.sleep(_LOCK_POLL_S)
            try:
                yield
            finally:
                fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    def load(self) -> LedgerState:
        try:
            raw = self._path.read_text(encoding="utf-8")
            data = json.loads(raw)
        except UnicodeDecodeError as e:
            raise InvariantViolation(f"snapshot {self._path} is not UTF-8 text: {e}") from e
        except json.JSONDecodeError as e:
            raise InvariantViolation(f"snapshot {self._path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise InvariantViolation(f"snapshot {self._path} must hold a JSON object")
        state = LedgerState.load(data)
        log.debug("snapshot loaded", extra={"path": str(self._path), "total_supply": state.total_supply})
        return state

    def save(self, state: LedgerState) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        blob = json.dumps(state.dump(), indent=2, sort_keys=True).encode("utf-8") + b"\n"
        _atomic_write(self._path, blob)
        log.debug("snapshot saved", extra={"path": str(self._path), "bytes": len(blob)})

    def load_or_genesis(self, admin: str, campaign_goal: int) -> LedgerState:
        if self.exists():
            return self.load()
        log.info("no snapshot found; starting from genesis", extra={"path": str(self._path)})
        return LedgerState.genesis(admin, campaign_goal)


__all__ = ["SnapshotStore", "StoreLocked"]
