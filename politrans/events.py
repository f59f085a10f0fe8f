"""
politrans.events — ledger event records and pluggable sinks.

Every committed mutating operation appends exactly one `LedgerEvent`; a
rejected operation appends nothing. Three sinks ship with the package:

- InMemoryEventSink: test/dev friendly; keeps all events in RAM.
- JsonlEventSink: append-only JSONL file; durable and simple to operate.
- NullEventSink: no-op sink for setups that ignore events.

Ordering: `seq` strictly increases in commit order. The ledger assigns it
while holding its lock, so sink implementations need no ordering logic of
their own. The ledger appends an event before persisting the state; if
persisting fails it calls `retract()` with that same event, which is always
the most recent append.
"""

from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple, runtime_checkable

# Event kinds
TRANSFER = "Transfer"
APPROVAL = "Approval"
STAKE = "Stake"
UNSTAKE = "Unstake"
PAUSE_CHANGED = "PauseChanged"
CAMPAIGN_GOAL_CHANGED = "CampaignGoalChanged"
ADMIN_CHANGED = "AdminChanged"

EVENT_KINDS = (
    TRANSFER,
    APPROVAL,
    STAKE,
    UNSTAKE,
    PAUSE_CHANGED,
    CAMPAIGN_GOAL_CHANGED,
    ADMIN_CHANGED,
)


@dataclass(frozen=True)
class LedgerEvent:
    """
    A committed state change.

    Fields
    ------
    seq : int
        1-based commit sequence number.
    kind : str
        One of EVENT_KINDS.
    caller : str
        Identity that invoked the operation.
    op : str
        Ledger operation name (``mint``, ``transfer_from``, ...).
    fields : dict
        Kind-specific payload. Transfer uses ``sender``/``recipient``/``amount``
        with ``sender=None`` for mints and ``recipient=None`` for burns.
    """

    seq: int
    kind: str
    caller: str
    op: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"seq": self.seq, "kind": self.kind, "caller": self.caller, "op": self.op, "fields": dict(self.fields)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LedgerEvent":
        return cls(
            seq=int(d["seq"]),
            kind=str(d["kind"]),
            caller=str(d["caller"]),
            op=str(d["op"]),
            fields=dict(d.get("fields", {})),
        )


@runtime_checkable
class EventSink(Protocol):
    def append(self, event: LedgerEvent) -> None:
        """Record one committed event."""

    def events(self, *, kind: Optional[str] = None, since_seq: int = 0) -> Iterable[LedgerEvent]:
        """Iterate stored events in ascending seq order."""

    def retract(self, event: LedgerEvent) -> None:
        """Drop `event`, the most recent append, after its commit failed."""

    def last_seq(self) -> int:
        """Highest stored seq (0 when empty); the ledger resumes numbering after it."""

    def close(self) -> None:
        """Release resources (files, buffers)."""


class InMemoryEventSink:
    def __init__(self) -> None:
        self._items: List[LedgerEvent] = []
        self._lock = threading.Lock()

    def append(self, event: LedgerEvent) -> None:
        with self._lock:
            self._items.append(event)

    def retract(self, event: LedgerEvent) -> None:
        with self._lock:
            if self._items and self._items[-1] == event:
                self._items.pop()

    def events(self, *, kind: Optional[str] = None, since_seq: int = 0) -> List[LedgerEvent]:
        with self._lock:
            return [e for e in self._items if e.seq > since_seq and (kind is None or e.kind == kind)]

    def last_seq(self) -> int:
        with self._lock:
            return self._items[-1].seq if self._items else 0

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def close(self) -> None:
        return None

    def __len__(self) -> int:
        return len(self._items)


class NullEventSink:
    def append(self, event: LedgerEvent) -> None:
        return None

    def retract(self, event: LedgerEvent) -> None:
        return None

    def events(self, *, kind: Optional[str] = None, since_seq: int = 0) -> List[LedgerEvent]:
        return []

    def last_seq(self) -> int:
        return 0

    def close(self) -> None:
        return None


class JsonlEventSink:
    """
    Append-only JSON-lines file. Each `append` writes and flushes one line;
    `fsync=True` additionally syncs to disk per event. `retract` truncates the
    file back to where the last line started.
    """

    def __init__(self, path: os.PathLike[str] | str, *, fsync: bool = False) -> None:
        self._path = Path(path).expanduser()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._fsync = fsync
        self._lock = threading.Lock()
        self._fh = open(self._path, "ab")
        self._last: Optional[Tuple[int, int]] = None  # (seq, offset where its line starts)

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: LedgerEvent) -> None:
        line = json.dumps(event.to_dict(), sort_keys=True, separators=(",", ":"))
        with self._lock:
            offset = self._fh.seek(0, os.SEEK_END)
            self._fh.write(line.encode("utf-8") + b"\n")
            self._fh.flush()
            if self._fsync:
                os.fsync(self._fh.fileno())
            self._last = (event.seq, offset)

    def retract(self, event: LedgerEvent) -> None:
        with self._lock:
            if self._last is None or self._last[0] != event.seq:
                return
            self._fh.truncate(self._last[1])
            self._fh.flush()
            self._last = None

    def events(self, *, kind: Optional[str] = None, since_seq: int = 0) -> List[LedgerEvent]:
        out: List[LedgerEvent] = []
        with self._lock:
            self._fh.flush()
            with open(self._path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    ev = LedgerEvent.from_dict(json.loads(line))
                    if ev.seq > since_seq and (kind is None or ev.kind == kind):
                        out.append(ev)
        return out

    def last_seq(self) -> int:
        items = self.events()
        return items[-1].seq if items else 0

    def close(self) -> None:
        with self._lock:
            if not self._fh.closed:
                self._fh.close()


__all__ = [
    "TRANSFER",
    "APPROVAL",
    "STAKE",
    "UNSTAKE",
    "PAUSE_CHANGED",
    "CAMPAIGN_GOAL_CHANGED",
    "ADMIN_CHANGED",
    "EVENT_KINDS",
    "LedgerEvent",
    "EventSink",
    "InMemoryEventSink",
    "NullEventSink",
    "JsonlEventSink",
]
