import json

import pytest

from politrans.errors import InvariantViolation
from politrans.events import InMemoryEventSink, JsonlEventSink
from politrans.ledger import CampaignToken
from politrans.state import SNAPSHOT_VERSION, LedgerState
from politrans.store import SnapshotStore
from politrans.types import ZERO_ADDRESS

from .conftest import ADMIN, ALICE, BOB, CAROL


def test_genesis_validation():
    with pytest.raises(ValueError):
        LedgerState.genesis(ZERO_ADDRESS, 10)
    with pytest.raises(ValueError):
        LedgerState.genesis("", 10)
    with pytest.raises(ValueError):
        LedgerState.genesis(ADMIN, -1)


def test_default_zero_lookups_do_not_materialize():
    st = LedgerState.genesis(ADMIN, 10)
    assert st.balance_of(ALICE) == 0
    assert st.staked_of(ALICE) == 0
    assert st.allowance(ALICE, BOB) == 0
    assert st.balances == {} and st.staked == {} and st.allowances == {}


def test_dump_omits_zero_entries(funded):
    funded.transfer(BOB, ALICE, 500).unwrap()
    funded.approve(ALICE, CAROL, 0).unwrap()
    funded.approve(ALICE, BOB, 7).unwrap()
    funded.stake(ALICE, 100).unwrap()
    d = funded.snapshot()
    assert d["version"] == SNAPSHOT_VERSION
    assert d["balances"] == {ALICE: 1_400}
    assert d["staked"] == {ALICE: 100}
    assert d["allowances"] == [{"owner": ALICE, "spender": BOB, "amount": 7}]
    assert d["total_supply"] == 1_500


def test_load_round_trips_dump(funded):
    funded.stake(BOB, 200).unwrap()
    funded.approve(ALICE, BOB, 33).unwrap()
    restored = LedgerState.load(json.loads(json.dumps(funded.snapshot())))
    assert restored.dump() == funded.snapshot()
    assert restored.allowance(ALICE, BOB) == 33


@pytest.mark.parametrize(
    "patch",
    [
        {"total_supply": 999},
        {"balances": {ALICE: -1}},
        {"campaign_goal": 10},
        {"admin": ZERO_ADDRESS},
        {"version": 99},
    ],
)
def test_load_rejects_inconsistent_snapshots(funded, patch):
    d = funded.snapshot()
    d.update(patch)
    with pytest.raises(InvariantViolation):
        LedgerState.load(d)


def test_load_rejects_malformed_snapshot():
    with pytest.raises(InvariantViolation):
        LedgerState.load({"version": 1})
    with pytest.raises(InvariantViolation):
        LedgerState.load({"admin": ADMIN, "campaign_goal": "lots"})


def test_copy_is_independent(funded):
    c = funded.state_copy()
    c.balances[ALICE] = 0
    assert funded.balance_of(ALICE) == 1_000


def test_store_save_and_load(tmp_path, funded):
    store = SnapshotStore(tmp_path / "nested" / "ledger.json")
    assert not store.exists()
    store.save(funded.state_copy())
    assert store.exists()
    assert store.load().dump() == funded.snapshot()
    # no temp file left behind
    assert [p.name for p in store.path.parent.iterdir()] == ["ledger.json"]


def test_store_rejects_garbage(tmp_path):
    p = tmp_path / "ledger.json"
    p.write_text("{not json", encoding="utf-8")
    with pytest.raises(InvariantViolation):
        SnapshotStore(p).load()
    p.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(InvariantViolation):
        SnapshotStore(p).load()


def test_load_or_genesis(tmp_path):
    store = SnapshotStore(tmp_path / "ledger.json")
    st = store.load_or_genesis(ADMIN, 1_000)
    assert st.admin == ADMIN and st.campaign_goal == 1_000
    assert not store.exists()


def test_commit_hook_persists_every_success(tmp_path):
    store = SnapshotStore(tmp_path / "ledger.json")
    token = CampaignToken(LedgerState.genesis(ADMIN, 10_000), on_commit=store.save)
    token.mint(ADMIN, ALICE, 100).unwrap()
    assert store.load().balance_of(ALICE) == 100
    # rejected operations do not write
    token.transfer(ALICE, BOB, 1_000)
    assert store.load().balance_of(BOB) == 0
    token.transfer(ALICE, BOB, 40).unwrap()
    assert store.load().balance_of(BOB) == 40


def test_failing_commit_hook_reverts_the_operation():
    calls = []

    def hook(state):
        calls.append(state.total_supply)
        raise OSError("disk full")

    token = CampaignToken(LedgerState.genesis(ADMIN, 10_000), on_commit=hook)
    with pytest.raises(OSError):
        token.mint(ADMIN, ALICE, 100)
    assert calls == [100]
    assert token.total_supply() == 0
    assert token.balance_of(ALICE) == 0
    assert token.events() == []


class _BrokenSink(InMemoryEventSink):
    def __init__(self):
        super().__init__()
        self.fail = False

    def append(self, event):
        if self.fail:
            raise OSError("events volume unavailable")
        super().append(event)


def test_failing_event_sink_leaves_snapshot_untouched(tmp_path):
    store = SnapshotStore(tmp_path / "ledger.json")
    sink = _BrokenSink()
    token = CampaignToken(LedgerState.genesis(ADMIN, 10_000), event_sink=sink, on_commit=store.save)
    token.mint(ADMIN, ALICE, 100).unwrap()

    sink.fail = True
    with pytest.raises(OSError):
        token.mint(ADMIN, ALICE, 50)
    assert token.total_supply() == 100
    assert store.load().total_supply == 100

    sink.fail = False
    token.mint(ADMIN, ALICE, 1).unwrap()
    assert [e.seq for e in token.events()] == [1, 2]
    assert store.load().total_supply == 101


def test_failing_save_retracts_the_jsonl_event(tmp_path):
    store = SnapshotStore(tmp_path / "ledger.json")
    sink = JsonlEventSink(tmp_path / "events.jsonl")
    fail = []

    def save(state):
        if fail:
            raise OSError("disk full")
        store.save(state)

    token = CampaignToken(LedgerState.genesis(ADMIN, 10_000), event_sink=sink, on_commit=save)
    token.mint(ADMIN, ALICE, 100).unwrap()
    fail.append(True)
    with pytest.raises(OSError):
        token.transfer(ALICE, BOB, 10)
    fail.clear()
    token.transfer(ALICE, CAROL, 5).unwrap()
    sink.close()

    lines = (tmp_path / "events.jsonl").read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["seq"] for line in lines] == [1, 2]
    assert json.loads(lines[1])["fields"]["recipient"] == CAROL
    assert store.load().balance_of(BOB) == 0


def test_load_rejects_bad_version_and_encoding(tmp_path):
    with pytest.raises(InvariantViolation):
        LedgerState.load({"version": "x", "admin": ADMIN, "campaign_goal": 1})
    with pytest.raises(InvariantViolation):
        LedgerState.load({"version": None, "admin": ADMIN, "campaign_goal": 1})
    p = tmp_path / "ledger.json"
    p.write_bytes(b"\xff\xfe\x00{}")
    with pytest.raises(InvariantViolation):
        SnapshotStore(p).load()
