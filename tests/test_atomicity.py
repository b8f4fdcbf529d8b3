from __future__ import annotations

import threading
from typing import Any, List, Optional

import pytest

from curvefund.collaborators.memory import InMemorySettlementAsset
from curvefund.ledger.constants import TOKEN_UNIT
from curvefund.ledger.curve import issued_for_raised
from curvefund.ledger.errors import SettlementTransferFailed
from curvefund.runtime.atomic import atomic_unit
from curvefund.runtime.campaign import CampaignLedger
from curvefund.testing.harness import CAMPAIGN_ID, GOAL, make_harness


def _u(n: int) -> int:
    return n * TOKEN_UNIT


class _CallbackAsset(InMemorySettlementAsset):
    """Settlement ledger that calls back into the campaign while pulling funds."""

    def __init__(self, **kw: Any) -> None:
        super().__init__(**kw)
        self.campaign: Optional[CampaignLedger] = None
        self.seen: List[tuple] = []
        self._armed = True

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        if self._armed and owner == "alice" and self.campaign is not None:
            self._armed = False
            self.seen.append((self.campaign.raised, self.campaign.issued))
            self.campaign.purchase("carol", _u(5_000))
        return super().transfer_from(spender, owner, recipient, amount)


def test_reentrant_purchase_sees_committed_point() -> None:
    asset = _CallbackAsset(asset_id="USD")
    h = make_harness(asset=asset)
    asset.campaign = h.campaign
    h.fund("carol", _u(5_000))

    h.buy("alice", _u(10_000))

    # the nested call observed alice's purchase already booked
    assert asset.seen == [(_u(10_000), issued_for_raised(_u(10_000), GOAL))]

    c = h.campaign
    assert c.raised == _u(15_000)
    assert c.issued == issued_for_raised(_u(15_000), GOAL)
    assert h.token.balance_of("alice") + h.token.balance_of("carol") == c.issued
    assert h.asset.balance_of(CAMPAIGN_ID) == _u(15_000)

    evs = c.events()
    assert [(e["seq"], e["buyer"]) for e in evs] == [(1, "carol"), (2, "alice")]


def test_failing_nested_purchase_unwinds_the_outer_one() -> None:
    asset = _CallbackAsset(asset_id="USD")
    h = make_harness(asset=asset)
    asset.campaign = h.campaign
    # carol never approves the campaign, so the nested pull fails
    h.fund("carol", _u(5_000), approve=False)

    h.fund("alice", _u(10_000))
    with pytest.raises(SettlementTransferFailed):
        h.campaign.purchase("alice", _u(10_000))

    assert h.campaign.raised == 0
    assert h.campaign.issued == 0
    assert h.campaign.events() == []
    assert h.token.total_supply() == 0
    assert h.asset.balance_of("alice") == _u(10_000)
    assert h.asset.balance_of("carol") == _u(5_000)


def test_concurrent_purchases_serialize() -> None:
    h = make_harness()
    buyers = [f"b{i}" for i in range(8)]
    for b in buyers:
        h.fund(b, _u(5_000))

    errors: List[BaseException] = []

    def _run(b: str) -> None:
        try:
            for _ in range(5):
                h.campaign.purchase(b, _u(1_000))
        except BaseException as e:  # pragma: no cover
            errors.append(e)

    threads = [threading.Thread(target=_run, args=(b,)) for b in buyers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    c = h.campaign
    assert c.raised == _u(40_000)
    assert c.issued == issued_for_raised(_u(40_000), GOAL)
    assert sum(h.token.balance_of(b) for b in buyers) == c.issued
    assert [e["seq"] for e in c.events()] == list(range(1, 41))


class _Box:
    def __init__(self, value: int) -> None:
        self.value = value
        self.restored: List[int] = []
        self.committed: List[int] = []

    def checkpoint(self) -> int:
        return self.value

    def restore(self, snap: int) -> None:
        self.restored.append(snap)
        self.value = snap

    def commit(self, snap: int) -> None:
        self.committed.append(snap)


def test_atomic_unit_restores_participants_on_error() -> None:
    a, b = _Box(1), _Box(2)
    plain = object()

    with pytest.raises(RuntimeError):
        with atomic_unit([a, plain, b, a]):
            a.value = 10
            b.value = 20
            raise RuntimeError("boom")

    assert (a.value, b.value) == (1, 2)
    # deduplicated: restored once each
    assert a.restored == [1]
    assert b.restored == [2]
    assert a.committed == [] and b.committed == []


def test_atomic_unit_keeps_effects_on_success() -> None:
    a = _Box(1)
    with atomic_unit([a]):
        a.value = 5
    assert a.value == 5
    assert a.restored == []
    assert a.committed == [1]


class _RefusingAsset(InMemorySettlementAsset):
    """Refuses every pull; a deposit to `dave` lands from another thread first."""

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        t = threading.Thread(target=self.faucet, args=("dave", _u(7)))
        t.start()
        t.join()
        return False


def test_rollback_keeps_writes_from_other_threads() -> None:
    h = make_harness(asset=_RefusingAsset(asset_id="USD"))
    h.fund("alice", _u(100))

    with pytest.raises(SettlementTransferFailed):
        h.campaign.purchase("alice", _u(100))

    assert h.asset.balance_of("dave") == _u(7)
    assert h.asset.total_supply() == _u(107)
    assert h.asset.balance_of("alice") == _u(100)
    assert h.token.total_supply() == 0
    assert h.campaign.raised == 0


def test_nested_marks_undo_only_their_own_writes() -> None:
    asset = InMemorySettlementAsset(asset_id="USD")
    outer = asset.checkpoint()
    asset.faucet("alice", 5)
    inner = asset.checkpoint()
    asset.faucet("alice", 3)
    asset.transfer("alice", "bob", 2)

    asset.restore(inner)
    assert (asset.balance_of("alice"), asset.balance_of("bob")) == (5, 0)

    asset.commit(outer)
    assert asset.balance_of("alice") == 5

    # no open mark: later writes are not journaled
    asset.faucet("alice", 1)
    assert asset.balance_of("alice") == 6


def test_campaign_checkpoint_does_not_copy_event_history() -> None:
    h = make_harness()
    for i in range(3):
        h.buy(f"b{i}", _u(10))

    mark = h.campaign.checkpoint()
    snap, n_events, _logic = mark
    assert snap.events == []
    assert n_events == 3

    events = h.campaign.state.events
    h.campaign.emit("Noted")
    h.campaign.state.raised += 1
    h.campaign.restore(mark)

    # restored in place, same list object
    assert h.campaign.state.events is events
    assert len(events) == 3
    assert h.campaign.raised == _u(30)
