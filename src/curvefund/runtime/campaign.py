# src/curvefund/runtime/campaign.py
from __future__ import annotations

import copy
import dataclasses
import logging
import threading
import time
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from curvefund.collaborators.interfaces import LiquidityVenue, Persistent, SettlementLedger, TokenLedger
from curvefund.ledger.constants import CAMPAIGN_CUSTODY_PREFIX, MAX_SUPPLY
from curvefund.ledger.curve import CurveEngine, PurchaseQuote
from curvefund.ledger.distribution import DistributionPolicy
from curvefund.ledger.errors import AlreadyFinalized, CampaignError, InvalidAmount, Unauthorized
from curvefund.ledger.state import CampaignState, CampaignView, check_invariants
from curvefund.runtime.atomic import atomic_unit
from curvefund.runtime.logic import DEFAULT_LOGIC, CampaignLogic, PurchaseReceipt
from curvefund.runtime.metrics import inc_counter, set_gauge
from curvefund.runtime.sqlite_db import CampaignStore
from curvefund.runtime.structured_log import log_event

Json = Dict[str, Any]
T = TypeVar("T")

_log = logging.getLogger("curvefund.campaign")

_EVENT_NAMES = {
    "Purchased": "campaign_purchase",
    "Finalized": "campaign_finalized",
    "LogicUpgraded": "campaign_logic_upgraded",
}


class CampaignLedger:
    """One fundraising round: state, locking and atomic transitions.

    Every mutating call runs under a per-campaign re-entrant lock and inside
    one atomic unit spanning the campaign state and every Transactional
    collaborator. Transition rules live in the active CampaignLogic.

    Production invariants:
      - issued always equals the curve's image of raised
      - finalized never resets; once set every mutation is refused
      - a failed transition leaves no trace (state, balances, events, store)
    """

    def __init__(
        self,
        *,
        creator: str,
        platform: str,
        token: TokenLedger,
        settlement: SettlementLedger,
        venue: LiquidityVenue,
        goal: int,
        campaign_id: Optional[str] = None,
        admin: Optional[str] = None,
        policy: Optional[DistributionPolicy] = None,
        logic: Optional[CampaignLogic] = None,
        store: Optional[CampaignStore] = None,
        clock: Callable[[], float] = time.time,
        state: Optional[CampaignState] = None,
    ) -> None:
        self._token = token
        self._settlement = settlement
        self._venue = venue
        self._policy = policy or DistributionPolicy()
        self._logic: CampaignLogic = logic or DEFAULT_LOGIC
        self._store = store
        self._clock = clock

        self._lock = threading.RLock()
        self._depth = 0

        if state is None:
            for name, v in (("creator", creator), ("platform", platform)):
                if not str(v or "").strip():
                    raise InvalidAmount("missing_identity", {"field": name})
            # validates goal (> 0, int) before anything is recorded
            CurveEngine(goal=goal, max_supply=MAX_SUPPLY)
            state = CampaignState(
                campaign_id=str(campaign_id or f"{CAMPAIGN_CUSTODY_PREFIX}{uuid.uuid4().hex[:16]}"),
                creator=str(creator),
                platform=str(platform),
                admin=str(admin or platform),
                token_id=token.token_id,
                asset_id=settlement.asset_id,
                venue_id=venue.venue_id,
                goal=int(goal),
                max_supply=MAX_SUPPLY,
                logic_version=self._logic.version,
            )
        check_invariants(state)
        self._state = state

        if self._store is not None and not self._store.exists():
            self._persist(self._state.events)

    @classmethod
    def from_store(
        cls,
        store: CampaignStore,
        *,
        token: TokenLedger,
        settlement: SettlementLedger,
        venue: LiquidityVenue,
        policy: Optional[DistributionPolicy] = None,
        logic: Optional[CampaignLogic] = None,
        clock: Callable[[], float] = time.time,
    ) -> "CampaignLedger":
        """Re-hydrate a campaign persisted by an earlier process.

        In-process ledgers (Persistent) get their saved rows back, so
        custody and buyer balances line up with raised/issued again.
        """
        st = store.read()
        handles = {"token_id": token.token_id, "asset_id": settlement.asset_id, "venue_id": venue.venue_id}
        for k, v in handles.items():
            if getattr(st, k) != v:
                raise CampaignError("config_mismatch", "collaborator_handle_changed", {k: getattr(st, k), "got": v})
        lg = logic or DEFAULT_LOGIC
        if st.logic_version and st.logic_version != lg.version:
            raise CampaignError(
                "config_mismatch", "logic_version_changed", {"stored": st.logic_version, "got": lg.version}
            )
        for p in _unique([token, settlement, venue]):
            if isinstance(p, Persistent):
                p.load_rows(store.ledger_rows(p.persist_key))
        return cls(
            creator=st.creator,
            platform=st.platform,
            token=token,
            settlement=settlement,
            venue=venue,
            goal=st.goal,
            policy=policy,
            logic=lg,
            store=store,
            clock=clock,
            state=st,
        )

    # ----------------------------
    # Collaborators (used by logic)
    # ----------------------------

    @property
    def state(self) -> CampaignState:
        return self._state

    @property
    def identity(self) -> str:
        """Custody account and minter identity of this campaign."""
        return self._state.campaign_id

    @property
    def token(self) -> TokenLedger:
        return self._token

    @property
    def settlement(self) -> SettlementLedger:
        return self._settlement

    @property
    def venue(self) -> LiquidityVenue:
        return self._venue

    @property
    def policy(self) -> DistributionPolicy:
        return self._policy

    @property
    def logic(self) -> CampaignLogic:
        return self._logic

    def clock(self) -> float:
        return self._clock()

    # ----------------------------
    # Read-only queries
    # ----------------------------

    @property
    def raised(self) -> int:
        return self._state.raised

    @property
    def issued(self) -> int:
        return self._state.issued

    @property
    def finalized(self) -> bool:
        return self._state.finalized

    @property
    def goal(self) -> int:
        return self._state.goal

    @property
    def max_supply(self) -> int:
        return self._state.max_supply

    @property
    def creator(self) -> str:
        return self._state.creator

    @property
    def platform(self) -> str:
        return self._state.platform

    def view(self) -> CampaignView:
        with self._lock:
            return CampaignView.from_state(self._state)

    def events(self, *, after_seq: int = 0) -> List[Json]:
        with self._lock:
            return [copy.deepcopy(e) for e in self._state.events if int(e["seq"]) > int(after_seq)]

    def quote(self, amount: int) -> PurchaseQuote:
        with self._lock:
            st = self._state
            return CurveEngine(goal=st.goal, max_supply=st.max_supply).quote(st.raised, amount)

    # ----------------------------
    # Atomic-unit participation
    # ----------------------------

    def checkpoint(self) -> Tuple[CampaignState, int, CampaignLogic]:
        # events are append-only: their length marks the rollback point
        st = self._state
        return (dataclasses.replace(st, events=[]), len(st.events), self._logic)

    def restore(self, mark: Tuple[CampaignState, int, CampaignLogic]) -> None:
        snap, n_events, lg = mark
        # in place: logic code may still hold a reference to self.state
        del self._state.events[n_events:]
        for f in dataclasses.fields(snap):
            if f.name != "events":
                setattr(self._state, f.name, getattr(snap, f.name))
        self._logic = lg

    def commit(self, mark: Tuple[CampaignState, int, CampaignLogic]) -> None:
        return None

    def emit(self, kind: str, **fields: Any) -> Json:
        st = self._state
        ev: Json = {
            "seq": len(st.events) + 1,
            "kind": str(kind),
            "campaign_id": st.campaign_id,
            "ts": int(self._clock()),
        }
        ev.update(fields)
        st.events.append(ev)
        return ev

    # ----------------------------
    # Transitions
    # ----------------------------

    def purchase(self, buyer: str, amount: int) -> PurchaseReceipt:
        """Buy tokens with `amount` settlement units (capped to the goal)."""
        receipt = self._transition("purchase", lambda: self._logic.purchase(self, str(buyer), amount))
        inc_counter("campaign_purchases_total")
        return receipt

    def finalize(self) -> Json:
        """Close a campaign that reached max supply without auto-finalizing."""
        return self._transition("finalize", lambda: self._logic.finalize(self))

    def upgrade_logic(self, caller: str, logic: CampaignLogic) -> str:
        """Swap the active behaviour implementation. Admin only."""

        def _swap() -> str:
            st = self._state
            if str(caller) != st.admin:
                raise Unauthorized("admin_required", {"caller": str(caller)})
            if st.finalized:
                raise AlreadyFinalized("campaign_closed", {"campaign_id": st.campaign_id})
            if not isinstance(logic, CampaignLogic):
                raise CampaignError("invalid_logic", "logic_interface_mismatch", {"type": type(logic).__name__})
            prev = self._logic.version
            self._logic = logic
            st.logic_version = logic.version
            self.emit("LogicUpgraded", caller=str(caller), previous=prev, version=logic.version)
            return logic.version

        return self._transition("upgrade_logic", _swap)

    def _transition(self, op: str, body: Callable[[], T]) -> T:
        with self._lock:
            self._depth += 1
            start = len(self._state.events)
            try:
                with atomic_unit([self, self._token, self._settlement, self._venue]):
                    out = body()
                    check_invariants(self._state)
                    if self._depth == 1:
                        self._persist(self._state.events[start:])
            except CampaignError as e:
                inc_counter("campaign_rejections_total")
                log_event(
                    _log,
                    "campaign_rejected",
                    level=logging.WARNING,
                    campaign_id=self._state.campaign_id,
                    op=op,
                    code=e.code,
                    reason=e.reason,
                    details=e.details,
                )
                raise
            finally:
                self._depth -= 1

            if self._depth == 0:
                self._publish(self._state.events[start:])
            return out

    def persist(self) -> None:
        """Save in-process ledger changes made outside a transition (faucet, approvals)."""
        with self._lock:
            self._persist([])

    def _persist(self, new_events: List[Json]) -> None:
        if self._store is None:
            return
        ledgers = [p for p in _unique([self._token, self._settlement, self._venue]) if isinstance(p, Persistent)]
        rows = {p.persist_key: p.pending_rows() for p in ledgers}
        self._store.save(self._state, new_events, ledgers=rows)
        for p in ledgers:
            p.clear_pending(rows[p.persist_key])

    def _publish(self, events: List[Json]) -> None:
        for ev in events:
            kind = str(ev.get("kind"))
            if kind == "Finalized":
                set_gauge("campaign_finalized", 1)
                if not ev.get("liquidity", {}).get("guarded", True):
                    log_event(
                        _log,
                        "liquidity_slippage_unguarded",
                        level=logging.WARNING,
                        campaign_id=ev["campaign_id"],
                        venue_id=self._venue.venue_id,
                    )
            log_event(_log, _EVENT_NAMES.get(kind, "campaign_event"), **ev)



def _unique(items: List[Any]) -> List[Any]:
    out: List[Any] = []
    for it in items:
        if all(it is not o for o in out):
            out.append(it)
    return out


__all__ = ["CampaignLedger"]
