"""
curvefund — Campaign behaviour implementations

The ledger owns state, locking and atomicity; the logic object owns the
transition rules. Swapping the logic (CampaignLedger.upgrade_logic) changes
behaviour without touching persisted state.

Logic objects must be stateless: everything they read or write lives on
the ledger passed in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Protocol, runtime_checkable

from curvefund.ledger.curve import CurveEngine
from curvefund.ledger.errors import (
    AlreadyFinalized,
    CampaignComplete,
    InvalidAmount,
    NoTokensToMint,
    NotComplete,
    SettlementTransferFailed,
)

if TYPE_CHECKING:  # pragma: no cover
    from curvefund.runtime.campaign import CampaignLedger

Json = Dict[str, Any]


@dataclass(frozen=True)
class PurchaseReceipt:
    buyer: str
    accepted: int
    minted: int
    raised: int
    issued: int
    finalized: bool

    def to_json(self) -> Json:
        return {
            "buyer": self.buyer,
            "accepted": str(self.accepted),
            "minted": str(self.minted),
            "raised": str(self.raised),
            "issued": str(self.issued),
            "finalized": self.finalized,
        }


@runtime_checkable
class CampaignLogic(Protocol):
    @property
    def version(self) -> str: ...

    def purchase(self, campaign: "CampaignLedger", buyer: str, offered: int) -> PurchaseReceipt: ...
    def finalize(self, campaign: "CampaignLedger") -> Json: ...


class BondingCurveLogic:
    """Square-root curve sale that auto-finalizes at the goal."""

    version = "bonding-curve/1"

    def purchase(self, campaign: "CampaignLedger", buyer: str, offered: int) -> PurchaseReceipt:
        st = campaign.state

        if st.finalized:
            raise AlreadyFinalized("campaign_closed", {"campaign_id": st.campaign_id})
        if st.issued >= st.max_supply:
            raise CampaignComplete("curve_exhausted", {"issued": str(st.issued)})
        if isinstance(offered, bool) or not isinstance(offered, int) or offered <= 0:
            raise InvalidAmount("amount_must_be_positive", {"offered": repr(offered)})
        if not str(buyer or "").strip():
            raise InvalidAmount("missing_buyer", {})

        curve = CurveEngine(goal=st.goal, max_supply=st.max_supply)
        q = curve.quote(st.raised, offered)
        delta = q.new_issued - st.issued
        if delta <= 0:
            raise NoTokensToMint(
                "contribution_below_curve_precision",
                {"offered": str(offered), "accepted": str(q.accepted), "raised": str(st.raised)},
            )

        # Bookkeeping lands before any external call: a collaborator that
        # calls back into the campaign sees the post-purchase point.
        st.raised = q.new_raised
        st.issued = q.new_issued

        me = campaign.identity
        campaign.token.mint(me, buyer, delta)
        if not campaign.settlement.transfer_from(me, buyer, me, q.accepted):
            raise SettlementTransferFailed(
                "buyer_debit_rejected",
                {"buyer": buyer, "amount": str(q.accepted)},
            )

        campaign.emit("Purchased", buyer=buyer, accepted=str(q.accepted), minted=str(delta))

        if q.new_issued >= st.max_supply:
            self._close_and_distribute(campaign)

        return PurchaseReceipt(
            buyer=buyer,
            accepted=q.accepted,
            minted=delta,
            raised=st.raised,
            issued=st.issued,
            finalized=st.finalized,
        )

    def finalize(self, campaign: "CampaignLedger") -> Json:
        st = campaign.state
        if st.issued < st.max_supply:
            raise NotComplete("goal_not_reached", {"issued": str(st.issued), "raised": str(st.raised)})
        if st.finalized:
            raise AlreadyFinalized("campaign_closed", {"campaign_id": st.campaign_id})
        return self._close_and_distribute(campaign)

    def _close_and_distribute(self, campaign: "CampaignLedger") -> Json:
        st = campaign.state
        st.finalized = True
        out = campaign.policy.distribute(campaign, now=campaign.clock)
        campaign.emit("Finalized", total_raised=str(st.raised), **out)
        return out


DEFAULT_LOGIC = BondingCurveLogic()

__all__ = ["BondingCurveLogic", "CampaignLogic", "DEFAULT_LOGIC", "PurchaseReceipt"]
