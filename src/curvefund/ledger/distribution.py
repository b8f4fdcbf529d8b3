# src/curvefund/ledger/distribution.py
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict

from curvefund.ledger.constants import (
    BPS_DENOMINATOR,
    CREATOR_SETTLEMENT_BPS,
    CREATOR_TOKEN_BPS,
    LIQUIDITY_DEADLINE_SECONDS,
    LIQUIDITY_TOKEN_BPS,
    PLATFORM_TOKEN_BPS,
)
from curvefund.ledger.errors import InvalidAmount, SettlementTransferFailed

if TYPE_CHECKING:  # pragma: no cover
    from curvefund.runtime.campaign import CampaignLedger

Json = Dict[str, Any]


def _bps(amount: int, bps: int) -> int:
    return int(amount) * int(bps) // BPS_DENOMINATOR


@dataclass(frozen=True)
class DistributionPlan:
    """Concrete amounts for one campaign's finalize step."""

    creator_tokens: int
    platform_tokens: int
    liquidity_tokens: int
    creator_settlement: int
    liquidity_settlement: int
    min_token: int
    min_asset: int

    def to_json(self) -> Json:
        return {k: str(v) for k, v in self.__dict__.items()}


@dataclass(frozen=True)
class DistributionPolicy:
    """
    Fixed stakeholder share table, applied exactly once at finalize.

      tokens:     creator 20% / platform 5% / liquidity 25% of max_supply,
                  minted on top of the max_supply buyers received via the curve
      settlement: creator 50% of goal / liquidity venue the remainder

    min_token_bps / min_asset_bps bound what the venue may skip when seeding.
    Zero means no slippage guard at all.
    """

    creator_token_bps: int = CREATOR_TOKEN_BPS
    platform_token_bps: int = PLATFORM_TOKEN_BPS
    liquidity_token_bps: int = LIQUIDITY_TOKEN_BPS
    creator_settlement_bps: int = CREATOR_SETTLEMENT_BPS

    min_token_bps: int = 0
    min_asset_bps: int = 0
    deadline_seconds: int = LIQUIDITY_DEADLINE_SECONDS

    def __post_init__(self) -> None:
        for name in (
            "creator_token_bps",
            "platform_token_bps",
            "liquidity_token_bps",
            "creator_settlement_bps",
            "min_token_bps",
            "min_asset_bps",
        ):
            v = int(getattr(self, name))
            if v < 0 or v > BPS_DENOMINATOR:
                raise InvalidAmount("bps_out_of_range", {"field": name, "value": v})
        if int(self.deadline_seconds) <= 0:
            raise InvalidAmount("deadline_must_be_positive", {"deadline_seconds": int(self.deadline_seconds)})

    @property
    def slippage_guarded(self) -> bool:
        return self.min_token_bps > 0 or self.min_asset_bps > 0

    def plan(self, *, goal: int, max_supply: int) -> DistributionPlan:
        liquidity_tokens = _bps(max_supply, self.liquidity_token_bps)
        creator_settlement = _bps(goal, self.creator_settlement_bps)
        liquidity_settlement = int(goal) - creator_settlement
        return DistributionPlan(
            creator_tokens=_bps(max_supply, self.creator_token_bps),
            platform_tokens=_bps(max_supply, self.platform_token_bps),
            liquidity_tokens=liquidity_tokens,
            creator_settlement=creator_settlement,
            liquidity_settlement=liquidity_settlement,
            min_token=_bps(liquidity_tokens, self.min_token_bps),
            min_asset=_bps(liquidity_settlement, self.min_asset_bps),
        )

    def distribute(self, campaign: "CampaignLedger", *, now: Callable[[], float]) -> Json:
        """Mint stakeholder shares, pay the creator and seed the venue.

        Runs inside the campaign's atomic unit; any failure aborts the
        whole finalize transition.
        """
        st = campaign.state
        me = campaign.identity
        plan = self.plan(goal=st.goal, max_supply=st.max_supply)

        campaign.token.mint(me, st.creator, plan.creator_tokens)
        campaign.token.mint(me, st.platform, plan.platform_tokens)
        campaign.token.mint(me, me, plan.liquidity_tokens)

        if not campaign.settlement.transfer(me, st.creator, plan.creator_settlement):
            raise SettlementTransferFailed(
                "creator_payout_rejected",
                {"recipient": st.creator, "amount": str(plan.creator_settlement)},
            )

        venue = campaign.venue
        campaign.token.approve(me, venue.venue_id, plan.liquidity_tokens)
        if not campaign.settlement.approve(me, venue.venue_id, plan.liquidity_settlement):
            raise SettlementTransferFailed("venue_approval_rejected", {"venue": venue.venue_id})

        deadline = int(now()) + int(self.deadline_seconds)
        token_used, asset_used, position = venue.add_liquidity(
            me,
            plan.liquidity_tokens,
            plan.liquidity_settlement,
            plan.min_token,
            plan.min_asset,
            me,
            deadline,
        )

        return {
            "plan": plan.to_json(),
            "liquidity": {
                "token_used": str(token_used),
                "asset_used": str(asset_used),
                "position": str(position),
                "deadline": deadline,
                "guarded": self.slippage_guarded,
            },
        }


__all__ = ["DistributionPlan", "DistributionPolicy"]
