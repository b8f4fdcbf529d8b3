from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from curvefund.collaborators.memory import InMemoryLiquidityVenue, InMemorySettlementAsset, InMemoryToken
from curvefund.ledger.constants import TOKEN_UNIT
from curvefund.runtime.campaign import CampaignLedger

CAMPAIGN_ID = "campaign:test"
CREATOR = "creator"
PLATFORM = "platform"

# 100,000 settlement tokens at 18 decimals
GOAL = 100_000 * TOKEN_UNIT

FIXED_NOW = 1_700_000_000


@dataclass
class Harness:
    campaign: CampaignLedger
    token: InMemoryToken
    asset: InMemorySettlementAsset
    venue: InMemoryLiquidityVenue

    def fund(self, account: str, amount: int, *, approve: bool = True) -> None:
        """Give `account` settlement funds and (optionally) approve the campaign."""
        self.asset.faucet(account, amount)
        if approve:
            self.asset.approve(account, self.campaign.identity, self.asset.allowance(account, self.campaign.identity) + amount)

    def buy(self, buyer: str, amount: int):
        self.fund(buyer, amount)
        return self.campaign.purchase(buyer, amount)


def make_harness(
    *,
    goal: int = GOAL,
    asset: Optional[InMemorySettlementAsset] = None,
    now: int = FIXED_NOW,
    **campaign_kwargs: Any,
) -> Harness:
    """Wire a campaign to fresh in-memory collaborators.

    TEST ONLY. The clock is frozen at `now`.
    """
    token = InMemoryToken(token_id="TKN", minter=CAMPAIGN_ID)
    a = asset if asset is not None else InMemorySettlementAsset(asset_id="USD")
    venue = InMemoryLiquidityVenue(token=token, asset=a, venue_id="POOL", clock=lambda: now)
    campaign = CampaignLedger(
        campaign_id=CAMPAIGN_ID,
        creator=CREATOR,
        platform=PLATFORM,
        token=token,
        settlement=a,
        venue=venue,
        goal=goal,
        clock=lambda: now,
        **campaign_kwargs,
    )
    return Harness(campaign=campaign, token=token, asset=a, venue=venue)
