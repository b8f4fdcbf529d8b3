"""
curvefund — bonding-curve fundraising campaigns

Buyers exchange a settlement asset for a project token issued along a
square-root curve until the goal is met; the campaign then closes and
distributes tokens and proceeds to fixed stakeholder shares, seeding a
liquidity venue with the remainder.

    from curvefund import CampaignLedger, InMemoryToken, InMemorySettlementAsset, InMemoryLiquidityVenue

    token = InMemoryToken(minter="campaign:1")
    asset = InMemorySettlementAsset()
    pool = InMemoryLiquidityVenue(token=token, asset=asset)
    campaign = CampaignLedger(
        campaign_id="campaign:1", creator="alice", platform="factory",
        token=token, settlement=asset, venue=pool, goal=100_000 * 10**18,
    )
"""

from curvefund.collaborators.memory import InMemoryLiquidityVenue, InMemorySettlementAsset, InMemoryToken
from curvefund.ledger.curve import CurveEngine, issued_for_raised
from curvefund.ledger.distribution import DistributionPolicy
from curvefund.ledger.errors import (
    AlreadyFinalized,
    CampaignComplete,
    CampaignError,
    InvalidAmount,
    InvariantViolation,
    NoTokensToMint,
    NotComplete,
    SettlementTransferFailed,
    Unauthorized,
)
from curvefund.runtime.campaign import CampaignLedger
from curvefund.runtime.logic import BondingCurveLogic, CampaignLogic, PurchaseReceipt

__version__ = "0.1.0"

__all__ = [
    "CampaignLedger",
    "CurveEngine",
    "issued_for_raised",
    "DistributionPolicy",
    "BondingCurveLogic",
    "CampaignLogic",
    "PurchaseReceipt",
    "InMemoryToken",
    "InMemorySettlementAsset",
    "InMemoryLiquidityVenue",
    "CampaignError",
    "InvalidAmount",
    "AlreadyFinalized",
    "CampaignComplete",
    "NotComplete",
    "NoTokensToMint",
    "SettlementTransferFailed",
    "Unauthorized",
    "InvariantViolation",
]
