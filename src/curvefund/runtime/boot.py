# src/curvefund/runtime/boot.py

from __future__ import annotations

from typing import Optional

from curvefund.collaborators.memory import InMemoryLiquidityVenue, InMemorySettlementAsset, InMemoryToken
from curvefund.ledger.distribution import DistributionPolicy
from curvefund.runtime.campaign import CampaignLedger
from curvefund.runtime.config import CampaignConfig, load_campaign_config
from curvefund.runtime.sqlite_db import CampaignStore, SqliteDB


def policy_from_config(cfg: CampaignConfig) -> DistributionPolicy:
    return DistributionPolicy(
        min_token_bps=int(cfg.min_token_bps),
        min_asset_bps=int(cfg.min_asset_bps),
        deadline_seconds=int(cfg.liquidity_deadline_s),
    )


def build_campaign(cfg: Optional[CampaignConfig] = None) -> CampaignLedger:
    """
    Build a single-process campaign backed by the in-memory collaborators.

    With cfg.db_path set, campaign state and events are persisted to SQLite
    and re-loaded on the next boot, together with the in-memory token, settlement
    and pool rows. Production deployments wire real ledgers into
    CampaignLedger directly.
    """
    c = cfg or load_campaign_config()

    token = InMemoryToken(token_id=f"{c.campaign_id}/token", minter=c.campaign_id)
    asset = InMemorySettlementAsset(asset_id="settlement")
    venue = InMemoryLiquidityVenue(token=token, asset=asset, venue_id=f"{c.campaign_id}/pool")
    policy = policy_from_config(c)

    store = None
    if c.db_path:
        db = SqliteDB(path=c.db_path)
        db.init_schema()
        store = CampaignStore(db=db)
        if store.exists():
            return CampaignLedger.from_store(store, token=token, settlement=asset, venue=venue, policy=policy)

    return CampaignLedger(
        campaign_id=c.campaign_id,
        creator=c.creator,
        platform=c.platform,
        token=token,
        settlement=asset,
        venue=venue,
        goal=int(c.goal),
        policy=policy,
        store=store,
    )
