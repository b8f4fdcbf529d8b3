# src/curvefund/runtime/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from curvefund.ledger.constants import BPS_DENOMINATOR, LIQUIDITY_DEADLINE_SECONDS, TOKEN_UNIT

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    if v is None or isinstance(v, bool):
        return int(default)
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class CampaignConfig:
    campaign_id: str
    mode: str  # "dev" | "testnet" | "prod"

    # Empty db_path runs the campaign in memory only.
    db_path: str

    # Goal in settlement base units.
    goal: int
    creator: str
    platform: str

    liquidity_deadline_s: int
    # Minimum-received guards for liquidity seeding, in basis points of the
    # amounts offered. 0 disables the guard.
    min_token_bps: int
    min_asset_bps: int

    api_host: str
    api_port: int

    log_level: str


_ALLOWED_MODES = {"dev", "testnet", "prod"}


def validate_campaign_config(cfg: CampaignConfig) -> None:
    """Fail-fast validation for operator config."""

    for name in ("campaign_id", "creator", "platform"):
        v = getattr(cfg, name)
        if not isinstance(v, str) or not v.strip():
            raise ValueError(f"{name} must be a non-empty string")

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if int(cfg.goal) <= 0:
        raise ValueError(f"goal must be > 0; got: {cfg.goal}")

    if int(cfg.liquidity_deadline_s) <= 0:
        raise ValueError(f"liquidity_deadline_s must be > 0; got: {cfg.liquidity_deadline_s}")

    for name in ("min_token_bps", "min_asset_bps"):
        v = int(getattr(cfg, name))
        if v < 0 or v > BPS_DENOMINATOR:
            raise ValueError(f"{name} must be 0..{BPS_DENOMINATOR}; got: {v}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")


def default_campaign_config() -> CampaignConfig:
    return CampaignConfig(
        campaign_id="campaign:dev",
        # Production-safe default: no docs endpoints, FULL sqlite sync.
        mode="prod",
        db_path="",
        goal=100_000 * TOKEN_UNIT,
        creator="creator",
        platform="platform",
        liquidity_deadline_s=LIQUIDITY_DEADLINE_SECONDS,
        min_token_bps=0,
        min_asset_bps=0,
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def read_campaign_config_file(path: str) -> CampaignConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("campaign config must be a JSON object")

    d = default_campaign_config()

    cfg = CampaignConfig(
        campaign_id=_as_str(raw.get("campaign_id"), d.campaign_id),
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        db_path=str(raw.get("db_path") or d.db_path),
        goal=_as_int(raw.get("goal"), d.goal),
        creator=_as_str(raw.get("creator"), d.creator),
        platform=_as_str(raw.get("platform"), d.platform),
        liquidity_deadline_s=_as_int(raw.get("liquidity_deadline_s"), d.liquidity_deadline_s),
        min_token_bps=_as_int(raw.get("min_token_bps"), d.min_token_bps),
        min_asset_bps=_as_int(raw.get("min_asset_bps"), d.min_asset_bps),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level),
    )

    validate_campaign_config(cfg)
    return cfg


def load_campaign_config(*, config_path: Optional[str] = None) -> CampaignConfig:
    p = config_path or os.environ.get("CURVEFUND_CONFIG_PATH")
    if p:
        return read_campaign_config_file(p)

    cfg = default_campaign_config()
    validate_campaign_config(cfg)
    return cfg


def apply_campaign_config_to_env(cfg: CampaignConfig) -> None:
    validate_campaign_config(cfg)
    os.environ["CURVEFUND_MODE"] = (cfg.mode or "prod").strip().lower()
    os.environ["CURVEFUND_LOG_LEVEL"] = cfg.log_level
    os.environ["CURVEFUND_API_HOST"] = cfg.api_host
    os.environ["CURVEFUND_API_PORT"] = str(int(cfg.api_port))


__all__ = [
    "CampaignConfig",
    "apply_campaign_config_to_env",
    "default_campaign_config",
    "load_campaign_config",
    "read_campaign_config_file",
    "validate_campaign_config",
]
