from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from curvefund.api.errors import ApiError
from curvefund.runtime.campaign import CampaignLedger

Json = Dict[str, Any]


def _campaign(request: Request) -> CampaignLedger:
    c = getattr(request.app.state, "campaign", None)
    if c is None:
        raise ApiError.internal("not_ready", "campaign not attached to app.state", {})
    return c


def _units_param(v: Any, *, name: str) -> int:
    """Parse a base-unit amount query param (decimal string)."""
    s = str(v if v is not None else "").strip()
    if not s.isdigit():
        raise ApiError.bad_request("invalid_amount", f"{name} must be a decimal string of base units", {name: s})
    return int(s)
