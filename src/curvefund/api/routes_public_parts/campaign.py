from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from curvefund.api.routes_public_parts.common import _campaign, _units_param
from curvefund.api.schemas import PurchaseRequest

router = APIRouter()

Json = Dict[str, Any]


@router.get("/campaign")
def campaign_view(request: Request) -> Json:
    """Current campaign state. Amounts are decimal strings of base units."""
    return {"ok": True, "campaign": _campaign(request).view().to_json()}


@router.get("/campaign/quote")
def campaign_quote(request: Request, amount: Optional[str] = None) -> Json:
    """Price a contribution without committing it.

    `accepted` is the offered amount capped to the remaining headroom;
    `tokens` may be "0" for dust amounts, which purchase would reject.
    """
    q = _campaign(request).quote(_units_param(amount, name="amount"))
    return {
        "ok": True,
        "quote": {
            "accepted": str(q.accepted),
            "tokens": str(q.delta),
            "raised_after": str(q.new_raised),
            "issued_after": str(q.new_issued),
        },
    }


@router.get("/campaign/events")
def campaign_events(request: Request, after: int = 0, limit: int = 100) -> Json:
    c = _campaign(request)
    lim = max(1, min(int(limit), 1000))
    evs = c.events(after_seq=int(after))[:lim]
    return {"ok": True, "events": evs, "next_after": int(evs[-1]["seq"]) if evs else int(after)}


@router.get("/campaign/accounts/{account}")
def campaign_account(request: Request, account: str) -> Json:
    c = _campaign(request)
    return {
        "ok": True,
        "account": account,
        "token_balance": str(c.token.balance_of(account)),
        "settlement_balance": str(c.settlement.balance_of(account)),
    }


@router.post("/campaign/purchase")
def campaign_purchase(request: Request, body: PurchaseRequest) -> Json:
    """Buy tokens. The buyer must have approved the campaign on the settlement ledger."""
    receipt = _campaign(request).purchase(body.buyer, body.amount)
    return {"ok": True, "receipt": receipt.to_json()}


@router.post("/campaign/finalize")
def campaign_finalize(request: Request) -> Json:
    c = _campaign(request)
    out = c.finalize()
    return {"ok": True, "finalized": c.finalized, "distribution": out}
