from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from curvefund.api.errors import ApiError
from curvefund.api.routes_public_parts.common import _campaign
from curvefund.api.schemas import FaucetRequest

router = APIRouter()

Json = Dict[str, Any]


@router.post("/dev/faucet")
def dev_faucet(request: Request, body: FaucetRequest) -> Json:
    """Fund an account and approve the campaign to spend it.

    Only mounted outside prod, and only usable with a settlement backend
    that exposes a faucet (the in-memory one).
    """
    c = _campaign(request)
    faucet = getattr(c.settlement, "faucet", None)
    if not callable(faucet):
        raise ApiError.forbidden("faucet_unavailable", "settlement backend has no faucet", {})

    faucet(body.account, body.amount)
    allowance = c.settlement.balance_of(body.account)
    c.settlement.approve(body.account, c.identity, allowance)
    c.persist()
    return {"ok": True, "account": body.account, "balance": str(allowance), "approved": str(allowance)}
