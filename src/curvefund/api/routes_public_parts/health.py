from __future__ import annotations

import os
import time

from fastapi import APIRouter, Request

router = APIRouter()


def _now_ms() -> int:
    return int(time.time() * 1000)


def _health_payload(request: Request) -> dict[str, object]:
    c = getattr(request.app.state, "campaign", None)
    campaign: dict[str, object] | None = None
    if c is not None:
        v = c.view()
        campaign = {
            "campaign_id": v.campaign_id,
            "finalized": v.finalized,
            "progress_bps": v.progress_bps,
            "logic_version": v.logic_version,
        }

    return {
        "ok": c is not None,
        "service": "curvefund",
        "version": "v1",
        "ts_ms": _now_ms(),
        "mode": (os.environ.get("CURVEFUND_MODE") or "prod").strip().lower(),
        "campaign": campaign,
    }


@router.get("/health")
def health(request: Request) -> dict[str, object]:
    return _health_payload(request)


@router.get("/healthz")
def healthz(request: Request) -> dict[str, object]:
    # Kubernetes-style alias
    return _health_payload(request)
