from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from curvefund.api.errors import ApiError
from curvefund.runtime.metrics import format_prometheus, metrics_enabled

router = APIRouter()

_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


@router.get("/metrics", response_class=PlainTextResponse)
def metrics() -> PlainTextResponse:
    # Off unless CURVEFUND_METRICS_ENABLED is set; scrapers see a plain 404.
    if not metrics_enabled():
        raise ApiError.not_found("metrics_disabled", "set CURVEFUND_METRICS_ENABLED=1 to expose metrics")
    return PlainTextResponse(format_prometheus(), media_type=_CONTENT_TYPE)
