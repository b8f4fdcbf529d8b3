# src/curvefund/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from curvefund.api.routes_public_parts.campaign import router as campaign_router
from curvefund.api.routes_public_parts.dev import router as dev_router
from curvefund.api.routes_public_parts.health import router as health_router
from curvefund.api.routes_public_parts.metrics import router as metrics_router

public_router = APIRouter()

# Versioned API surface (production)
public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(campaign_router, prefix="/v1", tags=["campaign"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])

# Non-prod helpers, mounted by create_app outside prod
dev_only_router = APIRouter()
dev_only_router.include_router(dev_router, prefix="/v1", tags=["dev"])
