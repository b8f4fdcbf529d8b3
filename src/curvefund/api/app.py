from __future__ import annotations

import os

from fastapi import FastAPI

from curvefund.api.errors import ApiError, api_error_handler
from curvefund.api.routes_public import dev_only_router, public_router
from curvefund.api.structured_logging import RequestLogMiddleware, configure_structured_logging
from curvefund.ledger.errors import CampaignError
from curvefund.runtime.boot import build_campaign as _build_campaign
from curvefund.runtime.config import apply_campaign_config_to_env, load_campaign_config


def build_campaign():
    """Build the campaign served by this API.

    This wrapper exists so tests can monkeypatch `curvefund.api.app.build_campaign`
    without reaching into runtime modules.
    """
    return _build_campaign(load_campaign_config())


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load config + attach app.state.campaign
      - False: keep lightweight for unit tests / import-time validation
    """
    if boot_runtime:
        apply_campaign_config_to_env(load_campaign_config())
    configure_structured_logging()

    mode = os.environ.get("CURVEFUND_MODE", "prod").strip().lower()

    # Disable docs in production.
    if mode == "prod":
        app = FastAPI(title="curvefund API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="curvefund API")

    app.state.campaign = build_campaign() if boot_runtime else None

    app.add_middleware(RequestLogMiddleware)
    app.add_exception_handler(CampaignError, api_error_handler)
    app.add_exception_handler(ApiError, api_error_handler)

    app.include_router(public_router)
    if mode != "prod":
        app.include_router(dev_only_router)

    return app
