from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from curvefund.ledger.errors import CampaignError


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def forbidden(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(403, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def conflict(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(409, code, message, details or {})

    @staticmethod
    def unprocessable(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(422, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})

    @staticmethod
    def from_campaign_error(e: CampaignError) -> "ApiError":
        status = _CAMPAIGN_STATUS.get(e.code, 500)
        return ApiError(status, e.code, e.reason, dict(e.details or {}))

    def to_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content={
                "ok": False,
                "error": {"code": self.code, "message": self.message, "details": self.details},
            },
        )


_CAMPAIGN_STATUS: Dict[str, int] = {
    "invalid_amount": 400,
    "no_tokens_to_mint": 422,
    "already_finalized": 409,
    "campaign_complete": 409,
    "not_complete": 409,
    "settlement_transfer_failed": 402,
    "unauthorized": 403,
    "venue_rejected": 502,
    "invariant_violation": 500,
}


async def api_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, CampaignError):
        return ApiError.from_campaign_error(exc).to_response()
    if isinstance(exc, ApiError):
        return exc.to_response()
    raise exc
