# src/curvefund/ledger/errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional

Json = Dict[str, Any]


@dataclass
class CampaignError(Exception):
    """Canonical error type for campaign transitions.

    `code` is the stable discriminator callers branch on; `reason` is a
    short snake_case explanation; `details` must stay JSON-serializable.
    """

    code: str
    reason: str
    details: Json = field(default_factory=dict)

    def __str__(self) -> str:  # pragma: no cover
        if not self.details:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class _CodedError(CampaignError):
    CODE: ClassVar[str] = "campaign_error"

    def __init__(self, reason: str = "", details: Optional[Json] = None) -> None:
        super().__init__(self.CODE, reason or self.CODE, dict(details or {}))


class InvalidAmount(_CodedError):
    CODE = "invalid_amount"


class AlreadyFinalized(_CodedError):
    CODE = "already_finalized"


class CampaignComplete(_CodedError):
    CODE = "campaign_complete"


class NotComplete(_CodedError):
    CODE = "not_complete"


class NoTokensToMint(_CodedError):
    CODE = "no_tokens_to_mint"


class SettlementTransferFailed(_CodedError):
    CODE = "settlement_transfer_failed"


class Unauthorized(_CodedError):
    CODE = "unauthorized"


class InvariantViolation(_CodedError):
    CODE = "invariant_violation"


__all__ = [
    "CampaignError",
    "InvalidAmount",
    "AlreadyFinalized",
    "CampaignComplete",
    "NotComplete",
    "NoTokensToMint",
    "SettlementTransferFailed",
    "Unauthorized",
    "InvariantViolation",
]
