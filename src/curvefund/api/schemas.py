from __future__ import annotations

"""Pydantic request schemas for the public API.

Amounts cross the wire as decimal strings of base units: 18-decimal values
overflow JSON numbers in most clients.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _parse_units(v: object) -> int:
    if isinstance(v, bool):
        raise ValueError("amount must be a decimal string of base units")
    s = str(v).strip()
    if not s.isdigit():
        raise ValueError("amount must be a decimal string of base units")
    return int(s)


class PurchaseRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    buyer: str = Field(..., min_length=1, description="Buyer account id")
    amount: int = Field(..., description="Offered settlement amount, base units")

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v: object) -> int:
        return _parse_units(v)


class FaucetRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    account: str = Field(..., min_length=1, description="Account to fund")
    amount: int = Field(..., description="Settlement amount, base units")

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v: object) -> int:
        return _parse_units(v)
