from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from curvefund.ledger.constants import MAX_SUPPLY
from curvefund.ledger.curve import issued_for_raised
from curvefund.ledger.errors import InvariantViolation


Json = Dict[str, Any]


@dataclass
class CampaignState:
    """
    Mutable campaign aggregate. Only the campaign ledger mutates it.

    Persisted form is a flat JSON object (see to_json/from_json); amounts
    are stored as decimal strings so they survive JSON consumers that
    truncate large integers.
    """

    campaign_id: str
    creator: str
    platform: str
    admin: str
    token_id: str
    asset_id: str
    venue_id: str
    goal: int
    max_supply: int = MAX_SUPPLY

    raised: int = 0
    issued: int = 0
    finalized: bool = False
    logic_version: str = ""

    events: List[Json] = field(default_factory=list)

    def to_json(self) -> Json:
        out = asdict(self)
        for k in ("goal", "max_supply", "raised", "issued"):
            out[k] = str(out[k])
        return out

    @classmethod
    def from_json(cls, j: Json) -> "CampaignState":
        if not isinstance(j, dict):
            raise ValueError("campaign state must be a JSON object")
        return cls(
            campaign_id=str(j["campaign_id"]),
            creator=str(j["creator"]),
            platform=str(j["platform"]),
            admin=str(j.get("admin") or j["platform"]),
            token_id=str(j["token_id"]),
            asset_id=str(j["asset_id"]),
            venue_id=str(j["venue_id"]),
            goal=int(j["goal"]),
            max_supply=int(j.get("max_supply", MAX_SUPPLY)),
            raised=int(j.get("raised", 0)),
            issued=int(j.get("issued", 0)),
            finalized=bool(j.get("finalized", False)),
            logic_version=str(j.get("logic_version") or ""),
            events=list(j.get("events") or []),
        )


@dataclass(frozen=True, slots=True)
class CampaignView:
    """
    Immutable read-only campaign view used by queries and the API.
    """

    campaign_id: str
    creator: str
    platform: str
    token_id: str
    asset_id: str
    venue_id: str
    goal: int
    max_supply: int
    raised: int
    issued: int
    finalized: bool
    logic_version: str

    @classmethod
    def from_state(cls, st: CampaignState) -> "CampaignView":
        return cls(
            campaign_id=st.campaign_id,
            creator=st.creator,
            platform=st.platform,
            token_id=st.token_id,
            asset_id=st.asset_id,
            venue_id=st.venue_id,
            goal=int(st.goal),
            max_supply=int(st.max_supply),
            raised=int(st.raised),
            issued=int(st.issued),
            finalized=bool(st.finalized),
            logic_version=st.logic_version,
        )

    @property
    def remaining(self) -> int:
        return max(self.goal - self.raised, 0)

    @property
    def progress_bps(self) -> int:
        return self.raised * 10_000 // self.goal

    def to_json(self) -> Json:
        return {
            "campaign_id": self.campaign_id,
            "creator": self.creator,
            "platform": self.platform,
            "token_id": self.token_id,
            "asset_id": self.asset_id,
            "venue_id": self.venue_id,
            "goal": str(self.goal),
            "max_supply": str(self.max_supply),
            "raised": str(self.raised),
            "issued": str(self.issued),
            "remaining": str(self.remaining),
            "progress_bps": self.progress_bps,
            "finalized": self.finalized,
            "logic_version": self.logic_version,
        }


def check_invariants(st: CampaignState) -> None:
    """Fail closed if a transition left the aggregate inconsistent.

    Raises:
        InvariantViolation
    """
    if st.goal <= 0:
        raise InvariantViolation("goal_not_positive", {"goal": str(st.goal)})
    if not 0 <= st.raised <= st.goal:
        raise InvariantViolation("raised_out_of_range", {"raised": str(st.raised), "goal": str(st.goal)})
    if not 0 <= st.issued <= st.max_supply:
        raise InvariantViolation("issued_out_of_range", {"issued": str(st.issued)})

    # issued is never allowed to drift from the curve's image of raised
    expected = issued_for_raised(st.raised, st.goal, st.max_supply)
    if st.issued != expected:
        raise InvariantViolation(
            "issued_off_curve",
            {"issued": str(st.issued), "expected": str(expected), "raised": str(st.raised)},
        )

    if st.finalized and st.issued < st.max_supply:
        raise InvariantViolation("finalized_before_complete", {"issued": str(st.issued)})


__all__ = ["CampaignState", "CampaignView", "check_invariants"]
