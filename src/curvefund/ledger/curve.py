# src/curvefund/ledger/curve.py
from __future__ import annotations

"""Square-root issuance curve.

    issued = max_supply * sqrt(raised / goal)

Equivalently the marginal price of a token grows linearly with the number
of tokens already issued, so the cumulative cost of a fraction f of the
supply is f**2 * goal. Earlier settlement buys strictly more tokens than the
same amount later on.

All arithmetic is integer-only:

    scaled = raised * CURVE_SCALE // goal      (<= 1e36 because raised <= goal)
    root   = isqrt(scaled)                     (sqrt of the ratio, 1e18 fixed point)
    issued = max_supply * root // CURVE_PRECISION

`isqrt` floors, so the loss is under one part in 1e18 of max_supply, and
raised == goal yields root == CURVE_PRECISION and therefore exactly
max_supply. Every step is monotone non-decreasing in `raised`.
"""

import math
from dataclasses import dataclass

from curvefund.ledger.constants import CURVE_PRECISION, CURVE_SCALE, MAX_SUPPLY
from curvefund.ledger.errors import InvalidAmount


def _require_int(name: str, v: object) -> int:
    # bool is an int subclass; never accept it as an amount
    if isinstance(v, bool) or not isinstance(v, int):
        raise InvalidAmount("not_an_integer", {"field": name, "type": type(v).__name__})
    return v


def issued_for_raised(raised: int, goal: int, max_supply: int = MAX_SUPPLY) -> int:
    """Return the issued-token count the curve assigns to `raised`."""
    r = _require_int("raised", raised)
    g = _require_int("goal", goal)
    s = _require_int("max_supply", max_supply)

    if g <= 0:
        raise InvalidAmount("goal_must_be_positive", {"goal": g})
    if s <= 0:
        raise InvalidAmount("max_supply_must_be_positive", {"max_supply": s})
    if r < 0 or r > g:
        raise InvalidAmount("raised_out_of_range", {"raised": r, "goal": g})

    root = math.isqrt(r * CURVE_SCALE // g)
    issued = s * root // CURVE_PRECISION
    return min(issued, s)


@dataclass(frozen=True)
class PurchaseQuote:
    accepted: int
    new_raised: int
    new_issued: int
    delta: int


@dataclass(frozen=True)
class CurveEngine:
    """Curve bound to one campaign's goal and supply.

    Stateless: callers pass the current (raised, issued) point in.
    """

    goal: int
    max_supply: int = MAX_SUPPLY

    def __post_init__(self) -> None:
        # validates both parameters once up front
        issued_for_raised(0, self.goal, self.max_supply)

    def issued_at(self, raised: int) -> int:
        return issued_for_raised(raised, self.goal, self.max_supply)

    def remaining(self, raised: int) -> int:
        return max(self.goal - int(raised), 0)

    def quote(self, raised: int, offered: int) -> PurchaseQuote:
        """Speculatively price a contribution of `offered` at `raised`.

        The contribution is capped to the remaining headroom. Nothing is
        committed; `delta` may be zero for dust amounts.
        """
        amt = _require_int("offered", offered)
        if amt <= 0:
            raise InvalidAmount("amount_must_be_positive", {"offered": amt})

        accepted = min(amt, self.remaining(raised))
        new_raised = int(raised) + accepted
        new_issued = self.issued_at(new_raised)
        return PurchaseQuote(
            accepted=accepted,
            new_raised=new_raised,
            new_issued=new_issued,
            delta=new_issued - self.issued_at(raised),
        )


__all__ = ["CurveEngine", "PurchaseQuote", "issued_for_raised"]
