# src/curvefund/ledger/constants.py
from __future__ import annotations

"""Campaign monetary constants.

- Project token: 18 decimals, curve capacity fixed at 500,000,000 tokens.
- Shares are basis points of max supply (tokens) or of the goal (settlement).
- Buyers receive the full curve capacity; stakeholder shares are minted on top.
"""

# Token precision (1 token = 1e18 units)
TOKEN_DECIMALS: int = 18
TOKEN_UNIT: int = 10**TOKEN_DECIMALS

# Total tokens issuable through the curve
MAX_SUPPLY_TOKENS: int = 500_000_000
MAX_SUPPLY: int = MAX_SUPPLY_TOKENS * TOKEN_UNIT

# Curve fixed point: the raised/goal ratio is scaled by CURVE_SCALE before
# the integer square root, leaving the root in CURVE_PRECISION fixed point.
CURVE_PRECISION: int = 10**18
CURVE_SCALE: int = CURVE_PRECISION * CURVE_PRECISION

BPS_DENOMINATOR: int = 10_000

# Token shares minted at finalize (basis points of MAX_SUPPLY), on top of
# the MAX_SUPPLY the curve already issued to buyers
CREATOR_TOKEN_BPS: int = 2_000
PLATFORM_TOKEN_BPS: int = 500
LIQUIDITY_TOKEN_BPS: int = 2_500

# Settlement shares paid at finalize (basis points of the goal); the
# liquidity venue receives whatever the creator payout leaves behind.
CREATOR_SETTLEMENT_BPS: int = 5_000

# Liquidity seeding deadline: now + 1 hour
LIQUIDITY_DEADLINE_SECONDS: int = 3_600

# Identity under which the campaign holds custody when none is supplied
CAMPAIGN_CUSTODY_PREFIX: str = "campaign:"
