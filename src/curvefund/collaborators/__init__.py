"""
curvefund — External collaborators

Interfaces the campaign core consumes, plus in-process reference backends
used by tests and single-node deployments.
"""

from curvefund.collaborators.interfaces import LiquidityVenue, SettlementLedger, TokenLedger, Transactional
from curvefund.collaborators.memory import InMemoryLiquidityVenue, InMemorySettlementAsset, InMemoryToken

__all__ = [
    "LiquidityVenue",
    "SettlementLedger",
    "TokenLedger",
    "Transactional",
    "InMemoryLiquidityVenue",
    "InMemorySettlementAsset",
    "InMemoryToken",
]
