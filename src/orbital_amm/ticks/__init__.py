"""
Tick geometry: boundary validation, crossing detection, active liquidity.
"""

from orbital_amm.ticks.geometry import (
    LiquidityComposition,
    TickRecommendation,
    active_liquidity,
    capital_efficiency_bp,
    contains,
    is_crossed,
    recommend_tick,
    regions_overlap,
    sort_ticks_by_boundary,
    token_shares,
    validate_tick,
    validate_ticks,
)

__all__ = [
    # Types
    "LiquidityComposition",
    "TickRecommendation",
    # Membership
    "contains",
    "is_crossed",
    "token_shares",
    # Validation
    "regions_overlap",
    "validate_tick",
    "validate_ticks",
    # Liquidity
    "active_liquidity",
    "capital_efficiency_bp",
    "recommend_tick",
    "sort_ticks_by_boundary",
]
