"""
Domain models and value objects.

Contains the pool entities: CurveType, Tick, PoolState, SwapRequest, TradeInfo.
"""

from orbital_amm.core.domain.curve import (
    MAX_U_PARAMETER,
    MIN_U_PARAMETER_EXCLUSIVE,
    SPHERE_U_PARAMETER,
    U_PRECISION,
    CurveKind,
    CurveType,
)
from orbital_amm.core.domain.pool_state import MAX_TOKENS, MIN_TOKENS, PoolState
from orbital_amm.core.domain.tick import ShareBound, Tick
from orbital_amm.core.domain.trade import SwapRequest, TradeInfo

__all__ = [
    # Curve
    "MAX_U_PARAMETER",
    "MIN_U_PARAMETER_EXCLUSIVE",
    "SPHERE_U_PARAMETER",
    "U_PRECISION",
    "CurveKind",
    "CurveType",
    # Ticks
    "ShareBound",
    "Tick",
    # Pool
    "MAX_TOKENS",
    "MIN_TOKENS",
    "PoolState",
    # Trades
    "SwapRequest",
    "TradeInfo",
]
