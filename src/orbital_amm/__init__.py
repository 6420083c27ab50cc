"""
Orbital AMM — N-dimensional sphere/superellipse invariant engine.

Pure, deterministic, integer-only computation library: pool state model,
curve math, tick-bounded concentrated liquidity and segmented trade
execution across tick boundaries.
"""

from orbital_amm.core.domain import (
    CurveKind,
    CurveType,
    PoolState,
    ShareBound,
    SwapRequest,
    Tick,
    TradeInfo,
)
from orbital_amm.core.errors import ErrorKind, OrbitalError
from orbital_amm.pool import (
    DEFAULT_TOLERANCE_BP,
    add_tick,
    calculate_price,
    create_pool,
    remove_tick,
    token_count,
    total_liquidity,
    verify_constraint,
)
from orbital_amm.trading import (
    SwapConfig,
    ToroidalSwapExecutor,
    execute_multi_hop_swap,
    execute_swap,
    execute_swap_request,
    quote_swap,
)

__version__ = "0.1.0"

__all__ = [
    # Models
    "CurveKind",
    "CurveType",
    "PoolState",
    "ShareBound",
    "SwapRequest",
    "Tick",
    "TradeInfo",
    # Errors
    "ErrorKind",
    "OrbitalError",
    # Pool
    "DEFAULT_TOLERANCE_BP",
    "add_tick",
    "calculate_price",
    "create_pool",
    "remove_tick",
    "token_count",
    "total_liquidity",
    "verify_constraint",
    # Trading
    "SwapConfig",
    "ToroidalSwapExecutor",
    "execute_multi_hop_swap",
    "execute_swap",
    "execute_swap_request",
    "quote_swap",
]
