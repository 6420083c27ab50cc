"""
Trade execution: segmented swaps across tick boundaries, quotes, multi-hop.
"""

from orbital_amm.trading.toroidal import (
    SegmentOutcome,
    SwapConfig,
    SwapPlan,
    ToroidalSwapExecutor,
    TradeSegment,
    execute_multi_hop_swap,
    execute_swap,
    execute_swap_request,
    quote_swap,
)

__all__ = [
    # Types
    "SegmentOutcome",
    "SwapConfig",
    "SwapPlan",
    "TradeSegment",
    # Executor
    "ToroidalSwapExecutor",
    "execute_multi_hop_swap",
    "execute_swap",
    "execute_swap_request",
    "quote_swap",
]
