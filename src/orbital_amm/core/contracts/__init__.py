"""
Contract Validation Module

Валидация JSON контрактов на границе движка Orbital AMM.
"""

from .validators import (
    ContractValidator,
    PoolStateValidator,
    SchemaLoader,
    SwapRequestValidator,
    TradeInfoValidator,
    validate_pool_state,
    validate_swap_request,
    validate_trade_info,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "PoolStateValidator",
    "SwapRequestValidator",
    "TradeInfoValidator",
    # Functions
    "validate_pool_state",
    "validate_swap_request",
    "validate_trade_info",
]
