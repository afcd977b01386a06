"""
defi_core DeFi Protocols.

This module provides:
- Reserve Pools: Constant product and stable swap AMM pools with flash loans
- Oracle: Multi-reporter price aggregation with staleness filtering
- Circuit Breakers: Per-pair price deviation halts with self-healing
- TWAP: Rolling price history per pair
"""

from .access_control import AccessControl, Role
from .circuit_breaker import BreakerStatus, PriceCircuitBreaker
from .events import (
    CircuitBreakerTriggered,
    EventBus,
    FlashLoanRepaid,
    LiquidityAdded,
    LiquidityRemoved,
    PriceUpdated,
    ProtocolEvent,
    SwapExecuted,
)
from .liquidity_pools import (
    FlashLoanReceipt,
    LiquidityPosition,
    LiquidityResult,
    PoolRepository,
    RemovalResult,
    ReservePool,
)
from .oracle import (
    OracleAggregator,
    OracleReporter,
    OracleSettings,
    PriceFeed,
    PriceFeedRegistry,
    PriceSubmission,
    SubmissionResult,
)
from .swap_math import SwapQuote, quote_swap
from .twap_oracle import HistoryLedger, PriceBucket

__all__ = [
    # Pools
    "ReservePool",
    "PoolRepository",
    "LiquidityResult",
    "RemovalResult",
    "LiquidityPosition",
    "FlashLoanReceipt",
    "SwapQuote",
    "quote_swap",
    # Oracle
    "OracleAggregator",
    "PriceFeedRegistry",
    "OracleSettings",
    "OracleReporter",
    "PriceFeed",
    "PriceSubmission",
    "SubmissionResult",
    "HistoryLedger",
    "PriceBucket",
    # Circuit Breakers
    "PriceCircuitBreaker",
    "BreakerStatus",
    # Access / Events
    "AccessControl",
    "Role",
    "EventBus",
    "ProtocolEvent",
    "PriceUpdated",
    "CircuitBreakerTriggered",
    "SwapExecuted",
    "LiquidityAdded",
    "LiquidityRemoved",
    "FlashLoanRepaid",
]
