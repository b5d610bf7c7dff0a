"""Core data models for the lending engine."""

from .market import Market, MarketKind, PauseFlags
from .position import (
    AccountHealth,
    CollateralPosition,
    DebtPosition,
    INFINITE_HEALTH,
    LiquidationResult,
)
from .pool import PoolState, VaultState
from .price import PriceQuote
from .transaction import TxResult, TxStatus

__all__ = [
    "Market",
    "MarketKind",
    "PauseFlags",
    "AccountHealth",
    "CollateralPosition",
    "DebtPosition",
    "INFINITE_HEALTH",
    "LiquidationResult",
    "PoolState",
    "VaultState",
    "PriceQuote",
    "TxResult",
    "TxStatus",
]
