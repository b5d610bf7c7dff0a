"""Core module - models, constants and errors."""

from .models import (
    Market,
    MarketKind,
    PauseFlags,
    AccountHealth,
    CollateralPosition,
    DebtPosition,
    LiquidationResult,
    PoolState,
    VaultState,
    PriceQuote,
    TxResult,
    TxStatus,
)
from .constants import WAD, INDEX_SCALE, BPS_SCALE, SECONDS_PER_YEAR

__all__ = [
    "Market",
    "MarketKind",
    "PauseFlags",
    "AccountHealth",
    "CollateralPosition",
    "DebtPosition",
    "LiquidationResult",
    "PoolState",
    "VaultState",
    "PriceQuote",
    "TxResult",
    "TxStatus",
    "WAD",
    "INDEX_SCALE",
    "BPS_SCALE",
    "SECONDS_PER_YEAR",
]
