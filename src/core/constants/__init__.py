"""Core constants module.

Re-exports all constants for convenience.
"""

from src.core.constants.generic import (
    SECONDS_PER_YEAR,
    WAD,
    INDEX_SCALE,
    BPS_SCALE,
    MAX_PRICE_STALENESS,
    PRICE_DECIMALS,
    MAX_WITHDRAW_FEE_BPS,
    MAX_LIQUIDATION_BONUS_BPS,
    UNLIMITED,
    DEPOSIT_HALT_LIMIT,
)

__all__ = [
    "SECONDS_PER_YEAR",
    "WAD",
    "INDEX_SCALE",
    "BPS_SCALE",
    "MAX_PRICE_STALENESS",
    "PRICE_DECIMALS",
    "MAX_WITHDRAW_FEE_BPS",
    "MAX_LIQUIDATION_BONUS_BPS",
    "UNLIMITED",
    "DEPOSIT_HALT_LIMIT",
]
