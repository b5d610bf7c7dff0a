"""Lending protocol implementations.

Configuration: src.protocols.lending.config
IRM Model: src.protocols.lending.irm
"""

from .config import (
    IRM_PARAMS,
    DEFAULT_COLLATERAL_FACTOR_BPS,
    DEFAULT_LIQUIDATION_THRESHOLD_BPS,
    DEFAULT_LIQUIDATION_BONUS_BPS,
)
from .irm import JumpRateModel

__all__ = [
    "IRM_PARAMS",
    "DEFAULT_COLLATERAL_FACTOR_BPS",
    "DEFAULT_LIQUIDATION_THRESHOLD_BPS",
    "DEFAULT_LIQUIDATION_BONUS_BPS",
    "JumpRateModel",
]
