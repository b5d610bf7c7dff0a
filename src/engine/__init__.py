"""Risk and accounting engine: oracle, pools and controller."""

from .collateral_pool import CollateralPool
from .controller import Controller
from .liquidity_pool import LiquidityPool
from .oracle import Oracle
from .registry import MarketRegistry
from .risk import RiskCalculator
from .shares import ShareLedger
from .transaction import TransactionManager, transactional

__all__ = [
    "CollateralPool",
    "Controller",
    "LiquidityPool",
    "Oracle",
    "MarketRegistry",
    "RiskCalculator",
    "ShareLedger",
    "TransactionManager",
    "transactional",
]
