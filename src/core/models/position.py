"""Position and account health models."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict

INFINITE_HEALTH = Decimal("Infinity")


@dataclass(frozen=True)
class CollateralPosition:
    """An account's shares in a collateral pool."""

    account: str
    market_id: str
    shares: int
    assets: int  # Shares converted at the current exchange rate (rounded down)

    @property
    def is_empty(self) -> bool:
        return self.shares == 0


@dataclass(frozen=True)
class DebtPosition:
    """An account's debt shares in a liquidity pool."""

    account: str
    market_id: str
    debt_shares: int
    owed: int  # debt_shares * borrow_index / INDEX_SCALE (rounded up)

    @property
    def is_empty(self) -> bool:
        return self.debt_shares == 0


@dataclass
class AccountHealth:
    """
    Solvency snapshot of an account across all markets.

    Values are in normalized price units (WAD, 18 decimals).

    - borrow_collateral_value: collateral weighted by collateral factor
    - liquidation_collateral_value: collateral weighted by liquidation threshold
    - debt_value: owed debt at current prices
    """

    account: str
    borrow_collateral_value: int = 0
    liquidation_collateral_value: int = 0
    debt_value: int = 0

    # Per-market breakdown (market_id -> value)
    collateral_values: Dict[str, int] = field(default_factory=dict)
    debt_values: Dict[str, int] = field(default_factory=dict)

    @property
    def health_factor(self) -> Decimal:
        """
        Borrowing health factor.

        HF = (Collateral Value * Collateral Factor) / Debt Value

        Returns:
            Health factor (< 1.0 means no further borrowing or withdrawal)
        """
        if self.debt_value == 0:
            return INFINITE_HEALTH
        return Decimal(self.borrow_collateral_value) / Decimal(self.debt_value)

    @property
    def liquidation_health_factor(self) -> Decimal:
        """
        Liquidation health factor.

        HF = (Collateral Value * Liquidation Threshold) / Debt Value

        Returns:
            Health factor (< 1.0 means liquidatable)
        """
        if self.debt_value == 0:
            return INFINITE_HEALTH
        return Decimal(self.liquidation_collateral_value) / Decimal(self.debt_value)

    @property
    def is_solvent(self) -> bool:
        return self.borrow_collateral_value >= self.debt_value

    @property
    def is_liquidatable(self) -> bool:
        return self.liquidation_collateral_value < self.debt_value

    @property
    def has_debt(self) -> bool:
        return self.debt_value > 0


@dataclass
class LiquidationResult:
    """Outcome of a committed liquidation."""

    liquidator: str
    account: str
    debt_market_id: str
    collateral_market_id: str
    repaid: int
    seized_shares: int
    seized_assets: int
    health_before: Decimal
    health_after: Decimal
    remaining_debt: int = 0  # Owed in the debt market afterwards

    @property
    def debt_cleared(self) -> bool:
        return self.remaining_debt == 0
