"""Risk calculation utilities for account solvency."""

from decimal import Decimal

from src.core.constants import BPS_SCALE
from src.core.fixed_point import bps_down, mul_div_down
from src.core.models import INFINITE_HEALTH


class RiskCalculator:
    """
    Calculator for position risk metrics.

    Handles health factor, borrow capacity and liquidation seizure maths on
    integer values expressed in normalized price units (WAD).
    """

    @staticmethod
    def weighted_value(collateral_value: int, factor_bps: int) -> int:
        """
        Collateral value usable against debt.

        weighted = collateral_value * factor / 10000 (rounded down)
        """
        return bps_down(collateral_value, factor_bps)

    @staticmethod
    def health_factor(weighted_collateral: int, debt_value: int) -> Decimal:
        """
        Calculate health factor.

        HF = Weighted Collateral Value / Debt Value

        Args:
            weighted_collateral: Collateral value times collateral factor
                (or liquidation threshold)
            debt_value: Debt value

        Returns:
            Health factor (< 1.0 means unhealthy), infinite without debt
        """
        if debt_value == 0:
            return INFINITE_HEALTH
        return Decimal(weighted_collateral) / Decimal(debt_value)

    @staticmethod
    def is_healthy(weighted_collateral: int, debt_value: int) -> bool:
        """Exact integer check of HF >= 1."""
        return weighted_collateral >= debt_value

    @staticmethod
    def borrow_capacity(weighted_collateral: int, debt_value: int) -> int:
        """Value still borrowable before HF reaches 1."""
        return max(0, weighted_collateral - debt_value)

    @staticmethod
    def amount_for_value(value: int, price_wad: int, decimals: int) -> int:
        """
        Convert a value back to asset units, rounding down.

        amount = value * 10**decimals / price
        """
        if price_wad == 0:
            return 0
        return mul_div_down(value, 10**decimals, price_wad)

    @staticmethod
    def collateral_to_seize(
        repay_amount: int,
        debt_price_wad: int,
        debt_decimals: int,
        collateral_price_wad: int,
        collateral_decimals: int,
        liquidation_bonus_bps: int,
    ) -> int:
        """
        Collateral released to a liquidator for a repayment.

        seize = repay * price(debt) / price(collateral) * (1 + bonus)

        Computed in one integer expression so precision is lost only once,
        rounding down (in favor of the liquidated account).

        Args:
            repay_amount: Debt repaid, in debt asset units
            debt_price_wad: Debt asset price (WAD)
            debt_decimals: Debt asset decimals
            collateral_price_wad: Collateral asset price (WAD)
            collateral_decimals: Collateral asset decimals
            liquidation_bonus_bps: Liquidation incentive

        Returns:
            Collateral amount in collateral asset units
        """
        numerator = (
            repay_amount
            * debt_price_wad
            * (BPS_SCALE + liquidation_bonus_bps)
            * 10**collateral_decimals
        )
        denominator = collateral_price_wad * BPS_SCALE * 10**debt_decimals
        return numerator // denominator
