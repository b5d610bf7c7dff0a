"""Unit tests for risk maths and fixed-point helpers."""

from decimal import Decimal

import pytest

from src.core.constants import WAD
from src.core.fixed_point import (
    bps_down,
    bps_up,
    from_wad,
    mul_div_down,
    mul_div_up,
    scale_decimals,
    to_wad,
)
from src.core.models import INFINITE_HEALTH, AccountHealth
from src.engine import RiskCalculator


class TestFixedPoint:
    """Tests for rounding helpers."""

    def test_mul_div_rounding(self):
        assert mul_div_down(10, 1, 3) == 3
        assert mul_div_up(10, 1, 3) == 4
        assert mul_div_up(9, 1, 3) == 3

    def test_bps(self):
        assert bps_down(999, 7_500) == 749
        assert bps_up(999, 7_500) == 750

    def test_wad_conversion(self):
        assert to_wad(Decimal("0.05")) == 5 * 10**16
        assert from_wad(WAD // 4) == Decimal("0.25")

    def test_scale_decimals(self):
        assert scale_decimals(123, 8, 18) == 123 * 10**10
        assert scale_decimals(123_456, 20, 18) == 1_234


class TestHealthFactor:
    """Tests for health factor."""

    def test_no_debt(self):
        assert RiskCalculator.health_factor(100, 0) == INFINITE_HEALTH

    def test_ratio(self):
        assert RiskCalculator.health_factor(750, 500) == Decimal("1.5")

    def test_integer_check(self):
        assert RiskCalculator.is_healthy(750, 750)
        assert not RiskCalculator.is_healthy(749, 750)

    def test_borrow_capacity(self):
        assert RiskCalculator.borrow_capacity(750, 500) == 250
        assert RiskCalculator.borrow_capacity(500, 750) == 0

    def test_weighted_value_rounds_down(self):
        assert RiskCalculator.weighted_value(3, 7_500) == 2

    def test_account_health_model(self):
        health = AccountHealth(
            account="alice",
            borrow_collateral_value=750,
            liquidation_collateral_value=800,
            debt_value=760,
        )
        assert not health.is_solvent
        assert not health.is_liquidatable
        assert health.health_factor < 1 < health.liquidation_health_factor


class TestSeizure:
    """Tests for liquidation seizure maths."""

    def test_same_price_with_bonus(self):
        seized = RiskCalculator.collateral_to_seize(100 * WAD, WAD, 18, WAD, 18, 500)
        assert seized == 105 * WAD

    def test_cross_decimals(self):
        # Repay 1,000 USDC (6 decimals) for WETH (18 decimals) at $2,000, no bonus
        seized = RiskCalculator.collateral_to_seize(
            1_000 * 10**6, WAD, 6, 2_000 * WAD, 18, 0
        )
        assert seized == WAD // 2

    def test_rounds_down(self):
        seized = RiskCalculator.collateral_to_seize(10, WAD, 18, 3 * WAD, 18, 0)
        assert seized == 3

    @pytest.mark.parametrize("bonus", [0, 500, 1_000, 2_500])
    def test_monotonic_in_bonus(self, bonus):
        base = RiskCalculator.collateral_to_seize(10**20, WAD, 18, WAD, 18, 0)
        assert RiskCalculator.collateral_to_seize(10**20, WAD, 18, WAD, 18, bonus) >= base

    def test_amount_for_value(self):
        assert RiskCalculator.amount_for_value(375 * WAD, 2 * WAD, 18) == 187_500_000_000_000_000_000
        assert RiskCalculator.amount_for_value(1, 0, 18) == 0
