"""Unit tests for the jump-rate interest rate model."""

from decimal import Decimal

import pytest

from src.core.constants import SECONDS_PER_YEAR, WAD
from src.core.errors import GreaterThanError, LessThanError
from src.protocols.lending import IRM_PARAMS, JumpRateModel


class TestUtilization:
    """Tests for utilization."""

    def test_empty_pool(self):
        assert JumpRateModel.utilization(0, 0, 0) == 0

    def test_no_borrows(self):
        assert JumpRateModel.utilization(1_000, 0, 0) == 0

    def test_half_borrowed(self):
        assert JumpRateModel.utilization(500, 500, 0) == WAD // 2

    def test_fully_borrowed(self):
        assert JumpRateModel.utilization(0, 1_000, 0) == WAD

    def test_reserves_do_not_enter_ratio(self):
        assert JumpRateModel.utilization(500, 500, 400) == WAD // 2


class TestRates:
    """Tests for per-second rates."""

    @pytest.fixture
    def model(self):
        return JumpRateModel()

    def test_empty_pool_rates_are_zero(self, model):
        assert model.rate(0, 0, 0) == (0, 0)

    def test_idle_pool_pays_no_supply_rate(self, model):
        borrow, supply = model.rate(1_000, 0, 0)
        assert borrow == model.base_rate_per_second
        assert supply == 0

    def test_linear_below_kink(self, model):
        low = model.borrow_rate_at(WAD // 4)
        mid = model.borrow_rate_at(WAD // 2)
        # Equal utilization steps give equal rate steps below the kink
        assert abs((mid - low) - (low - model.borrow_rate_at(0))) <= 1

    def test_steeper_above_kink(self, model):
        step = WAD // 10
        below = model.borrow_rate_at(model.kink_wad) - model.borrow_rate_at(model.kink_wad - step)
        above = model.borrow_rate_at(model.kink_wad + step) - model.borrow_rate_at(model.kink_wad)
        assert above > below

    def test_rate_monotonic_in_utilization(self, model):
        rates = [model.borrow_rate_at(u * WAD // 100) for u in range(101)]
        assert rates == sorted(rates)

    def test_supply_rate_formula(self, model):
        util = WAD // 2
        borrow = model.borrow_rate_at(util)
        expected = borrow * util // WAD * (WAD - model.reserve_factor_wad) // WAD
        assert model.supply_rate_at(util, borrow) == expected

    def test_supply_below_borrow(self, model):
        borrow, supply = model.rate(200, 800, 0)
        assert 0 < supply < borrow

    def test_annualize_round_trip(self, model):
        apr = model.annualize(model.base_rate_per_second)
        assert abs(apr - IRM_PARAMS["BASE_RATE"]) < Decimal("1e-9")


class TestAnnualizedRates:
    """Tests for Decimal rate inspection helpers."""

    def test_borrow_rate_at_kink(self):
        model = JumpRateModel()
        expected = model.base_rate + model.kink * model.multiplier
        assert model.calculate_borrow_rate(model.kink) == expected

    def test_borrow_rate_clamped(self):
        model = JumpRateModel()
        assert model.calculate_borrow_rate(Decimal("1.5")) == model.calculate_borrow_rate(
            Decimal("1")
        )

    def test_rate_curve_shape(self):
        model = JumpRateModel()
        utils, borrow, supply = model.generate_rate_curve(num_points=10)
        assert len(utils) == len(borrow) == len(supply) == 11
        assert utils[0] == 0.0 and utils[-1] == 1.0
        assert borrow == sorted(borrow)
        assert all(s <= b for s, b in zip(supply, borrow))

    def test_apr_apy_conversion(self):
        apr = Decimal("0.05")
        apy = JumpRateModel.apr_to_apy(apr)
        assert apy > apr
        assert abs(JumpRateModel.apy_to_apr(apy) - apr) < Decimal("1e-10")

    def test_zero_apr(self):
        assert JumpRateModel.apr_to_apy(Decimal("0")) == Decimal("0")


class TestValidation:
    """Tests for model parameter bounds."""

    def test_negative_rate(self):
        with pytest.raises(LessThanError):
            JumpRateModel(base_rate=Decimal("-0.01"))

    def test_kink_above_one(self):
        with pytest.raises(GreaterThanError):
            JumpRateModel(kink=Decimal("1.1"))

    def test_reserve_factor_above_one(self):
        with pytest.raises(GreaterThanError):
            JumpRateModel(reserve_factor=Decimal("1.5"))

    def test_jump_below_multiplier(self):
        with pytest.raises(LessThanError):
            JumpRateModel(multiplier=Decimal("0.5"), jump_multiplier=Decimal("0.1"))

    def test_per_second_conversion(self):
        model = JumpRateModel(base_rate=Decimal("0.3153600"))
        assert model.base_rate_per_second == int(Decimal("0.3153600") * WAD) // SECONDS_PER_YEAR
