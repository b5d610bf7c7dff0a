"""Kinked (jump-rate) interest rate model."""

from decimal import Decimal
from typing import List, Tuple

import numpy as np

from src.core.constants import SECONDS_PER_YEAR, WAD
from src.core.errors import GreaterThanError, LessThanError
from src.core.fixed_point import from_wad, mul_div_down, to_wad
from src.protocols.lending.config import IRM_PARAMS


class JumpRateModel:
    """
    Utilization-driven interest rate model with a kink.

    Below the kink the borrow rate grows linearly with utilization. Above the
    kink a second, steeper slope models the cost of draining the pool:

    - u <= kink: rate = base + u * multiplier
    - u >  kink: rate = base + kink * multiplier + (u - kink) * jump_multiplier

    Rates are configured per year and evaluated per second in WAD precision.
    The model is stateless: every call is a pure function of its inputs.
    """

    def __init__(
        self,
        base_rate: Decimal = IRM_PARAMS["BASE_RATE"],
        multiplier: Decimal = IRM_PARAMS["MULTIPLIER"],
        jump_multiplier: Decimal = IRM_PARAMS["JUMP_MULTIPLIER"],
        kink: Decimal = IRM_PARAMS["KINK"],
        reserve_factor: Decimal = IRM_PARAMS["RESERVE_FACTOR"],
    ):
        for name, value in (
            ("base_rate", base_rate),
            ("multiplier", multiplier),
            ("jump_multiplier", jump_multiplier),
            ("kink", kink),
            ("reserve_factor", reserve_factor),
        ):
            if value < 0:
                raise LessThanError(name, value, 0)
        if kink > 1:
            raise GreaterThanError("kink", kink, 1)
        if reserve_factor > 1:
            raise GreaterThanError("reserve_factor", reserve_factor, 1)
        if jump_multiplier < multiplier:
            raise LessThanError("jump_multiplier", jump_multiplier, multiplier)

        self.base_rate = Decimal(base_rate)
        self.multiplier = Decimal(multiplier)
        self.jump_multiplier = Decimal(jump_multiplier)
        self.kink = Decimal(kink)
        self.reserve_factor = Decimal(reserve_factor)

        # Per-second WAD parameters
        self.base_rate_per_second = to_wad(self.base_rate) // SECONDS_PER_YEAR
        self.multiplier_per_second = to_wad(self.multiplier) // SECONDS_PER_YEAR
        self.jump_multiplier_per_second = to_wad(self.jump_multiplier) // SECONDS_PER_YEAR
        self.kink_wad = to_wad(self.kink)
        self.reserve_factor_wad = to_wad(self.reserve_factor)

    @staticmethod
    def utilization(cash: int, total_borrows: int, total_reserves: int = 0) -> int:
        """
        Utilization in WAD: borrows / (cash + borrows), clamped to [0, 1].

        Reserves are part of the signature so callers pass the full pool
        state; they do not enter the ratio.
        """
        denominator = cash + total_borrows
        if denominator <= 0 or total_borrows <= 0:
            return 0
        return min(WAD, mul_div_down(total_borrows, WAD, denominator))

    def borrow_rate_at(self, utilization_wad: int) -> int:
        """Per-second borrow rate (WAD) at a given utilization (WAD)."""
        if utilization_wad <= self.kink_wad:
            return self.base_rate_per_second + mul_div_down(
                utilization_wad, self.multiplier_per_second, WAD
            )

        normal_rate = self.base_rate_per_second + mul_div_down(
            self.kink_wad, self.multiplier_per_second, WAD
        )
        excess = utilization_wad - self.kink_wad
        return normal_rate + mul_div_down(excess, self.jump_multiplier_per_second, WAD)

    def supply_rate_at(self, utilization_wad: int, borrow_rate: int) -> int:
        """
        Per-second supply rate (WAD).

        supply_rate = borrow_rate * utilization * (1 - reserve_factor)
        """
        gross = mul_div_down(borrow_rate, utilization_wad, WAD)
        return mul_div_down(gross, WAD - self.reserve_factor_wad, WAD)

    def rate(self, cash: int, total_borrows: int, total_reserves: int) -> Tuple[int, int]:
        """
        Borrow and supply rates for a pool state.

        Args:
            cash: Idle assets in the pool
            total_borrows: Outstanding borrows including accrued interest
            total_reserves: Protocol reserves

        Returns:
            Tuple of (borrow_rate_per_second, supply_rate_per_second) in WAD
        """
        if cash + total_borrows == 0:
            return 0, 0

        util = self.utilization(cash, total_borrows, total_reserves)
        borrow = self.borrow_rate_at(util)
        return borrow, self.supply_rate_at(util, borrow)

    def calculate_borrow_rate(self, utilization: Decimal) -> Decimal:
        """
        Annualized borrow rate (APR) for a utilization fraction.

        Args:
            utilization: Utilization (0-1)

        Returns:
            Borrow rate (APR)
        """
        util = min(max(Decimal(utilization), Decimal("0")), Decimal("1"))
        if util <= self.kink:
            return self.base_rate + util * self.multiplier
        return (
            self.base_rate
            + self.kink * self.multiplier
            + (util - self.kink) * self.jump_multiplier
        )

    def calculate_supply_rate(self, utilization: Decimal, borrow_rate: Decimal) -> Decimal:
        """Annualized supply rate (APR) for a utilization fraction."""
        return borrow_rate * Decimal(utilization) * (Decimal("1") - self.reserve_factor)

    def annualize(self, rate_per_second: int) -> Decimal:
        """Convert a per-second WAD rate to an APR fraction."""
        return from_wad(rate_per_second * SECONDS_PER_YEAR)

    def generate_rate_curve(
        self,
        num_points: int = 100,
    ) -> Tuple[List[float], List[float], List[float]]:
        """
        Generate the full rate curve for inspection.

        Args:
            num_points: Number of intervals between 0% and 100% utilization

        Returns:
            Tuple of (utilizations, borrow_rates, supply_rates) as float lists
        """
        utilizations = np.linspace(0.0, 1.0, num_points + 1)
        borrow_rates = []
        supply_rates = []

        for util in utilizations:
            util_dec = Decimal(str(round(float(util), 12)))
            borrow = self.calculate_borrow_rate(util_dec)
            supply = self.calculate_supply_rate(util_dec, borrow)
            borrow_rates.append(float(borrow))
            supply_rates.append(float(supply))

        return utilizations.tolist(), borrow_rates, supply_rates

    @staticmethod
    def apr_to_apy(apr: Decimal, compounding_periods: int = 365) -> Decimal:
        """
        Convert APR to APY with given compounding periods.

        APY = (1 + APR/n)^n - 1

        Args:
            apr: Annual Percentage Rate
            compounding_periods: Number of compounding periods per year

        Returns:
            Annual Percentage Yield
        """
        if apr <= Decimal("0"):
            return Decimal("0")

        rate_per_period = apr / Decimal(str(compounding_periods))
        return (Decimal("1") + rate_per_period) ** compounding_periods - Decimal("1")

    @staticmethod
    def apy_to_apr(apy: Decimal, compounding_periods: int = 365) -> Decimal:
        """
        Convert APY to APR with given compounding periods.

        APR = n * ((1 + APY)^(1/n) - 1)
        """
        if apy <= Decimal("0"):
            return Decimal("0")

        n = Decimal(str(compounding_periods))
        # Using float for exponentiation, then back to Decimal
        rate_per_period = (float(Decimal("1") + apy) ** (1 / float(n))) - 1
        return Decimal(str(rate_per_period)) * n
