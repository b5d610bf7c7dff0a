"""Lending protocol configuration and constants."""

from decimal import Decimal

# Kinked (jump-rate) interest rate model parameters, annualized
IRM_PARAMS = {
    # Borrow rate at zero utilization
    "BASE_RATE": Decimal("0.02"),  # 2% APR
    # Slope below the kink
    "MULTIPLIER": Decimal("0.10"),  # +10% APR from 0% to 100% utilization
    # Slope above the kink
    "JUMP_MULTIPLIER": Decimal("3.0"),  # +300% APR from 0% to 100% utilization
    # Utilization where the curve steepens
    "KINK": Decimal("0.8"),
    # Share of interest kept as reserves
    "RESERVE_FACTOR": Decimal("0.1"),
}

# Default risk parameters for newly listed collateral markets (bps)
DEFAULT_COLLATERAL_FACTOR_BPS = 7_500  # 75%
DEFAULT_LIQUIDATION_THRESHOLD_BPS = 8_000  # 80%
DEFAULT_LIQUIDATION_BONUS_BPS = 500  # 5%
