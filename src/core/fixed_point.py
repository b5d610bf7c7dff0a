"""Integer fixed-point helpers with explicit rounding direction."""

from decimal import Decimal, ROUND_DOWN

from src.core.constants import BPS_SCALE, WAD


def mul_div_down(x: int, y: int, denominator: int) -> int:
    """x * y / denominator, rounded toward zero."""
    return (x * y) // denominator


def mul_div_up(x: int, y: int, denominator: int) -> int:
    """x * y / denominator, rounded away from zero."""
    product = x * y
    return product // denominator + (1 if product % denominator else 0)


def bps_down(amount: int, bps: int) -> int:
    """Apply a basis-point factor, rounding down."""
    return mul_div_down(amount, bps, BPS_SCALE)


def bps_up(amount: int, bps: int) -> int:
    """Apply a basis-point factor, rounding up."""
    return mul_div_up(amount, bps, BPS_SCALE)


def to_wad(value: Decimal) -> int:
    """Convert a Decimal fraction (e.g. 0.05) to WAD precision."""
    return int((Decimal(value) * WAD).to_integral_value(rounding=ROUND_DOWN))


def from_wad(value: int) -> Decimal:
    """Convert a WAD integer back to a Decimal fraction."""
    return Decimal(value) / Decimal(WAD)


def scale_decimals(value: int, from_decimals: int, to_decimals: int) -> int:
    """Rescale an integer between decimal precisions, rounding down."""
    if from_decimals == to_decimals:
        return value
    if from_decimals < to_decimals:
        return value * 10 ** (to_decimals - from_decimals)
    return value // 10 ** (from_decimals - to_decimals)
