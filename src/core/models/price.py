"""Price quote model."""

from dataclasses import dataclass
from typing import Tuple

from src.core.constants import PRICE_DECIMALS
from src.core.fixed_point import scale_decimals


@dataclass(frozen=True)
class PriceQuote:
    """A single feed round as seen by the oracle."""

    asset_id: str
    price: int  # Raw feed answer
    decimals: int  # Feed precision
    updated_at: int  # Unix seconds
    round_id: int = 0
    source: str = ""

    @property
    def price_wad(self) -> int:
        """Price normalized to 18 decimals."""
        return scale_decimals(self.price, self.decimals, PRICE_DECIMALS)

    def as_tuple(self) -> Tuple[int, int, int]:
        """(value, decimals, updated_at) read contract."""
        return self.price, self.decimals, self.updated_at
