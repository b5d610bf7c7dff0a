"""Market configuration store owned by the controller."""

from typing import Dict, Iterator, List

from src.core.errors import MarketAlreadyListedError, UnknownMarketError
from src.core.models import Market, MarketKind


class MarketRegistry:
    """Listed markets keyed by market id, in listing order."""

    def __init__(self):
        self._markets: Dict[str, Market] = {}

    def add(self, market: Market) -> None:
        if market.market_id in self._markets:
            raise MarketAlreadyListedError(market.market_id)
        self._markets[market.market_id] = market

    def get(self, market_id: str) -> Market:
        market = self._markets.get(market_id)
        if market is None:
            raise UnknownMarketError(market_id)
        return market

    def get_kind(self, market_id: str, kind: MarketKind) -> Market:
        """Get a market, requiring a specific role."""
        market = self.get(market_id)
        if market.kind != kind:
            raise UnknownMarketError(market_id)
        return market

    def collateral_markets(self) -> List[Market]:
        return [m for m in self._markets.values() if m.kind == MarketKind.COLLATERAL]

    def liquidity_markets(self) -> List[Market]:
        return [m for m in self._markets.values() if m.kind == MarketKind.LIQUIDITY]

    def __contains__(self, market_id: str) -> bool:
        return market_id in self._markets

    def __iter__(self) -> Iterator[Market]:
        return iter(list(self._markets.values()))

    def __len__(self) -> int:
        return len(self._markets)

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {"markets": [m.to_dict() for m in self._markets.values()]}

    def load_dict(self, data: dict) -> None:
        """Replace configuration of listed markets from a snapshot."""
        for entry in data.get("markets", []):
            market = Market.from_dict(entry)
            self._markets[market.market_id] = market
