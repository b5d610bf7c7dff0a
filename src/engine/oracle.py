"""Price aggregation over external feeds."""

import logging
import time
from typing import Callable, Dict, List, Optional

from config.settings import Settings, get_settings
from src.core.constants import MAX_PRICE_STALENESS
from src.core.errors import (
    GreaterThanError,
    InvalidPriceError,
    LessThanError,
    MissingPriceFeedError,
    SameValueError,
    StalePriceError,
    ZeroAddressError,
)
from src.core.fixed_point import mul_div_down, mul_div_up
from src.core.interfaces import PriceFeed, PriceSource
from src.core.models import PriceQuote

logger = logging.getLogger(__name__)


class Oracle(PriceSource):
    """
    Aggregates registered price feeds per asset.

    Selection policy: among the feeds of an asset, keep those updated within
    the asset's staleness window and use the most recently updated one. That
    quote must carry a positive price that survives normalization to 18
    decimals, otherwise the read fails; older feeds are not consulted.
    Prices are never averaged, so one manipulated feed cannot drag the
    result part way.

    Reads are pure: nothing is cached between calls.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize oracle.

        Args:
            clock: Returns current unix time in seconds (default: wall clock)
            settings: Engine settings (default staleness window)
        """
        self.settings = settings or get_settings()
        self.clock = clock or (lambda: int(time.time()))
        self.default_max_staleness = self.settings.oracle_max_staleness_seconds
        self._feeds: Dict[str, List[PriceFeed]] = {}
        self._max_staleness: Dict[str, int] = {}

    # ========== ADMINISTRATION ==========

    def add_price_feed(self, asset_id: str, feed: PriceFeed) -> None:
        """Register a feed for an asset."""
        if not asset_id:
            raise ZeroAddressError("asset_id")
        if feed is None:
            raise ZeroAddressError("feed")

        feeds = self._feeds.setdefault(asset_id, [])
        if any(f is feed for f in feeds):
            raise SameValueError("price_feed", asset_id)

        feeds.append(feed)
        logger.info(f"Added price feed for {asset_id} ({len(feeds)} feeds)")

    def remove_price_feed(self, asset_id: str, feed: PriceFeed) -> None:
        """Unregister a feed."""
        feeds = self._feeds.get(asset_id, [])
        remaining = [f for f in feeds if f is not feed]
        if len(remaining) == len(feeds):
            raise MissingPriceFeedError(asset_id)

        if remaining:
            self._feeds[asset_id] = remaining
        else:
            del self._feeds[asset_id]
        logger.info(f"Removed price feed for {asset_id}")

    def feeds(self, asset_id: str) -> List[PriceFeed]:
        return list(self._feeds.get(asset_id, []))

    def set_max_staleness(self, asset_id: str, seconds: int) -> None:
        """Override the staleness window of one asset."""
        if seconds < 1:
            raise LessThanError("max_staleness", seconds, 1)
        if seconds > MAX_PRICE_STALENESS:
            raise GreaterThanError("max_staleness", seconds, MAX_PRICE_STALENESS)
        if self.max_staleness(asset_id) == seconds:
            raise SameValueError("max_staleness", seconds)

        old = self.max_staleness(asset_id)
        self._max_staleness[asset_id] = seconds
        logger.info(f"Max staleness for {asset_id}: {old}s -> {seconds}s")

    def max_staleness(self, asset_id: str) -> int:
        return self._max_staleness.get(asset_id, self.default_max_staleness)

    # ========== READS ==========

    def quotes(self, asset_id: str) -> List[PriceQuote]:
        """Latest round of every feed registered for an asset."""
        quotes = []
        for index, feed in enumerate(self._feeds.get(asset_id, [])):
            round_id, answer, updated_at = feed.latest_round_data()
            quotes.append(
                PriceQuote(
                    asset_id=asset_id,
                    price=int(answer),
                    decimals=int(feed.decimals),
                    updated_at=int(updated_at),
                    round_id=int(round_id),
                    source=f"{asset_id}#{index}",
                )
            )
        return quotes

    def price(self, asset_id: str) -> PriceQuote:
        """
        Current price of an asset.

        Raises:
            MissingPriceFeedError: No feed registered
            StalePriceError: No feed updated within the staleness window
            InvalidPriceError: Freshest feed reports a price <= 0, or one that
                normalizes to zero
        """
        quotes = self.quotes(asset_id)
        if not quotes:
            raise MissingPriceFeedError(asset_id)

        now = self.clock()
        window = self.max_staleness(asset_id)
        fresh = [q for q in quotes if now - q.updated_at <= window]
        if not fresh:
            latest = max(q.updated_at for q in quotes)
            raise StalePriceError(asset_id, latest, window)

        quote = max(fresh, key=lambda q: (q.updated_at, q.round_id))
        if quote.price <= 0 or quote.price_wad == 0:
            raise InvalidPriceError(asset_id, quote.price)
        return quote

    def price_wad(self, asset_id: str) -> int:
        """Current price normalized to 18 decimals."""
        return self.price(asset_id).price_wad

    def value_of(self, asset_id: str, amount: int, decimals: int, round_up: bool = False) -> int:
        """
        Value of an asset amount in normalized price units (WAD).

        Args:
            asset_id: Asset to price
            amount: Amount in the asset's base units
            decimals: Asset decimals
            round_up: Round against the account (used for debt)

        Returns:
            amount * price / 10**decimals
        """
        if amount == 0:
            return 0
        price = self.price_wad(asset_id)
        if round_up:
            return mul_div_up(amount, price, 10**decimals)
        return mul_div_down(amount, price, 10**decimals)
