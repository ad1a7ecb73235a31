"""Static price feed and default collateral configuration."""

from __future__ import annotations

import time
from typing import Callable

from cdp_engine.data.constants import BTC_USD, ETH_USD, WBTC, WETH
from cdp_engine.data.interfaces import CollateralAsset, PriceFeed

# --- Default allow-list, in registry order ---

DEFAULT_COLLATERAL: tuple[CollateralAsset, ...] = (
    CollateralAsset(asset=WETH, price_feed=ETH_USD),
    CollateralAsset(asset=WBTC, price_feed=BTC_USD),
)

# USD prices with 8 decimals
_FEED_PRICES: dict[str, int] = {
    ETH_USD: 2_000 * 10**8,
    BTC_USD: 1_000 * 10**8,
}


class StaticPriceFeed(PriceFeed):
    """In-memory price feed with settable prices.

    Every ``set_price`` call stamps the feed with the current clock reading,
    the way an aggregator round records its ``updatedAt``.
    """

    def __init__(
        self,
        prices: dict[str, int] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._clock = clock
        self._rounds: dict[str, tuple[int, int]] = {}
        for feed_id, price in (prices if prices is not None else _FEED_PRICES).items():
            self.set_price(feed_id, price)

    def set_price(self, feed_id: str, price: int, updated_at: int | None = None) -> None:
        """Publish a new round for ``feed_id``."""
        stamp = int(self._clock()) if updated_at is None else updated_at
        self._rounds[feed_id] = (price, stamp)

    def latest_price(self, feed_id: str) -> tuple[int, int]:
        try:
            return self._rounds[feed_id]
        except KeyError:
            raise KeyError(f"Unknown price feed: {feed_id}") from None

    @property
    def feed_ids(self) -> tuple[str, ...]:
        return tuple(self._rounds)
