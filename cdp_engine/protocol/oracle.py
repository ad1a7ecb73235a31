"""Staleness-checked access to a price feed."""

from __future__ import annotations

import logging
import time
from typing import Callable

from cdp_engine.data.constants import PRICE_TIMEOUT
from cdp_engine.data.interfaces import PriceFeed
from cdp_engine.protocol.errors import StalePrice

logger = logging.getLogger(__name__)


class PriceOracleAdapter:
    """Reads 8-decimal USD prices and rejects rounds older than the timeout."""

    def __init__(
        self,
        feed: PriceFeed,
        timeout: int = PRICE_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._feed = feed
        self.timeout = timeout
        self._clock = clock

    def latest_price(self, feed_id: str) -> int:
        price, updated_at = self._feed.latest_price(feed_id)
        age = int(self._clock()) - updated_at
        if age > self.timeout:
            logger.warning("Stale price for %s: %ds old (timeout %ds)", feed_id, age, self.timeout)
            raise StalePrice(feed_id, age)
        return price
