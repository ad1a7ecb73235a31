"""Tests for the static price feed and default configuration."""

import pytest

from cdp_engine.data.constants import BTC_USD, ETH_USD, WBTC, WETH
from cdp_engine.data.interfaces import PriceFeed
from cdp_engine.data.static_params import DEFAULT_COLLATERAL, StaticPriceFeed


class TestDefaults:
    def test_default_collateral_order(self) -> None:
        assert [c.asset for c in DEFAULT_COLLATERAL] == [WETH, WBTC]
        assert [c.price_feed for c in DEFAULT_COLLATERAL] == [ETH_USD, BTC_USD]

    def test_default_prices(self) -> None:
        feed = StaticPriceFeed(clock=lambda: 100)
        assert feed.latest_price(ETH_USD) == (2_000 * 10**8, 100)
        assert feed.latest_price(BTC_USD) == (1_000 * 10**8, 100)

    def test_is_a_price_feed(self) -> None:
        assert isinstance(StaticPriceFeed(), PriceFeed)


class TestStaticPriceFeed:
    def test_custom_prices_replace_defaults(self) -> None:
        feed = StaticPriceFeed({ETH_USD: 18 * 10**8}, clock=lambda: 0)
        assert feed.feed_ids == (ETH_USD,)
        assert feed.latest_price(ETH_USD)[0] == 18 * 10**8

    def test_set_price_stamps_clock(self) -> None:
        now = [1_000]
        feed = StaticPriceFeed(clock=lambda: now[0])
        now[0] = 5_000
        feed.set_price(ETH_USD, 1_500 * 10**8)
        assert feed.latest_price(ETH_USD) == (1_500 * 10**8, 5_000)
        # Untouched feed keeps its original round
        assert feed.latest_price(BTC_USD)[1] == 1_000

    def test_set_price_explicit_timestamp(self) -> None:
        feed = StaticPriceFeed(clock=lambda: 9_999)
        feed.set_price(ETH_USD, 1, updated_at=42)
        assert feed.latest_price(ETH_USD) == (1, 42)

    def test_fractional_clock_truncated(self) -> None:
        feed = StaticPriceFeed(clock=lambda: 123.9)
        assert feed.latest_price(ETH_USD)[1] == 123

    def test_unknown_feed(self) -> None:
        feed = StaticPriceFeed()
        with pytest.raises(KeyError, match="DOGE/USD"):
            feed.latest_price("DOGE/USD")
