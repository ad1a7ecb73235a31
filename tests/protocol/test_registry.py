"""Tests for the collateral allow-list."""

import pytest

from cdp_engine.data.constants import BTC_USD, ETH_USD, WBTC, WETH
from cdp_engine.data.interfaces import CollateralAsset
from cdp_engine.protocol.errors import AssetNotAllowed, ConfigurationMismatch
from cdp_engine.protocol.registry import AssetRegistry


@pytest.fixture
def registry() -> AssetRegistry:
    return AssetRegistry.from_pairs([WETH, WBTC], [ETH_USD, BTC_USD])


class TestAssetRegistry:
    def test_order_preserved(self, registry: AssetRegistry) -> None:
        assert registry.assets == (WETH, WBTC)
        assert list(registry) == [
            CollateralAsset(WETH, ETH_USD),
            CollateralAsset(WBTC, BTC_USD),
        ]
        assert len(registry) == 2

    def test_feed_lookup(self, registry: AssetRegistry) -> None:
        assert registry.feed_for(WETH) == ETH_USD
        assert registry.feed_for(WBTC) == BTC_USD

    def test_membership(self, registry: AssetRegistry) -> None:
        assert WETH in registry
        assert "DOGE" not in registry

    def test_unknown_asset(self, registry: AssetRegistry) -> None:
        with pytest.raises(AssetNotAllowed) as excinfo:
            registry.require("DOGE")
        assert excinfo.value.asset == "DOGE"
        with pytest.raises(AssetNotAllowed):
            registry.feed_for("DOGE")

    def test_length_mismatch(self) -> None:
        with pytest.raises(ConfigurationMismatch):
            AssetRegistry.from_pairs([WETH, WBTC], [ETH_USD])

    def test_duplicate_asset(self) -> None:
        with pytest.raises(ConfigurationMismatch):
            AssetRegistry.from_pairs([WETH, WETH], [ETH_USD, BTC_USD])

    def test_empty_registry(self) -> None:
        registry = AssetRegistry.from_pairs([], [])
        assert registry.assets == ()
