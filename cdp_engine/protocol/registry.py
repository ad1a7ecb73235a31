"""Collateral allow-list, fixed at engine construction."""

from __future__ import annotations

from collections.abc import Sequence

from cdp_engine.data.interfaces import CollateralAsset
from cdp_engine.protocol.errors import AssetNotAllowed, ConfigurationMismatch


class AssetRegistry:
    """Ordered, immutable mapping of collateral assets to price feeds."""

    def __init__(self, assets: Sequence[CollateralAsset]) -> None:
        self._assets: tuple[CollateralAsset, ...] = tuple(assets)
        self._feeds: dict[str, str] = {}
        for entry in self._assets:
            if entry.asset in self._feeds:
                raise ConfigurationMismatch(f"Collateral asset listed twice: {entry.asset}")
            self._feeds[entry.asset] = entry.price_feed

    @classmethod
    def from_pairs(
        cls, assets: Sequence[str], price_feeds: Sequence[str]
    ) -> "AssetRegistry":
        """Pair two parallel lists; they must have equal length."""
        if len(assets) != len(price_feeds):
            raise ConfigurationMismatch(
                f"{len(assets)} collateral assets but {len(price_feeds)} price feeds"
            )
        return cls(
            [CollateralAsset(asset=a, price_feed=f) for a, f in zip(assets, price_feeds)]
        )

    @property
    def assets(self) -> tuple[str, ...]:
        return tuple(entry.asset for entry in self._assets)

    def __iter__(self):
        return iter(self._assets)

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, asset: object) -> bool:
        return asset in self._feeds

    def require(self, asset: str) -> None:
        if asset not in self._feeds:
            raise AssetNotAllowed(asset)

    def feed_for(self, asset: str) -> str:
        self.require(asset)
        return self._feeds[asset]
