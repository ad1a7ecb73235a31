"""An engine wired to in-memory collaborators for simulations and demos."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from cdp_engine.data.in_memory import InMemoryDebtToken, InMemoryVault
from cdp_engine.data.static_params import DEFAULT_COLLATERAL, StaticPriceFeed
from cdp_engine.protocol.engine import StablecoinEngine

ENGINE_ADDRESS = "engine"


@dataclass
class Sandbox:
    """An engine together with the in-memory world it runs against."""

    engine: StablecoinEngine
    price_feed: StaticPriceFeed
    vault: InMemoryVault
    debt_token: InMemoryDebtToken

    def set_price(self, asset: str, price: int) -> None:
        """Publish a new 8-decimal price for ``asset``'s feed."""
        self.price_feed.set_price(self.engine.price_feed_for(asset), price)

    def open_position(self, user: str, asset: str, collateral: int, debt: int = 0) -> None:
        """Fund ``user``'s wallet, deposit ``collateral`` and mint ``debt``."""
        self.vault.fund(user, asset, collateral)
        if debt > 0:
            self.engine.deposit_collateral_and_mint(user, asset, collateral, debt)
        else:
            self.engine.deposit_collateral(user, asset, collateral)


def build_sandbox(
    prices: dict[str, int] | None = None,
    clock: Callable[[], float] = time.time,
) -> Sandbox:
    """Build an engine over the default allow-list with in-memory custody.

    Args:
        prices: 8-decimal prices keyed by feed id; defaults to the static
            WETH/WBTC prices.
        clock: Shared by the price feed and the staleness check, so prices
            only go stale when the caller moves the clock.
    """
    price_feed = StaticPriceFeed(prices, clock=clock)
    vault = InMemoryVault()
    debt_token = InMemoryDebtToken(owner=ENGINE_ADDRESS)
    engine = StablecoinEngine(
        collateral_assets=[c.asset for c in DEFAULT_COLLATERAL],
        price_feeds=[c.price_feed for c in DEFAULT_COLLATERAL],
        debt_token=debt_token,
        vault=vault,
        price_feed=price_feed,
        address=ENGINE_ADDRESS,
        clock=clock,
    )
    return Sandbox(engine=engine, price_feed=price_feed, vault=vault, debt_token=debt_token)
