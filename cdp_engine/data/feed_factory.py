"""Selects the price source the engine reads from."""

from __future__ import annotations

import logging
import os

from cdp_engine.data.chainlink_feed import ChainlinkPriceFeed
from cdp_engine.data.interfaces import PriceFeed
from cdp_engine.data.static_params import StaticPriceFeed

logger = logging.getLogger(__name__)


def create_price_feed(
    use_onchain: bool = False,
    rpc_url: str | None = None,
    cache_ttl: float = 15.0,
) -> PriceFeed:
    """Return a Chainlink-backed feed when asked for one, else static prices.

    Parameters
    ----------
    use_onchain : bool
        Read live aggregator rounds instead of the built-in prices.
    rpc_url : str | None
        JSON-RPC endpoint; ``ETH_RPC_URL`` is used when omitted.
    cache_ttl : float
        Seconds a fetched round is reused before the node is asked again.

    A missing endpoint or a client that cannot be constructed is logged and
    answered with a ``StaticPriceFeed``.
    """
    if not use_onchain:
        return StaticPriceFeed()

    url = rpc_url or os.environ.get("ETH_RPC_URL")
    if not url:
        logger.warning("On-chain prices requested but no RPC URL provided; using static prices")
        return StaticPriceFeed()

    try:
        return ChainlinkPriceFeed(rpc_url=url, cache_ttl=cache_ttl)
    except Exception:
        logger.warning("Failed to create ChainlinkPriceFeed; using static prices", exc_info=True)
        return StaticPriceFeed()
