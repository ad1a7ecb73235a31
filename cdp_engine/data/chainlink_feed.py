"""On-chain price feed reading Chainlink USD aggregators via web3.py."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from cdp_engine.data.constants import FEED_DECIMALS
from cdp_engine.data.contracts import CHAINLINK_FEED_ABI, FEED_ADDRESSES
from cdp_engine.data.interfaces import PriceFeed

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# TTL cache
# ---------------------------------------------------------------------------

class _TTLCache:
    """Simple dict-based cache with per-entry TTL expiry."""

    def __init__(self, ttl: float) -> None:
        self._ttl = ttl
        self._store: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        ts, value = entry
        if time.monotonic() - ts > self._ttl:
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._store[key] = (time.monotonic(), value)

    def clear(self) -> None:
        self._store.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _rescale_answer(answer: int, decimals: int) -> int:
    """Rescale an aggregator answer to the engine's 8-decimal price format."""
    if decimals > FEED_DECIMALS:
        return answer // 10 ** (decimals - FEED_DECIMALS)
    return answer * 10 ** (FEED_DECIMALS - decimals)


# ---------------------------------------------------------------------------
# ChainlinkPriceFeed
# ---------------------------------------------------------------------------

class ChainlinkPriceFeed(PriceFeed):
    """Live Chainlink price feed via web3.py.

    Parameters
    ----------
    rpc_url : str
        Ethereum JSON-RPC endpoint URL.
    cache_ttl : float
        Seconds before a cached round expires (default 15). The cache only
        saves RPC round-trips; staleness is still judged from ``updatedAt``.
    feed_addresses : dict[str, str] | None
        Feed id to aggregator address. Defaults to the mainnet USD feeds.
    """

    def __init__(
        self,
        rpc_url: str,
        cache_ttl: float = 15.0,
        feed_addresses: dict[str, str] | None = None,
    ) -> None:
        from web3 import Web3

        self._w3 = Web3(Web3.HTTPProvider(rpc_url))
        self._cache = _TTLCache(cache_ttl)
        self._feed_addresses = dict(feed_addresses or FEED_ADDRESSES)

        # Lazily built aggregator contracts and their decimals
        self._contracts: dict[str, Any] = {}
        self._decimals: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _contract(self, feed_id: str) -> Any:
        """Build (once) the aggregator contract for *feed_id*."""
        if feed_id in self._contracts:
            return self._contracts[feed_id]

        raw = self._feed_addresses.get(feed_id)
        if raw is None:
            raise KeyError(f"Unknown price feed: {feed_id}")
        contract = self._w3.eth.contract(
            address=self._w3.to_checksum_address(raw),
            abi=CHAINLINK_FEED_ABI,
        )
        self._contracts[feed_id] = contract
        return contract

    def _cached_call(self, cache_key: str, fetcher: Callable[[], Any]) -> Any:
        """Cache → RPC pipeline. RPC failures propagate to the caller."""
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            value = fetcher()
        except Exception as exc:
            logger.warning("RPC call failed for key=%s", cache_key, exc_info=True)
            raise RuntimeError(f"RPC call failed for {cache_key}") from exc
        self._cache.set(cache_key, value)
        return value

    # ------------------------------------------------------------------
    # PriceFeed interface
    # ------------------------------------------------------------------

    def latest_price(self, feed_id: str) -> tuple[int, int]:
        contract = self._contract(feed_id)

        def _fetch() -> tuple[int, int]:
            if feed_id not in self._decimals:
                self._decimals[feed_id] = int(contract.functions.decimals().call())
            round_data = contract.functions.latestRoundData().call()
            answer, updated_at = int(round_data[1]), int(round_data[3])
            if answer <= 0:
                raise ValueError(f"Non-positive answer {answer} from {feed_id}")
            return _rescale_answer(answer, self._decimals[feed_id]), updated_at

        return self._cached_call(f"round:{feed_id}", _fetch)

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Invalidate all cached rounds, forcing fresh RPC calls."""
        self._cache.clear()

    @property
    def is_connected(self) -> bool:
        """Check if the Web3 provider is connected."""
        try:
            return self._w3.is_connected()
        except Exception:
            return False
