"""Stablecoin Engine Dashboard: main Streamlit entry point."""

import logging
import os
from pathlib import Path

import streamlit as st

# Load .env file if present (for ETH_RPC_URL, etc.)
_env_path = Path(__file__).resolve().parents[2] / ".env"
if _env_path.exists():
    for line in _env_path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, _, value = line.partition("=")
            os.environ.setdefault(key.strip(), value.strip())

from cdp_engine.dashboard.components.sidebar import render_sidebar
from cdp_engine.dashboard.tabs.liquidation import render_liquidation
from cdp_engine.dashboard.tabs.overview import render_overview
from cdp_engine.dashboard.tabs.simulations import render_simulations
from cdp_engine.data import create_price_feed
from cdp_engine.data.constants import BTC_USD, ETH_USD, FEED_DECIMALS, WBTC, WETH
from cdp_engine.data.static_params import StaticPriceFeed
from cdp_engine.protocol.errors import BelowMinimumHealthFactor
from cdp_engine.simulation.sandbox import build_sandbox

USER = "you"


def _live_prices(use_onchain: bool) -> tuple[float | None, float | None]:
    """Read ETH and BTC prices from Chainlink when on-chain data is selected."""
    if not use_onchain:
        return None, None

    feed = create_price_feed(use_onchain=True)
    if isinstance(feed, StaticPriceFeed):
        rpc_url = os.environ.get("ETH_RPC_URL", "")
        st.sidebar.error("Fell back to static prices")
        if not rpc_url:
            st.sidebar.caption("ETH_RPC_URL not found in environment")
        return None, None

    if st.sidebar.button("Refresh On-Chain Data"):
        feed.refresh()

    if not feed.is_connected:
        st.sidebar.error("On-chain: cannot reach RPC endpoint")
        return None, None

    try:
        eth = feed.latest_price(ETH_USD)[0] / 10**FEED_DECIMALS
        btc = feed.latest_price(BTC_USD)[0] / 10**FEED_DECIMALS
    except RuntimeError as exc:
        st.sidebar.error(f"RPC call failed: {exc}")
        return None, None

    st.sidebar.success("On-chain: connected")
    return eth, btc


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    st.set_page_config(
        page_title="Stablecoin Engine Dashboard",
        page_icon="🏦",
        layout="wide",
    )

    st.title("Stablecoin Engine Dashboard")
    st.caption("Overcollateralized CDP position analysis (200% collateral, 10% liquidation bonus)")

    use_onchain = st.sidebar.checkbox("Use On-Chain Prices", value=False, key="use_onchain")
    live_eth, live_btc = _live_prices(use_onchain)

    params = render_sidebar(live_eth_price=live_eth, live_btc_price=live_btc)

    # Open the position at the entered prices, then apply the what-if move
    sandbox = build_sandbox(prices={ETH_USD: params.eth_price, BTC_USD: params.btc_price})
    for asset, amount in ((WETH, params.weth_collateral), (WBTC, params.wbtc_collateral)):
        if amount > 0:
            sandbox.open_position(USER, asset, amount)
    if params.debt > 0:
        try:
            sandbox.engine.mint_debt(USER, params.debt)
        except BelowMinimumHealthFactor as exc:
            st.sidebar.error(
                f"Debt rejected: health factor would be {exc.health_factor / 1e18:.4f}"
            )

    if params.eth_shock != 0.0:
        sandbox.set_price(WETH, max(1, int(params.eth_price * (1.0 + params.eth_shock))))

    tab1, tab2, tab3 = st.tabs(
        [
            "Position Overview",
            "Liquidation Analysis",
            "Simulations",
        ]
    )

    with tab1:
        render_overview(sandbox, USER)

    with tab2:
        render_liquidation(sandbox, USER)

    with tab3:
        render_simulations(sandbox, USER)


if __name__ == "__main__":
    main()
