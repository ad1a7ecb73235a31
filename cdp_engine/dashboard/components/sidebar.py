"""Sidebar parameter controls."""

from dataclasses import dataclass

import streamlit as st

from cdp_engine.dashboard.components.metrics_cards import to_units
from cdp_engine.data.constants import FEED_DECIMALS


@dataclass
class SidebarParams:
    """User-controlled parameters from the sidebar, in fixed-point units."""

    weth_collateral: int
    wbtc_collateral: int
    debt: int
    eth_price: int
    btc_price: int
    eth_shock: float


def render_sidebar(
    live_eth_price: float | None = None,
    live_btc_price: float | None = None,
) -> SidebarParams:
    """Render sidebar controls and return selected parameters.

    Parameters
    ----------
    live_eth_price, live_btc_price : float | None
        If provided, used as the default prices (from on-chain feeds).
    """
    st.sidebar.header("Position Parameters")

    weth = st.sidebar.number_input(
        "WETH Collateral", min_value=0.0, value=10.0, step=1.0, format="%.4f"
    )
    wbtc = st.sidebar.number_input(
        "WBTC Collateral", min_value=0.0, value=0.0, step=0.1, format="%.4f"
    )
    debt = st.sidebar.number_input(
        "Stablecoin Debt", min_value=0.0, value=5_000.0, step=100.0, format="%.2f"
    )

    st.sidebar.header("Prices (USD)")

    eth_price = st.sidebar.number_input(
        "ETH/USD",
        min_value=0.01,
        value=round(live_eth_price, 2) if live_eth_price is not None else 2_000.0,
        step=50.0,
        format="%.2f",
    )
    btc_price = st.sidebar.number_input(
        "BTC/USD",
        min_value=0.01,
        value=round(live_btc_price, 2) if live_btc_price is not None else 1_000.0,
        step=100.0,
        format="%.2f",
    )
    if live_eth_price is not None:
        st.sidebar.caption(f"Defaults from Chainlink: ETH ${live_eth_price:,.2f}")

    st.sidebar.header("What-If Analysis")

    eth_shock = st.sidebar.slider(
        "ETH Price Change After Opening (%)",
        min_value=-90,
        max_value=50,
        value=0,
        step=1,
    ) / 100.0
    st.sidebar.caption(
        "The position is opened at the prices above, then the ETH/USD feed "
        "moves by this amount."
    )

    return SidebarParams(
        weth_collateral=to_units(weth),
        wbtc_collateral=to_units(wbtc),
        debt=to_units(debt),
        eth_price=to_units(eth_price, FEED_DECIMALS),
        btc_price=to_units(btc_price, FEED_DECIMALS),
        eth_shock=eth_shock,
    )
