"""Position Overview page: KPI cards and per-asset collateral."""

import pandas as pd
import streamlit as st

from cdp_engine.dashboard.components.charts import health_factor_gauge
from cdp_engine.dashboard.components.metrics_cards import (
    format_health_factor,
    format_units,
    kpi_row,
)
from cdp_engine.data.constants import FEED_DECIMALS, MAX_HEALTH_FACTOR, PRECISION
from cdp_engine.simulation.sandbox import Sandbox


def render_overview(sandbox: Sandbox, user: str) -> None:
    """Render the position overview page."""
    st.header("Position Overview")

    engine = sandbox.engine
    info = engine.account_information(user)
    hf = engine.health_factor(user)
    max_mintable = engine.max_mintable_usd(user)
    headroom = max(0, max_mintable - info.total_debt)

    col1, col2 = st.columns([1, 1])

    with col1:
        gauge_value = float("inf") if hf == MAX_HEALTH_FACTOR else hf / PRECISION
        st.plotly_chart(health_factor_gauge(gauge_value), use_container_width=True)

    with col2:
        st.subheader("Account")
        st.metric("Health Factor", format_health_factor(hf))
        st.metric("Collateral Value", f"${format_units(info.collateral_usd)}")
        st.metric("Debt", format_units(info.total_debt))

    st.divider()

    kpi_row(
        [
            ("Max Mintable", format_units(max_mintable), None),
            ("Mint Headroom", format_units(headroom), None),
            (
                "Collateral Ratio",
                f"{info.collateral_usd / info.total_debt * 100:,.1f}%" if info.total_debt else "n/a",
                None,
            ),
        ]
    )

    st.divider()

    st.subheader("Collateral by Asset")
    rows = []
    for asset in engine.collateral_assets():
        amount = engine.collateral_balance(user, asset)
        price = sandbox.price_feed.latest_price(engine.price_feed_for(asset))[0]
        rows.append(
            {
                "Asset": asset,
                "Feed": engine.price_feed_for(asset),
                "Amount": format_units(amount, places=4),
                "Price (USD)": f"{price / 10**FEED_DECIMALS:,.2f}",
                "Value (USD)": format_units(engine.usd_value(asset, amount)) if amount else "0.00",
            }
        )
    st.table(pd.DataFrame(rows))
