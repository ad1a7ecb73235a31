"""Liquidation Analysis page: liquidation price, price sensitivity, bonus preview."""

import pandas as pd
import streamlit as st

from cdp_engine.dashboard.components.charts import price_sensitivity_chart
from cdp_engine.dashboard.components.metrics_cards import (
    format_health_factor,
    format_units,
    to_units,
)
from cdp_engine.data.constants import FEED_DECIMALS, MIN_HEALTH_FACTOR, WETH
from cdp_engine.protocol.solvency import calculate_health_factor, liquidation_price, usd_value_of
from cdp_engine.simulation.sandbox import Sandbox
from cdp_engine.simulation.sensitivity import price_sensitivity


def render_liquidation(sandbox: Sandbox, user: str) -> None:
    """Render the liquidation analysis page."""
    st.header("Liquidation Analysis")

    engine = sandbox.engine
    weth = engine.collateral_balance(user, WETH)
    debt = engine.debt_balance(user)
    eth_price = sandbox.price_feed.latest_price(engine.price_feed_for(WETH))[0]
    other_usd = engine.total_collateral_usd(user) - usd_value_of(weth, eth_price)

    if debt == 0:
        st.info("The account has no debt and cannot be liquidated.")
        return

    hf = engine.health_factor(user)
    if hf < MIN_HEALTH_FACTOR:
        st.error(f"Account is liquidatable (health factor {format_health_factor(hf)})")

    # --- WETH price sensitivity ---
    st.subheader("WETH Price Sensitivity")
    if other_usd > 0:
        st.caption("Only the WETH collateral is repriced; other collateral is ignored here.")

    liq_usd = None
    if weth > 0:
        liq_price = liquidation_price(weth, debt)
        liq_usd = liq_price / 10**FEED_DECIMALS
        drop = 1.0 - liq_price / eth_price
        st.metric(
            "WETH Liquidation Price",
            f"${liq_usd:,.2f}",
            f"{-drop * 100:.2f}% from current" if drop > 0 else "below current price",
            delta_color="off",
        )

        current_usd = eth_price / 10**FEED_DECIMALS
        df = price_sensitivity(weth, debt, (current_usd * 0.2, current_usd * 1.5), n_points=80)
        st.plotly_chart(price_sensitivity_chart(df, liq_usd), use_container_width=True)
    else:
        st.caption("No WETH collateral deposited.")

    # Scenario table, computed with the engine's integer formula
    st.subheader("Price Shock Scenarios")
    rows = []
    for shock in [0.0, -0.1, -0.2, -0.3, -0.4, -0.5, -0.6]:
        shocked = int(eth_price * (1.0 + shock))
        collateral_usd = usd_value_of(weth, shocked) + other_usd
        scenario_hf = calculate_health_factor(debt, collateral_usd)
        rows.append(
            {
                "WETH Shock": f"{shock * 100:.0f}%",
                "WETH Price": f"${shocked / 10**FEED_DECIMALS:,.2f}",
                "Collateral Value": f"${format_units(collateral_usd)}",
                "Health Factor": format_health_factor(scenario_hf),
                "Status": "Safe" if scenario_hf >= MIN_HEALTH_FACTOR else "LIQUIDATABLE",
            }
        )
    st.table(pd.DataFrame(rows))

    st.divider()

    # --- Bonus preview ---
    st.subheader("Liquidator Payout Preview")
    cover = st.number_input(
        "Debt to Cover",
        min_value=0.01,
        value=float(debt) / 1e18,
        step=100.0,
        format="%.2f",
    )
    asset = st.selectbox("Collateral to Seize", engine.collateral_assets())
    token_amount, bonus = engine.liquidation_bonus_preview(asset, to_units(cover))
    available = engine.collateral_balance(user, asset)

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric(f"{asset} for Debt", format_units(token_amount, places=6))
    with col2:
        st.metric("Bonus (10%)", format_units(bonus, places=6))
    with col3:
        st.metric("Account Holds", format_units(available, places=6))

    if token_amount + bonus > available:
        st.warning(
            "The account cannot pay this payout in the chosen asset; "
            "the engine would reject the liquidation."
        )
