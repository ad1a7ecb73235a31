"""Simulations page: Monte Carlo liquidation risk and liquidation cascade."""

import numpy as np
import streamlit as st

from cdp_engine.dashboard.components.charts import (
    cascade_waterfall_chart,
    liquidation_probability_chart,
    price_fan_chart,
)
from cdp_engine.dashboard.components.metrics_cards import format_units, to_units
from cdp_engine.data.constants import FEED_DECIMALS, WETH
from cdp_engine.simulation.liquidation_cascade import (
    AccountSpec,
    CascadeConfig,
    falling_price_path,
    simulate_cascade,
)
from cdp_engine.simulation.monte_carlo import run_monte_carlo
from cdp_engine.simulation.params import PriceDynamicsParams
from cdp_engine.simulation.sandbox import Sandbox


def render_simulations(sandbox: Sandbox, user: str) -> None:
    """Render the simulations page with 2 sections."""
    st.header("Simulations")

    engine = sandbox.engine
    weth = engine.collateral_balance(user, WETH)
    debt = engine.debt_balance(user)
    eth_price = sandbox.price_feed.latest_price(engine.price_feed_for(WETH))[0]

    # --- Section 1: Monte Carlo ---
    st.subheader("Monte Carlo: WETH Position")

    with st.expander("Simulation Parameters", expanded=False):
        mc_col1, mc_col2, mc_col3 = st.columns(3)
        with mc_col1:
            n_paths = st.number_input("Paths", min_value=100, max_value=10000, value=1000, step=100)
            horizon = st.number_input("Horizon (days)", min_value=1, max_value=365, value=30, step=1)
        with mc_col2:
            vol = st.number_input("Volatility", min_value=0.05, max_value=3.0, value=0.80, step=0.05, format="%.2f")
            drift = st.number_input("Drift", min_value=-1.0, max_value=1.0, value=0.0, step=0.05, format="%.2f")
        with mc_col3:
            jump_intensity = st.number_input("Crashes per Year", min_value=0.0, max_value=20.0, value=2.0, step=0.5)
            jump_size = st.number_input("Crash Size", min_value=-0.9, max_value=0.0, value=-0.15, step=0.05, format="%.2f")
            mc_seed = st.number_input("Random Seed", min_value=0, max_value=99999, value=42, step=1)

    if weth == 0 or debt == 0:
        st.info("Deposit WETH and mint debt to simulate liquidation risk.")
    else:
        params = PriceDynamicsParams(
            volatility=vol,
            drift=drift,
            jump_intensity=jump_intensity,
            jump_size=jump_size,
        )
        mc_result = run_monte_carlo(
            collateral_amount=weth,
            total_debt=debt,
            initial_price=eth_price,
            params=params,
            n_paths=int(n_paths),
            horizon_days=int(horizon),
            seed=int(mc_seed),
        )

        terminal = mc_result.price_paths[:, -1]
        kpi1, kpi2, kpi3, kpi4 = st.columns(4)
        with kpi1:
            st.metric("Liquidation Prob", f"{mc_result.liquidation_probability * 100:.1f}%")
        with kpi2:
            st.metric("Liquidation Price", f"${mc_result.liquidation_price / 10**FEED_DECIMALS:,.2f}")
        with kpi3:
            st.metric("Median Final Price", f"${float(np.median(terminal)):,.2f}")
        with kpi4:
            st.metric("5th Percentile Price", f"${float(np.percentile(terminal, 5)):,.2f}")

        chart_col1, chart_col2 = st.columns(2)
        with chart_col1:
            st.plotly_chart(price_fan_chart(mc_result), use_container_width=True)
        with chart_col2:
            st.plotly_chart(liquidation_probability_chart(mc_result), use_container_width=True)

    st.divider()

    # --- Section 2: Liquidation Cascade ---
    st.subheader("Liquidation Cascade")
    st.caption(
        "A population of WETH-backed accounts is opened at the current price, "
        "then the price falls step by step. Every unhealthy account is "
        "liquidated through the engine; accounts below 110% collateralization "
        "cannot pay the bonus and stay on the books."
    )

    cas_col1, cas_col2, cas_col3 = st.columns(3)
    with cas_col1:
        n_accounts = st.number_input("Accounts", min_value=1, max_value=200, value=50, step=10)
        min_ratio = st.number_input(
            "Lowest Collateral Ratio", min_value=2.01, max_value=5.0, value=2.05, step=0.05, format="%.2f"
        )
    with cas_col2:
        max_ratio = st.number_input(
            "Highest Collateral Ratio", min_value=2.01, max_value=10.0, value=4.0, step=0.25, format="%.2f"
        )
        final_drop = st.slider("Total Price Drop (%)", min_value=5, max_value=90, value=60)
    with cas_col3:
        n_steps = st.number_input("Steps", min_value=2, max_value=100, value=20, step=1)
        impact = st.number_input(
            "Price Impact per WETH Seized",
            min_value=0.0,
            max_value=0.01,
            value=0.0,
            step=0.0001,
            format="%.4f",
        )

    start_usd = eth_price / 10**FEED_DECIMALS
    debt_per_account = to_units(10_000.0)
    accounts = []
    for i, ratio in enumerate(np.linspace(min_ratio, max(min_ratio, max_ratio), int(n_accounts))):
        collateral_usd = to_units(10_000.0 * float(ratio))
        collateral = engine.token_amount_from_usd(WETH, collateral_usd)
        accounts.append(AccountSpec(user=f"account-{i}", collateral=collateral, debt=debt_per_account))

    config = CascadeConfig(
        price_path=falling_price_path(start_usd, start_usd * (1 - final_drop / 100), int(n_steps)),
        opening_price=eth_price,
        price_impact_per_unit=impact,
    )
    cascade_result = simulate_cascade(accounts, config)

    cas_kpi1, cas_kpi2, cas_kpi3 = st.columns(3)
    with cas_kpi1:
        st.metric("Debt Liquidated", format_units(cascade_result.total_debt_liquidated, places=0))
    with cas_kpi2:
        st.metric("WETH Seized", format_units(cascade_result.total_collateral_seized, places=2))
    with cas_kpi3:
        st.metric("Unliquidatable Debt", format_units(cascade_result.stuck_debt, places=0))

    st.plotly_chart(cascade_waterfall_chart(cascade_result), use_container_width=True)

    if cascade_result.steps:
        st.dataframe(cascade_result.to_dataframe(), use_container_width=True)
