"""Plotly figures for the dashboard tabs."""

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from cdp_engine.data.constants import FEED_DECIMALS
from cdp_engine.simulation.results import CascadeResult, MonteCarloResult

GREEN = "#22c55e"
AMBER = "#f59e0b"
RED = "#ef4444"
BLUE = "#3b82f6"

# Health factors above this are drawn at the end of the gauge
GAUGE_MAX = 3.0


def _dark(fig: go.Figure, title: str, x_title: str, y_title: str, height: int = 450, **extra) -> go.Figure:
    fig.update_layout(
        title=title,
        xaxis_title=x_title,
        yaxis_title=y_title,
        template="plotly_dark",
        height=height,
        **extra,
    )
    return fig


def _hf_colour(hf: float) -> str:
    if hf < 1.1:
        return RED
    if hf < 1.5:
        return AMBER
    return GREEN


def health_factor_gauge(hf: float) -> go.Figure:
    """Gauge for a health factor given as a float (``inf`` when debt-free)."""
    shown = GAUGE_MAX if np.isinf(hf) else min(hf, GAUGE_MAX)
    gauge = go.Indicator(
        mode="gauge+number",
        value=shown,
        number={"valueformat": ".2f", "font": {"size": 40}},
        title={"text": "Health Factor", "font": {"size": 16}},
        domain={"x": [0, 1], "y": [0.15, 1]},
        gauge={
            "axis": {"range": [0, GAUGE_MAX]},
            "bar": {"color": _hf_colour(hf)},
            "steps": [
                {"range": [0, 1], "color": "rgba(239,68,68,0.2)"},
                {"range": [1, 1.5], "color": "rgba(245,158,11,0.2)"},
                {"range": [1.5, GAUGE_MAX], "color": "rgba(34,197,94,0.2)"},
            ],
            "threshold": {"value": 1.0, "thickness": 0.75, "line": {"color": "white", "width": 2}},
        },
    )
    fig = go.Figure(gauge)
    fig.update_layout(template="plotly_dark", height=350, margin=dict(t=40, b=0, l=30, r=30))
    return fig


def price_sensitivity_chart(df: pd.DataFrame, liquidation_price_usd: float | None = None) -> go.Figure:
    """Health factor against collateral price.

    Args:
        df: Output of ``price_sensitivity``.
        liquidation_price_usd: Marked with a vertical line when given.
    """
    fig = go.Figure(
        go.Scatter(
            x=df["price_usd"],
            y=df["health_factor"],
            mode="lines",
            name="Health Factor",
            line=dict(color=BLUE, width=2),
            hovertemplate="$%{x:,.2f}: HF %{y:.3f}<extra></extra>",
        )
    )
    fig.add_hline(y=1.0, line_dash="dash", line_color=RED, annotation_text="Minimum health factor")
    if liquidation_price_usd is not None:
        fig.add_vline(
            x=liquidation_price_usd,
            line_dash="dot",
            line_color=AMBER,
            annotation_text=f"Liquidation at ${liquidation_price_usd:,.2f}",
        )
    return _dark(fig, "Health Factor vs Collateral Price", "Collateral Price (USD)", "Health Factor")


def _band(days: np.ndarray, upper: np.ndarray, lower: np.ndarray, alpha: float, name: str) -> go.Scatter:
    return go.Scatter(
        x=np.concatenate([days, days[::-1]]),
        y=np.concatenate([upper, lower[::-1]]),
        fill="toself",
        fillcolor=f"rgba(59,130,246,{alpha})",
        line=dict(color="rgba(0,0,0,0)"),
        name=name,
        hoverinfo="skip",
    )


def price_fan_chart(mc_result: MonteCarloResult) -> go.Figure:
    """Percentile bands of the simulated collateral price."""
    days = mc_result.timesteps
    lo, q1, median, q3, hi = np.percentile(mc_result.price_paths, [5, 25, 50, 75, 95], axis=0)

    fig = go.Figure()
    fig.add_trace(_band(days, hi, lo, 0.1, "5th-95th percentile"))
    fig.add_trace(_band(days, q3, q1, 0.25, "25th-75th percentile"))
    fig.add_trace(
        go.Scatter(
            x=days,
            y=median,
            mode="lines",
            name="Median",
            line=dict(color=BLUE, width=2),
            hovertemplate="Day %{x:.0f}: $%{y:,.2f}<extra></extra>",
        )
    )

    if mc_result.liquidation_price > 0:
        boundary = mc_result.liquidation_price / 10**FEED_DECIMALS
        fig.add_hline(
            y=boundary,
            line_dash="dash",
            line_color=RED,
            annotation_text=f"Liquidation price ${boundary:,.2f}",
        )
    return _dark(fig, "Simulated Collateral Price", "Day", "Price (USD)")


def liquidation_probability_chart(mc_result: MonteCarloResult) -> go.Figure:
    """Share of paths that have become liquidatable by each day."""
    curve = mc_result.cumulative_liquidation_probability()
    fig = go.Figure(
        go.Scatter(
            x=curve["day"],
            y=curve["probability"] * 100,
            mode="lines",
            fill="tozeroy",
            fillcolor="rgba(239,68,68,0.15)",
            line=dict(color=RED, width=2),
            name="Liquidatable",
            hovertemplate="Day %{x:.0f}: %{y:.2f}%<extra></extra>",
        )
    )
    return _dark(
        fig,
        "Cumulative Liquidation Probability",
        "Day",
        "Paths liquidatable (%)",
        height=400,
        yaxis=dict(range=[0, 100]),
    )


def cascade_waterfall_chart(cascade_result: CascadeResult) -> go.Figure:
    """Liquidated and stuck debt per step, with the WETH price on a second axis."""
    fig = go.Figure()
    if not cascade_result.steps:
        fig.update_layout(title="No cascade steps", template="plotly_dark", height=400)
        return fig

    df = cascade_result.to_dataframe()
    for column, label, colour in (
        ("debt_liquidated", "Debt liquidated", GREEN),
        ("unhealthy_debt", "Unliquidatable debt", RED),
    ):
        fig.add_trace(
            go.Bar(
                x=df["step"],
                y=df[column],
                name=label,
                marker_color=colour,
                opacity=0.8,
                hovertemplate=f"Step %{{x}}: %{{y:,.0f}} {label.lower()}<extra></extra>",
            )
        )
    fig.add_trace(
        go.Scatter(
            x=df["step"],
            y=df["price_usd"],
            name="WETH price",
            yaxis="y2",
            line=dict(color=AMBER, width=2),
            hovertemplate="Step %{x}: $%{y:,.2f}<extra></extra>",
        )
    )
    fig.update_layout(
        yaxis2=dict(title="WETH Price (USD)", overlaying="y", side="right"),
        barmode="group",
        legend=dict(x=0.01, y=0.99),
    )
    return _dark(fig, "Liquidation Cascade", "Step", "Debt (stablecoin)")
