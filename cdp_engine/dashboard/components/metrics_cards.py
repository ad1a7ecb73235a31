"""Reusable metric card components and unit formatting for the dashboard."""

from decimal import Decimal

import streamlit as st

from cdp_engine.data.constants import MAX_HEALTH_FACTOR, PRECISION


def to_units(value: float, decimals: int = 18) -> int:
    """Convert a human amount from a number input to fixed-point units."""
    return int(Decimal(str(value)) * (Decimal(10) ** decimals))


def format_units(amount: int, decimals: int = 18, places: int = 2) -> str:
    return f"{Decimal(amount) / (Decimal(10) ** decimals):,.{places}f}"


def format_health_factor(hf: int) -> str:
    if hf == MAX_HEALTH_FACTOR:
        return "∞"
    return f"{hf / PRECISION:.4f}"


def metric_card(label: str, value: str, delta: str | None = None) -> None:
    """Display a single metric using Streamlit's built-in metric."""
    st.metric(label=label, value=value, delta=delta)


def kpi_row(metrics: list[tuple[str, str, str | None]]) -> None:
    """Display a row of KPI cards.

    Args:
        metrics: List of (label, value, delta) tuples.
    """
    cols = st.columns(len(metrics))
    for col, (label, value, delta) in zip(cols, metrics):
        with col:
            metric_card(label, value, delta)
