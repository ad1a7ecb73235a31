"""Health factor across a range of collateral prices."""

from __future__ import annotations

import numpy as np
import pandas as pd

from cdp_engine.data.constants import FEED_DECIMALS, MIN_HEALTH_FACTOR, PRECISION
from cdp_engine.protocol.solvency import calculate_health_factor, usd_value_of


def price_sensitivity(
    collateral_amount: int,
    total_debt: int,
    price_range: tuple[float, float],
    n_points: int = 50,
) -> pd.DataFrame:
    """Health factor of a single-asset position at evenly spaced prices.

    Every row is computed with the engine's integer formula, so the
    ``liquidatable`` column agrees exactly with what the engine would decide
    at that price.

    Args:
        collateral_amount: Collateral in native units (18 decimals).
        total_debt: Debt in stablecoin units (18 decimals).
        price_range: ``(low, high)`` USD prices.
        n_points: Number of prices to evaluate.

    Returns:
        DataFrame with columns: price_usd, price, health_factor, liquidatable.
        ``price`` is the 8-decimal feed value, ``health_factor`` a float.
    """
    low, high = price_range
    if low < 0 or high < low:
        raise ValueError(f"Invalid price range: {price_range}")

    rows = []
    for price_usd in np.linspace(low, high, n_points):
        price = int(round(float(price_usd) * 10**FEED_DECIMALS))
        hf = calculate_health_factor(total_debt, usd_value_of(collateral_amount, price))
        rows.append(
            {
                "price_usd": float(price_usd),
                "price": price,
                "health_factor": hf / PRECISION if total_debt > 0 else float("inf"),
                "liquidatable": hf < MIN_HEALTH_FACTOR,
            }
        )
    return pd.DataFrame(rows)
