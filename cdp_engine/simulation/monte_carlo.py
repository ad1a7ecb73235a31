"""Monte Carlo simulation of a position's collateral price.

The collateral/USD price follows a jump-diffusion (GBM plus Poisson crash
events). Whether a path is liquidatable is decided by comparing the simulated
8-decimal feed price against the position's exact liquidation price, so a
path counts as liquidated precisely when the engine would accept a
liquidation at that price. Health factor paths are floats and only used for
charts.
"""

from __future__ import annotations

import numpy as np

from cdp_engine.data.constants import (
    FEED_DECIMALS,
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    PRECISION,
)
from cdp_engine.protocol.solvency import liquidation_price
from cdp_engine.simulation.params import PriceDynamicsParams
from cdp_engine.simulation.results import MonteCarloResult

_INT64_MAX = np.iinfo(np.int64).max


def simulate_price_paths(
    params: PriceDynamicsParams,
    p0: float,
    n_paths: int,
    n_steps: int,
    dt: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """Simulate USD price paths via GBM with multiplicative jumps.

    Args:
        params: Price dynamics parameters.
        p0: Initial USD price.
        n_paths: Number of Monte Carlo paths.
        n_steps: Number of time steps, including the initial state.
        dt: Time step size in years (e.g. 1/365).
        rng: Numpy random generator for reproducibility.

    Returns:
        (n_paths, n_steps) array of prices, floored at one cent.
    """
    paths = np.empty((n_paths, n_steps))
    paths[:, 0] = p0

    sigma = params.volatility
    sqrt_dt = np.sqrt(dt)
    noise = rng.standard_normal((n_paths, n_steps - 1))
    jumps = rng.binomial(1, min(1.0, params.jump_intensity * dt), (n_paths, n_steps - 1))

    for t in range(1, n_steps):
        log_return = (params.drift - 0.5 * sigma * sigma) * dt + sigma * sqrt_dt * noise[:, t - 1]
        jump_factor = 1.0 + params.jump_size * jumps[:, t - 1]
        paths[:, t] = paths[:, t - 1] * np.exp(log_return) * jump_factor

    np.clip(paths, 0.01, None, out=paths)
    return paths


def run_monte_carlo(
    collateral_amount: int,
    total_debt: int,
    initial_price: int,
    params: PriceDynamicsParams | None = None,
    n_paths: int = 1000,
    horizon_days: int = 30,
    seed: int | None = None,
) -> MonteCarloResult:
    """Estimate how likely a single-asset position is to become liquidatable.

    Args:
        collateral_amount: Collateral in native units (18 decimals).
        total_debt: Debt in stablecoin units (18 decimals).
        initial_price: Current 8-decimal feed price.
        params: Price dynamics; defaults used if None.
        n_paths: Number of simulation paths.
        horizon_days: Simulation horizon in days.
        seed: Random seed for reproducibility.

    Returns:
        MonteCarloResult with price and health factor paths.
    """
    if params is None:
        params = PriceDynamicsParams()

    rng = np.random.default_rng(seed)
    n_steps = horizon_days + 1  # index 0 = initial state
    p0 = initial_price / 10**FEED_DECIMALS

    price_paths = simulate_price_paths(params, p0, n_paths, n_steps, 1.0 / 365.0, rng)

    liq_price = liquidation_price(collateral_amount, total_debt)
    feed_paths = np.floor(price_paths * 10**FEED_DECIMALS).astype(np.int64)
    if liq_price > _INT64_MAX:
        below = np.ones_like(feed_paths, dtype=bool)
    else:
        below = feed_paths < np.int64(liq_price)

    liquidated = np.any(below, axis=1)
    first_step = np.where(liquidated, np.argmax(below, axis=1), -1)

    if total_debt > 0:
        collateral_units = collateral_amount / PRECISION
        debt_units = total_debt / PRECISION
        ratio = LIQUIDATION_THRESHOLD / LIQUIDATION_PRECISION
        hf_paths = collateral_units * price_paths * ratio / debt_units
    else:
        hf_paths = np.full_like(price_paths, np.inf)

    return MonteCarloResult(
        price_paths=price_paths,
        hf_paths=hf_paths,
        liquidated=liquidated,
        first_liquidation_step=first_step,
        timesteps=np.arange(n_steps, dtype=float),
        liquidation_price=liq_price,
    )
