"""Parameters for collateral price dynamics in Monte Carlo simulations."""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class PriceDynamicsParams:
    """Parameters for the collateral/USD jump-diffusion process.

    The price follows:
      dS/S = (drift - 0.5σ²)dt + σ·dW + J·dN

    where J is the fractional jump size and dN a Poisson process with
    intensity λ.

    Attributes:
        volatility: Annualized volatility (σ).
        drift: Annualized drift.
        jump_intensity: Average number of crash events per year (λ).
        jump_size: Mean fractional jump size (negative = crash).
    """

    volatility: float = 0.80
    drift: float = 0.0
    jump_intensity: float = 2.0
    jump_size: float = -0.15


def calibrate_price_params(
    daily_prices: list[float],
    min_observations: int = 30,
) -> PriceDynamicsParams:
    """Calibrate price dynamics from a chronological series of daily closes.

    Returns the defaults when there are fewer than ``min_observations``
    prices.
    """
    if len(daily_prices) < min_observations:
        return PriceDynamicsParams()

    prices = np.array(daily_prices, dtype=float)
    log_returns = np.diff(np.log(prices))

    daily_vol = np.std(log_returns)

    # Jumps: returns beyond 3 standard deviations
    threshold = 3.0 * daily_vol
    jumps = log_returns[np.abs(log_returns) > threshold]
    n_days = len(log_returns)

    jump_intensity = (len(jumps) / n_days) * 365
    jump_size = float(np.mean(np.expm1(jumps))) if len(jumps) > 0 else -0.15

    diffusive = log_returns[np.abs(log_returns) <= threshold]
    if len(diffusive) > 1:
        volatility = float(np.std(diffusive) * np.sqrt(365))
        drift = float(np.mean(diffusive) * 365 + 0.5 * volatility**2)
    else:
        volatility = float(daily_vol * np.sqrt(365))
        drift = 0.0

    return PriceDynamicsParams(
        volatility=max(0.05, volatility),  # Floor at 5%
        drift=drift,
        jump_intensity=max(0.01, jump_intensity),
        jump_size=max(-0.99, jump_size),
    )
