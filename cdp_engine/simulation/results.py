"""Result dataclasses for simulation outputs."""

from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from cdp_engine.data.constants import FEED_DECIMALS, PRECISION


@dataclass(frozen=True)
class MonteCarloResult:
    """Results from a Monte Carlo collateral price simulation.

    Attributes:
        price_paths: (n_paths, n_steps) array of collateral USD prices.
        hf_paths: (n_paths, n_steps) array of health factors, for display.
        liquidated: (n_paths,) boolean array, True if the path became
            liquidatable at any step.
        first_liquidation_step: (n_paths,) index of the first liquidatable
            step, -1 where the path never became liquidatable.
        timesteps: (n_steps,) array of time in days.
        liquidation_price: Lowest 8-decimal price at which the position is
            still healthy; 0 when it has no debt.
    """

    price_paths: np.ndarray
    hf_paths: np.ndarray
    liquidated: np.ndarray
    first_liquidation_step: np.ndarray
    timesteps: np.ndarray
    liquidation_price: int

    @property
    def liquidation_probability(self) -> float:
        return float(np.mean(self.liquidated))

    def cumulative_liquidation_probability(self) -> pd.DataFrame:
        """Fraction of paths liquidatable by each day.

        Returns:
            DataFrame with columns: day, probability.
        """
        hit = self.first_liquidation_step
        n_paths = len(hit)
        counts = [
            int(np.sum((hit >= 0) & (hit <= t))) for t in range(len(self.timesteps))
        ]
        return pd.DataFrame(
            {
                "day": self.timesteps,
                "probability": np.array(counts, dtype=float) / max(n_paths, 1),
            }
        )


@dataclass(frozen=True)
class CascadeStep:
    """One price step of a liquidation cascade. Amounts are 18-decimal ints."""

    step: int
    price: int
    accounts_liquidated: int
    debt_liquidated: int
    collateral_seized: int
    failed_liquidations: int
    unhealthy_debt: int
    total_debt: int


@dataclass(frozen=True)
class LiquidationFailure:
    """An unhealthy account whose liquidation was rejected."""

    step: int
    user: str
    debt: int
    reason: str


@dataclass(frozen=True)
class CascadeResult:
    """Result of a liquidation cascade simulation."""

    steps: list[CascadeStep]
    total_debt_liquidated: int
    total_collateral_seized: int
    failures: list[LiquidationFailure] = field(default_factory=list)

    @property
    def stuck_debt(self) -> int:
        """Debt still unhealthy and unliquidatable after the last step."""
        return self.steps[-1].unhealthy_debt if self.steps else 0

    def to_dataframe(self) -> pd.DataFrame:
        """Per-step table in human units (USD prices, whole tokens)."""
        return pd.DataFrame(
            [
                {
                    "step": s.step,
                    "price_usd": s.price / 10**FEED_DECIMALS,
                    "accounts_liquidated": s.accounts_liquidated,
                    "debt_liquidated": s.debt_liquidated / PRECISION,
                    "collateral_seized": s.collateral_seized / PRECISION,
                    "failed_liquidations": s.failed_liquidations,
                    "unhealthy_debt": s.unhealthy_debt / PRECISION,
                    "total_debt": s.total_debt / PRECISION,
                }
                for s in self.steps
            ],
            columns=[
                "step",
                "price_usd",
                "accounts_liquidated",
                "debt_liquidated",
                "collateral_seized",
                "failed_liquidations",
                "unhealthy_debt",
                "total_debt",
            ],
        )
