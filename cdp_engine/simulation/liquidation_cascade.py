"""Liquidation cascade replayed against a sandbox engine.

Accounts are opened at an opening price, then the collateral price walks
down a given path. At every step each unhealthy account is liquidated in
full by a well-capitalized liquidator through the real engine, so every
figure in the result comes from the engine's own integer arithmetic.
Optionally the collateral seized at a step depresses all later prices,
modelling liquidators dumping it on the market.

Accounts that have fallen below 110% collateralization cannot pay the
liquidation bonus; the engine rejects them and they stay on the books as
unhealthy debt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from cdp_engine.data.constants import (
    BTC_USD,
    ETH_USD,
    FEED_DECIMALS,
    MIN_HEALTH_FACTOR,
    PRECISION,
    WBTC,
    WETH,
)
from cdp_engine.protocol.errors import InsufficientBalance
from cdp_engine.simulation.results import CascadeResult, CascadeStep, LiquidationFailure
from cdp_engine.simulation.sandbox import build_sandbox

logger = logging.getLogger(__name__)

LIQUIDATOR = "liquidator"

# Sandbox prices never go stale inside a replay
_REPLAY_TIME = 1_700_000_000


@dataclass(frozen=True)
class AccountSpec:
    """A WETH-backed position to open before the cascade starts.

    Attributes:
        user: Account identifier.
        collateral: WETH deposited, 18 decimals.
        debt: Stablecoin minted, 18 decimals.
    """

    user: str
    collateral: int
    debt: int


@dataclass(frozen=True)
class CascadeConfig:
    """Configuration for a liquidation cascade simulation.

    Attributes:
        price_path: 8-decimal WETH prices, one per step.
        opening_price: 8-decimal WETH price at which accounts are opened.
        price_impact_per_unit: Fractional price drop applied to every later
            step per whole WETH seized. 0 disables market impact.
        liquidator_backing: How many times over the liquidator's WBTC backs
            the debt it mints to fund liquidations.
    """

    price_path: tuple[int, ...]
    opening_price: int = 2_000 * 10**FEED_DECIMALS
    price_impact_per_unit: float = 0.0
    liquidator_backing: int = 10


def falling_price_path(start_usd: float, end_usd: float, n_steps: int) -> tuple[int, ...]:
    """Evenly spaced 8-decimal prices from ``start_usd`` down to ``end_usd``."""
    return tuple(
        int(round(float(p) * 10**FEED_DECIMALS))
        for p in np.linspace(start_usd, end_usd, n_steps)
    )


def simulate_cascade(accounts: Sequence[AccountSpec], config: CascadeConfig) -> CascadeResult:
    """Open ``accounts``, walk the price path and liquidate what breaks.

    Raises:
        BelowMinimumHealthFactor: An account is not healthy at the opening
            price.
    """
    sandbox = build_sandbox(
        prices={ETH_USD: config.opening_price, BTC_USD: 1_000 * 10**FEED_DECIMALS},
        clock=lambda: _REPLAY_TIME,
    )
    engine = sandbox.engine

    for spec in accounts:
        sandbox.open_position(spec.user, WETH, spec.collateral, spec.debt)

    # Liquidator mints enough to retire every account's debt, backed by WBTC
    # whose price stays put during the replay
    total_debt = sum(spec.debt for spec in accounts)
    if total_debt > 0:
        backing = engine.token_amount_from_usd(WBTC, total_debt * 2 * config.liquidator_backing)
        sandbox.open_position(LIQUIDATOR, WBTC, backing, total_debt)

    steps: list[CascadeStep] = []
    failures: list[LiquidationFailure] = []
    total_debt_liquidated = 0
    total_collateral_seized = 0
    impact = 1.0

    for step_num, path_price in enumerate(config.price_path, start=1):
        price = max(1, int(path_price * impact))
        sandbox.set_price(WETH, price)

        liquidated = 0
        failed = 0
        step_debt = 0
        step_seized = 0

        for spec in accounts:
            debt = engine.debt_balance(spec.user)
            if debt == 0 or engine.health_factor(spec.user) >= MIN_HEALTH_FACTOR:
                continue
            try:
                result = engine.liquidate(LIQUIDATOR, spec.user, WETH, debt)
            except InsufficientBalance:
                failed += 1
                failures.append(
                    LiquidationFailure(step_num, spec.user, debt, "collateral below debt plus bonus")
                )
                continue
            liquidated += 1
            step_debt += result.debt_covered
            step_seized += result.collateral_seized

        total_debt_liquidated += step_debt
        total_collateral_seized += step_seized

        unhealthy = [
            spec for spec in accounts
            if engine.debt_balance(spec.user) > 0
            and engine.health_factor(spec.user) < MIN_HEALTH_FACTOR
        ]
        steps.append(
            CascadeStep(
                step=step_num,
                price=price,
                accounts_liquidated=liquidated,
                debt_liquidated=step_debt,
                collateral_seized=step_seized,
                failed_liquidations=failed,
                unhealthy_debt=sum(engine.debt_balance(s.user) for s in unhealthy),
                total_debt=sum(engine.debt_balance(s.user) for s in accounts),
            )
        )

        if config.price_impact_per_unit > 0 and step_seized > 0:
            drop = min(step_seized / PRECISION * config.price_impact_per_unit, 0.99)
            impact *= 1.0 - drop

    logger.info(
        "Cascade over %d steps: %d debt liquidated, %d failures",
        len(steps), total_debt_liquidated, len(failures),
    )
    return CascadeResult(
        steps=steps,
        total_debt_liquidated=total_debt_liquidated,
        total_collateral_seized=total_collateral_seized,
        failures=failures,
    )
