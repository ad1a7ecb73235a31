"""Liquidation of undercollateralized accounts.

A liquidator repays part or all of an unhealthy account's debt and receives
the equivalent collateral plus a 10% bonus. The bonus assumes the account is
still near 200% collateralized: once an account's collateral in the chosen
asset is worth less than 110% of the debt covered, the seizure fails with
InsufficientBalance and no other asset is tried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from cdp_engine.data.constants import (
    LIQUIDATION_BONUS,
    LIQUIDATION_PRECISION,
    MIN_HEALTH_FACTOR,
)
from cdp_engine.protocol.errors import (
    HealthFactorNotImproved,
    InsufficientBalance,
    NotLiquidatable,
)
from cdp_engine.protocol.events import Liquidated
from cdp_engine.protocol.ledger import Ledger, check_amount
from cdp_engine.protocol.positions import PositionManager
from cdp_engine.protocol.registry import AssetRegistry
from cdp_engine.protocol.solvency import SolvencyCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiquidationResult:
    """Outcome of a successful liquidation.

    Attributes:
        debt_covered: Debt retired on behalf of the account (18 decimals).
        collateral_seized: Collateral moved to the liquidator, bonus included.
        bonus: The bonus part of ``collateral_seized``.
        starting_health_factor: Account health factor before liquidation.
        ending_health_factor: Account health factor after liquidation.
    """

    debt_covered: int
    collateral_seized: int
    bonus: int
    starting_health_factor: int
    ending_health_factor: int


class LiquidationEngine:
    """Seizes collateral from unhealthy accounts and retires their debt."""

    def __init__(
        self,
        ledger: Ledger,
        registry: AssetRegistry,
        solvency: SolvencyCalculator,
        positions: PositionManager,
    ) -> None:
        self._ledger = ledger
        self._registry = registry
        self._solvency = solvency
        self._positions = positions

    def bonus_preview(self, asset: str, debt_to_cover: int) -> tuple[int, int]:
        """Collateral equivalent of ``debt_to_cover`` and the bonus on top."""
        token_amount = self._solvency.usd_to_asset_amount(asset, debt_to_cover)
        bonus = (token_amount * LIQUIDATION_BONUS) // LIQUIDATION_PRECISION
        return token_amount, bonus

    def liquidate(
        self, liquidator: str, user: str, asset: str, debt_to_cover: int
    ) -> LiquidationResult:
        check_amount(debt_to_cover)
        self._registry.require(asset)
        tx = self._ledger.current_transaction()

        starting = self._solvency.health_factor(user)
        if starting >= MIN_HEALTH_FACTOR:
            raise NotLiquidatable(user, starting)

        token_amount, bonus = self.bonus_preview(asset, debt_to_cover)
        payout = token_amount + bonus

        try:
            self._positions.redeem(user, liquidator, asset, payout)
        except InsufficientBalance:
            logger.warning(
                "Cannot seize %d %s from %s: collateral does not cover debt plus bonus",
                payout, asset, user,
            )
            raise
        self._positions.burn(liquidator, user, debt_to_cover)

        ending = self._solvency.health_factor(user)
        if ending <= starting:
            raise HealthFactorNotImproved(starting, ending)
        self._solvency.assert_healthy(liquidator)

        tx.emit(Liquidated(liquidator, user, asset, debt_to_cover, payout))
        return LiquidationResult(
            debt_covered=debt_to_cover,
            collateral_seized=payout,
            bonus=bonus,
            starting_health_factor=starting,
            ending_health_factor=ending,
        )
