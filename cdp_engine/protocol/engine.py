"""Public entry points of the stablecoin engine."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Any, Callable, TypeVar

from cdp_engine.data.constants import (
    ADDITIONAL_FEED_PRECISION,
    LIQUIDATION_BONUS,
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    MIN_HEALTH_FACTOR,
    PRECISION,
    PRICE_TIMEOUT,
)
from cdp_engine.data.interfaces import CustodyVault, DebtToken, PriceFeed
from cdp_engine.protocol.guard import ReentrancyGuard
from cdp_engine.protocol.ledger import Ledger
from cdp_engine.protocol.liquidation import LiquidationEngine, LiquidationResult
from cdp_engine.protocol.oracle import PriceOracleAdapter
from cdp_engine.protocol.positions import PositionManager
from cdp_engine.protocol.registry import AssetRegistry
from cdp_engine.protocol.solvency import AccountInfo, SolvencyCalculator, calculate_health_factor

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StablecoinEngine:
    """Overcollateralized stablecoin engine.

    Parameters
    ----------
    collateral_assets : Sequence[str]
        Allow-listed collateral, in registry order.
    price_feeds : Sequence[str]
        Feed id for each collateral asset, same order and length.
    debt_token : DebtToken
        The stablecoin; the engine must be its minter.
    vault : CustodyVault
        Custody for deposited collateral.
    price_feed : PriceFeed
        Source of 8-decimal USD prices.
    address : str
        Identity the engine holds custody and debt tokens under.
    price_timeout : int
        Seconds after which a price round counts as stale.
    clock : Callable[[], float]
        Unix-time source used for the staleness check.
    """

    def __init__(
        self,
        collateral_assets: Sequence[str],
        price_feeds: Sequence[str],
        debt_token: DebtToken,
        vault: CustodyVault,
        price_feed: PriceFeed,
        address: str = "engine",
        price_timeout: int = PRICE_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.address = address
        self._registry = AssetRegistry.from_pairs(collateral_assets, price_feeds)
        self._ledger = Ledger()
        self._guard = ReentrancyGuard()
        self._oracle = PriceOracleAdapter(price_feed, timeout=price_timeout, clock=clock)
        self._solvency = SolvencyCalculator(self._ledger, self._registry, self._oracle)
        self._positions = PositionManager(
            self._ledger, self._registry, self._solvency, vault, debt_token, address
        )
        self._liquidations = LiquidationEngine(
            self._ledger, self._registry, self._solvency, self._positions
        )
        self._subscribers: list[Callable[[Any], None]] = []

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[Any], None]) -> None:
        """Register ``callback`` to receive every committed event."""
        self._subscribers.append(callback)

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def _execute(self, name: str, operation: Callable[[], T]) -> T:
        """Run ``operation`` under the guard as one all-or-nothing unit."""
        self._guard.acquire()
        try:
            tx = self._ledger.begin()
            try:
                result = operation()
                tx.apply_effects()
                self._ledger.commit(tx)
            finally:
                self._ledger.end(tx)
        finally:
            self._guard.release()

        logger.info("%s committed (%d events)", name, len(tx.events))
        self._publish(tx.events)
        return result

    def _publish(self, events: list[Any]) -> None:
        # The operation has committed; a failing subscriber must not undo that
        for event in events:
            for callback in self._subscribers:
                try:
                    callback(event)
                except Exception:
                    logger.exception("Subscriber %r failed on %r", callback, event)

    def deposit_collateral(self, user: str, asset: str, amount: int) -> None:
        self._execute(
            "deposit_collateral",
            lambda: self._positions.deposit_collateral(user, asset, amount),
        )

    def mint_debt(self, user: str, amount: int) -> None:
        self._execute("mint_debt", lambda: self._positions.mint_debt(user, amount))

    def deposit_collateral_and_mint(
        self, user: str, asset: str, collateral_amount: int, debt_amount: int
    ) -> None:
        self._execute(
            "deposit_collateral_and_mint",
            lambda: self._positions.deposit_collateral_and_mint(
                user, asset, collateral_amount, debt_amount
            ),
        )

    def redeem_collateral(self, user: str, asset: str, amount: int) -> None:
        self._execute(
            "redeem_collateral",
            lambda: self._positions.redeem_collateral(user, asset, amount),
        )

    def burn_debt(self, user: str, amount: int) -> None:
        self._execute("burn_debt", lambda: self._positions.burn_debt(user, amount))

    def redeem_and_burn(
        self, user: str, asset: str, collateral_amount: int, debt_amount: int
    ) -> None:
        self._execute(
            "redeem_and_burn",
            lambda: self._positions.redeem_and_burn(
                user, asset, collateral_amount, debt_amount
            ),
        )

    def liquidate(
        self, liquidator: str, user: str, asset: str, debt_to_cover: int
    ) -> LiquidationResult:
        result = self._execute(
            "liquidate",
            lambda: self._liquidations.liquidate(liquidator, user, asset, debt_to_cover),
        )
        logger.info(
            "%s liquidated %s: covered %d debt, seized %d %s",
            liquidator, user, result.debt_covered, result.collateral_seized, asset,
        )
        return result

    # ------------------------------------------------------------------
    # Read-only queries (lock-free, committed snapshot)
    # ------------------------------------------------------------------

    def account_information(self, user: str) -> AccountInfo:
        return self._solvency.account_information(user)

    def health_factor(self, user: str) -> int:
        return self._solvency.health_factor(user)

    @staticmethod
    def calculate_health_factor(total_debt: int, collateral_usd: int) -> int:
        return calculate_health_factor(total_debt, collateral_usd)

    def collateral_balance(self, user: str, asset: str) -> int:
        return self._ledger.view().collateral.balance(user, asset)

    def debt_balance(self, user: str) -> int:
        return self._ledger.view().debt.balance(user)

    def collateral_assets(self) -> tuple[str, ...]:
        return self._registry.assets

    def price_feed_for(self, asset: str) -> str:
        return self._registry.feed_for(asset)

    def total_collateral_usd(self, user: str) -> int:
        return self._solvency.total_collateral_usd(user)

    def usd_value(self, asset: str, amount: int) -> int:
        return self._solvency.usd_value(asset, amount)

    def token_amount_from_usd(self, asset: str, usd_amount: int) -> int:
        return self._solvency.usd_to_asset_amount(asset, usd_amount)

    def max_mintable_usd(self, user: str) -> int:
        return self._solvency.max_mintable_usd(user)

    def liquidation_bonus_preview(self, asset: str, debt_to_cover: int) -> tuple[int, int]:
        """``(collateral_amount, bonus)`` a liquidator would receive."""
        return self._liquidations.bonus_preview(asset, debt_to_cover)

    # ------------------------------------------------------------------
    # Protocol constants
    # ------------------------------------------------------------------

    @property
    def liquidation_threshold(self) -> int:
        return LIQUIDATION_THRESHOLD

    @property
    def liquidation_bonus(self) -> int:
        return LIQUIDATION_BONUS

    @property
    def liquidation_precision(self) -> int:
        return LIQUIDATION_PRECISION

    @property
    def min_health_factor(self) -> int:
        return MIN_HEALTH_FACTOR

    @property
    def precision(self) -> int:
        return PRECISION

    @property
    def additional_feed_precision(self) -> int:
        return ADDITIONAL_FEED_PRECISION
