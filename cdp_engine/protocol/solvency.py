"""Health factor and USD valuation in 18-decimal fixed point.

Feed prices carry 8 decimals and ledger amounts 18. Every place a price meets
a ledger amount goes through :func:`_scale_price`, and all arithmetic is
integer floor division, so results match the on-chain engine bit for bit.

HF = (collateral_usd * LIQUIDATION_THRESHOLD / LIQUIDATION_PRECISION) * PRECISION / debt
"""

from __future__ import annotations

from dataclasses import dataclass

from cdp_engine.data.constants import (
    ADDITIONAL_FEED_PRECISION,
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    MAX_HEALTH_FACTOR,
    MIN_HEALTH_FACTOR,
    PRECISION,
)
from cdp_engine.protocol.errors import BelowMinimumHealthFactor
from cdp_engine.protocol.ledger import Ledger, LedgerView
from cdp_engine.protocol.oracle import PriceOracleAdapter
from cdp_engine.protocol.registry import AssetRegistry


@dataclass(frozen=True)
class AccountInfo:
    """Debt and aggregate collateral value of one account, both 18 decimals."""

    total_debt: int
    collateral_usd: int


def _scale_price(price: int) -> int:
    """Lift an 8-decimal feed price to the ledger's 18 decimals."""
    return price * ADDITIONAL_FEED_PRECISION


def usd_value_of(amount: int, price: int) -> int:
    """USD value (18 decimals) of ``amount`` native units at ``price``."""
    return (_scale_price(price) * amount) // PRECISION


def asset_amount_from_usd(usd_amount: int, price: int) -> int:
    """Native units worth ``usd_amount`` at ``price``; inverse of usd_value_of."""
    return (usd_amount * PRECISION) // _scale_price(price)


def calculate_health_factor(total_debt: int, collateral_usd: int) -> int:
    """Health factor of a position; uint256 max when there is no debt."""
    if total_debt == 0:
        return MAX_HEALTH_FACTOR
    adjusted = (collateral_usd * LIQUIDATION_THRESHOLD) // LIQUIDATION_PRECISION
    return (adjusted * PRECISION) // total_debt


def liquidation_price(collateral_amount: int, total_debt: int) -> int:
    """Lowest 8-decimal feed price at which a single-asset position is solvent.

    Searched with the exact integer health factor, so flooring is accounted
    for. Returns 0 for a position without debt.
    """
    if total_debt == 0:
        return 0
    if collateral_amount <= 0:
        raise ValueError("A position without collateral is never solvent")

    def solvent(price: int) -> bool:
        hf = calculate_health_factor(total_debt, usd_value_of(collateral_amount, price))
        return hf >= MIN_HEALTH_FACTOR

    hi = 1
    while not solvent(hi):
        hi *= 2
    lo = hi // 2  # insolvent (or 0)
    while hi - lo > 1:
        mid = (lo + hi) // 2
        if solvent(mid):
            hi = mid
        else:
            lo = mid
    return hi


class SolvencyCalculator:
    """Read-only solvency queries over the ledger and the oracle."""

    def __init__(
        self,
        ledger: Ledger,
        registry: AssetRegistry,
        oracle: PriceOracleAdapter,
    ) -> None:
        self._ledger = ledger
        self._registry = registry
        self._oracle = oracle

    def price(self, asset: str) -> int:
        return self._oracle.latest_price(self._registry.feed_for(asset))

    def usd_value(self, asset: str, amount: int) -> int:
        return usd_value_of(amount, self.price(asset))

    def usd_to_asset_amount(self, asset: str, usd_amount: int) -> int:
        return asset_amount_from_usd(usd_amount, self.price(asset))

    def total_collateral_usd(self, user: str) -> int:
        return self._collateral_usd(self._ledger.view(), user)

    def health_factor(self, user: str) -> int:
        view = self._ledger.view()
        debt = view.debt.balance(user)
        if debt == 0:
            # No oracle reads needed: a debt-free account is never unhealthy
            return MAX_HEALTH_FACTOR
        return calculate_health_factor(debt, self._collateral_usd(view, user))

    def assert_healthy(self, user: str) -> None:
        hf = self.health_factor(user)
        if hf < MIN_HEALTH_FACTOR:
            raise BelowMinimumHealthFactor(hf, user)

    def max_mintable_usd(self, user: str) -> int:
        return (self.total_collateral_usd(user) * LIQUIDATION_THRESHOLD) // LIQUIDATION_PRECISION

    def account_information(self, user: str) -> AccountInfo:
        view = self._ledger.view()
        return AccountInfo(
            total_debt=view.debt.balance(user),
            collateral_usd=self._collateral_usd(view, user),
        )

    def _collateral_usd(self, view: LedgerView, user: str) -> int:
        total = 0
        for entry in self._registry:
            amount = view.collateral.balance(user, entry.asset)
            total += usd_value_of(amount, self._oracle.latest_price(entry.price_feed))
        return total
