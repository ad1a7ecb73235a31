"""Deposit, mint, redeem and burn against the ledgers.

Every method runs inside the transaction opened by the engine facade. Ledger
writes and solvency checks happen immediately; custody and token calls are
queued on the transaction and only run once the whole operation has passed
its checks.
"""

from __future__ import annotations

import logging

from cdp_engine.data.interfaces import CustodyVault, DebtToken
from cdp_engine.protocol.errors import MintFailed, TransferFailed
from cdp_engine.protocol.events import (
    CollateralDeposited,
    CollateralRedeemed,
    DebtBurned,
    DebtMinted,
)
from cdp_engine.protocol.ledger import Ledger, check_amount
from cdp_engine.protocol.registry import AssetRegistry
from cdp_engine.protocol.solvency import SolvencyCalculator

logger = logging.getLogger(__name__)


class PositionManager:
    """Mutations of a user's collateral and debt, gated by solvency checks."""

    def __init__(
        self,
        ledger: Ledger,
        registry: AssetRegistry,
        solvency: SolvencyCalculator,
        vault: CustodyVault,
        debt_token: DebtToken,
        address: str,
    ) -> None:
        self._ledger = ledger
        self._registry = registry
        self._solvency = solvency
        self._vault = vault
        self._token = debt_token
        self.address = address

    # ------------------------------------------------------------------
    # User operations
    # ------------------------------------------------------------------

    def deposit_collateral(self, user: str, asset: str, amount: int) -> None:
        check_amount(amount)
        self._registry.require(asset)
        tx = self._ledger.current_transaction()

        self._ledger.view().collateral.credit(user, asset, amount)
        tx.emit(CollateralDeposited(user, asset, amount))
        tx.defer(
            f"transfer_in {amount} {asset} from {user}",
            lambda: self._vault.transfer_in(asset, user, amount),
            lambda: TransferFailed(f"Collateral transfer from {user} failed"),
            inbound=True,
            compensate=lambda: self._vault.transfer_out(asset, user, amount),
        )

    def mint_debt(self, user: str, amount: int) -> None:
        """Record new debt, require solvency, then mint the tokens."""
        check_amount(amount)
        tx = self._ledger.current_transaction()

        self._ledger.view().debt.credit(user, amount)
        self._solvency.assert_healthy(user)
        tx.emit(DebtMinted(user, amount))
        tx.defer(
            f"mint {amount} to {user}",
            lambda: self._token.mint(user, amount),
            lambda: MintFailed(f"Minting {amount} to {user} failed"),
        )

    def redeem_collateral(self, user: str, asset: str, amount: int) -> None:
        check_amount(amount)
        self._registry.require(asset)
        self.redeem(user, user, asset, amount)
        self._solvency.assert_healthy(user)

    def burn_debt(self, user: str, amount: int) -> None:
        check_amount(amount)
        self.burn(user, user, amount)

    def deposit_collateral_and_mint(
        self, user: str, asset: str, collateral_amount: int, debt_amount: int
    ) -> None:
        self.deposit_collateral(user, asset, collateral_amount)
        self.mint_debt(user, debt_amount)

    def redeem_and_burn(
        self, user: str, asset: str, collateral_amount: int, debt_amount: int
    ) -> None:
        # Debt shrinks first so the closing solvency check sees it
        self.burn_debt(user, debt_amount)
        self.redeem_collateral(user, asset, collateral_amount)

    # ------------------------------------------------------------------
    # Primitives shared with liquidation
    # ------------------------------------------------------------------

    def redeem(self, redeem_from: str, redeem_to: str, asset: str, amount: int) -> None:
        """Move collateral out of ``redeem_from``'s record to ``redeem_to``.

        When the two differ the units are credited to ``redeem_to``'s record,
        so the ledger neither creates nor destroys collateral.
        """
        check_amount(amount)
        self._registry.require(asset)
        tx = self._ledger.current_transaction()
        collateral = self._ledger.view().collateral

        collateral.debit(redeem_from, asset, amount)
        tx.defer(
            f"transfer_out {amount} {asset} to {redeem_to}",
            lambda: self._vault.transfer_out(asset, redeem_to, amount),
            lambda: TransferFailed(f"Collateral transfer to {redeem_to} failed"),
            compensate=lambda: self._vault.transfer_in(asset, redeem_to, amount),
        )
        if redeem_from != redeem_to:
            collateral.credit(redeem_to, asset, amount)
        tx.emit(CollateralRedeemed(redeem_from, redeem_to, asset, amount))

    def burn(self, burn_from: str, on_behalf_of: str, amount: int) -> None:
        """Retire ``on_behalf_of``'s debt with tokens pulled from ``burn_from``.

        When the payer is someone else, the payer's own debt record shrinks
        by the same amount: the tokens it spends were minted against it.
        """
        check_amount(amount)
        tx = self._ledger.current_transaction()
        debt = self._ledger.view().debt

        debt.debit(on_behalf_of, amount)
        tx.defer(
            f"transfer_from {amount} from {burn_from}",
            lambda: self._token.transfer_from(burn_from, self.address, amount),
            lambda: TransferFailed(f"Debt token transfer from {burn_from} failed"),
            inbound=True,
            compensate=lambda: self._token.transfer_from(self.address, burn_from, amount),
        )
        if burn_from != on_behalf_of:
            debt.debit(burn_from, amount)
        tx.defer(f"burn {amount}", lambda: self._token.burn(amount))
        tx.emit(DebtBurned(burn_from, on_behalf_of, amount))
