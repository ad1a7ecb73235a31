"""Collateral and debt ledgers with copy-on-write transactions.

All balances live in a single committed :class:`LedgerState`. A mutating
operation opens a :class:`LedgerTransaction`, which overlays the committed
maps; reads inside the operation see its own writes, everyone else keeps
reading the committed snapshot. Commit swaps the whole state in one reference
assignment, so a reader can never observe half of an operation. Rollback is
simply dropping the overlay.
"""

from __future__ import annotations

import logging
import threading
from collections import ChainMap
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any, Callable, NamedTuple

from cdp_engine.protocol.errors import EngineError, InsufficientBalance, InvalidAmount
from cdp_engine.protocol.events import Direction, LedgerChanged

logger = logging.getLogger(__name__)


def check_amount(amount: Any) -> None:
    """Raise InvalidAmount unless ``amount`` is a positive int."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(amount)


@dataclass(frozen=True)
class LedgerState:
    """Committed balances. Keys of ``collateral`` are ``(user, asset)``."""

    collateral: Mapping[tuple[str, str], int] = field(default_factory=dict)
    debt: Mapping[str, int] = field(default_factory=dict)


class _Effect(NamedTuple):
    description: str
    run: Callable[[], Any]
    failure: Callable[[], EngineError] | None
    inbound: bool
    compensate: Callable[[], Any] | None


class LedgerTransaction:
    """Uncommitted ledger writes, events and external effects of one operation."""

    def __init__(self, base: LedgerState) -> None:
        # Committed maps are never mutated, so the overlay can read through
        self.collateral: ChainMap = ChainMap({}, base.collateral)
        self.debt: ChainMap = ChainMap({}, base.debt)
        self.events: list[Any] = []
        self._base = base
        self._effects: list[_Effect] = []

    def emit(self, event: Any) -> None:
        self.events.append(event)

    def defer(
        self,
        description: str,
        run: Callable[[], Any],
        failure: Callable[[], EngineError] | None = None,
        inbound: bool = False,
        compensate: Callable[[], Any] | None = None,
    ) -> None:
        """Queue an external call to run once the operation's checks pass.

        When ``failure`` is given, a falsy return value from ``run`` raises
        the error it builds. Calls that pull funds into the engine are marked
        ``inbound`` and run before any call that pays funds out.
        ``compensate`` reverses a completed call if a later one fails.
        """
        self._effects.append(_Effect(description, run, failure, inbound, compensate))

    def apply_effects(self) -> None:
        """Run queued external calls, stopping at the first failure.

        Inbound calls run first, then reversible outbound calls, then calls
        with no ``compensate``; each group keeps the order it was queued in.
        On a failure, completed calls are compensated newest first and the
        error is re-raised.
        """
        ordered = (
            [e for e in self._effects if e.inbound]
            + [e for e in self._effects if not e.inbound and e.compensate is not None]
            + [e for e in self._effects if not e.inbound and e.compensate is None]
        )
        done: list[_Effect] = []
        try:
            for effect in ordered:
                ok = effect.run()
                if effect.failure is not None and not ok:
                    logger.warning("External call failed: %s", effect.description)
                    raise effect.failure()
                done.append(effect)
        except Exception:
            self._compensate(done)
            raise

    @staticmethod
    def _compensate(done: list[_Effect]) -> None:
        for effect in reversed(done):
            if effect.compensate is None:
                continue
            logger.info("Reversing external call: %s", effect.description)
            if not effect.compensate():
                logger.error("Could not reverse external call: %s", effect.description)

    def merged(self) -> LedgerState:
        return LedgerState(
            collateral={**self._base.collateral, **self.collateral.maps[0]},
            debt={**self._base.debt, **self.debt.maps[0]},
        )


class CollateralLedger:
    """Per-user, per-asset collateral balances in native units."""

    def __init__(
        self,
        balances: Mapping[tuple[str, str], int],
        tx: LedgerTransaction | None = None,
    ) -> None:
        self._balances = balances
        self._tx = tx

    def balance(self, user: str, asset: str) -> int:
        return self._balances.get((user, asset), 0)

    def credit(self, user: str, asset: str, amount: int) -> None:
        check_amount(amount)
        self._write(user, asset, self.balance(user, asset) + amount)
        self._record(user, asset, amount, Direction.CREDIT)

    def debit(self, user: str, asset: str, amount: int) -> None:
        check_amount(amount)
        available = self.balance(user, asset)
        if amount > available:
            raise InsufficientBalance(user, available, amount, asset=asset)
        self._write(user, asset, available - amount)
        self._record(user, asset, amount, Direction.DEBIT)

    def _write(self, user: str, asset: str, value: int) -> None:
        if self._tx is None:
            raise RuntimeError("Collateral ledger is read-only outside a transaction")
        balances: MutableMapping = self._balances  # type: ignore[assignment]
        balances[(user, asset)] = value

    def _record(self, user: str, asset: str, amount: int, direction: Direction) -> None:
        logger.debug("collateral %s %s %s %d", direction.value, user, asset, amount)
        self._tx.emit(LedgerChanged("collateral", user, asset, amount, direction))


class DebtLedger:
    """Per-user minted debt in debt token units (1 unit == $1)."""

    def __init__(
        self,
        balances: Mapping[str, int],
        tx: LedgerTransaction | None = None,
    ) -> None:
        self._balances = balances
        self._tx = tx

    def balance(self, user: str) -> int:
        return self._balances.get(user, 0)

    def credit(self, user: str, amount: int) -> None:
        check_amount(amount)
        self._write(user, self.balance(user) + amount)
        self._record(user, amount, Direction.CREDIT)

    def debit(self, user: str, amount: int) -> None:
        check_amount(amount)
        available = self.balance(user)
        if amount > available:
            raise InsufficientBalance(user, available, amount)
        self._write(user, available - amount)
        self._record(user, amount, Direction.DEBIT)

    def _write(self, user: str, value: int) -> None:
        if self._tx is None:
            raise RuntimeError("Debt ledger is read-only outside a transaction")
        balances: MutableMapping = self._balances  # type: ignore[assignment]
        balances[user] = value

    def _record(self, user: str, amount: int, direction: Direction) -> None:
        logger.debug("debt %s %s %d", direction.value, user, amount)
        self._tx.emit(LedgerChanged("debt", user, None, amount, direction))


class LedgerView(NamedTuple):
    """Both ledgers bound to one consistent snapshot."""

    collateral: CollateralLedger
    debt: DebtLedger


class Ledger:
    """Owner of the committed state and of the single open transaction."""

    def __init__(self) -> None:
        self._state = LedgerState()
        self._active: LedgerTransaction | None = None
        self._active_thread: int | None = None

    @property
    def state(self) -> LedgerState:
        return self._state

    def begin(self) -> LedgerTransaction:
        if self._active is not None:
            raise RuntimeError("A ledger transaction is already open")
        tx = LedgerTransaction(self._state)
        self._active_thread = threading.get_ident()
        self._active = tx
        return tx

    def commit(self, tx: LedgerTransaction) -> None:
        if tx is not self._active:
            raise RuntimeError("Only the open transaction can be committed")
        self._state = tx.merged()

    def end(self, tx: LedgerTransaction) -> None:
        """Close ``tx``. Anything not committed by now is discarded."""
        if tx is self._active:
            self._active = None
            self._active_thread = None

    def current_transaction(self) -> LedgerTransaction:
        tx = self._active
        if tx is None or self._active_thread != threading.get_ident():
            raise RuntimeError("No ledger transaction is open on this thread")
        return tx

    def view(self) -> LedgerView:
        """Ledgers over the caller's snapshot.

        The thread running a transaction sees its uncommitted writes; every
        other caller sees the committed state.
        """
        tx = self._active
        if tx is not None and self._active_thread == threading.get_ident():
            return LedgerView(
                CollateralLedger(tx.collateral, tx),
                DebtLedger(tx.debt, tx),
            )
        state = self._state
        return LedgerView(CollateralLedger(state.collateral), DebtLedger(state.debt))
