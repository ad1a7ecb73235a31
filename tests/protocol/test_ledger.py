"""Tests for the collateral/debt ledgers and their transactions."""

from __future__ import annotations

import logging
import threading

import pytest

from cdp_engine.data.constants import WBTC, WETH
from cdp_engine.protocol.errors import InsufficientBalance, InvalidAmount, TransferFailed
from cdp_engine.protocol.events import Direction, LedgerChanged
from cdp_engine.protocol.ledger import Ledger, LedgerState, check_amount


def _in_other_thread(fn):
    out = []
    t = threading.Thread(target=lambda: out.append(fn()))
    t.start()
    t.join()
    return out[0]


@pytest.fixture
def ledger() -> Ledger:
    return Ledger()


class TestCheckAmount:
    @pytest.mark.parametrize("amount", [0, -1, True, 1.5, "1", None])
    def test_rejected(self, amount) -> None:
        with pytest.raises(InvalidAmount):
            check_amount(amount)

    def test_accepted(self) -> None:
        check_amount(1)
        check_amount(10**30)

    def test_invalid_amount_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            check_amount(0)


class TestReads:
    def test_unknown_balances_are_zero(self, ledger: Ledger) -> None:
        view = ledger.view()
        assert view.collateral.balance("alice", WETH) == 0
        assert view.debt.balance("alice") == 0

    def test_writes_outside_transaction_rejected(self, ledger: Ledger) -> None:
        with pytest.raises(RuntimeError):
            ledger.view().collateral.credit("alice", WETH, 1)
        with pytest.raises(RuntimeError):
            ledger.view().debt.credit("alice", 1)

    def test_no_transaction_open(self, ledger: Ledger) -> None:
        with pytest.raises(RuntimeError):
            ledger.current_transaction()


class TestTransactions:
    def test_commit_publishes_writes(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        ledger.view().collateral.credit("alice", WETH, 5)
        ledger.view().debt.credit("alice", 7)
        ledger.commit(tx)
        ledger.end(tx)

        view = ledger.view()
        assert view.collateral.balance("alice", WETH) == 5
        assert view.debt.balance("alice") == 7

    def test_end_without_commit_discards(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        ledger.view().collateral.credit("alice", WETH, 5)
        ledger.end(tx)
        assert ledger.view().collateral.balance("alice", WETH) == 0
        assert ledger.state == LedgerState()

    def test_own_writes_visible_inside(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        collateral = ledger.view().collateral
        collateral.credit("alice", WETH, 5)
        collateral.debit("alice", WETH, 2)
        assert ledger.view().collateral.balance("alice", WETH) == 3
        ledger.end(tx)

    def test_other_threads_see_committed_state(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        ledger.view().collateral.credit("alice", WETH, 5)
        seen = _in_other_thread(lambda: ledger.view().collateral.balance("alice", WETH))
        assert seen == 0
        ledger.commit(tx)
        ledger.end(tx)
        assert _in_other_thread(lambda: ledger.view().collateral.balance("alice", WETH)) == 5

    def test_current_transaction_is_per_thread(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        assert ledger.current_transaction() is tx

        def probe():
            try:
                ledger.current_transaction()
            except RuntimeError:
                return "none"
            return "found"

        assert _in_other_thread(probe) == "none"
        ledger.end(tx)

    def test_one_transaction_at_a_time(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        with pytest.raises(RuntimeError):
            ledger.begin()
        ledger.end(tx)
        ledger.end(ledger.begin())

    def test_committed_snapshot_is_immutable(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        ledger.view().collateral.credit("alice", WETH, 5)
        ledger.commit(tx)
        ledger.end(tx)
        before = ledger.state

        tx = ledger.begin()
        ledger.view().collateral.credit("alice", WETH, 1)
        ledger.view().collateral.credit("bob", WBTC, 1)
        ledger.commit(tx)
        ledger.end(tx)

        assert dict(before.collateral) == {("alice", WETH): 5}
        assert ledger.state.collateral[("alice", WETH)] == 6
        assert ledger.state.collateral[("bob", WBTC)] == 1

    def test_stale_transaction_cannot_commit(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        ledger.end(tx)
        with pytest.raises(RuntimeError):
            ledger.commit(tx)


class TestBalances:
    def test_debit_beyond_balance(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        ledger.view().collateral.credit("alice", WETH, 5)
        with pytest.raises(InsufficientBalance) as excinfo:
            ledger.view().collateral.debit("alice", WETH, 6)
        err = excinfo.value
        assert (err.user, err.asset, err.available, err.requested) == ("alice", WETH, 5, 6)
        assert ledger.view().collateral.balance("alice", WETH) == 5
        ledger.end(tx)

    def test_debt_debit_beyond_balance(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        with pytest.raises(InsufficientBalance) as excinfo:
            ledger.view().debt.debit("alice", 1)
        assert excinfo.value.asset is None
        ledger.end(tx)

    def test_assets_are_independent(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        ledger.view().collateral.credit("alice", WETH, 5)
        assert ledger.view().collateral.balance("alice", WBTC) == 0
        ledger.end(tx)

    def test_zero_credit_rejected(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        with pytest.raises(InvalidAmount):
            ledger.view().collateral.credit("alice", WETH, 0)
        ledger.end(tx)

    def test_changes_recorded_as_events(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        ledger.view().collateral.credit("alice", WETH, 5)
        ledger.view().debt.credit("alice", 3)
        ledger.view().debt.debit("alice", 1)
        assert tx.events == [
            LedgerChanged("collateral", "alice", WETH, 5, Direction.CREDIT),
            LedgerChanged("debt", "alice", None, 3, Direction.CREDIT),
            LedgerChanged("debt", "alice", None, 1, Direction.DEBIT),
        ]
        ledger.end(tx)


class TestDeferredEffects:
    def test_effects_run_in_order_on_apply(self, ledger: Ledger) -> None:
        calls = []
        tx = ledger.begin()
        tx.defer("first", lambda: calls.append(1) or True)
        tx.defer("second", lambda: calls.append(2))
        assert calls == []
        tx.apply_effects()
        assert calls == [1, 2]
        ledger.end(tx)

    def test_falsy_result_raises_failure(self, ledger: Ledger) -> None:
        calls = []
        tx = ledger.begin()
        tx.defer("fails", lambda: False, lambda: TransferFailed("nope"))
        tx.defer("never", lambda: calls.append(1))
        with pytest.raises(TransferFailed, match="nope"):
            tx.apply_effects()
        assert calls == []
        ledger.end(tx)

    def test_falsy_result_without_failure_is_ignored(self, ledger: Ledger) -> None:
        tx = ledger.begin()
        tx.defer("returns None", lambda: None)
        tx.apply_effects()
        ledger.end(tx)

    def test_inbound_effects_run_first(self, ledger: Ledger) -> None:
        calls = []
        tx = ledger.begin()
        tx.defer("pay out", lambda: calls.append("out") or True)
        tx.defer("pull in", lambda: calls.append("in") or True, inbound=True)
        tx.defer("burn", lambda: calls.append("burn"))
        tx.apply_effects()
        assert calls == ["in", "out", "burn"]
        ledger.end(tx)

    def test_failed_inbound_skips_payouts(self, ledger: Ledger) -> None:
        calls = []
        tx = ledger.begin()
        tx.defer("pay out", lambda: calls.append("out") or True)
        tx.defer("pull in", lambda: False, lambda: TransferFailed("pull"), inbound=True)
        with pytest.raises(TransferFailed):
            tx.apply_effects()
        assert calls == []
        ledger.end(tx)

    def test_failure_reverses_completed_calls_newest_first(self, ledger: Ledger) -> None:
        calls = []
        tx = ledger.begin()
        tx.defer("pay out", lambda: True, compensate=lambda: calls.append("undo out") or True)
        tx.defer(
            "pull in", lambda: True, inbound=True, compensate=lambda: calls.append("undo in") or True
        )
        tx.defer("mint", lambda: False, lambda: TransferFailed("mint"))
        with pytest.raises(TransferFailed):
            tx.apply_effects()
        assert calls == ["undo out", "undo in"]
        ledger.end(tx)

    def test_failed_call_is_not_reversed(self, ledger: Ledger) -> None:
        calls = []
        tx = ledger.begin()
        tx.defer(
            "fails", lambda: False, lambda: TransferFailed("x"), compensate=lambda: calls.append(1)
        )
        with pytest.raises(TransferFailed):
            tx.apply_effects()
        assert calls == []
        ledger.end(tx)

    def test_raising_call_reverses_earlier_ones(self, ledger: Ledger) -> None:
        calls = []

        def boom():
            raise ConnectionError("rpc")

        tx = ledger.begin()
        tx.defer("pull in", lambda: True, compensate=lambda: calls.append("undo") or True)
        tx.defer("explodes", boom)
        with pytest.raises(ConnectionError):
            tx.apply_effects()
        assert calls == ["undo"]
        ledger.end(tx)

    def test_unreversible_call_is_logged(
        self, ledger: Ledger, caplog: pytest.LogCaptureFixture
    ) -> None:
        tx = ledger.begin()
        tx.defer("pull in", lambda: True, compensate=lambda: False)
        tx.defer("fails", lambda: False, lambda: TransferFailed("x"))
        with caplog.at_level(logging.ERROR, logger="cdp_engine.protocol.ledger"):
            with pytest.raises(TransferFailed):
                tx.apply_effects()
        assert "Could not reverse external call: pull in" in caplog.text
        ledger.end(tx)

    def test_irreversible_calls_run_last(self, ledger: Ledger) -> None:
        calls = []
        tx = ledger.begin()
        tx.defer("burn", lambda: calls.append("burn"))
        tx.defer("pay out", lambda: calls.append("out") or True, compensate=lambda: True)
        tx.defer("pull in", lambda: calls.append("in") or True, inbound=True)
        tx.apply_effects()
        assert calls == ["in", "out", "burn"]
        ledger.end(tx)
