"""Tests for liquidation through the engine."""

from __future__ import annotations

import pytest

from cdp_engine.data.constants import MAX_HEALTH_FACTOR, WBTC, WETH
from cdp_engine.protocol.errors import (
    AssetNotAllowed,
    BelowMinimumHealthFactor,
    HealthFactorNotImproved,
    InsufficientBalance,
    InvalidAmount,
    NotLiquidatable,
    TransferFailed,
)
from cdp_engine.protocol.events import Liquidated
from cdp_engine.protocol.liquidation import LiquidationResult

E18 = 10**18
E8 = 10**8


@pytest.fixture
def crashed(sandbox):
    """User with 10 WETH / 100 debt, liquidator with 20 WETH / 100 debt, ETH at $18."""
    sandbox.open_position("user", WETH, 10 * E18, 100 * E18)
    sandbox.open_position("liquidator", WETH, 20 * E18, 100 * E18)
    sandbox.set_price(WETH, 18 * E8)
    return sandbox


def _snapshot(sandbox, *users):
    engine = sandbox.engine
    return (
        [(engine.collateral_balance(u, WETH), engine.debt_balance(u)) for u in users],
        [sandbox.debt_token.balance_of(u) for u in users],
        sandbox.vault.custody_balance(WETH),
        sandbox.debt_token.total_supply,
    )


class TestBonusPreview:
    def test_preview_at_crash_price(self, crashed) -> None:
        assert crashed.engine.liquidation_bonus_preview(WETH, 100 * E18) == (
            5_555_555_555_555_555_555,
            555_555_555_555_555_555,
        )

    def test_preview_at_2000(self, engine) -> None:
        assert engine.liquidation_bonus_preview(WETH, 100 * E18) == (5 * 10**16, 5 * 10**15)


class TestLiquidate:
    def test_full_liquidation(self, crashed) -> None:
        engine = crashed.engine
        assert engine.health_factor("user") == 9 * 10**17

        result = engine.liquidate("liquidator", "user", WETH, 100 * E18)

        assert result == LiquidationResult(
            debt_covered=100 * E18,
            collateral_seized=6_111_111_111_111_111_110,
            bonus=555_555_555_555_555_555,
            starting_health_factor=9 * 10**17,
            ending_health_factor=MAX_HEALTH_FACTOR,
        )
        assert engine.collateral_balance("user", WETH) == 3_888_888_888_888_888_890
        assert engine.debt_balance("user") == 0
        assert engine.health_factor("user") == MAX_HEALTH_FACTOR

        # Liquidator's debt record shrinks by what it paid; seized units are
        # credited to its record and sent to its wallet
        assert engine.debt_balance("liquidator") == 0
        assert engine.health_factor("liquidator") == MAX_HEALTH_FACTOR
        assert engine.collateral_balance("liquidator", WETH) == 26_111_111_111_111_111_110
        assert crashed.vault.wallet_balance("liquidator", WETH) == 6_111_111_111_111_111_110
        assert crashed.debt_token.balance_of("liquidator") == 0
        assert crashed.debt_token.total_supply == 100 * E18

    def test_partial_liquidation_improves_health(self, crashed) -> None:
        engine = crashed.engine
        result = engine.liquidate("liquidator", "user", WETH, 50 * E18)
        assert result.ending_health_factor > result.starting_health_factor
        assert engine.debt_balance("user") == 50 * E18

    def test_event_published(self, crashed) -> None:
        events = []
        crashed.engine.subscribe(events.append)
        crashed.engine.liquidate("liquidator", "user", WETH, 100 * E18)
        assert events[-1] == Liquidated(
            "liquidator", "user", WETH, 100 * E18, 6_111_111_111_111_111_110
        )

    def test_healthy_account_rejected(self, sandbox) -> None:
        # Exactly at the minimum health factor is not liquidatable
        sandbox.open_position("user", WETH, 10 * E18, 10_000 * E18)
        sandbox.open_position("liquidator", WETH, 10 * E18, 100 * E18)
        with pytest.raises(NotLiquidatable) as excinfo:
            sandbox.engine.liquidate("liquidator", "user", WETH, 100 * E18)
        assert excinfo.value.health_factor == E18

    def test_debt_free_account_rejected(self, sandbox) -> None:
        sandbox.open_position("user", WETH, E18)
        with pytest.raises(NotLiquidatable):
            sandbox.engine.liquidate("liquidator", "user", WETH, 1)

    def test_invalid_inputs(self, crashed) -> None:
        with pytest.raises(InvalidAmount):
            crashed.engine.liquidate("liquidator", "user", WETH, 0)
        with pytest.raises(AssetNotAllowed):
            crashed.engine.liquidate("liquidator", "user", "DOGE", 100 * E18)


class TestLiquidationFailures:
    def test_bonus_cannot_be_paid(self, sandbox) -> None:
        sandbox.open_position("user", WETH, 10 * E18, 100 * E18)
        sandbox.open_position("liquidator", WBTC, E18, 100 * E18)
        sandbox.set_price(WETH, 10 * E8)  # collateral worth exactly the debt
        before = _snapshot(sandbox, "user", "liquidator")

        with pytest.raises(InsufficientBalance) as excinfo:
            sandbox.engine.liquidate("liquidator", "user", WETH, 100 * E18)

        err = excinfo.value
        assert (err.user, err.asset, err.available, err.requested) == ("user", WETH, 10 * E18, 11 * E18)
        assert _snapshot(sandbox, "user", "liquidator") == before

    def test_no_fallback_to_other_collateral(self, sandbox) -> None:
        sandbox.open_position("user", WETH, 10 * E18, 100 * E18)
        sandbox.open_position("user", WBTC, E18 // 100)  # $10 of WBTC
        sandbox.open_position("liquidator", WBTC, E18, 100 * E18)
        sandbox.set_price(WETH, 10 * E8)
        with pytest.raises(InsufficientBalance):
            sandbox.engine.liquidate("liquidator", "user", WETH, 100 * E18)

    def test_health_not_improved(self, sandbox) -> None:
        # Below 110% collateralization a partial liquidation lowers health
        sandbox.open_position("user", WETH, 10 * E18, 100 * E18)
        sandbox.open_position("liquidator", WBTC, E18, 100 * E18)
        sandbox.set_price(WETH, 105 * E8 // 10)
        before = _snapshot(sandbox, "user", "liquidator")

        with pytest.raises(HealthFactorNotImproved) as excinfo:
            sandbox.engine.liquidate("liquidator", "user", WETH, 50 * E18)

        assert excinfo.value.starting == 525 * 10**15
        assert excinfo.value.ending == 5 * 10**17
        assert _snapshot(sandbox, "user", "liquidator") == before

    def test_liquidator_left_unhealthy(self, sandbox) -> None:
        sandbox.open_position("user", WETH, 10 * E18, 100 * E18)
        sandbox.open_position("liquidator", WETH, 2 * E18, 200 * E18)
        sandbox.set_price(WETH, 18 * E8)
        before = _snapshot(sandbox, "user", "liquidator")

        with pytest.raises(BelowMinimumHealthFactor) as excinfo:
            sandbox.engine.liquidate("liquidator", "user", WETH, 100 * E18)

        assert excinfo.value.user == "liquidator"
        assert _snapshot(sandbox, "user", "liquidator") == before

    def test_liquidator_without_tokens(self, crashed) -> None:
        crashed.debt_token.transfer("liquidator", "elsewhere", 100 * E18)
        before = _snapshot(crashed, "user", "liquidator")
        with pytest.raises(TransferFailed):
            crashed.engine.liquidate("liquidator", "user", WETH, 100 * E18)
        # The token pull fails before any collateral leaves custody
        assert _snapshot(crashed, "user", "liquidator") == before
        assert crashed.vault.wallet_balance("liquidator", WETH) == 0

    def test_failed_burn_reverses_payout_and_token_pull(self, crashed) -> None:
        before = _snapshot(crashed, "user", "liquidator")

        def broken_burn(amount):
            raise ValueError("burn paused")

        crashed.debt_token.burn = broken_burn
        with pytest.raises(ValueError, match="burn paused"):
            crashed.engine.liquidate("liquidator", "user", WETH, 100 * E18)

        assert _snapshot(crashed, "user", "liquidator") == before
        assert crashed.vault.wallet_balance("liquidator", WETH) == 0
        assert crashed.debt_token.balance_of("engine") == 0
