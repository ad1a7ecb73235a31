"""Tests for the in-memory sandbox wiring."""

from cdp_engine.data.constants import BTC_USD, ETH_USD, WBTC, WETH
from cdp_engine.simulation.sandbox import ENGINE_ADDRESS, build_sandbox

E18 = 10**18
E8 = 10**8


def test_default_prices(sandbox) -> None:
    assert sandbox.engine.usd_value(WETH, E18) == 2_000 * E18
    assert sandbox.engine.usd_value(WBTC, E18) == 1_000 * E18


def test_custom_prices(clock) -> None:
    sandbox = build_sandbox({ETH_USD: 3_000 * E8, BTC_USD: 60_000 * E8}, clock=clock)
    assert sandbox.engine.usd_value(WBTC, E18) == 60_000 * E18


def test_engine_owns_the_token(sandbox) -> None:
    assert sandbox.debt_token.owner == ENGINE_ADDRESS == sandbox.engine.address


def test_open_position_without_debt(sandbox) -> None:
    sandbox.open_position("alice", WETH, 3 * E18)
    assert sandbox.engine.collateral_balance("alice", WETH) == 3 * E18
    assert sandbox.engine.debt_balance("alice") == 0
    assert sandbox.vault.custody_balance(WETH) == 3 * E18
    assert sandbox.vault.wallet_balance("alice", WETH) == 0


def test_open_position_with_debt(sandbox) -> None:
    sandbox.open_position("alice", WETH, 3 * E18, 1_000 * E18)
    assert sandbox.engine.debt_balance("alice") == 1_000 * E18
    assert sandbox.debt_token.balance_of("alice") == 1_000 * E18


def test_set_price_moves_health(sandbox) -> None:
    sandbox.open_position("alice", WETH, 10 * E18, 10_000 * E18)
    sandbox.set_price(WETH, 1_000 * E8)
    assert sandbox.engine.health_factor("alice") == E18 // 2
