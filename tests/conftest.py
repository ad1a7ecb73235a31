"""Shared fixtures: a sandbox engine on a controllable clock."""

from __future__ import annotations

import pytest

from cdp_engine.simulation.sandbox import Sandbox, build_sandbox

START_TIME = 1_700_000_000


class FakeClock:
    """Callable clock returning a settable unix time."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sandbox(clock: FakeClock) -> Sandbox:
    """Engine over WETH ($2000) and WBTC ($1000) with in-memory custody."""
    return build_sandbox(clock=clock)


@pytest.fixture
def engine(sandbox: Sandbox):
    return sandbox.engine
