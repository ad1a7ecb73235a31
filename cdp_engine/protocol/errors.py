"""Typed failures raised by the engine.

Every mutating operation either applies fully or raises one of these after
discarding its ledger changes, so callers can branch on the failure kind.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all engine failures."""


class InvalidAmount(EngineError, ValueError):
    """An amount parameter was zero, negative or not an integer."""

    def __init__(self, amount: object) -> None:
        super().__init__(f"Amount must be a positive integer, got {amount!r}")
        self.amount = amount


class AssetNotAllowed(EngineError):
    """The operation referenced an asset outside the collateral allow-list."""

    def __init__(self, asset: str) -> None:
        super().__init__(f"Asset not allowed as collateral: {asset}")
        self.asset = asset


class ConfigurationMismatch(EngineError):
    """The asset list and the price feed list cannot be paired up."""


class TransferFailed(EngineError):
    """A custody or debt token transfer reported failure."""


class InsufficientBalance(EngineError):
    """A debit exceeded the recorded collateral or debt balance."""

    def __init__(self, user: str, available: int, requested: int, asset: str | None = None) -> None:
        what = f"{asset} collateral" if asset is not None else "debt"
        super().__init__(
            f"Insufficient {what} for {user}: available {available}, requested {requested}"
        )
        self.user = user
        self.asset = asset
        self.available = available
        self.requested = requested


class MintFailed(EngineError):
    """The debt token reported a failed mint."""


class BelowMinimumHealthFactor(EngineError):
    """A solvency check failed; carries the computed health factor."""

    def __init__(self, health_factor: int, user: str | None = None) -> None:
        super().__init__(f"Health factor {health_factor} is below the minimum")
        self.health_factor = health_factor
        self.user = user


class NotLiquidatable(EngineError):
    """Liquidation was attempted on a healthy account."""

    def __init__(self, user: str, health_factor: int) -> None:
        super().__init__(f"Account {user} is healthy (health factor {health_factor})")
        self.user = user
        self.health_factor = health_factor


class HealthFactorNotImproved(EngineError):
    """Liquidation completed without raising the target's health factor."""

    def __init__(self, starting: int, ending: int) -> None:
        super().__init__(f"Health factor did not improve: {starting} -> {ending}")
        self.starting = starting
        self.ending = ending


class StalePrice(EngineError):
    """Oracle data is older than the staleness timeout."""

    def __init__(self, feed_id: str, age: int) -> None:
        super().__init__(f"Price feed {feed_id} is stale ({age}s old)")
        self.feed_id = feed_id
        self.age = age


class ReentrantCall(EngineError):
    """A mutating entry point was re-entered while one was in flight."""
