"""Events recorded by the engine, published once an operation commits."""

from dataclasses import dataclass
from enum import Enum


class Direction(Enum):
    CREDIT = "credit"
    DEBIT = "debit"


@dataclass(frozen=True)
class LedgerChanged:
    """A single collateral or debt balance change.

    ``asset`` is None for debt ledger changes.
    """

    ledger: str  # "collateral" or "debt"
    user: str
    asset: str | None
    amount: int
    direction: Direction


@dataclass(frozen=True)
class CollateralDeposited:
    user: str
    asset: str
    amount: int


@dataclass(frozen=True)
class CollateralRedeemed:
    redeem_from: str
    redeem_to: str
    asset: str
    amount: int


@dataclass(frozen=True)
class DebtMinted:
    user: str
    amount: int


@dataclass(frozen=True)
class DebtBurned:
    burn_from: str
    on_behalf_of: str
    amount: int


@dataclass(frozen=True)
class Liquidated:
    liquidator: str
    user: str
    asset: str
    debt_covered: int
    collateral_seized: int
