"""Abstract collaborator interfaces consumed by the engine."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CollateralAsset:
    """An allow-listed collateral asset and the feed that prices it."""

    asset: str
    price_feed: str


class PriceFeed(ABC):
    """Abstract source of USD spot prices."""

    @abstractmethod
    def latest_price(self, feed_id: str) -> tuple[int, int]:
        """Return ``(price, updated_at)`` for a feed.

        ``price`` is an 8-decimal fixed-point USD price and ``updated_at``
        a unix timestamp in seconds.
        """


class CustodyVault(ABC):
    """Abstract custody of collateral held by the engine."""

    @abstractmethod
    def transfer_in(self, asset: str, sender: str, amount: int) -> bool:
        """Move ``amount`` of ``asset`` from ``sender`` into engine custody."""

    @abstractmethod
    def transfer_out(self, asset: str, recipient: str, amount: int) -> bool:
        """Move ``amount`` of ``asset`` from engine custody to ``recipient``."""


class DebtToken(ABC):
    """Abstract stablecoin the engine mints and burns."""

    @abstractmethod
    def mint(self, to: str, amount: int) -> bool:
        """Mint ``amount`` new tokens to ``to``."""

    @abstractmethod
    def burn(self, amount: int) -> None:
        """Burn ``amount`` tokens from the caller's (the engine's) balance."""

    @abstractmethod
    def transfer_from(self, sender: str, recipient: str, amount: int) -> bool:
        """Move ``amount`` tokens from ``sender`` to ``recipient``."""
