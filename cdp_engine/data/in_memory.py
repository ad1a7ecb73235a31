"""In-memory custody vault and debt token.

These stand in for the collateral ERC20s and the stablecoin contract when the
engine runs in tests, simulations and the dashboard. Transfers report failure
by returning ``False`` rather than raising, matching the capability contracts
in :mod:`cdp_engine.data.interfaces`.
"""

from __future__ import annotations

from cdp_engine.data.interfaces import CustodyVault, DebtToken


class InMemoryVault(CustodyVault):
    """Wallet balances per holder plus the engine's custody per asset."""

    def __init__(self) -> None:
        # Mapping of (holder, asset) to wallet balance
        self.wallets: dict[tuple[str, str], int] = {}

        # Mapping of asset to the amount held by the engine
        self.custody: dict[str, int] = {}

    def fund(self, holder: str, asset: str, amount: int) -> None:
        """Credits a holder's wallet, e.g. to seed a test account."""
        key = (holder, asset)
        self.wallets[key] = self.wallets.get(key, 0) + amount

    def wallet_balance(self, holder: str, asset: str) -> int:
        return self.wallets.get((holder, asset), 0)

    def custody_balance(self, asset: str) -> int:
        return self.custody.get(asset, 0)

    def transfer_in(self, asset: str, sender: str, amount: int) -> bool:
        balance = self.wallet_balance(sender, asset)
        if amount <= 0 or balance < amount:
            return False
        self.wallets[(sender, asset)] = balance - amount
        self.custody[asset] = self.custody_balance(asset) + amount
        return True

    def transfer_out(self, asset: str, recipient: str, amount: int) -> bool:
        held = self.custody_balance(asset)
        if amount <= 0 or held < amount:
            return False
        self.custody[asset] = held - amount
        self.fund(recipient, asset, amount)
        return True


class InMemoryDebtToken(DebtToken):
    """Stablecoin balances with the engine as the only minter and burner."""

    def __init__(self, owner: str = "engine") -> None:
        # The engine address; burn() acts on this balance
        self.owner = owner

        self.total_supply = 0
        self.balances: dict[str, int] = {}

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def mint(self, to: str, amount: int) -> bool:
        if amount <= 0:
            return False
        self.balances[to] = self.balance_of(to) + amount
        self.total_supply += amount
        return True

    def burn(self, amount: int) -> None:
        balance = self.balance_of(self.owner)
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")
        if balance < amount:
            raise ValueError("Burn amount exceeds balance")
        self.balances[self.owner] = balance - amount
        self.total_supply -= amount

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Plain transfer between holders, e.g. to fund a liquidator."""
        return self.transfer_from(sender, recipient, amount)

    def transfer_from(self, sender: str, recipient: str, amount: int) -> bool:
        balance = self.balance_of(sender)
        if amount <= 0 or balance < amount:
            return False
        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount
        return True
