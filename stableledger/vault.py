"""
vault.py - Deposited collateral per user

Plain counters: user -> token address -> amount. The vault never looks at
debt or prices; the engine checks the collateral ratio around it. Token
custody itself lives on the token ledger under VAULT_WALLET.
"""

from __future__ import annotations
from typing import Dict

from .adapters import TokenAdapterRegistry
from .core import BalanceMap, InsufficientBalance, require_positive_int


class CollateralVault:
    """
    Per-user collateral balances for registered tokens.

    Zero balances are dropped, so balances(user) only lists tokens the user
    still holds.
    """

    def __init__(self, registry: TokenAdapterRegistry):
        self.registry = registry
        self._balances: Dict[str, BalanceMap] = {}

    def deposit(self, user: str, token_address: str, amount: int) -> int:
        """
        Credit amount of token_address to user.

        Returns:
            The user's new balance of the token

        Raises:
            AdapterNotFound: no registered adapter covers the token
            ValueError: amount is not a positive int
        """
        require_positive_int(amount, "Deposit amount")
        self.registry.for_token(token_address)
        held = self._balances.setdefault(user, {})
        held[token_address] = held.get(token_address, 0) + amount
        return held[token_address]

    def withdraw(self, user: str, token_address: str, amount: int) -> int:
        """
        Debit amount of token_address from user.

        Returns:
            The user's remaining balance of the token

        Raises:
            InsufficientBalance: amount exceeds the recorded balance
            ValueError: amount is not a positive int
        """
        require_positive_int(amount, "Withdraw amount")
        current = self.balance_of(user, token_address)
        if amount > current:
            raise InsufficientBalance(
                f"{user} has {current} of {token_address}, cannot withdraw {amount}"
            )
        remaining = current - amount
        held = self._balances[user]
        if remaining:
            held[token_address] = remaining
        else:
            del held[token_address]
            if not held:
                del self._balances[user]
        return remaining

    def balance_of(self, user: str, token_address: str) -> int:
        return self._balances.get(user, {}).get(token_address, 0)

    def balances(self, user: str) -> BalanceMap:
        return dict(self._balances.get(user, {}))

    def clear(self, user: str) -> BalanceMap:
        """Remove every balance of user and return what was removed."""
        return self._balances.pop(user, {})

    def copy(self, registry: TokenAdapterRegistry = None) -> CollateralVault:
        clone = CollateralVault(registry if registry is not None else self.registry)
        clone._balances = {user: dict(held) for user, held in self._balances.items()}
        return clone

    def __repr__(self) -> str:
        return f"CollateralVault({len(self._balances)} users)"
