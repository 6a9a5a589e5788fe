"""
test_vault.py - Unit tests for CollateralVault
"""

import pytest

from stableledger import (
    AdapterNotFound,
    CollateralVault,
    InsufficientBalance,
    TokenAdapter,
    TokenAdapterRegistry,
)


@pytest.fixture
def vault(tokens, oracle):
    registry = TokenAdapterRegistry()
    registry.register(TokenAdapter(tokens["USDC"], oracle))
    registry.register(TokenAdapter(tokens["DAI"], oracle))
    return CollateralVault(registry)


class TestCollateralVault:

    def test_deposit_accumulates(self, vault):
        assert vault.deposit("alice", "0xusdc", 100) == 100
        assert vault.deposit("alice", "0xusdc", 50) == 150
        assert vault.balance_of("alice", "0xusdc") == 150

    def test_deposit_unregistered_token_rejected(self, vault):
        with pytest.raises(AdapterNotFound):
            vault.deposit("alice", "0xusdt", 100)
        assert vault.balances("alice") == {}

    @pytest.mark.parametrize("amount", [0, -1, 2.5])
    def test_invalid_amount_rejected(self, vault, amount):
        with pytest.raises(ValueError):
            vault.deposit("alice", "0xusdc", amount)

    def test_withdraw(self, vault):
        vault.deposit("alice", "0xusdc", 100)
        assert vault.withdraw("alice", "0xusdc", 40) == 60

    def test_withdraw_more_than_balance_rejected(self, vault):
        vault.deposit("alice", "0xusdc", 100)
        with pytest.raises(InsufficientBalance):
            vault.withdraw("alice", "0xusdc", 101)
        assert vault.balance_of("alice", "0xusdc") == 100

    def test_zero_balances_are_dropped(self, vault):
        vault.deposit("alice", "0xusdc", 100)
        vault.deposit("alice", "0xdai", 5)
        vault.withdraw("alice", "0xusdc", 100)
        assert vault.balances("alice") == {"0xdai": 5}

    def test_balances_are_per_user(self, vault):
        vault.deposit("alice", "0xusdc", 100)
        vault.deposit("bob", "0xdai", 7)
        assert vault.balances("alice") == {"0xusdc": 100}
        assert vault.balances("bob") == {"0xdai": 7}
        assert vault.balance_of("carol", "0xusdc") == 0

    def test_clear_returns_removed_balances(self, vault):
        vault.deposit("alice", "0xusdc", 100)
        vault.deposit("alice", "0xdai", 5)
        assert vault.clear("alice") == {"0xusdc": 100, "0xdai": 5}
        assert vault.balances("alice") == {}
        assert vault.clear("alice") == {}

    def test_copy_is_independent(self, vault):
        vault.deposit("alice", "0xusdc", 100)
        clone = vault.copy()
        clone.deposit("alice", "0xusdc", 1)
        assert vault.balance_of("alice", "0xusdc") == 100
        assert clone.balance_of("alice", "0xusdc") == 101
