"""
test_token_ledger.py - Unit tests for TokenLedger

Tests:
- Token registration and lookup
- Mint, burn and transfer
- Atomic multi-move execution
- SYSTEM_WALLET exemption and supply accounting
- Cloning and restoring
"""

import pytest

from stableledger import (
    InsufficientFunds,
    Move,
    SYSTEM_WALLET,
    Token,
    TokenLedger,
    TokenNotRegistered,
)

DAI = Token("0xdai", "DAI", "Dai Stablecoin", 18)
USDC = Token("0xusdc", "USDC", "USD Coin", 6)


@pytest.fixture
def ledger():
    ledger = TokenLedger("test")
    ledger.register_token(DAI)
    ledger.register_token(USDC)
    return ledger


class TestRegistration:

    def test_get_token(self, ledger):
        assert ledger.get_token("0xdai") is DAI

    def test_unknown_token(self, ledger):
        with pytest.raises(TokenNotRegistered):
            ledger.get_token("0xnope")
        with pytest.raises(TokenNotRegistered):
            ledger.balance_of("alice", "0xnope")

    def test_reregistering_same_token_is_allowed(self, ledger):
        ledger.register_token(Token("0xdai", "DAI", "Dai Stablecoin", 18))

    def test_conflicting_definition_rejected(self, ledger):
        with pytest.raises(ValueError):
            ledger.register_token(Token("0xdai", "DAI", "Dai Stablecoin", 6))


class TestMoves:

    def test_mint(self, ledger):
        ledger.mint("0xdai", "alice", 1000)
        assert ledger.balance_of("alice", "0xdai") == 1000
        assert ledger.balance_of(SYSTEM_WALLET, "0xdai") == -1000
        assert ledger.total_supply("0xdai") == 1000

    def test_burn(self, ledger):
        ledger.mint("0xdai", "alice", 1000)
        ledger.burn("0xdai", "alice", 400)
        assert ledger.balance_of("alice", "0xdai") == 600
        assert ledger.total_supply("0xdai") == 600

    def test_transfer(self, ledger):
        ledger.mint("0xdai", "alice", 1000)
        tx = ledger.transfer("0xdai", "alice", "bob", 250)
        assert ledger.balance_of("alice", "0xdai") == 750
        assert ledger.balance_of("bob", "0xdai") == 250
        assert tx.memo == "transfer"
        assert ledger.transaction_log[-1] is tx

    def test_overdraw_rejected(self, ledger):
        ledger.mint("0xdai", "alice", 100)
        with pytest.raises(InsufficientFunds):
            ledger.transfer("0xdai", "alice", "bob", 101)
        assert ledger.balance_of("alice", "0xdai") == 100
        assert ledger.balance_of("bob", "0xdai") == 0
        assert len(ledger.transaction_log) == 1

    def test_burn_more_than_held_rejected(self, ledger):
        with pytest.raises(InsufficientFunds):
            ledger.burn("0xdai", "alice", 1)

    def test_batch_is_all_or_nothing(self, ledger):
        ledger.mint("0xdai", "alice", 100)
        moves = [
            Move(100, "0xdai", "alice", "bob"),
            Move(1, "0xusdc", "alice", "bob"),
        ]
        with pytest.raises(InsufficientFunds):
            ledger.execute(moves, memo="batch")
        assert ledger.balance_of("alice", "0xdai") == 100
        assert ledger.balance_of("bob", "0xdai") == 0

    def test_batch_nets_moves_before_checking(self, ledger):
        """A wallet may pass on within the batch what it receives in it."""
        ledger.mint("0xdai", "alice", 100)
        ledger.execute([
            Move(100, "0xdai", "alice", "bob"),
            Move(100, "0xdai", "bob", "carol"),
        ])
        assert ledger.balance_of("carol", "0xdai") == 100
        assert ledger.balance_of("bob", "0xdai") == 0

    def test_unknown_token_in_batch_rejected(self, ledger):
        with pytest.raises(TokenNotRegistered):
            ledger.execute([Move(1, "0xnope", SYSTEM_WALLET, "alice")])

    def test_empty_batch_rejected(self, ledger):
        with pytest.raises(ValueError):
            ledger.execute([])

    def test_move_validation(self):
        with pytest.raises(ValueError):
            Move(0, "0xdai", "alice", "bob")
        with pytest.raises(ValueError):
            Move(10, "0xdai", "alice", "alice")

    def test_sequence_numbers_increase(self, ledger):
        first = ledger.mint("0xdai", "alice", 1)
        second = ledger.mint("0xdai", "alice", 1)
        assert second.sequence_number == first.sequence_number + 1
        assert first.exec_id != second.exec_id

    def test_transactions_carry_ledger_time(self, ledger):
        ledger.advance_time(60)
        assert ledger.mint("0xdai", "alice", 1).timestamp == 60
        with pytest.raises(ValueError):
            ledger.advance_time(59)

    def test_wallet_balances_hide_zeros(self, ledger):
        ledger.mint("0xdai", "alice", 5)
        ledger.transfer("0xdai", "alice", "bob", 5)
        assert ledger.wallet_balances("alice") == {}
        assert ledger.wallet_balances("bob") == {"0xdai": 5}


class TestVerbose:

    def test_prints_applied_and_rejected(self, capsys):
        ledger = TokenLedger("loud", verbose=True)
        ledger.register_token(DAI)
        ledger.mint("0xdai", "alice", 5)
        with pytest.raises(InsufficientFunds):
            ledger.transfer("0xdai", "alice", "bob", 6)
        out = capsys.readouterr().out
        assert "✓ APPLIED [mint]" in out
        assert "✗ REJECTED [transfer]" in out

    def test_silent_by_default(self, ledger, capsys):
        ledger.mint("0xdai", "alice", 5)
        assert capsys.readouterr().out == ""


class TestClone:

    def test_clone_is_independent(self, ledger):
        ledger.mint("0xdai", "alice", 100)
        clone = ledger.clone()
        clone.transfer("0xdai", "alice", "bob", 50)
        assert ledger.balance_of("alice", "0xdai") == 100
        assert clone.balance_of("alice", "0xdai") == 50
        assert len(ledger.transaction_log) == 1

    def test_restore(self, ledger):
        ledger.mint("0xdai", "alice", 100)
        snapshot = ledger.clone()
        ledger.transfer("0xdai", "alice", "bob", 50)
        ledger.restore(snapshot)
        assert ledger.balance_of("alice", "0xdai") == 100
        assert ledger.balance_of("bob", "0xdai") == 0
        assert len(ledger.transaction_log) == 1
        assert ledger.mint("0xdai", "alice", 1).sequence_number == 1
