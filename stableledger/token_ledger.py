"""
token_ledger.py - Multi-token fungible balance ledger

The TokenLedger holds wallet balances for every token the engine touches:
collateral tokens and the stable token itself. It is the only place tokens
actually move; the engine's vault and debt tables only record claims.

Key responsibilities:
    - Executes batches of moves atomically (all moves succeed or all fail)
    - Validates every batch before applying anything
    - Mints from and burns to SYSTEM_WALLET, which may hold any balance
    - Records every applied batch in the transaction log
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from .core import (
    BalanceMap,
    InsufficientFunds,
    Move,
    SYSTEM_WALLET,
    Token,
    TokenNotRegistered,
    Transaction,
    require_positive_int,
)


class TokenLedger:
    """
    In-memory ledger of fungible token balances.

    Wallets are implicit: any identity can hold a balance. Every wallet except
    SYSTEM_WALLET must stay non-negative.

    Thread Safety:
        Not thread-safe. The engine serializes access.

    Example:
        ledger = TokenLedger("main")
        ledger.register_token(Token("0xdai", "DAI", "Dai Stablecoin"))
        ledger.mint("0xdai", "alice", 1000)
        ledger.transfer("0xdai", "alice", "bob", 250)
    """

    def __init__(self, name: str = "tokens", verbose: bool = False):
        """
        Create a token ledger.

        Args:
            name: Ledger identifier, used in execution ids
            verbose: Print one line per applied or rejected batch
        """
        self.name = name
        self.verbose = verbose
        self.tokens: Dict[str, Token] = {}
        self.balances: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self.transaction_log: List[Transaction] = []
        self._current_time = 0
        self._next_sequence = 0

    # ========================================================================
    # READ-ONLY METHODS
    # ========================================================================

    @property
    def current_time(self) -> int:
        return self._current_time

    def get_token(self, address: str) -> Token:
        """
        Raises:
            TokenNotRegistered: address is unknown
        """
        token = self.tokens.get(address)
        if token is None:
            raise TokenNotRegistered(f"Token {address} not registered")
        return token

    def balance_of(self, wallet: str, token_address: str) -> int:
        self.get_token(token_address)
        return self.balances[wallet][token_address] if wallet in self.balances else 0

    def wallet_balances(self, wallet: str) -> BalanceMap:
        if wallet not in self.balances:
            return {}
        return {token: qty for token, qty in self.balances[wallet].items() if qty}

    def total_supply(self, token_address: str) -> int:
        """
        Sum of the token across all wallets except SYSTEM_WALLET.

        Equals -balance(SYSTEM_WALLET) because every unit in circulation was
        minted from the system wallet.
        """
        self.get_token(token_address)
        return sum(
            bals.get(token_address, 0)
            for wallet, bals in self.balances.items()
            if wallet != SYSTEM_WALLET
        )

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def register_token(self, token: Token) -> Token:
        existing = self.tokens.get(token.address)
        if existing is not None and existing != token:
            raise ValueError(f"Token {token.address} already registered as {existing!r}")
        self.tokens[token.address] = token
        return token

    def advance_time(self, timestamp: int) -> None:
        if timestamp < self._current_time:
            raise ValueError(f"Cannot move time backwards: {timestamp} < {self._current_time}")
        self._current_time = timestamp

    def mint(self, token_address: str, wallet: str, amount: int, memo: str = "mint") -> Transaction:
        """Issue amount of the token to wallet from SYSTEM_WALLET."""
        return self.execute([Move(amount, token_address, SYSTEM_WALLET, wallet)], memo)

    def burn(self, token_address: str, wallet: str, amount: int, memo: str = "burn") -> Transaction:
        """Return amount of the token from wallet to SYSTEM_WALLET."""
        return self.execute([Move(amount, token_address, wallet, SYSTEM_WALLET)], memo)

    def transfer(
        self,
        token_address: str,
        source: str,
        dest: str,
        amount: int,
        memo: str = "transfer",
    ) -> Transaction:
        return self.execute([Move(amount, token_address, source, dest)], memo)

    def execute(self, moves: Iterable[Move], memo: str = "") -> Transaction:
        """
        Apply a batch of moves atomically.

        The whole batch is validated against current balances first; nothing
        is applied unless every move can be.

        Args:
            moves: Moves to apply together
            memo: What the batch is for

        Returns:
            The executed Transaction

        Raises:
            ValueError: the batch is empty
            TokenNotRegistered: a move references an unknown token
            InsufficientFunds: a wallet would end up negative
        """
        moves = tuple(moves)
        if not moves:
            raise ValueError("Cannot execute an empty batch")

        try:
            self._validate(moves)
        except (TokenNotRegistered, InsufficientFunds) as e:
            if self.verbose:
                print(f"✗ REJECTED [{memo}]: {e}")
            raise

        sequence = self._next_sequence
        self._next_sequence += 1
        tx = Transaction(
            moves=moves,
            memo=memo,
            timestamp=self._current_time,
            sequence_number=sequence,
            exec_id=f"exec:{self.name}:{sequence:012d}:{self._current_time}",
        )
        self._apply(moves)
        self.transaction_log.append(tx)
        if self.verbose:
            print(f"✓ APPLIED [{memo}]: {', '.join(repr(m) for m in moves)}")
        return tx

    def _validate(self, moves: Tuple[Move, ...]) -> None:
        net: Dict[Tuple[str, str], int] = defaultdict(int)
        for move in moves:
            require_positive_int(move.quantity, "Move quantity")
            self.get_token(move.token)
            net[(move.source, move.token)] -= move.quantity
            net[(move.dest, move.token)] += move.quantity

        # SYSTEM_WALLET is exempt: it is the issuance and redemption account.
        for (wallet, token), delta in net.items():
            if wallet == SYSTEM_WALLET:
                continue
            current = self.balances[wallet][token] if wallet in self.balances else 0
            if current + delta < 0:
                symbol = self.tokens[token].symbol
                raise InsufficientFunds(
                    f"{wallet} has {current} {symbol}, needs {-delta}"
                )

    def _apply(self, moves: Tuple[Move, ...]) -> None:
        for move in moves:
            self.balances[move.source][move.token] -= move.quantity
            self.balances[move.dest][move.token] += move.quantity

    # ========================================================================
    # CLONING
    # ========================================================================

    def clone(self) -> TokenLedger:
        """
        Deep copy of this ledger. Token definitions and transactions are
        immutable and shared; balances are copied.
        """
        cloned = TokenLedger.__new__(TokenLedger)
        cloned.name = self.name
        cloned.verbose = self.verbose
        cloned.tokens = dict(self.tokens)
        cloned.balances = defaultdict(lambda: defaultdict(int))
        for wallet, bals in self.balances.items():
            cloned.balances[wallet] = defaultdict(int, bals)
        cloned.transaction_log = list(self.transaction_log)
        cloned._current_time = self._current_time
        cloned._next_sequence = self._next_sequence
        return cloned

    def restore(self, snapshot: TokenLedger) -> None:
        """Reset this ledger in place to the state held by snapshot."""
        self.tokens = snapshot.tokens
        self.balances = snapshot.balances
        self.transaction_log = snapshot.transaction_log
        self._current_time = snapshot._current_time
        self._next_sequence = snapshot._next_sequence

    def __repr__(self) -> str:
        return f"TokenLedger({self.name!r}, {len(self.tokens)} tokens, {len(self.transaction_log)} txs)"
