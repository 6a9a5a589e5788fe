"""
adapters.py - Token price adapters and their registry

A TokenAdapter binds one collateral token to a price oracle and converts
token amounts into stable units:

    price_of(amount) = price * amount * 10^(stable_dec - token_dec - oracle_dec)

The oracle key is derived from the token symbol ("USDC" -> "USDC/USD"). A
binding is only accepted while the oracle publishes a positive price for
that key, both at construction and on every rebind.

TokenAdapterRegistry holds at most one adapter per token symbol, in
registration order.
"""

from __future__ import annotations
from typing import Dict, List, Optional

from .core import (
    AdapterAlreadyExists,
    AdapterNotFound,
    DEFAULT_QUOTE,
    InvalidOracleValue,
    InvalidTokenSymbol,
    STABLE_DECIMALS,
    Token,
)
from .oracle import PriceOracle


def default_symbol_key(symbol: str) -> str:
    """Oracle key for a token symbol, e.g. "DAI" -> "DAI/USD"."""
    return f"{symbol}/{DEFAULT_QUOTE}"


def _validated_price(oracle: PriceOracle, key: str) -> int:
    value = oracle.get_value(key)
    if value is None or value[0] <= 0:
        raise InvalidOracleValue(f"Token adapter: invalid oracle value for {key!r}")
    return value[0]


def _scale(value: int, exponent: int) -> int:
    """value * 10^exponent, floored when the exponent is negative."""
    if exponent >= 0:
        return value * 10 ** exponent
    return value // 10 ** (-exponent)


class TokenAdapter:
    """
    Binding of a collateral token to a price oracle.

    Example:
        adapter = TokenAdapter(usdc, oracle)
        adapter.price_of(10**6)  # 1 USDC in 18-decimal stable units
    """

    def __init__(
        self,
        token: Token,
        oracle: PriceOracle,
        symbol_key: Optional[str] = None,
        stable_decimals: int = STABLE_DECIMALS,
    ):
        """
        Bind token to oracle.

        Args:
            token: Collateral token definition
            oracle: Price oracle publishing symbol_key
            symbol_key: Oracle key; defaults to "<SYMBOL>/USD"
            stable_decimals: Decimal places of the stable unit

        Raises:
            InvalidOracleValue: if the oracle has no positive price for the key
        """
        key = symbol_key if symbol_key is not None else default_symbol_key(token.symbol)
        _validated_price(oracle, key)
        self._token = token
        self._oracle = oracle
        self._symbol_key = key
        self._custom_key = symbol_key is not None
        self.stable_decimals = stable_decimals

    @property
    def token(self) -> Token:
        return self._token

    @property
    def oracle(self) -> PriceOracle:
        return self._oracle

    @property
    def symbol(self) -> str:
        return self._token.symbol

    @property
    def symbol_key(self) -> str:
        return self._symbol_key

    def rebind_oracle(self, new_oracle: PriceOracle) -> None:
        """
        Point the adapter at another oracle.

        Raises:
            InvalidOracleValue: the new oracle has no positive price for the key;
                the adapter keeps its old oracle
        """
        _validated_price(new_oracle, self._symbol_key)
        self._oracle = new_oracle

    def rebind_token(self, new_token: Token) -> None:
        """
        Point the adapter at another token with the same symbol.

        Raises:
            InvalidTokenSymbol: the new token's symbol differs
            InvalidOracleValue: the current oracle has no positive price for the key
        """
        if new_token.symbol != self._token.symbol:
            raise InvalidTokenSymbol(
                f"Token adapter: invalid token symbol {new_token.symbol!r}, "
                f"expected {self._token.symbol!r}"
            )
        key = self._symbol_key if self._custom_key else default_symbol_key(new_token.symbol)
        _validated_price(self._oracle, key)
        self._token = new_token
        self._symbol_key = key

    def current_price(self) -> int:
        """Latest oracle price for the key; 0 when the oracle stopped publishing it."""
        value = self._oracle.get_value(self._symbol_key)
        if value is None:
            return 0
        return max(value[0], 0)

    @property
    def _exponent(self) -> int:
        return self.stable_decimals - self._token.decimals - self._oracle.decimals

    def price_of(self, token_amount: int) -> int:
        """Value of token_amount in stable units, floored."""
        if token_amount < 0:
            raise ValueError(f"token_amount cannot be negative, got {token_amount}")
        return _scale(self.current_price() * token_amount, self._exponent)

    def tokens_for_value(self, value: int) -> int:
        """
        Largest token amount whose value does not exceed value (stable units).

        Returns 0 when the oracle price is zero.
        """
        if value < 0:
            raise ValueError(f"value cannot be negative, got {value}")
        price = self.current_price()
        if price == 0:
            return 0
        exponent = -self._exponent
        if exponent >= 0:
            return value * 10 ** exponent // price
        return value // (price * 10 ** (-exponent))

    def tokens_to_cover(self, value: int) -> int:
        """
        Smallest token amount whose price_of is at least value (stable units).

        Raises:
            InvalidOracleValue: value is positive and the oracle price is zero
        """
        if value <= 0:
            return 0
        price = self.current_price()
        if price == 0:
            raise InvalidOracleValue(f"Token adapter: no price for {self._symbol_key!r}")
        if self._exponent >= 0:
            return -(-value // (price * 10 ** self._exponent))
        return -(-value * 10 ** (-self._exponent) // price)

    def copy(self) -> TokenAdapter:
        clone = TokenAdapter.__new__(TokenAdapter)
        clone._token = self._token
        clone._oracle = self._oracle
        clone._symbol_key = self._symbol_key
        clone._custom_key = self._custom_key
        clone.stable_decimals = self.stable_decimals
        return clone

    def __repr__(self) -> str:
        return f"TokenAdapter({self._token.symbol}@{self._token.address}, key={self._symbol_key!r})"


class TokenAdapterRegistry:
    """
    At most one adapter per token symbol, kept in registration order.
    """

    def __init__(self):
        self._adapters: Dict[str, TokenAdapter] = {}

    def register(self, adapter: TokenAdapter) -> TokenAdapter:
        """
        Add an adapter.

        Raises:
            AdapterAlreadyExists: an adapter for the same symbol is registered
        """
        if adapter.symbol in self._adapters:
            raise AdapterAlreadyExists(f"Token adapter already exists for {adapter.symbol!r}")
        self._adapters[adapter.symbol] = adapter
        return adapter

    def get(self, symbol: str) -> TokenAdapter:
        """
        Raises:
            AdapterNotFound: no adapter for symbol
        """
        adapter = self._adapters.get(symbol)
        if adapter is None:
            raise AdapterNotFound(f"Token adapter does not exist for {symbol!r}")
        return adapter

    def find_for_token(self, token_address: str) -> Optional[TokenAdapter]:
        for adapter in self._adapters.values():
            if adapter.token.address == token_address:
                return adapter
        return None

    def for_token(self, token_address: str) -> TokenAdapter:
        """
        Adapter currently bound to token_address.

        Raises:
            AdapterNotFound: no adapter covers the token
        """
        adapter = self.find_for_token(token_address)
        if adapter is None:
            raise AdapterNotFound(f"Token adapter does not exist for token {token_address!r}")
        return adapter

    def symbols(self) -> List[str]:
        return list(self._adapters)

    def adapters(self) -> List[TokenAdapter]:
        return list(self._adapters.values())

    def copy(self) -> TokenAdapterRegistry:
        clone = TokenAdapterRegistry()
        clone._adapters = {symbol: a.copy() for symbol, a in self._adapters.items()}
        return clone

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)

    def __repr__(self) -> str:
        return f"TokenAdapterRegistry({', '.join(self._adapters)})"
