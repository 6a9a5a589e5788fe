"""
oracle.py - Price oracle interface and an in-memory implementation

Oracles publish integer prices keyed by a pair string such as "USDC/USD",
together with the time the price was published. Prices carry a fixed number
of decimals (8 by default).

Classes:
- PriceOracle: Protocol every oracle implements
- StaticPriceOracle: Prices set by hand, as a test or simulation feed

How prices are refreshed and when they go stale is the feed's business;
adapters only read the latest published value.
"""

from typing import Dict, Optional, Protocol, runtime_checkable

from .core import ORACLE_DECIMALS, OracleValue


@runtime_checkable
class PriceOracle(Protocol):
    """
    Protocol for price oracles.

    get_value() returns (price, timestamp) for a key, or None when the
    oracle has never published that key.
    """
    decimals: int

    def get_value(self, key: str) -> Optional[OracleValue]:
        """Latest (price, timestamp) for key, or None."""
        ...


class StaticPriceOracle:
    """
    Oracle whose prices only change when set explicitly.

    Example:
        oracle = StaticPriceOracle({"USDC/USD": 100_000_000})
        oracle.set_value("DAI/USD", 200_000_000, timestamp=60)
    """

    def __init__(self, prices: Optional[Dict[str, int]] = None, decimals: int = ORACLE_DECIMALS):
        """
        Initialize with an optional price map.

        Args:
            prices: Dictionary mapping oracle keys to integer prices (timestamp 0)
            decimals: Decimal places of every published price
        """
        self.decimals = decimals
        self._values: Dict[str, OracleValue] = {}
        if prices:
            self.set_values(prices)

    def get_value(self, key: str) -> Optional[OracleValue]:
        return self._values.get(key)

    def set_value(self, key: str, price: int, timestamp: int = 0) -> None:
        """Publish a price for key."""
        if isinstance(price, bool) or not isinstance(price, int):
            raise ValueError(f"Oracle price must be an int, got {price!r}")
        if price < 0:
            raise ValueError(f"Oracle price cannot be negative, got {price}")
        self._values[key] = (price, timestamp)

    def set_values(self, prices: Dict[str, int], timestamp: int = 0) -> None:
        """Publish several prices at the same timestamp."""
        for key, price in prices.items():
            self.set_value(key, price, timestamp)

    def remove(self, key: str) -> None:
        """Stop publishing key."""
        self._values.pop(key, None)

    def __repr__(self):
        return f"StaticPriceOracle({len(self._values)} prices, {self.decimals}dp)"
