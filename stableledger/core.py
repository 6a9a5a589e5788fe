"""
Core types for the stablecoin lending engine.

This module provides the foundational data structures shared by every other
module:
1. Constants: reserved wallets, decimal scales, tenths-of-percent scale
2. Exceptions: EngineError and its domain-specific subclasses
3. Immutable data structures: Token, Move, Transaction, DebtEvent,
   LiquidationRecord, RiskParameters
4. Type aliases: BalanceMap, OracleValue

Everything here is immutable. State lives in the ledgers and the engine.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Tuple


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for issuance and redemption.
# The system wallet is exempt from balance validation and can hold any balance.
SYSTEM_WALLET = "system"

# Custody wallet holding every deposited collateral token.
VAULT_WALLET = "vault"

# Integer scale of the tenths-of-percent encoding (1000 = 100.0%).
TENTH_PERC_SCALE = 1000

# Upper bound for the annual interest rate (100.0% per year).
MAX_ANNUAL_INTEREST_RATE_TENTH_PERC = 1000

SECONDS_PER_YEAR = 365 * 24 * 3600

# Decimal places of the stable unit and of oracle prices.
STABLE_DECIMALS = 18
ORACLE_DECIMALS = 8

# Quote currency appended to a token symbol to build the oracle key.
DEFAULT_QUOTE = "USD"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from token address to amount held.
BalanceMap = Dict[str, int]

# (price, timestamp) as published by a price oracle.
OracleValue = Tuple[int, int]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class EngineError(Exception):
    """Base exception for all engine errors."""
    pass


class ConfigurationError(EngineError):
    """Raised when risk parameters are invalid. Nothing is changed."""
    pass


class InvalidInterestRate(ConfigurationError):
    """Raised when an annual interest rate is outside the allowed range."""
    pass


class LiquidationThresholdError(ConfigurationError):
    """Raised when the liquidation threshold is not below the minimum collateral ratio."""
    pass


class RegistryError(EngineError):
    """Base class for token adapter registry errors."""
    pass


class AdapterAlreadyExists(RegistryError):
    """Raised when an adapter for the same token symbol is already registered."""
    pass


class AdapterNotFound(RegistryError):
    """Raised when no adapter is registered for a token."""
    pass


class AdapterValidationError(EngineError):
    """Base class for adapter binding errors."""
    pass


class InvalidOracleValue(AdapterValidationError):
    """Raised when the bound oracle has no price for the adapter's symbol key."""
    pass


class InvalidTokenSymbol(AdapterValidationError):
    """Raised when a token rebind would change the adapter's symbol."""
    pass


class UnsafeCollateralRatio(EngineError):
    """Raised when an operation would leave the collateral ratio below the minimum."""
    pass


class InsufficientBalance(EngineError):
    """Raised when a withdrawal exceeds the deposited vault balance."""
    pass


class InsufficientFunds(EngineError):
    """Raised when a token move would overdraw a wallet on the token ledger."""
    pass


class TokenNotRegistered(EngineError):
    """Raised when a token address is unknown to the token ledger."""
    pass


class RepaymentExceedsDebt(EngineError):
    """Raised when a repayment is larger than the user's total debt."""
    pass


class NonMonotonicTimestamp(EngineError):
    """Raised when a timestamp would move a ledger's clock backwards."""
    pass


class Unauthorized(EngineError):
    """Raised when a non-administrator calls a privileged operation."""
    pass


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def require_positive_int(value: int, name: str) -> int:
    """Return value if it is a positive int, else raise ValueError."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def require_identity(value: str, name: str) -> str:
    """Return value if it is a non-empty string identity."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} cannot be empty")
    return value


# ============================================================================
# TOKENS AND MOVES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Token:
    """
    Definition of a fungible token known to the token ledger.

    Attributes:
        address: Token identity. Two tokens may share a symbol but never an address.
        symbol: Ticker returned by the token contract (e.g., "USDC").
        name: Human-readable name.
        decimals: Number of decimal places of the smallest unit.
    """
    address: str
    symbol: str
    name: str
    decimals: int = 18

    def __post_init__(self):
        require_identity(self.address, "Token address")
        require_identity(self.symbol, "Token symbol")
        if isinstance(self.decimals, bool) or not isinstance(self.decimals, int) or self.decimals < 0:
            raise ValueError(f"Token decimals must be a non-negative int, got {self.decimals!r}")

    def __repr__(self) -> str:
        return f"Token({self.symbol}@{self.address}, {self.decimals}dp)"


@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of a token amount between two wallets.

    Attributes:
        quantity: Amount in the token's smallest unit (positive int).
        token: Address of the token being moved.
        source: Wallet debited.
        dest: Wallet credited.
    """
    quantity: int
    token: str
    source: str
    dest: str

    def __post_init__(self):
        require_positive_int(self.quantity, "Move quantity")
        require_identity(self.token, "Move token")
        require_identity(self.source, "Move source")
        require_identity(self.dest, "Move dest")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.token}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of token moves.

    Attributes:
        moves: Tuple of transfers applied together
        memo: What the moves were for (e.g., "deposit", "liquidation")
        timestamp: Logical time of execution
        sequence_number: Monotonic sequence within the token ledger
        exec_id: Unique execution identifier
    """
    moves: Tuple[Move, ...]
    memo: str
    timestamp: int
    sequence_number: int
    exec_id: str

    def __post_init__(self):
        if not self.moves:
            raise ValueError("Transaction must have moves")

    def __repr__(self) -> str:
        return f"Transaction({self.exec_id}, {len(self.moves)} moves, memo={self.memo!r})"


# ============================================================================
# DEBT EVENTS
# ============================================================================

class DebtAction(str, Enum):
    """Kind of a debt ledger entry."""
    LOAN = "loan"
    REPAYMENT = "repayment"


@dataclass(frozen=True, slots=True)
class DebtEvent:
    """
    One immutable debt ledger entry.

    Attributes:
        action: LOAN increases the base debt, REPAYMENT pays interest first, then base.
        amount: Face amount in stable units (positive int).
        timestamp: Seconds; non-decreasing within one user's ledger.
    """
    action: DebtAction
    amount: int
    timestamp: int

    def __post_init__(self):
        if not isinstance(self.action, DebtAction):
            raise ValueError(f"DebtEvent action must be a DebtAction, got {self.action!r}")
        require_positive_int(self.amount, "DebtEvent amount")
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int):
            raise ValueError(f"DebtEvent timestamp must be an int, got {self.timestamp!r}")


# ============================================================================
# LIQUIDATION RECORD
# ============================================================================

@dataclass(frozen=True, slots=True)
class LiquidationRecord:
    """
    Emitted once per liquidated user.

    Attributes:
        user: Liquidated identity
        timestamp: Logical time of the sweep
        seized: Token address -> amount moved to the withdrawable address
        debt_erased: Total debt (base + interest) cleared from the user's ledger
    """
    user: str
    timestamp: int
    seized: Mapping[str, int] = field(default_factory=dict)
    debt_erased: int = 0


# ============================================================================
# RISK PARAMETERS
# ============================================================================

@dataclass(frozen=True, slots=True)
class RiskParameters:
    """
    Immutable global risk parameters, all in tenths of a percent (60 = 6.0%).

    The liquidation threshold is derived:
        threshold = 1000 + annual_interest_rate + liquidation_penalty
    and must stay strictly below the minimum collateral ratio.

    Updates go through dataclasses.replace(), which re-runs validation, so an
    invalid update never produces an instance.

    Raises:
        InvalidInterestRate: rate outside [0, max_annual_interest_rate]
        LiquidationThresholdError: threshold >= min collateral ratio
        ValueError: negative penalty or non-int values
    """
    annual_interest_rate_tenth_perc: int
    min_collateral_ratio_tenth_perc: int
    liquidation_penalty_tenth_perc: int
    max_annual_interest_rate_tenth_perc: int = MAX_ANNUAL_INTEREST_RATE_TENTH_PERC

    def __post_init__(self):
        # Imported here: interest.py depends on this module.
        from .interest import validate_annual_rate

        for name in (
            'min_collateral_ratio_tenth_perc',
            'liquidation_penalty_tenth_perc',
            'max_annual_interest_rate_tenth_perc',
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an int, got {value!r}")

        # The cap can be lowered, never raised above the accrual limit.
        validate_annual_rate(self.max_annual_interest_rate_tenth_perc)
        validate_annual_rate(
            self.annual_interest_rate_tenth_perc,
            self.max_annual_interest_rate_tenth_perc,
        )
        if self.liquidation_penalty_tenth_perc < 0:
            raise ValueError(
                f"liquidation_penalty_tenth_perc cannot be negative, "
                f"got {self.liquidation_penalty_tenth_perc}"
            )
        if self.liquidation_threshold_tenth_perc >= self.min_collateral_ratio_tenth_perc:
            raise LiquidationThresholdError(
                "Liquidation threshold must be below minimum collateral ratio "
                f"({self.liquidation_threshold_tenth_perc} >= "
                f"{self.min_collateral_ratio_tenth_perc})"
            )

    @property
    def liquidation_threshold_tenth_perc(self) -> int:
        return (
            TENTH_PERC_SCALE
            + self.annual_interest_rate_tenth_perc
            + self.liquidation_penalty_tenth_perc
        )
