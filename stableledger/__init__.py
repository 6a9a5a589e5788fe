"""
stableledger - Multi-collateral stablecoin lending engine

Users deposit registered collateral tokens, borrow a stable token against
them, accrue simple interest, and are liquidated when their collateral ratio
drops below the liquidation threshold.

Usage:
    from stableledger import (
        StablecoinEngine, RiskParameters, StaticPriceOracle, Token,
    )

    oracle = StaticPriceOracle({"USDC/USD": 100_000_000})
    usdc = Token("0xusdc", "USDC", "USD Coin", 18)

    engine = StablecoinEngine("admin", RiskParameters(80, 1500, 120), "treasury")
    engine.add_token_adapter("admin", usdc, oracle)

    # Fund the user on the token ledger, then lock collateral and borrow
    engine.token_ledger.mint(usdc.address, "alice", 3000 * 10**18)
    engine.deposit_and_borrow("alice", usdc.address, 3000 * 10**18, 1000 * 10**18)
    engine.max_borrow("alice")  # 1000 * 10**18
"""

# Core types
from .core import (
    SYSTEM_WALLET,
    VAULT_WALLET,
    TENTH_PERC_SCALE,
    MAX_ANNUAL_INTEREST_RATE_TENTH_PERC,
    SECONDS_PER_YEAR,
    STABLE_DECIMALS,
    ORACLE_DECIMALS,
    BalanceMap,
    OracleValue,
    Token,
    Move,
    Transaction,
    DebtAction,
    DebtEvent,
    LiquidationRecord,
    RiskParameters,
    EngineError,
    ConfigurationError,
    InvalidInterestRate,
    LiquidationThresholdError,
    RegistryError,
    AdapterAlreadyExists,
    AdapterNotFound,
    AdapterValidationError,
    InvalidOracleValue,
    InvalidTokenSymbol,
    UnsafeCollateralRatio,
    InsufficientBalance,
    InsufficientFunds,
    TokenNotRegistered,
    RepaymentExceedsDebt,
    NonMonotonicTimestamp,
    Unauthorized,
)

# Interest and debt
from .interest import accrue, validate_annual_rate
from .debt import DebtLedger, replay_debt_events

# Prices
from .oracle import PriceOracle, StaticPriceOracle
from .adapters import TokenAdapter, TokenAdapterRegistry, default_symbol_key

# Collateral
from .vault import CollateralVault
from .collateral import (
    calculate_collateral_value,
    calculate_collateral_ratio,
    calculate_max_borrow,
    calculate_max_withdraw_value,
    calculate_required_collateral,
    calculate_max_tokens_to_withdraw,
    is_ratio_safe,
)

# Ledgers and engines
from .token_ledger import TokenLedger
from .liquidation import LiquidationEngine
from .engine import StablecoinEngine, DEFAULT_STABLE_TOKEN
from .keeper import LiquidationKeeper, KEEPER_INTERVAL_SECONDS

__all__ = [
    # Constants
    'SYSTEM_WALLET', 'VAULT_WALLET', 'TENTH_PERC_SCALE',
    'MAX_ANNUAL_INTEREST_RATE_TENTH_PERC', 'SECONDS_PER_YEAR',
    'STABLE_DECIMALS', 'ORACLE_DECIMALS',
    # Types
    'BalanceMap', 'OracleValue', 'Token', 'Move', 'Transaction',
    'DebtAction', 'DebtEvent', 'LiquidationRecord', 'RiskParameters',
    # Exceptions
    'EngineError', 'ConfigurationError', 'InvalidInterestRate',
    'LiquidationThresholdError', 'RegistryError', 'AdapterAlreadyExists',
    'AdapterNotFound', 'AdapterValidationError', 'InvalidOracleValue',
    'InvalidTokenSymbol', 'UnsafeCollateralRatio', 'InsufficientBalance',
    'InsufficientFunds', 'TokenNotRegistered', 'RepaymentExceedsDebt',
    'NonMonotonicTimestamp', 'Unauthorized',
    # Interest and debt
    'accrue', 'validate_annual_rate', 'DebtLedger', 'replay_debt_events',
    # Prices
    'PriceOracle', 'StaticPriceOracle', 'TokenAdapter', 'TokenAdapterRegistry',
    'default_symbol_key',
    # Collateral
    'CollateralVault', 'calculate_collateral_value', 'calculate_collateral_ratio',
    'calculate_max_borrow', 'calculate_max_withdraw_value', 'calculate_required_collateral',
    'calculate_max_tokens_to_withdraw', 'is_ratio_safe',
    # Ledgers and engines
    'TokenLedger', 'LiquidationEngine', 'StablecoinEngine', 'DEFAULT_STABLE_TOKEN',
    'LiquidationKeeper', 'KEEPER_INTERVAL_SECONDS',
]

__version__ = '1.0.0'
