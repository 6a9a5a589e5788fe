"""
engine.py - StablecoinEngine, the lending facade

The StablecoinEngine owns every table of the system and is the only object
that mutates them:

    registry      symbol -> TokenAdapter
    vault         user -> token -> deposited amount
    debts         user -> DebtLedger
    debtors       every user that ever deposited or borrowed, in order
    token ledger  actual token balances (collateral and stable)

Key responsibilities:
    - Deposit, withdraw, borrow, repay with a collateral ratio guard
    - Administrator-only configuration and liquidation
    - Atomic mutations: each call snapshots every table and restores the
      snapshot if anything raises, so a rejected call changes nothing
    - Serialized access through a reentrant lock

Example:
    engine = StablecoinEngine("admin", RiskParameters(80, 1500, 120), "treasury")
    engine.add_token_adapter("admin", usdc, oracle)
    engine.token_ledger.mint(usdc.address, "alice", 3000 * 10**18)
    engine.deposit_and_borrow("alice", usdc.address, 3000 * 10**18, 1000 * 10**18)
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, replace
from functools import wraps
from threading import RLock
from typing import Dict, List, Optional, Tuple

from .adapters import TokenAdapter, TokenAdapterRegistry
from .collateral import (
    Ratio,
    calculate_collateral_ratio,
    calculate_collateral_value,
    calculate_max_borrow,
    calculate_max_tokens_to_withdraw,
    calculate_max_withdraw_value,
    is_ratio_safe,
)
from .core import (
    BalanceMap,
    DebtEvent,
    LiquidationRecord,
    NonMonotonicTimestamp,
    RepaymentExceedsDebt,
    RiskParameters,
    STABLE_DECIMALS,
    SYSTEM_WALLET,
    Token,
    Unauthorized,
    UnsafeCollateralRatio,
    VAULT_WALLET,
    require_identity,
    require_positive_int,
)
from .debt import DebtLedger
from .liquidation import LiquidationEngine
from .oracle import PriceOracle
from .token_ledger import TokenLedger
from .vault import CollateralVault


DEFAULT_STABLE_TOKEN = Token("stable", "FUSD", "FUSD Stablecoin", STABLE_DECIMALS)

_RESERVED_WALLETS = frozenset({SYSTEM_WALLET, VAULT_WALLET})


def _synchronized(method):
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


@dataclass(frozen=True)
class _Snapshot:
    params: RiskParameters
    withdrawable_address: str
    current_time: int
    registry: TokenAdapterRegistry
    vault: CollateralVault
    debts: Dict[str, DebtLedger]
    debtors: List[str]
    liquidation_log: List[LiquidationRecord]
    token_ledger: TokenLedger


class StablecoinEngine:
    """
    Multi-collateral lending engine issuing a stable token against deposits.

    All ratios and rates are in tenths of a percent (1500 = 150.0%).
    Amounts are ints in each token's smallest unit; debt is in stable units.

    Thread Safety:
        Every public method holds the engine lock for its whole duration.
    """

    def __init__(
        self,
        admin: str,
        risk_parameters: RiskParameters,
        withdrawable_address: str,
        token_ledger: Optional[TokenLedger] = None,
        stable_token: Optional[Token] = None,
        initial_time: int = 0,
        verbose: bool = False,
    ):
        """
        Create an engine.

        Args:
            admin: Identity allowed to configure the engine and liquidate
            risk_parameters: Initial rate, minimum ratio and penalty
            withdrawable_address: Wallet receiving seized collateral
            token_ledger: Token balances; a fresh ledger is created if omitted
            stable_token: Token minted on borrow and burned on repay
            initial_time: Starting logical time in seconds
            verbose: Print one line per mutation and liquidation
        """
        if not isinstance(risk_parameters, RiskParameters):
            raise ValueError("risk_parameters must be a RiskParameters instance")
        self.admin = require_identity(admin, "Admin")
        self._params = risk_parameters
        self._withdrawable_address = self._require_destination(withdrawable_address)
        self.token_ledger = token_ledger if token_ledger is not None else TokenLedger("stableledger", verbose)
        self.stable_token = stable_token if stable_token is not None else DEFAULT_STABLE_TOKEN
        self.token_ledger.register_token(self.stable_token)
        if initial_time > self.token_ledger.current_time:
            self.token_ledger.advance_time(initial_time)
        self._current_time = initial_time
        self.verbose = verbose
        self._lock = RLock()

        self._registry = TokenAdapterRegistry()
        self._vault = CollateralVault(self._registry)
        self._debts: Dict[str, DebtLedger] = {}
        self._debtors: List[str] = []
        self._liquidation_log: List[LiquidationRecord] = []
        self._bind_liquidator()

    def _bind_liquidator(self) -> None:
        self._liquidator = LiquidationEngine(
            self._registry,
            self._vault,
            self._debts,
            self._debtors,
            self.token_ledger,
            self._liquidation_log,
        )

    # ========================================================================
    # ATOMICITY
    # ========================================================================

    def _snapshot(self) -> _Snapshot:
        registry = self._registry.copy()
        return _Snapshot(
            params=self._params,
            withdrawable_address=self._withdrawable_address,
            current_time=self._current_time,
            registry=registry,
            vault=self._vault.copy(registry),
            debts={user: ledger.copy() for user, ledger in self._debts.items()},
            debtors=list(self._debtors),
            liquidation_log=list(self._liquidation_log),
            token_ledger=self.token_ledger.clone(),
        )

    def _restore(self, snapshot: _Snapshot) -> None:
        self._params = snapshot.params
        self._withdrawable_address = snapshot.withdrawable_address
        self._current_time = snapshot.current_time
        self._registry = snapshot.registry
        self._vault = snapshot.vault
        self._debts = snapshot.debts
        self._debtors = snapshot.debtors
        self._liquidation_log = snapshot.liquidation_log
        self.token_ledger.restore(snapshot.token_ledger)
        self._bind_liquidator()

    @contextmanager
    def _atomic(self, operation: str):
        with self._lock:
            snapshot = self._snapshot()
            try:
                yield
            except Exception as e:
                self._restore(snapshot)
                self._log("✗", f"{operation} REJECTED: {type(e).__name__}: {e}")
                raise

    def _log(self, icon: str, message: str) -> None:
        if self.verbose:
            print(f"{icon} [t={self._current_time}] {message}")

    # ========================================================================
    # INTERNAL HELPERS
    # ========================================================================

    def _require_admin(self, caller: str) -> None:
        if caller != self.admin:
            raise Unauthorized(f"{caller!r} is not the administrator")

    @staticmethod
    def _require_user(user: str) -> str:
        require_identity(user, "User")
        if user in _RESERVED_WALLETS:
            raise ValueError(f"{user!r} is a reserved wallet")
        return user

    @staticmethod
    def _require_destination(address: str) -> str:
        require_identity(address, "Withdrawable address")
        if address in _RESERVED_WALLETS:
            raise ValueError(f"{address!r} is a reserved wallet")
        return address

    def _note_debtor(self, user: str) -> None:
        if user not in self._debts:
            self._debts[user] = DebtLedger()
            self._debtors.append(user)

    def _debt_of(self, user: str) -> Tuple[int, int]:
        ledger = self._debts.get(user)
        if ledger is None:
            return 0, 0
        return ledger.calculate_base_and_interest(
            self._params.annual_interest_rate_tenth_perc, self._current_time
        )

    def _total_debt(self, user: str) -> int:
        base, interest = self._debt_of(user)
        return base + interest

    def _collateral_value(self, user: str) -> int:
        return calculate_collateral_value(self._vault.balances(user), self._registry.adapters())

    def _require_safe_ratio(self, user: str) -> None:
        ratio = calculate_collateral_ratio(self._collateral_value(user), self._total_debt(user))
        if not is_ratio_safe(ratio, self._params.min_collateral_ratio_tenth_perc):
            raise UnsafeCollateralRatio(
                f"collateral ratio is unsafe: {ratio} < "
                f"{self._params.min_collateral_ratio_tenth_perc}"
            )

    # ========================================================================
    # USER OPERATIONS
    # ========================================================================

    def deposit(self, user: str, token_address: str, amount: int) -> int:
        """
        Move amount of a registered collateral token from user into the vault.

        Returns:
            The user's new vault balance of the token

        Raises:
            AdapterNotFound: no adapter covers the token
            InsufficientFunds: user does not hold amount on the token ledger
        """
        self._require_user(user)
        with self._atomic("DEPOSIT"):
            balance = self._vault.deposit(user, token_address, amount)
            self.token_ledger.transfer(token_address, user, VAULT_WALLET, amount, memo="deposit")
            self._note_debtor(user)
            self._log("✓", f"DEPOSIT {user}: {amount} of {token_address}")
            return balance

    def withdraw(self, user: str, token_address: str, amount: int) -> int:
        """
        Return amount of a deposited token from the vault to user.

        Returns:
            The user's remaining vault balance of the token

        Raises:
            InsufficientBalance: amount exceeds the deposited balance
            UnsafeCollateralRatio: the withdrawal would break the minimum ratio
        """
        self._require_user(user)
        with self._atomic("WITHDRAW"):
            remaining = self._vault.withdraw(user, token_address, amount)
            self.token_ledger.transfer(token_address, VAULT_WALLET, user, amount, memo="withdraw")
            self._require_safe_ratio(user)
            self._log("✓", f"WITHDRAW {user}: {amount} of {token_address}")
            return remaining

    def borrow(self, user: str, amount: int) -> int:
        """
        Mint amount of the stable token to user as a new loan.

        Returns:
            The user's total debt after the loan

        Raises:
            UnsafeCollateralRatio: the loan would break the minimum ratio
        """
        self._require_user(user)
        require_positive_int(amount, "Loan amount")
        with self._atomic("BORROW"):
            self._note_debtor(user)
            self._debts[user].add_loan(amount, self._current_time)
            self.token_ledger.mint(self.stable_token.address, user, amount, memo="borrow")
            self._require_safe_ratio(user)
            self._log("✓", f"BORROW {user}: {amount}")
            return self._total_debt(user)

    def deposit_and_borrow(self, user: str, token_address: str, amount: int, loan_amount: int) -> int:
        """Deposit collateral and borrow against it in one atomic step."""
        with self._atomic("DEPOSIT_AND_BORROW"):
            self.deposit(user, token_address, amount)
            return self.borrow(user, loan_amount)

    def repay(self, user: str, amount: int) -> int:
        """
        Burn amount of the stable token from user against their debt.
        Interest is paid first, then base.

        Returns:
            The user's total debt after the repayment

        Raises:
            RepaymentExceedsDebt: amount is larger than the total debt
            InsufficientFunds: user does not hold amount of the stable token
        """
        self._require_user(user)
        require_positive_int(amount, "Repayment amount")
        with self._atomic("REPAY"):
            total = self._total_debt(user)
            if amount > total:
                raise RepaymentExceedsDebt(f"{user} owes {total}, cannot repay {amount}")
            self.token_ledger.burn(self.stable_token.address, user, amount, memo="repay")
            self._debts[user].add_repayment(amount, self._current_time)
            self._log("✓", f"REPAY {user}: {amount}")
            return self._total_debt(user)

    def repay_all(self, user: str) -> int:
        """
        Repay the user's whole debt.

        Returns:
            The amount repaid (0 when nothing was owed)
        """
        with self._atomic("REPAY_ALL"):
            total = self._total_debt(self._require_user(user))
            if total:
                self.repay(user, total)
            return total

    def advance_time(self, timestamp: int) -> None:
        """
        Move the logical clock forward to timestamp (seconds).

        Raises:
            NonMonotonicTimestamp: timestamp is earlier than the current time
        """
        with self._lock:
            if timestamp < self._current_time:
                raise NonMonotonicTimestamp(
                    f"Cannot move time backwards: {timestamp} < {self._current_time}"
                )
            self._current_time = timestamp
            if timestamp > self.token_ledger.current_time:
                self.token_ledger.advance_time(timestamp)

    # ========================================================================
    # ADMINISTRATION
    # ========================================================================

    def add_token_adapter(
        self,
        caller: str,
        token: Token,
        oracle: PriceOracle,
        symbol_key: Optional[str] = None,
    ) -> TokenAdapter:
        """
        Accept token as collateral, priced by oracle.

        Raises:
            Unauthorized: caller is not the administrator
            InvalidOracleValue: oracle has no positive price for the token
            AdapterAlreadyExists: a token with the same symbol is registered
        """
        with self._atomic("ADD_TOKEN_ADAPTER"):
            self._require_admin(caller)
            adapter = TokenAdapter(token, oracle, symbol_key, self.stable_token.decimals)
            self._registry.register(adapter)
            self.token_ledger.register_token(token)
            self._log("✓", f"ADD_TOKEN_ADAPTER {adapter.symbol} key={adapter.symbol_key!r}")
            return adapter

    def update_adapter_oracle(self, caller: str, symbol: str, oracle: PriceOracle) -> None:
        with self._atomic("UPDATE_ADAPTER_ORACLE"):
            self._require_admin(caller)
            self._registry.get(symbol).rebind_oracle(oracle)
            self._log("✓", f"UPDATE_ADAPTER_ORACLE {symbol}")

    def update_adapter_token(self, caller: str, symbol: str, token: Token) -> None:
        """
        Rebind the adapter for symbol to another token with the same symbol.
        Balances deposited under the old token address stop counting as collateral.
        """
        with self._atomic("UPDATE_ADAPTER_TOKEN"):
            self._require_admin(caller)
            self._registry.get(symbol).rebind_token(token)
            self.token_ledger.register_token(token)
            self._log("✓", f"UPDATE_ADAPTER_TOKEN {symbol} -> {token.address}")

    def _update_params(self, caller: str, operation: str, **changes) -> None:
        with self._atomic(operation):
            self._require_admin(caller)
            self._params = replace(self._params, **changes)
            self._log("✓", f"{operation} {changes}")

    def set_annual_interest_rate(self, caller: str, rate_tenth_perc: int) -> None:
        self._update_params(
            caller, "SET_ANNUAL_INTEREST_RATE", annual_interest_rate_tenth_perc=rate_tenth_perc
        )

    def set_min_collateral_ratio(self, caller: str, ratio_tenth_perc: int) -> None:
        self._update_params(
            caller, "SET_MIN_COLLATERAL_RATIO", min_collateral_ratio_tenth_perc=ratio_tenth_perc
        )

    def set_liquidation_penalty(self, caller: str, penalty_tenth_perc: int) -> None:
        self._update_params(
            caller, "SET_LIQUIDATION_PENALTY", liquidation_penalty_tenth_perc=penalty_tenth_perc
        )

    def set_withdrawable_address(self, caller: str, address: str) -> None:
        with self._atomic("SET_WITHDRAWABLE_ADDRESS"):
            self._require_admin(caller)
            self._withdrawable_address = self._require_destination(address)
            self._log("✓", f"SET_WITHDRAWABLE_ADDRESS {address}")

    def liquidate_all_debtors_below_threshold(self, caller: str) -> List[LiquidationRecord]:
        """
        Seize the collateral and erase the debt of every debtor below the
        liquidation threshold.

        Returns:
            One record per liquidated debtor; empty when nobody is flagged
        """
        with self._atomic("LIQUIDATE"):
            self._require_admin(caller)
            records = self._liquidator.liquidate_all(
                self._params, self._withdrawable_address, self._current_time
            )
            for record in records:
                self._log(
                    "✓",
                    f"LIQUIDATED {record.user}: debt {record.debt_erased}, "
                    f"seized {dict(record.seized)} -> {self._withdrawable_address}",
                )
            return records

    # ========================================================================
    # QUERIES
    # ========================================================================

    @property
    def current_time(self) -> int:
        return self._current_time

    @property
    def risk_parameters(self) -> RiskParameters:
        return self._params

    @property
    def annual_interest_rate(self) -> int:
        return self._params.annual_interest_rate_tenth_perc

    @property
    def min_collateral_ratio(self) -> int:
        return self._params.min_collateral_ratio_tenth_perc

    @property
    def liquidation_penalty(self) -> int:
        return self._params.liquidation_penalty_tenth_perc

    @property
    def liquidation_threshold(self) -> int:
        return self._params.liquidation_threshold_tenth_perc

    @property
    def withdrawable_address(self) -> str:
        return self._withdrawable_address

    @_synchronized
    def token_symbols(self) -> List[str]:
        return self._registry.symbols()

    @_synchronized
    def token_adapters(self) -> List[TokenAdapter]:
        return self._registry.adapters()

    @_synchronized
    def token_adapter(self, symbol: str) -> TokenAdapter:
        return self._registry.get(symbol)

    @_synchronized
    def user_token_balance(self, user: str, token_address: str) -> int:
        return self._vault.balance_of(user, token_address)

    @_synchronized
    def user_token_balances(self, user: str) -> BalanceMap:
        return self._vault.balances(user)

    @_synchronized
    def token_price_in_stable(self, token_address: str, amount: int) -> int:
        """Value of amount of token_address in stable units at the current oracle price."""
        return self._registry.for_token(token_address).price_of(amount)

    @_synchronized
    def collateral_value(self, user: str) -> int:
        return self._collateral_value(user)

    @_synchronized
    def collateral_ratio(self, user: str) -> Ratio:
        """Ratio in tenths of a percent; math.inf for a user without debt."""
        return calculate_collateral_ratio(self._collateral_value(user), self._total_debt(user))

    @_synchronized
    def base_debt_and_interest(self, user: str) -> Tuple[int, int]:
        return self._debt_of(user)

    @_synchronized
    def total_debt(self, user: str) -> int:
        return self._total_debt(user)

    @_synchronized
    def debt_events(self, user: str) -> Tuple[DebtEvent, ...]:
        ledger = self._debts.get(user)
        return ledger.events if ledger is not None else ()

    @_synchronized
    def max_borrow(self, user: str) -> int:
        return calculate_max_borrow(
            self._collateral_value(user),
            self._total_debt(user),
            self._params.min_collateral_ratio_tenth_perc,
        )

    @_synchronized
    def max_withdraw_value(self, user: str) -> int:
        return calculate_max_withdraw_value(
            self._collateral_value(user),
            self._total_debt(user),
            self._params.min_collateral_ratio_tenth_perc,
        )

    @_synchronized
    def max_tokens_to_withdraw(self, user: str) -> BalanceMap:
        """
        Per deposited token, the largest amount withdrawable on its own.
        The amounts are alternatives: each uses the full withdrawal budget.
        """
        return calculate_max_tokens_to_withdraw(
            self._vault.balances(user),
            self._registry.adapters(),
            self._total_debt(user),
            self._params.min_collateral_ratio_tenth_perc,
        )

    @_synchronized
    def all_debtors(self) -> List[str]:
        return list(self._debtors)

    @_synchronized
    def current_debtors(self) -> List[str]:
        return [user for user in self._debtors if self._total_debt(user) > 0]

    @_synchronized
    def is_below_liquidation_threshold(self, user: str) -> bool:
        return self._liquidator.is_below_threshold(user, self._params, self._current_time)

    @_synchronized
    def debtors_below_threshold(self) -> List[str]:
        return self._liquidator.debtors_below_threshold(self._params, self._current_time)

    @_synchronized
    def liquidation_log(self) -> List[LiquidationRecord]:
        return list(self._liquidation_log)

    def __repr__(self) -> str:
        return (
            f"StablecoinEngine(admin={self.admin!r}, t={self._current_time}, "
            f"{len(self._registry)} tokens, {len(self._debtors)} debtors)"
        )
