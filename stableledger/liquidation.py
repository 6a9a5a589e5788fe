"""
liquidation.py - Detecting and liquidating undercollateralized debtors

A debtor is below the liquidation threshold when they owe something and
their collateral ratio has fallen under

    threshold = 1000 + annual_interest_rate + liquidation_penalty

Liquidation seizes every deposited token to the withdrawable address on the
token ledger and erases the debtor's debt. The debtor stays in the list of
all debtors; with no debt left they are never flagged again, so repeating a
sweep without any state change does nothing.
"""

from __future__ import annotations
from typing import Dict, List, Sequence

from .adapters import TokenAdapterRegistry
from .collateral import calculate_collateral_ratio, calculate_collateral_value
from .core import LiquidationRecord, Move, RiskParameters, VAULT_WALLET
from .debt import DebtLedger
from .token_ledger import TokenLedger
from .vault import CollateralVault


class LiquidationEngine:
    """
    Threshold checks and liquidation sweeps over a set of accounts.

    The engine reads the tables it is given and never copies them; callers
    wanting rollback across more than the token ledger wrap the sweep in
    their own snapshot.
    """

    def __init__(
        self,
        registry: TokenAdapterRegistry,
        vault: CollateralVault,
        debts: Dict[str, DebtLedger],
        debtors: Sequence[str],
        token_ledger: TokenLedger,
        log: List[LiquidationRecord] = None,
    ):
        self.registry = registry
        self.vault = vault
        self.debts = debts
        self.debtors = debtors
        self.token_ledger = token_ledger
        self.log: List[LiquidationRecord] = log if log is not None else []

    def _total_debt(self, user: str, params: RiskParameters, as_of: int) -> int:
        ledger = self.debts.get(user)
        if ledger is None:
            return 0
        return ledger.total_debt(params.annual_interest_rate_tenth_perc, as_of)

    def is_below_threshold(self, user: str, params: RiskParameters, as_of: int) -> bool:
        debt = self._total_debt(user, params, as_of)
        if debt == 0:
            return False
        value = calculate_collateral_value(self.vault.balances(user), self.registry.adapters())
        ratio = calculate_collateral_ratio(value, debt)
        return ratio < params.liquidation_threshold_tenth_perc

    def debtors_below_threshold(self, params: RiskParameters, as_of: int) -> List[str]:
        """Flagged debtors, in the order they first became debtors."""
        return [u for u in self.debtors if self.is_below_threshold(u, params, as_of)]

    def liquidate_all(
        self,
        params: RiskParameters,
        withdrawable_address: str,
        as_of: int,
    ) -> List[LiquidationRecord]:
        """
        Liquidate every debtor below the threshold.

        All seizures go to the token ledger as one batch, so either every
        flagged debtor is liquidated or, on failure, none is.

        Args:
            params: Current risk parameters
            withdrawable_address: Wallet receiving seized collateral
            as_of: Logical time of the sweep

        Returns:
            One LiquidationRecord per liquidated debtor (empty when none)
        """
        flagged = self.debtors_below_threshold(params, as_of)
        if not flagged:
            return []

        pending = []
        moves = []
        for user in flagged:
            seized = self.vault.balances(user)
            debt = self._total_debt(user, params, as_of)
            pending.append(LiquidationRecord(user, as_of, seized, debt))
            moves.extend(
                Move(amount, token, VAULT_WALLET, withdrawable_address)
                for token, amount in seized.items()
            )

        if moves:
            self.token_ledger.execute(moves, memo="liquidation")

        for record in pending:
            self.vault.clear(record.user)
            self.debts[record.user].clear()
            self.log.append(record)
        return pending
