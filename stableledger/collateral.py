"""
collateral.py - Collateral valuation and borrowing capacity

PURE FUNCTIONS - every input is explicit (balances, adapters, debt, ratios);
nothing here reads engine state.

Key Formulas (ratios in tenths of a percent, 1500 = 150.0%):
    collateral_value   = sum(adapter.price_of(balance) for each registered token)
    collateral_ratio   = collateral_value * 1000 // total_debt   (inf when debt is 0)
    max_borrow         = max(0, collateral_value * 1000 // min_ratio - total_debt)
    required           = ceil(total_debt * min_ratio / 1000)
    max_withdraw_value = max(0, collateral_value - required)

Balances of a token with no registered adapter count as zero value.
"""

from __future__ import annotations
import math
from typing import Dict, Iterable, Mapping, Union

from .adapters import TokenAdapter
from .core import TENTH_PERC_SCALE

# An int ratio, or math.inf for an account without debt.
Ratio = Union[int, float]


def _adapters_by_address(adapters: Iterable[TokenAdapter]) -> Dict[str, TokenAdapter]:
    return {adapter.token.address: adapter for adapter in adapters}


def calculate_collateral_value(
    balances: Mapping[str, int],
    adapters: Iterable[TokenAdapter],
) -> int:
    """
    Total value of balances in stable units.

    Args:
        balances: Token address -> amount deposited
        adapters: Currently registered adapters

    Returns:
        Sum of adapter.price_of(balance) over tokens that have an adapter
    """
    total = 0
    for adapter in adapters:
        amount = balances.get(adapter.token.address, 0)
        if amount:
            total += adapter.price_of(amount)
    return total


def calculate_collateral_ratio(collateral_value: int, total_debt: int) -> Ratio:
    """
    Collateral ratio in tenths of a percent.

    Returns:
        collateral_value * 1000 // total_debt, or math.inf when total_debt is 0
    """
    if total_debt == 0:
        return math.inf
    return collateral_value * TENTH_PERC_SCALE // total_debt


def is_ratio_safe(ratio: Ratio, min_collateral_ratio: int) -> bool:
    return ratio >= min_collateral_ratio


def calculate_max_borrow(collateral_value: int, total_debt: int, min_collateral_ratio: int) -> int:
    """
    Additional stable units that can be borrowed while staying at or above
    min_collateral_ratio.

    Example:
        calculate_max_borrow(3000, 1666, 1500)  # 334
    """
    return max(0, collateral_value * TENTH_PERC_SCALE // min_collateral_ratio - total_debt)


def calculate_max_withdraw_value(collateral_value: int, total_debt: int, min_collateral_ratio: int) -> int:
    """
    Collateral value (stable units) that can leave the vault while staying at
    or above min_collateral_ratio.

    Example:
        calculate_max_withdraw_value(800, 500, 1500)  # 50
    """
    return max(0, collateral_value - calculate_required_collateral(total_debt, min_collateral_ratio))


def calculate_required_collateral(total_debt: int, min_collateral_ratio: int) -> int:
    """
    Smallest collateral value whose ratio against total_debt reaches
    min_collateral_ratio, i.e. ceil(debt * min_cr / 1000).
    """
    return -(-total_debt * min_collateral_ratio // TENTH_PERC_SCALE)


def calculate_max_tokens_to_withdraw(
    balances: Mapping[str, int],
    adapters: Iterable[TokenAdapter],
    total_debt: int,
    min_collateral_ratio: int,
) -> Dict[str, int]:
    """
    Per held token, the largest amount withdrawable on its own.

    Every token is measured against the same max_withdraw_value budget, so
    the amounts are alternatives, not a basket that can be withdrawn together.
    Without debt the whole balance of each token is withdrawable.

    Args:
        balances: Token address -> amount deposited
        adapters: Currently registered adapters
        total_debt: Base plus accrued interest
        min_collateral_ratio: Minimum ratio in tenths of a percent

    Returns:
        Token address -> withdrawable amount, for every token in balances
    """
    by_address = _adapters_by_address(adapters)
    if total_debt == 0:
        return {token: amount for token, amount in balances.items()}

    value = calculate_collateral_value(balances, by_address.values())
    budget = calculate_max_withdraw_value(value, total_debt, min_collateral_ratio)

    result = {}
    for token, amount in balances.items():
        adapter = by_address.get(token)
        if adapter is None:
            # Unpriced balances carry no value, so they never move the ratio.
            result[token] = amount
            continue
        held_value = adapter.price_of(amount)
        # Flooring in price_of can make a withdrawal remove more value than
        # tokens_for_value accounts for; keep enough to cover the rest.
        keep = adapter.tokens_to_cover(held_value - budget)
        result[token] = min(amount - keep, adapter.tokens_for_value(budget))
    return result
