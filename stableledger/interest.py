"""
interest.py - Simple interest accrual

Pure functions, no state:

    accrue(base, rate, elapsed) = base * rate * elapsed // (1000 * SECONDS_PER_YEAR)

Rates are annual, in tenths of a percent (60 = 6.0%). Interest is never
charged on interest: callers pass the running base only.
"""

from __future__ import annotations

from .core import (
    InvalidInterestRate,
    MAX_ANNUAL_INTEREST_RATE_TENTH_PERC,
    SECONDS_PER_YEAR,
    TENTH_PERC_SCALE,
)


def validate_annual_rate(
    rate_tenth_perc: int,
    max_rate_tenth_perc: int = MAX_ANNUAL_INTEREST_RATE_TENTH_PERC,
) -> int:
    """
    Check an annual interest rate against [0, max_rate_tenth_perc].

    Returns:
        The rate, unchanged

    Raises:
        InvalidInterestRate: if the rate is not an int or out of range
    """
    if isinstance(rate_tenth_perc, bool) or not isinstance(rate_tenth_perc, int):
        raise InvalidInterestRate(
            f"Invalid annual interest rate: expected int, got {rate_tenth_perc!r}"
        )
    if rate_tenth_perc < 0 or rate_tenth_perc > max_rate_tenth_perc:
        raise InvalidInterestRate(
            f"Invalid annual interest rate: {rate_tenth_perc} not in [0, {max_rate_tenth_perc}]"
        )
    return rate_tenth_perc


def accrue(base: int, rate_tenth_perc: int, elapsed_seconds: int) -> int:
    """
    Interest accrued on base over elapsed_seconds at an annual rate.

    PURE FUNCTION - floor division, no side effects.

    Args:
        base: Outstanding principal in stable units (>= 0)
        rate_tenth_perc: Annual rate in tenths of a percent
        elapsed_seconds: Length of the accrual interval (>= 0)

    Returns:
        Interest delta in stable units

    Example:
        accrue(100, 60, SECONDS_PER_YEAR)  # 6
    """
    validate_annual_rate(rate_tenth_perc)
    if base < 0:
        raise ValueError(f"base cannot be negative, got {base}")
    if elapsed_seconds < 0:
        raise ValueError(f"elapsed_seconds cannot be negative, got {elapsed_seconds}")
    return base * rate_tenth_perc * elapsed_seconds // (TENTH_PERC_SCALE * SECONDS_PER_YEAR)
