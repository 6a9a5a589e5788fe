"""
Collateral Ratio Monotonicity Conformance Tests

INVARIANT: For a user with debt, the collateral ratio moves with prices.

    ∀ held token T, prices p1 > p2:
        ratio(p2) ≤ ratio(p1)
        ratio(p2) < ratio(p1) whenever the value difference survives flooring

Flooring makes the ratio a step function of price, so the strict form is
checked on price moves large enough to change the floored ratio.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from stableledger import TokenAdapter, calculate_collateral_ratio, calculate_collateral_value
from tests.helpers import E18, make_oracle, make_tokens

TOKENS = make_tokens()


class TestRatioMonotonicity:
    """Property-based ratio tests over the pure functions."""

    @given(
        st.sampled_from(list(TOKENS)),
        st.integers(min_value=1, max_value=10 ** 6),          # whole tokens held
        st.integers(min_value=1, max_value=10 ** 6),          # whole units owed
        st.integers(min_value=2, max_value=10 ** 10),         # higher price
        st.data(),
    )
    @settings(max_examples=100)
    def test_ratio_non_increasing_as_price_falls(self, symbol, held, owed, high, data):
        """
        PROPERTY: a lower price never gives a higher ratio.
        """
        low = data.draw(st.integers(min_value=1, max_value=high - 1))
        token = TOKENS[symbol]
        oracle = make_oracle()
        adapters = [TokenAdapter(t, oracle) for t in TOKENS.values()]
        balances = {token.address: held * E18}
        key = f"{symbol}/USD"

        oracle.set_value(key, high)
        ratio_high = calculate_collateral_ratio(calculate_collateral_value(balances, adapters), owed * E18)
        oracle.set_value(key, low)
        ratio_low = calculate_collateral_ratio(calculate_collateral_value(balances, adapters), owed * E18)

        assert ratio_low <= ratio_high

    @given(
        st.sampled_from(list(TOKENS)),
        st.integers(min_value=1, max_value=10 ** 6),
        st.integers(min_value=1, max_value=10 ** 6),
        st.integers(min_value=10 ** 6, max_value=10 ** 10),
    )
    @settings(max_examples=100)
    def test_ratio_strictly_decreases_when_price_halves(self, symbol, held, owed, price):
        """
        PROPERTY: halving a held token's price strictly lowers a non-zero ratio.
        """
        token = TOKENS[symbol]
        oracle = make_oracle()
        adapters = [TokenAdapter(t, oracle) for t in TOKENS.values()]
        balances = {token.address: held * E18}
        key = f"{symbol}/USD"

        oracle.set_value(key, price)
        ratio_before = calculate_collateral_ratio(calculate_collateral_value(balances, adapters), owed * E18)
        oracle.set_value(key, price // 2)
        ratio_after = calculate_collateral_ratio(calculate_collateral_value(balances, adapters), owed * E18)

        if ratio_before > 0:
            assert ratio_after < ratio_before
