"""
test_keeper.py - Unit tests for LiquidationKeeper
"""

import pytest

from stableledger import KEEPER_INTERVAL_SECONDS, LiquidationKeeper, Unauthorized
from tests.helpers import ADMIN, E18, fund, set_price


@pytest.fixture
def keeper(engine, tokens):
    fund(engine, "alice", tokens["USDC"], 150)
    engine.deposit_and_borrow("alice", "0xusdc", 150 * E18, 100 * E18)
    return LiquidationKeeper(engine, ADMIN)


class TestKeeperStep:

    def test_step_advances_clock(self, keeper, engine):
        keeper.step(KEEPER_INTERVAL_SECONDS)
        assert engine.current_time == 60

    def test_step_without_flagged_debtors_does_not_sweep(self, keeper, engine):
        assert keeper.step(60) == []
        assert keeper.sweeps == 0
        assert engine.current_debtors() == ["alice"]

    def test_step_liquidates_flagged_debtors(self, keeper, engine, oracle):
        set_price(oracle, "USDC", 0.7)
        records = keeper.step(60)
        assert [r.user for r in records] == ["alice"]
        assert keeper.sweeps == 1
        assert engine.current_debtors() == []

    def test_step_in_the_past_keeps_clock(self, keeper, engine):
        engine.advance_time(120)
        keeper.step(60)
        assert engine.current_time == 120

    def test_operator_must_be_admin(self, keeper, engine, oracle):
        bot = LiquidationKeeper(engine, "bot")
        set_price(oracle, "USDC", 0.5)
        with pytest.raises(Unauthorized):
            bot.step(60)
        assert engine.current_debtors() == ["alice"]


class TestKeeperRun:

    def test_run_applies_price_schedule(self, keeper, engine, oracle):
        prices = {60: 1.0, 120: 0.9, 180: 0.75, 240: 0.7}
        records = keeper.run(
            list(prices),
            before_step=lambda t: set_price(oracle, "USDC", prices[t]),
        )
        assert len(records) == 1
        assert records[0].timestamp == 180
        assert keeper.sweeps == 1
        assert engine.current_time == 240
