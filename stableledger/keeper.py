"""
keeper.py - Periodic liquidation sweeps

The keeper plays the role of an off-engine job that wakes up on a schedule
(every minute in production), checks for debtors below the liquidation
threshold and, only if there are any, asks the engine to liquidate them.

Execution order each step():
1. Advance the engine clock
2. List debtors below the threshold
3. Liquidate them, if any, as the operator identity
"""

from __future__ import annotations
from typing import Callable, List, Optional

from .core import LiquidationRecord
from .engine import StablecoinEngine

KEEPER_INTERVAL_SECONDS = 60


class LiquidationKeeper:
    """
    Drives liquidation sweeps on a StablecoinEngine.

    Example:
        keeper = LiquidationKeeper(engine, operator="admin")
        records = keeper.run(range(60, 3600, KEEPER_INTERVAL_SECONDS))
    """

    def __init__(self, engine: StablecoinEngine, operator: str):
        """
        Args:
            engine: Engine to sweep
            operator: Identity used for the liquidation call (the engine's admin)
        """
        self.engine = engine
        self.operator = operator
        self.verbose = engine.verbose
        self.sweeps = 0

    def step(self, timestamp: int) -> List[LiquidationRecord]:
        """
        Advance to timestamp and liquidate every debtor below the threshold.

        Returns:
            Records of this step's liquidations (empty when nobody was flagged)
        """
        if timestamp > self.engine.current_time:
            self.engine.advance_time(timestamp)

        flagged = self.engine.debtors_below_threshold()
        if not flagged:
            return []

        if self.verbose:
            print(f"[KEEPER] t={timestamp}: {len(flagged)} debtor(s) below threshold")
        records = self.engine.liquidate_all_debtors_below_threshold(self.operator)
        self.sweeps += 1
        return records

    def run(
        self,
        timestamps: List[int],
        before_step: Optional[Callable[[int], None]] = None,
    ) -> List[LiquidationRecord]:
        """
        Step through a schedule of timestamps.

        Args:
            timestamps: Times to wake up at, in order
            before_step: Called with each timestamp before the step, e.g. to
                publish new oracle prices

        Returns:
            All liquidation records, in order
        """
        records: List[LiquidationRecord] = []
        for timestamp in timestamps:
            if before_step is not None:
                before_step(timestamp)
            records.extend(self.step(timestamp))
        return records
