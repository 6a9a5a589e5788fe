"""
debt.py - Per-user debt event log with deterministic replay

A DebtLedger stores an append-only list of LOAN/REPAYMENT events. Nothing
derived is ever stored: base debt and accrued interest are recomputed from
the events every time they are read.

Replay rules (replay_debt_events):
- Interest accrues on the running base only, between consecutive events and
  from the last event to the query time.
- A LOAN adds its amount to the base.
- A REPAYMENT pays accrued interest first, then base. Any excess over the
  total is ignored here; the engine rejects it before it is recorded.
"""

from __future__ import annotations
from typing import Iterable, List, Tuple

from .core import DebtAction, DebtEvent, NonMonotonicTimestamp
from .interest import accrue


def replay_debt_events(
    events: Iterable[DebtEvent],
    rate_tenth_perc: int,
    as_of: int,
) -> Tuple[int, int]:
    """
    Fold debt events into (base, interest) at time as_of.

    PURE FUNCTION - same events, rate and as_of always give the same result.

    Args:
        events: Events in insertion order (timestamps non-decreasing)
        rate_tenth_perc: Annual rate in tenths of a percent
        as_of: Query time; must not precede the last event

    Returns:
        (base, interest) tuple

    Raises:
        NonMonotonicTimestamp: if events go backwards or as_of precedes the last event
    """
    running_base = 0
    accrued = 0
    last_ts = None

    for event in events:
        if last_ts is None:
            last_ts = event.timestamp
        if event.timestamp < last_ts:
            raise NonMonotonicTimestamp(
                f"Debt event at {event.timestamp} precedes previous event at {last_ts}"
            )
        accrued += accrue(running_base, rate_tenth_perc, event.timestamp - last_ts)
        last_ts = event.timestamp

        if event.action == DebtAction.LOAN:
            running_base += event.amount
        else:
            paid = min(event.amount, accrued)
            accrued -= paid
            running_base -= min(event.amount - paid, running_base)

    if last_ts is None:
        return 0, 0
    if as_of < last_ts:
        raise NonMonotonicTimestamp(
            f"Query time {as_of} precedes last debt event at {last_ts}"
        )
    accrued += accrue(running_base, rate_tenth_perc, as_of - last_ts)
    return running_base, accrued


class DebtLedger:
    """
    Append-only debt events for one user.

    Example:
        debt = DebtLedger()
        debt.add_loan(100, timestamp=0)
        debt.calculate_base_and_interest(60, as_of=SECONDS_PER_YEAR)  # (100, 6)
    """

    def __init__(self, events: Iterable[DebtEvent] = ()):
        self._events: List[DebtEvent] = list(events)

    def _append(self, action: DebtAction, amount: int, timestamp: int) -> DebtEvent:
        event = DebtEvent(action, amount, timestamp)
        if self._events and timestamp < self._events[-1].timestamp:
            raise NonMonotonicTimestamp(
                f"Debt event at {timestamp} precedes previous event "
                f"at {self._events[-1].timestamp}"
            )
        self._events.append(event)
        return event

    def add_loan(self, amount: int, timestamp: int) -> DebtEvent:
        """Record a loan of amount stable units at timestamp."""
        return self._append(DebtAction.LOAN, amount, timestamp)

    def add_repayment(self, amount: int, timestamp: int) -> DebtEvent:
        """Record a repayment of amount stable units at timestamp."""
        return self._append(DebtAction.REPAYMENT, amount, timestamp)

    def calculate_base_and_interest(self, rate_tenth_perc: int, as_of: int) -> Tuple[int, int]:
        return replay_debt_events(self._events, rate_tenth_perc, as_of)

    def total_debt(self, rate_tenth_perc: int, as_of: int) -> int:
        base, interest = self.calculate_base_and_interest(rate_tenth_perc, as_of)
        return base + interest

    @property
    def events(self) -> Tuple[DebtEvent, ...]:
        return tuple(self._events)

    @property
    def is_empty(self) -> bool:
        return not self._events

    @property
    def last_timestamp(self):
        return self._events[-1].timestamp if self._events else None

    def clear(self) -> None:
        """Erase all events. Used when a user is liquidated."""
        self._events.clear()

    def copy(self) -> DebtLedger:
        return DebtLedger(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __repr__(self) -> str:
        return f"DebtLedger({len(self._events)} events)"
