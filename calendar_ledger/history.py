"""
history.py - End-of-day balance series and daily activity summaries

Chart-style views built on top of a SuffixSumTable and CalendarIndex:
    - balance_history(): one end-of-day balance per day over a span
    - resolve_range(): "7D" / "30D" / "1Y" / "ALL" to a concrete span
    - summarize_day(): spent / received / net and the balance change of a day

Every point is an O(log n) table lookup, so a year of daily points costs
365 binary searches rather than 365 rescans of the log.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple, Union

from .core import ZERO, local_date
from .calendar_index import CalendarIndex
from .reconstructor import SuffixSumTable


# Named ranges and their length in days; None spans the whole log.
RANGE_DAYS: Dict[str, Optional[int]] = {
    "7D": 7,
    "30D": 30,
    "1Y": 365,
    "ALL": None,
}

# Span used for "ALL" when the log is empty.
EMPTY_LOG_DAYS = 30

_HUNDRED = Decimal("100")


def percentage_change(change: Decimal, base: Decimal) -> Decimal:
    """change / base as a percentage; 0 when base is not positive."""
    if base <= 0:
        return ZERO
    return change / base * _HUNDRED


@dataclass(frozen=True, slots=True)
class BalancePoint:
    """End-of-day balance with its change from the previous day."""
    day: date
    balance: Decimal
    change: Decimal
    change_pct: Decimal


@dataclass(frozen=True, slots=True)
class DaySummary:
    """
    Activity of one day as shown next to the calendar.

    spent is a magnitude (>= 0); received is the sum of positive amounts.
    opening_balance is the balance at the end of the previous day,
    closing_balance the balance at the end of this day.
    """
    day: date
    spent: Decimal
    received: Decimal
    net: Decimal
    opening_balance: Decimal
    closing_balance: Decimal
    change_pct: Decimal
    count: int


def resolve_range(range_name: str, index: CalendarIndex) -> Tuple[date, date]:
    """
    Concrete (start, end) days for a named range, ending on the as-of day.

    Raises:
        ValueError: If the range name is unknown
    """
    key = range_name.strip().upper()
    if key not in RANGE_DAYS:
        raise ValueError(f"Unknown range {range_name!r}; expected one of {', '.join(RANGE_DAYS)}")

    end = local_date(index.snapshot.as_of, index.zone)
    days = RANGE_DAYS[key]
    if days is None:
        earliest = index.earliest_activity_date()
        if earliest is None:
            return end - timedelta(days=EMPTY_LOG_DAYS - 1), end
        return min(earliest, end), end
    return end - timedelta(days=days - 1), end


def balance_history(
    table: SuffixSumTable,
    start: date,
    end: date,
    account_id: Optional[str] = None,
) -> List[BalancePoint]:
    """
    End-of-day balances for each day from start to end inclusive.

    The first point's change is measured against the end of the day before
    start. The last point equals the as-of balance when end is the as-of day.

    Raises:
        ValueError: If start is after end
        UnknownAccount: If account_id is not in the snapshot
        FutureDate: If end begins after as_of
    """
    if start > end:
        raise ValueError(f"History start {start} is after end {end}")

    points: List[BalancePoint] = []
    previous = table.balance_before_day(start, account_id)
    for offset in range((end - start).days + 1):
        day = start + timedelta(days=offset)
        balance = table.balance_as_of(day, account_id)
        change = balance - previous
        points.append(BalancePoint(
            day=day,
            balance=balance,
            change=change,
            change_pct=percentage_change(change, previous),
        ))
        previous = balance
    return points


def summarize_day(
    index: CalendarIndex,
    day: Union[date, datetime],
    account_id: Optional[str] = None,
) -> DaySummary:
    """
    Spent / received / net for a day plus the balance change across it.

    With account_id, only that account's transactions and balance count;
    otherwise all transactions and net worth.
    """
    day = index.local_day(day)
    bucket = index.day(day)
    txs = bucket.transactions
    if account_id is not None:
        index.snapshot.account(account_id)
        txs = tuple(tx for tx in txs if tx.account_id == account_id)

    received = sum((tx.amount for tx in txs if tx.amount > 0), ZERO)
    spent = sum((-tx.amount for tx in txs if tx.amount < 0), ZERO)

    closing = index.table.balance_as_of(day, account_id)
    opening = index.table.balance_before_day(day, account_id)
    return DaySummary(
        day=day,
        spent=spent,
        received=received,
        net=received - spent,
        opening_balance=opening,
        closing_balance=closing,
        change_pct=percentage_change(closing - opening, opening),
        count=len(txs),
    )
