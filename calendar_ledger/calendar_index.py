"""
calendar_index.py - Day and month buckets over one snapshot

The index is built in a single forward pass over the chronologically sorted
log, grouping transactions by local calendar day in the configured zone and
accumulating per-month totals. It is never patched: a new snapshot version
gets a new index.

    index = build_index(snapshot, table, zone)
    index.day(date(2025, 3, 14))          -> DayBucket
    index.month(YearMonth(2025, 3))       -> MonthSummary
    index.month("2025-03")                -> MonthSummary

Days without transactions resolve to an empty bucket; they are not errors.
End-of-month balances come from the SuffixSumTable, not from a rescan.
"""

from __future__ import annotations
import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .core import Transaction, ZERO, FutureDate, local_date, start_of_day
from .reconstructor import SuffixSumTable
from .snapshot import LedgerSnapshot


# ============================================================================
# YEAR-MONTH KEY
# ============================================================================

@dataclass(frozen=True, slots=True, order=True)
class YearMonth:
    """A calendar month key, e.g. YearMonth(2025, 3) or YearMonth.parse("2025-03")."""
    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be in 1..12, got {self.month}")
        if not 1 <= self.year <= 9999:
            raise ValueError(f"Year must be in 1..9999, got {self.year}")

    @classmethod
    def parse(cls, value: str) -> YearMonth:
        """Parse "YYYY-MM"."""
        try:
            year_str, month_str = value.strip().split("-")
            return cls(int(year_str), int(month_str))
        except (AttributeError, ValueError):
            raise ValueError(f"Expected YYYY-MM, got {value!r}") from None

    @classmethod
    def of(cls, day: date) -> YearMonth:
        return cls(day.year, day.month)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def next(self) -> YearMonth:
        if self.month == 12:
            return YearMonth(self.year + 1, 1)
        return YearMonth(self.year, self.month + 1)

    def previous(self) -> YearMonth:
        if self.month == 1:
            return YearMonth(self.year - 1, 12)
        return YearMonth(self.year, self.month - 1)

    def days(self) -> Iterator[date]:
        for offset in range(self.last_day.day):
            yield self.first_day + timedelta(days=offset)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


YearMonthLike = Union[YearMonth, str, date, Tuple[int, int]]


def to_year_month(value: YearMonthLike) -> YearMonth:
    """Accept a YearMonth, "YYYY-MM", a date within the month, or a (year, month) tuple."""
    if isinstance(value, YearMonth):
        return value
    if isinstance(value, str):
        return YearMonth.parse(value)
    if isinstance(value, date):
        return YearMonth.of(value)
    if isinstance(value, tuple) and len(value) == 2:
        return YearMonth(*value)
    raise TypeError(f"Cannot interpret {value!r} as a year-month")


# ============================================================================
# BUCKETS AND SUMMARIES
# ============================================================================

@dataclass(frozen=True, slots=True)
class DayBucket:
    """
    Transactions of one local calendar day.

    transactions are references into the snapshot's log, in chronological
    order. net_delta is the plain sum of their amounts.
    """
    day: date
    transactions: Tuple[Transaction, ...] = ()
    net_delta: Decimal = ZERO

    @property
    def income(self) -> Decimal:
        """Sum of positive amounts."""
        return sum((tx.amount for tx in self.transactions if tx.amount > 0), ZERO)

    @property
    def outflow(self) -> Decimal:
        """Sum of negative amounts (a value <= 0)."""
        return sum((tx.amount for tx in self.transactions if tx.amount < 0), ZERO)

    @property
    def count(self) -> int:
        return len(self.transactions)

    def is_empty(self) -> bool:
        return not self.transactions


@dataclass(frozen=True, slots=True)
class MonthSummary:
    """
    Aggregates for one calendar month.

    Attributes:
        year_month: The month
        income: Sum of positive amounts
        outflow: Sum of negative amounts (<= 0)
        count: Number of transactions
        opening_balance: Net worth at the end of the previous month
        end_balance: Net worth at the end of the month (or at as_of for the current month)
    """
    year_month: YearMonth
    income: Decimal
    outflow: Decimal
    count: int
    opening_balance: Decimal
    end_balance: Decimal

    @property
    def net(self) -> Decimal:
        return self.income + self.outflow


@dataclass(slots=True)
class _MonthTotals:
    income: Decimal = ZERO
    outflow: Decimal = ZERO
    count: int = 0
    days: List[date] = field(default_factory=list)


# ============================================================================
# CALENDAR INDEX
# ============================================================================

class CalendarIndex:
    """
    Date-bucketed view of one snapshot version.

    Read-only after construction apart from the month-summary memo, whose
    entries are deterministic for the version.
    """

    def __init__(self, table: SuffixSumTable):
        self.table = table
        self.snapshot: LedgerSnapshot = table.snapshot
        self.zone = table.zone

        self._days: Dict[date, DayBucket] = {}
        self._months: Dict[YearMonth, _MonthTotals] = {}
        self._summaries: Dict[YearMonth, MonthSummary] = {}

        grouped: Dict[date, List[Transaction]] = {}
        for tx in self.snapshot.transactions:
            day = local_date(tx.timestamp, self.zone)
            bucket = grouped.get(day)
            if bucket is None:
                bucket = grouped[day] = []
                self._months.setdefault(YearMonth.of(day), _MonthTotals()).days.append(day)
            bucket.append(tx)

            totals = self._months[YearMonth.of(day)]
            totals.count += 1
            if tx.amount > 0:
                totals.income += tx.amount
            elif tx.amount < 0:
                totals.outflow += tx.amount

        for day, txs in grouped.items():
            self._days[day] = DayBucket(
                day=day,
                transactions=tuple(txs),
                net_delta=sum((tx.amount for tx in txs), ZERO),
            )
        for totals in self._months.values():
            totals.days.sort()

    @property
    def version(self) -> int:
        return self.snapshot.version

    def local_day(self, day: Union[date, datetime]) -> date:
        """Calendar day of a date or instant in the index's zone."""
        if isinstance(day, datetime):
            return local_date(day, self.zone)
        return day

    def day(self, day: Union[date, datetime]) -> DayBucket:
        """Bucket for a calendar day; empty (net_delta 0) if nothing happened."""
        day = self.local_day(day)
        bucket = self._days.get(day)
        if bucket is None:
            return DayBucket(day=day)
        return bucket

    def month(self, year_month: YearMonthLike) -> MonthSummary:
        """
        Summary for a calendar month.

        Raises:
            FutureDate: If the month begins after the snapshot's as_of
        """
        ym = to_year_month(year_month)
        summary = self._summaries.get(ym)
        if summary is not None:
            return summary

        if start_of_day(ym.first_day, self.zone) > self.snapshot.as_of:
            raise FutureDate(f"Month {ym} begins after snapshot as_of {self.snapshot.as_of.isoformat()}")

        today = local_date(self.snapshot.as_of, self.zone)
        end_day = min(ym.last_day, today)
        totals = self._months.get(ym) or _MonthTotals()
        summary = MonthSummary(
            year_month=ym,
            income=totals.income,
            outflow=totals.outflow,
            count=totals.count,
            opening_balance=self.table.balance_before_day(ym.first_day),
            end_balance=self.table.net_worth_as_of(end_day),
        )
        self._summaries[ym] = summary
        return summary

    def active_days(self, year_month: YearMonthLike) -> Tuple[date, ...]:
        """Days of the month carrying at least one transaction, ascending."""
        totals = self._months.get(to_year_month(year_month))
        return tuple(totals.days) if totals else ()

    def latest_activity_date(self) -> Optional[date]:
        """Local date of the newest transaction, or None for an empty log."""
        if not self.snapshot.transactions:
            return None
        return local_date(self.snapshot.transactions[-1].timestamp, self.zone)

    def earliest_activity_date(self) -> Optional[date]:
        if not self.snapshot.transactions:
            return None
        return local_date(self.snapshot.transactions[0].timestamp, self.zone)

    def buckets(self) -> Iterator[DayBucket]:
        """Non-empty buckets in calendar order."""
        for day in sorted(self._days):
            yield self._days[day]

    def __len__(self) -> int:
        return len(self._days)

    def __repr__(self) -> str:
        return f"CalendarIndex(v{self.version}, {len(self._days)} days, {len(self._months)} months, zone={self.zone})"


def build_index(
    snapshot: LedgerSnapshot,
    table: Optional[SuffixSumTable] = None,
    zone: Optional[tzinfo] = None,
) -> CalendarIndex:
    """
    Build the calendar index for a snapshot.

    Day boundaries follow the table's zone, so day buckets and reconstructed
    balances always agree.

    Args:
        snapshot: Source snapshot
        table: Suffix-sum table of the same snapshot (built if omitted)
        zone: Day-boundary zone, used only when the table is built here

    Raises:
        ValueError: If the table belongs to a different snapshot
    """
    if table is None:
        table = SuffixSumTable(snapshot, zone)
    elif table.snapshot is not snapshot:
        raise ValueError(
            f"Suffix table v{table.version} does not belong to snapshot v{snapshot.version}"
        )
    return CalendarIndex(table)
