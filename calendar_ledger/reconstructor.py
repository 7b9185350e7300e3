"""
reconstructor.py - Point-in-time balances by backward replay

The snapshot knows balances only at as_of. A balance at an earlier point is
the current balance minus every change that happened after that point:

    balance(account, t) = current_balance - sum(amount for tx of account if tx.timestamp > t)

For net worth each transaction's amount is weighted by the sign of its
account's type before summing.

TWO IMPLEMENTATIONS:
====================

1. replay_balance() - NAIVE BACKWARD WALK, O(n) per query
   Walks the log from the newest transaction back to the query point.
   Reference implementation, used by tests and for one-off queries.

2. SuffixSumTable - PRECOMPUTED, O(log n) per query
   One linear pass per snapshot version builds suffix sums over the
   chronological positions. A query is a bisect over timestamps followed by
   an O(1) lookup:

       suffix[i] = sum of effects of transactions at positions i..n-1
       balance(t) = current - suffix[bisect_right(timestamps, t)]

Query points:
    - datetime: an instant; a transaction stamped exactly at the instant has
      already occurred.
    - date: end of that calendar day in the table's zone. The day must not
      begin after as_of; for the current day the result is the balance at as_of.
"""

from __future__ import annotations
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from decimal import Decimal
from typing import Dict, List, Optional

from .core import (
    ACCOUNT_SIGNS, ACCOUNT_TYPE_ASSET, ACCOUNT_TYPE_LOAN, ZERO,
    FutureDate, QueryPoint,
    is_aware, resolve_zone, start_of_day, start_of_next_day,
)
from .snapshot import LedgerSnapshot


@dataclass(frozen=True, slots=True)
class NetWorthBreakdown:
    """Total assets, total liabilities and their difference at one point."""
    assets: Decimal
    liabilities: Decimal
    net_worth: Decimal


def _check_instant(snapshot: LedgerSnapshot, instant: datetime) -> None:
    if not is_aware(instant):
        raise ValueError(f"Query datetime must be timezone-aware, got {instant.isoformat()}")
    if instant > snapshot.as_of:
        raise FutureDate(
            f"{instant.isoformat()} is after snapshot as_of {snapshot.as_of.isoformat()}"
        )


def _check_day(snapshot: LedgerSnapshot, day: date, zone: tzinfo) -> None:
    if start_of_day(day, zone) > snapshot.as_of:
        raise FutureDate(f"{day.isoformat()} begins after snapshot as_of {snapshot.as_of.isoformat()}")


def replay_balance(
    snapshot: LedgerSnapshot,
    when: QueryPoint,
    account_id: Optional[str] = None,
    zone: Optional[tzinfo] = None,
) -> Decimal:
    """
    Reconstruct a balance by walking the log backward from as_of.

    Args:
        snapshot: Source snapshot
        when: Instant (aware datetime) or calendar day (date)
        account_id: Account to reconstruct; None means net worth
        zone: Day-boundary zone for date queries (default: snapshot's zone)

    Returns:
        The balance in effect at `when`

    Raises:
        UnknownAccount: If account_id is not in the snapshot
        FutureDate: If `when` is after as_of
    """
    if zone is None:
        zone = resolve_zone(snapshot.time_zone)

    if isinstance(when, datetime):
        _check_instant(snapshot, when)
        def occurred(tx):
            return tx.timestamp <= when
    else:
        _check_day(snapshot, when, zone)
        boundary = start_of_next_day(when, zone)
        def occurred(tx):
            return tx.timestamp < boundary

    if account_id is not None:
        balance = snapshot.account(account_id).current_balance
        for tx in reversed(snapshot.transactions):
            if occurred(tx):
                break
            if tx.account_id == account_id:
                balance -= tx.amount
        return balance

    balance = snapshot.net_worth
    accounts = snapshot.accounts_by_id
    for tx in reversed(snapshot.transactions):
        if occurred(tx):
            break
        balance -= accounts[tx.account_id].sign * tx.amount
    return balance


class SuffixSumTable:
    """
    Suffix sums over the chronological transaction log of one snapshot.

    Built once per snapshot version in a single pass; immutable afterwards,
    so concurrent readers need no locking.

    Layout (n = number of transactions):
        _timestamps[i]          UTC timestamp at position i
        _type_suffix[type][i]   sum of amounts of `type` accounts at positions >= i (length n+1)
        _account_timestamps[a]  UTC timestamps of account a's transactions
        _account_suffix[a][k]   sum of account a's amounts from its k-th transaction on
    """

    def __init__(self, snapshot: LedgerSnapshot, zone: Optional[tzinfo] = None):
        self.snapshot = snapshot
        self.zone = zone if zone is not None else resolve_zone(snapshot.time_zone)

        transactions = snapshot.transactions
        accounts = snapshot.accounts_by_id
        n = len(transactions)

        self._timestamps: List[datetime] = [tx.timestamp.astimezone(timezone.utc) for tx in transactions]
        self._type_suffix: Dict[str, List[Decimal]] = {t: [ZERO] * (n + 1) for t in ACCOUNT_SIGNS}
        self._account_timestamps: Dict[str, List[datetime]] = {a: [] for a in accounts}
        account_amounts: Dict[str, List[Decimal]] = {a: [] for a in accounts}

        for tx, ts in zip(transactions, self._timestamps):
            self._account_timestamps[tx.account_id].append(ts)
            account_amounts[tx.account_id].append(tx.amount)

        # Backward pass: each position's suffix is the next position's plus its own amount
        for i in range(n - 1, -1, -1):
            tx = transactions[i]
            tx_type = accounts[tx.account_id].account_type
            for account_type, suffix in self._type_suffix.items():
                suffix[i] = suffix[i + 1] + tx.amount if account_type == tx_type else suffix[i + 1]

        self._account_suffix: Dict[str, List[Decimal]] = {}
        for account_id, amounts in account_amounts.items():
            suffix = [ZERO] * (len(amounts) + 1)
            for k in range(len(amounts) - 1, -1, -1):
                suffix[k] = suffix[k + 1] + amounts[k]
            self._account_suffix[account_id] = suffix

        self._current_by_type: Dict[str, Decimal] = {t: ZERO for t in ACCOUNT_SIGNS}
        for account in snapshot.accounts:
            self._current_by_type[account.account_type] += account.current_balance

    @property
    def version(self) -> int:
        return self.snapshot.version

    def __len__(self) -> int:
        return len(self._timestamps)

    def _position(self, timestamps: List[datetime], when: QueryPoint) -> int:
        """Number of entries in `timestamps` that have occurred by `when`."""
        if isinstance(when, datetime):
            _check_instant(self.snapshot, when)
            return bisect_right(timestamps, when)
        _check_day(self.snapshot, when, self.zone)
        return bisect_left(timestamps, start_of_next_day(when, self.zone))

    def balance_as_of(self, when: QueryPoint, account_id: Optional[str] = None) -> Decimal:
        """
        Balance in effect at `when`, for one account or (account_id=None) net worth.

        Raises:
            UnknownAccount: If account_id is not in the snapshot
            FutureDate: If `when` is after as_of
        """
        if account_id is None:
            return self.net_worth_as_of(when)
        account = self.snapshot.account(account_id)
        timestamps = self._account_timestamps[account_id]
        k = self._position(timestamps, when)
        return account.current_balance - self._account_suffix[account_id][k]

    def balance_before_day(self, day: date, account_id: Optional[str] = None) -> Decimal:
        """
        Balance at the end of the day before `day`.

        For the first representable day this is the balance with every
        transaction unwound.
        """
        if day > date.min:
            return self.balance_as_of(day - timedelta(days=1), account_id)
        if account_id is None:
            return self._net_worth_at(0)
        account = self.snapshot.account(account_id)
        return account.current_balance - self._account_suffix[account_id][0]

    def net_worth_as_of(self, when: QueryPoint) -> Decimal:
        return self._net_worth_at(self._position(self._timestamps, when))

    def _net_worth_at(self, i: int) -> Decimal:
        return sum(
            (sign * (self._current_by_type[t] - self._type_suffix[t][i]) for t, sign in ACCOUNT_SIGNS.items()),
            ZERO,
        )

    def net_worth_breakdown_as_of(self, when: QueryPoint) -> NetWorthBreakdown:
        """Total assets and total liabilities at `when`."""
        i = self._position(self._timestamps, when)
        assets = self._current_by_type[ACCOUNT_TYPE_ASSET] - self._type_suffix[ACCOUNT_TYPE_ASSET][i]
        liabilities = self._current_by_type[ACCOUNT_TYPE_LOAN] - self._type_suffix[ACCOUNT_TYPE_LOAN][i]
        return NetWorthBreakdown(assets=assets, liabilities=liabilities, net_worth=assets - liabilities)

    def change_between(self, start: QueryPoint, end: QueryPoint, account_id: Optional[str] = None) -> Decimal:
        """Balance change from `start` (exclusive) to `end` (inclusive)."""
        return self.balance_as_of(end, account_id) - self.balance_as_of(start, account_id)

    def __repr__(self) -> str:
        return f"SuffixSumTable(v{self.version}, {len(self)} positions, zone={self.zone})"


def build_suffix_table(snapshot: LedgerSnapshot, zone: Optional[tzinfo] = None) -> SuffixSumTable:
    """Precompute the suffix-sum table for a snapshot (one linear pass)."""
    return SuffixSumTable(snapshot, zone)


def balance_as_of(
    snapshot: LedgerSnapshot,
    when: QueryPoint,
    account_id: Optional[str] = None,
    zone: Optional[tzinfo] = None,
) -> Decimal:
    """
    One-off balance query against a snapshot.

    Builds a throwaway table; callers issuing many queries against the same
    snapshot should hold a SuffixSumTable (or use LedgerQueryService).
    """
    return SuffixSumTable(snapshot, zone).balance_as_of(when, account_id)
