"""
service.py - Query façade for calendar and balance views

LedgerQueryService is the only entry point the presentation layer uses.
It holds the current snapshot and, per snapshot version, the derived
structures (suffix-sum table, calendar index, reconciliation report).

Caching discipline:
    - Derivations are built lazily on first access, never on install().
    - At most one build runs per version: readers check the cache without
      locking; on a miss they take the build lock and check again.
    - install() of a newer version drops every cached derivation.
    - A build that raises is not cached; the next access retries in full.
    - A build for a version superseded while the caller waited is returned
      to that caller but not cached.

Thread Safety:
    All query methods may be called concurrently. Built derivations are
    read-only apart from deterministic month-summary memoization.
"""

from __future__ import annotations
import asyncio
import threading
import time
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from decimal import Decimal
from typing import Dict, List, Optional, Tuple, Union

import structlog

from .core import (
    Transaction, QueryPoint,
    LedgerCalendarError, StaleSnapshot,
    local_date, resolve_zone,
)
from .config import CalendarSettings, get_settings
from .snapshot import LedgerSnapshot, ReconciliationReport, reconcile
from .reconstructor import NetWorthBreakdown, SuffixSumTable, build_suffix_table
from .calendar_index import CalendarIndex, DayBucket, MonthSummary, YearMonthLike, build_index
from .history import BalancePoint, DaySummary, balance_history, resolve_range, summarize_day
from .source import SnapshotSource


logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Derivations:
    """Everything derived from one snapshot version."""
    version: int
    table: SuffixSumTable
    index: CalendarIndex
    reconciliation: Optional[ReconciliationReport]


class LedgerQueryService:
    """
    Point-in-time balances and calendar buckets over the current snapshot.

    Example:
        service = LedgerQueryService(snapshot)
        service.net_worth_as_of(date(2025, 3, 14))
        service.transactions_on_date(date(2025, 3, 14))
        service.month_summary("2025-03")
    """

    def __init__(
        self,
        snapshot: Optional[LedgerSnapshot] = None,
        settings: Optional[CalendarSettings] = None,
    ):
        """
        Create a query service.

        Args:
            snapshot: Initial snapshot (may be installed later)
            settings: Configuration (default: get_settings())
        """
        self.settings = settings if settings is not None else get_settings()
        self._snapshot: Optional[LedgerSnapshot] = None
        self._derived: Dict[int, Derivations] = {}
        self._lock = threading.Lock()
        # Number of completed builds, for diagnostics
        self.build_count = 0
        if snapshot is not None:
            self.install(snapshot)

    # ========================================================================
    # SNAPSHOT MANAGEMENT
    # ========================================================================

    @property
    def snapshot(self) -> LedgerSnapshot:
        """
        The installed snapshot.

        Raises:
            LedgerCalendarError: If no snapshot has been installed
        """
        snapshot = self._snapshot
        if snapshot is None:
            raise LedgerCalendarError("No snapshot installed")
        return snapshot

    @property
    def version(self) -> Optional[int]:
        snapshot = self._snapshot
        return snapshot.version if snapshot is not None else None

    def install(self, snapshot: LedgerSnapshot) -> bool:
        """
        Make `snapshot` current and drop derivations of older versions.

        Re-installing the installed snapshot (or an equal one) is a no-op.

        Returns:
            True if the snapshot was replaced, False if it was already current

        Raises:
            StaleSnapshot: If the version is older than the installed one, or
                equal to it with different content
        """
        with self._lock:
            current = self._snapshot
            if current is not None:
                if snapshot is current or snapshot == current:
                    return False
                if snapshot.version <= current.version:
                    raise StaleSnapshot(
                        f"Snapshot v{snapshot.version} does not supersede installed v{current.version}"
                    )
            self._snapshot = snapshot
            self._derived = {}

        logger.info(
            "snapshot_installed",
            version=snapshot.version,
            accounts=len(snapshot.accounts),
            transactions=len(snapshot.transactions),
            as_of=snapshot.as_of.isoformat(),
        )
        return True

    def refresh(self, source: SnapshotSource) -> bool:
        """Pull the latest snapshot from a source and install it."""
        return self.install(source.fetch_snapshot())

    def zone_for(self, snapshot: LedgerSnapshot) -> tzinfo:
        """Configured zone, else the snapshot's fetch locale, else UTC."""
        return resolve_zone(self.settings.time_zone or snapshot.time_zone)

    @property
    def zone(self) -> tzinfo:
        return self.zone_for(self.snapshot)

    # ========================================================================
    # DERIVATIONS (single build per version)
    # ========================================================================

    def derivations(self) -> Derivations:
        """Derived structures of the current version, building them on first use."""
        snapshot = self.snapshot
        derived = self._derived.get(snapshot.version)
        if derived is not None:
            return derived

        with self._lock:
            derived = self._derived.get(snapshot.version)
            if derived is not None:
                return derived
            derived = self._build(snapshot)
            if self._snapshot is snapshot:
                self._derived = {snapshot.version: derived}
            return derived

    def _build(self, snapshot: LedgerSnapshot) -> Derivations:
        start = time.perf_counter()
        table = build_suffix_table(snapshot, self.zone_for(snapshot))
        index = build_index(snapshot, table)
        report = None
        if self.settings.reconcile_on_build:
            report = reconcile(snapshot, self.settings.reconciliation_tolerance)
        self.build_count += 1

        logger.debug(
            "derivations_built",
            version=snapshot.version,
            transactions=len(table),
            days=len(index),
            reconciled=report.valid if report is not None else None,
            elapsed_ms=round((time.perf_counter() - start) * 1000, 3),
        )
        return Derivations(version=snapshot.version, table=table, index=index, reconciliation=report)

    async def warm_up(self) -> Derivations:
        """Build the current version's derivations in a worker thread."""
        return await asyncio.to_thread(self.derivations)

    # ========================================================================
    # BALANCE QUERIES
    # ========================================================================

    def balance_as_of(self, when: QueryPoint, account_id: Optional[str] = None) -> Decimal:
        """
        Balance at an instant (aware datetime) or at the end of a day (date).

        Args:
            when: Query point, not after the snapshot's as_of
            account_id: Account to reconstruct; None means net worth

        Raises:
            UnknownAccount: If account_id is not in the snapshot
            FutureDate: If `when` is after as_of
        """
        return self.derivations().table.balance_as_of(when, account_id)

    def net_worth_as_of(self, when: QueryPoint) -> Decimal:
        """Assets minus loans at `when`."""
        return self.derivations().table.net_worth_as_of(when)

    def net_worth_breakdown_as_of(self, when: QueryPoint) -> NetWorthBreakdown:
        return self.derivations().table.net_worth_breakdown_as_of(when)

    # ========================================================================
    # CALENDAR QUERIES
    # ========================================================================

    def _day_of(self, day: Union[date, datetime]) -> date:
        return self.derivations().index.local_day(day)

    def day(self, day: Union[date, datetime]) -> DayBucket:
        """Bucket for a calendar day (a datetime is mapped to its local day)."""
        return self.derivations().index.day(self._day_of(day))

    def transactions_on_date(self, day: Union[date, datetime]) -> Tuple[Transaction, ...]:
        """Transactions of a calendar day in chronological order; empty if none."""
        return self.day(day).transactions

    def month_summary(self, year_month: YearMonthLike) -> MonthSummary:
        """
        Income, outflow, count and end-of-month balance of a month.

        Raises:
            FutureDate: If the month begins after as_of
        """
        return self.derivations().index.month(year_month)

    def active_days(self, year_month: YearMonthLike) -> Tuple[date, ...]:
        return self.derivations().index.active_days(year_month)

    def latest_activity_date(self) -> Optional[date]:
        return self.derivations().index.latest_activity_date()

    def day_summary(self, day: Union[date, datetime], account_id: Optional[str] = None) -> DaySummary:
        """Spent, received, net and the balance change across a day."""
        return summarize_day(self.derivations().index, self._day_of(day), account_id)

    def balance_history(
        self,
        range_or_start: Union[str, date],
        end: Optional[date] = None,
        account_id: Optional[str] = None,
    ) -> List[BalancePoint]:
        """
        End-of-day balances over a named range ("7D", "30D", "1Y", "ALL")
        ending on the as-of day, or over an explicit span.

        Args:
            range_or_start: Range name, or the first day of the span
            end: Last day of the span (default: the as-of day)
            account_id: Account to chart; None charts net worth
        """
        derived = self.derivations()
        if isinstance(range_or_start, str):
            start, range_end = resolve_range(range_or_start, derived.index)
            end = end or range_end
        else:
            start = range_or_start
            end = end or local_date(derived.table.snapshot.as_of, derived.index.zone)
        return balance_history(derived.table, start, end, account_id)

    # ========================================================================
    # DIAGNOSTICS
    # ========================================================================

    def reconcile(self) -> ReconciliationReport:
        """Advisory consistency check of the current snapshot."""
        derived = self.derivations()
        if derived.reconciliation is not None:
            return derived.reconciliation
        return reconcile(derived.table.snapshot, self.settings.reconciliation_tolerance)

    def __repr__(self) -> str:
        return f"LedgerQueryService(version={self.version}, cached={sorted(self._derived)})"
