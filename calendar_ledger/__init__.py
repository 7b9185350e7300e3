"""
calendar_ledger - Point-in-time balances and calendar views over a transaction log

Current balances are known only as of the snapshot; past balances are
reconstructed by replaying transactions backward. A suffix-sum table makes
each balance query a binary search, and a calendar index buckets the log by
local day and month.

Usage:
    from datetime import date, datetime, timezone
    from calendar_ledger import (
        Account, Transaction, build_snapshot, LedgerQueryService,
        ACCOUNT_TYPE_ASSET, ACCOUNT_TYPE_LOAN,
    )

    snapshot = build_snapshot(
        accounts=[
            Account("bca", ACCOUNT_TYPE_ASSET, 500000),
            Account("kredivo", ACCOUNT_TYPE_LOAN, 250000),
        ],
        transactions=[
            Transaction("t1", "bca", datetime(2025, 3, 14, 9, tzinfo=timezone.utc), -50000, "Food"),
        ],
        as_of=datetime(2025, 3, 15, 12, tzinfo=timezone.utc),
        version=1,
    )

    service = LedgerQueryService(snapshot)
    service.balance_as_of(date(2025, 3, 13), "bca")     # Decimal('550000')
    service.net_worth_as_of(snapshot.as_of)             # Decimal('250000')
    service.transactions_on_date(date(2025, 3, 14))     # (Transaction(t1...),)
    service.month_summary("2025-03")
"""

# Core types
from .core import (
    Account,
    Transaction,
    LedgerCalendarError,
    UnknownAccount,
    FutureDate,
    InvalidSnapshot,
    StaleSnapshot,
    InconsistentSnapshot,
    account_sign,
    account_type_for_kind,
    resolve_zone,
    ACCOUNT_TYPE_ASSET,
    ACCOUNT_TYPE_LOAN,
    ACCOUNT_SIGNS,
    ACCOUNT_KIND_TYPES,
    DEFAULT_TIME_ZONE,
    DEFAULT_RECONCILIATION_TOLERANCE,
)

# Snapshot
from .snapshot import (
    LedgerSnapshot,
    AccountDiscrepancy,
    ReconciliationReport,
    build_snapshot,
    reconcile,
)

# Balance reconstruction
from .reconstructor import (
    NetWorthBreakdown,
    SuffixSumTable,
    balance_as_of,
    build_suffix_table,
    replay_balance,
)

# Calendar index
from .calendar_index import (
    YearMonth,
    DayBucket,
    MonthSummary,
    CalendarIndex,
    build_index,
    to_year_month,
)

# History
from .history import (
    BalancePoint,
    DaySummary,
    RANGE_DAYS,
    balance_history,
    resolve_range,
    summarize_day,
)

# Sources and adapters
from .source import SnapshotSource, StaticSnapshotSource
from .records import snapshot_from_records, parse_timestamp

# Configuration and logging
from .config import CalendarSettings, get_settings
from .log import configure_logging

# Query service
from .service import LedgerQueryService, Derivations

__all__ = [
    # Core
    'Account', 'Transaction',
    'LedgerCalendarError', 'UnknownAccount', 'FutureDate', 'InvalidSnapshot',
    'StaleSnapshot', 'InconsistentSnapshot',
    'account_sign', 'account_type_for_kind', 'resolve_zone',
    'ACCOUNT_TYPE_ASSET', 'ACCOUNT_TYPE_LOAN', 'ACCOUNT_SIGNS', 'ACCOUNT_KIND_TYPES',
    'DEFAULT_TIME_ZONE', 'DEFAULT_RECONCILIATION_TOLERANCE',
    # Snapshot
    'LedgerSnapshot', 'AccountDiscrepancy', 'ReconciliationReport',
    'build_snapshot', 'reconcile',
    # Reconstruction
    'NetWorthBreakdown', 'SuffixSumTable', 'balance_as_of', 'build_suffix_table',
    'replay_balance',
    # Calendar index
    'YearMonth', 'DayBucket', 'MonthSummary', 'CalendarIndex', 'build_index',
    'to_year_month',
    # History
    'BalancePoint', 'DaySummary', 'RANGE_DAYS', 'balance_history', 'resolve_range',
    'summarize_day',
    # Sources
    'SnapshotSource', 'StaticSnapshotSource', 'snapshot_from_records', 'parse_timestamp',
    # Configuration
    'CalendarSettings', 'get_settings', 'configure_logging',
    # Service
    'LedgerQueryService', 'Derivations',
]

__version__ = '1.0.0'
