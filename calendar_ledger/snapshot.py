"""
snapshot.py - Immutable, versioned view of accounts and transactions

A LedgerSnapshot is produced once per fetch cycle by the data-fetch
collaborator and never changes afterwards. All validation happens here,
before any derived structure is built:
    - every transaction references an account in the same snapshot
    - current balances are non-negative magnitudes
    - timestamps are timezone-aware and not after the as-of instant
    - account and transaction ids are unique
    - transactions are in (timestamp, id) order

reconcile() is the advisory consistency check: it folds transactions
forward from zero and compares the result with the supplied balances.
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
import warnings

import structlog

from .core import (
    Account, Transaction,
    ACCOUNT_SIGNS, ACCOUNT_TYPE_ASSET, ACCOUNT_TYPE_LOAN,
    DEFAULT_RECONCILIATION_TOLERANCE, ZERO,
    InconsistentSnapshot, InvalidSnapshot, UnknownAccount,
    is_aware, resolve_zone,
)


logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class LedgerSnapshot:
    """
    Immutable set of accounts plus the chronologically ordered transaction log.

    Prefer build_snapshot(), which sorts the transactions before constructing.
    Direct construction validates the same invariants and fails with
    InvalidSnapshot if any is broken.

    Attributes:
        accounts: Accounts in feed order.
        transactions: Transactions sorted by (timestamp, id).
        as_of: The snapshot's "now"; upper bound for replay and queries.
        version: Monotonically increasing token, one per fetch.
        time_zone: Fetch locale, used for day boundaries unless overridden.
    """
    accounts: Tuple[Account, ...]
    transactions: Tuple[Transaction, ...]
    as_of: datetime
    version: int
    time_zone: Optional[str] = None
    _accounts_by_id: Mapping[str, Account] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'accounts', tuple(self.accounts))
        object.__setattr__(self, 'transactions', tuple(self.transactions))
        object.__setattr__(self, '_accounts_by_id', MappingProxyType(_index_accounts(self.accounts)))

        if not isinstance(self.version, int) or isinstance(self.version, bool):
            raise InvalidSnapshot(f"Snapshot version must be int, got {self.version!r}")
        if not isinstance(self.as_of, datetime) or not is_aware(self.as_of):
            raise InvalidSnapshot(f"Snapshot as_of must be a timezone-aware datetime, got {self.as_of!r}")
        if self.time_zone is not None:
            try:
                resolve_zone(self.time_zone)
            except ValueError as e:
                raise InvalidSnapshot(str(e)) from None

        _validate_transactions(self.transactions, self._accounts_by_id, self.as_of)

    # ------------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------------

    @property
    def accounts_by_id(self) -> Mapping[str, Account]:
        return self._accounts_by_id

    def has_account(self, account_id: str) -> bool:
        return account_id in self._accounts_by_id

    def account(self, account_id: str) -> Account:
        """
        Return the account with the given ID.

        Raises:
            UnknownAccount: If the account is not in this snapshot
        """
        try:
            return self._accounts_by_id[account_id]
        except KeyError:
            raise UnknownAccount(f"Account {account_id} not in snapshot v{self.version}") from None

    def transactions_for(self, account_id: str) -> Tuple[Transaction, ...]:
        """Transactions of one account, in chronological order."""
        self.account(account_id)
        return tuple(tx for tx in self.transactions if tx.account_id == account_id)

    @property
    def total_assets(self) -> Decimal:
        return sum(
            (a.current_balance for a in self.accounts if a.account_type == ACCOUNT_TYPE_ASSET),
            ZERO,
        )

    @property
    def total_liabilities(self) -> Decimal:
        return sum(
            (a.current_balance for a in self.accounts if a.account_type == ACCOUNT_TYPE_LOAN),
            ZERO,
        )

    @property
    def net_worth(self) -> Decimal:
        """Sum of signed account contributions at as_of."""
        return sum((a.net_worth_contribution for a in self.accounts), ZERO)

    def __len__(self) -> int:
        return len(self.transactions)

    def __repr__(self) -> str:
        return (
            f"LedgerSnapshot(v{self.version}, {len(self.accounts)} accounts, "
            f"{len(self.transactions)} transactions, as_of={self.as_of.isoformat()})"
        )


def _index_accounts(accounts: Iterable[Account]) -> Dict[str, Account]:
    by_id: Dict[str, Account] = {}
    for account in accounts:
        if not isinstance(account, Account):
            raise InvalidSnapshot(f"Expected Account, got {type(account).__name__}")
        if account.id in by_id:
            raise InvalidSnapshot(f"Duplicate account id {account.id}")
        if account.account_type not in ACCOUNT_SIGNS:
            raise InvalidSnapshot(f"Account {account.id} has unknown type {account.account_type!r}")
        if account.current_balance < 0:
            raise InvalidSnapshot(
                f"Account {account.id} has negative current_balance {account.current_balance}; "
                f"balances are magnitudes, the sign comes from the account type"
            )
        by_id[account.id] = account
    return by_id


def _validate_transactions(
    transactions: Tuple[Transaction, ...],
    accounts_by_id: Mapping[str, Account],
    as_of: datetime,
) -> None:
    seen_ids = set()
    previous: Optional[Transaction] = None
    for tx in transactions:
        if not isinstance(tx, Transaction):
            raise InvalidSnapshot(f"Expected Transaction, got {type(tx).__name__}")
        if tx.id in seen_ids:
            raise InvalidSnapshot(f"Duplicate transaction id {tx.id}")
        seen_ids.add(tx.id)
        if tx.account_id not in accounts_by_id:
            raise InvalidSnapshot(f"Transaction {tx.id} references unknown account {tx.account_id}")
        if not is_aware(tx.timestamp):
            raise InvalidSnapshot(f"Transaction {tx.id} has a naive timestamp {tx.timestamp.isoformat()}")
        if tx.timestamp > as_of:
            raise InvalidSnapshot(
                f"Transaction {tx.id} at {tx.timestamp.isoformat()} is after as_of {as_of.isoformat()}"
            )
        if previous is not None and tx.sort_key < previous.sort_key:
            raise InvalidSnapshot(
                f"Transactions out of order: {tx.id} sorts before {previous.id}; use build_snapshot()"
            )
        previous = tx


def build_snapshot(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    as_of: datetime,
    version: int,
    time_zone: Optional[str] = None,
) -> LedgerSnapshot:
    """
    Build a validated snapshot, sorting transactions by (timestamp, id).

    Args:
        accounts: Account set with current balances
        transactions: Transaction log in any order
        as_of: The snapshot's reference instant (timezone-aware)
        version: Monotonically increasing fetch token
        time_zone: Fetch locale (IANA identifier), optional

    Returns:
        An immutable LedgerSnapshot

    Raises:
        InvalidSnapshot: If any record is malformed
    """
    txs = list(transactions)
    # Naive timestamps cannot be compared with aware ones; report them first.
    for tx in txs:
        if isinstance(tx, Transaction) and not is_aware(tx.timestamp):
            raise InvalidSnapshot(f"Transaction {tx.id} has a naive timestamp {tx.timestamp.isoformat()}")
    try:
        txs.sort(key=lambda tx: tx.sort_key)
    except AttributeError:
        bad = next(tx for tx in txs if not isinstance(tx, Transaction))
        raise InvalidSnapshot(f"Expected Transaction, got {type(bad).__name__}") from None

    return LedgerSnapshot(
        accounts=tuple(accounts),
        transactions=tuple(txs),
        as_of=as_of,
        version=version,
        time_zone=time_zone,
    )


# ============================================================================
# RECONCILIATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class AccountDiscrepancy:
    """One account whose replayed balance differs from its current balance."""
    account_id: str
    expected: Decimal      # current_balance as supplied
    replayed: Decimal      # sum of the account's transactions from zero
    difference: Decimal    # expected - replayed


@dataclass(frozen=True, slots=True)
class ReconciliationReport:
    """
    Result of folding the transaction log forward from zero.

    valid is False when any account differs by more than the tolerance.
    Queries are unaffected either way.
    """
    version: int
    valid: bool
    tolerance: Decimal
    expected_net_worth: Decimal
    replayed_net_worth: Decimal
    discrepancies: Tuple[AccountDiscrepancy, ...]


def reconcile(
    snapshot: LedgerSnapshot,
    tolerance: Decimal = DEFAULT_RECONCILIATION_TOLERANCE,
) -> ReconciliationReport:
    """
    Check that every account's transactions, summed from an opening balance
    of zero, reproduce its current balance within tolerance.

    An inconsistent snapshot is reported, not rejected: an InconsistentSnapshot
    warning is issued and a warning event is logged.

    Args:
        snapshot: Snapshot to check
        tolerance: Largest absolute per-account difference accepted

    Returns:
        ReconciliationReport with per-account discrepancies
    """
    replayed: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for tx in snapshot.transactions:
        replayed[tx.account_id] += tx.amount

    discrepancies: List[AccountDiscrepancy] = []
    replayed_net_worth = ZERO
    for account in sorted(snapshot.accounts, key=lambda a: a.id):
        actual = replayed[account.id]
        replayed_net_worth += account.sign * actual
        difference = account.current_balance - actual
        if abs(difference) > tolerance:
            discrepancies.append(AccountDiscrepancy(
                account_id=account.id,
                expected=account.current_balance,
                replayed=actual,
                difference=difference,
            ))

    report = ReconciliationReport(
        version=snapshot.version,
        valid=not discrepancies,
        tolerance=tolerance,
        expected_net_worth=snapshot.net_worth,
        replayed_net_worth=replayed_net_worth,
        discrepancies=tuple(discrepancies),
    )

    if not report.valid:
        logger.warning(
            "snapshot_inconsistent",
            version=snapshot.version,
            accounts=[d.account_id for d in discrepancies],
            expected_net_worth=str(report.expected_net_worth),
            replayed_net_worth=str(report.replayed_net_worth),
        )
        warnings.warn(
            f"Snapshot v{snapshot.version}: {len(discrepancies)} account(s) do not reconcile "
            f"within {tolerance}: {', '.join(d.account_id for d in discrepancies)}",
            InconsistentSnapshot,
            stacklevel=2,
        )

    return report
