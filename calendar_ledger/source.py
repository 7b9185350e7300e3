"""
source.py - Interface to the data-fetch collaborator

Fetching accounts and transactions is outside this package. Whatever does
the fetching only has to satisfy SnapshotSource: hand back a fully loaded,
validated LedgerSnapshot with a version newer than the last one.

Classes:
- SnapshotSource: Protocol defining the fetch interface
- StaticSnapshotSource: In-memory source that serves a fixed snapshot and
  produces new versions on replace()
"""

from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional, Protocol, runtime_checkable

from .core import Account, Transaction
from .snapshot import LedgerSnapshot, build_snapshot


@runtime_checkable
class SnapshotSource(Protocol):
    """
    Protocol for snapshot providers.

    fetch_snapshot() returns the latest point-in-time snapshot. Successive
    snapshots carry non-decreasing versions.
    """

    def fetch_snapshot(self) -> LedgerSnapshot:
        """Return the latest snapshot."""
        ...


class StaticSnapshotSource:
    """
    Snapshot source backed by in-memory records.

    Serves the same snapshot until replace() is called; each replace()
    builds a new snapshot with the next version number.
    """

    def __init__(self, snapshot: LedgerSnapshot):
        self._snapshot = snapshot

    @classmethod
    def from_records(
        cls,
        accounts: Iterable[Account],
        transactions: Iterable[Transaction],
        as_of: datetime,
        version: int = 1,
        time_zone: Optional[str] = None,
    ) -> StaticSnapshotSource:
        return cls(build_snapshot(accounts, transactions, as_of, version, time_zone))

    def fetch_snapshot(self) -> LedgerSnapshot:
        return self._snapshot

    def replace(
        self,
        accounts: Optional[Iterable[Account]] = None,
        transactions: Optional[Iterable[Transaction]] = None,
        as_of: Optional[datetime] = None,
    ) -> LedgerSnapshot:
        """
        Publish a new snapshot version.

        Omitted arguments carry over from the current snapshot.

        Returns:
            The newly published snapshot
        """
        current = self._snapshot
        self._snapshot = build_snapshot(
            accounts if accounts is not None else current.accounts,
            transactions if transactions is not None else current.transactions,
            as_of if as_of is not None else current.as_of,
            current.version + 1,
            current.time_zone,
        )
        return self._snapshot

    def __repr__(self):
        return f"StaticSnapshotSource({self._snapshot!r})"
