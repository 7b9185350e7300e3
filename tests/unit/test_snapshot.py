"""
test_snapshot.py - Unit tests for snapshot construction and reconciliation

Tests:
- build_snapshot: ordering, accessors, net worth
- Fail-fast validation of malformed input
- reconcile: consistent and inconsistent snapshots
"""

import pytest
from datetime import datetime
from decimal import Decimal

from structlog.testing import capture_logs

from calendar_ledger import (
    Account, LedgerSnapshot, build_snapshot, reconcile,
    InvalidSnapshot, UnknownAccount, InconsistentSnapshot,
)

from tests.snapshots import asset, loan, tx, utc, household_snapshot


class TestBuildSnapshot:
    """Tests for building valid snapshots."""

    def test_transactions_sorted_by_timestamp_then_id(self):
        when = utc(2025, 3, 14)
        snapshot = build_snapshot(
            [asset("a", 0)],
            [
                tx("z", "a", when, 1),
                tx("late", "a", utc(2025, 3, 15), 1),
                tx("b", "a", when, -1),
                tx("early", "a", utc(2025, 3, 13), 1),
            ],
            as_of=utc(2025, 3, 16),
            version=1,
        )
        assert [t.id for t in snapshot.transactions] == ["early", "b", "z", "late"]

    def test_accessors(self, household):
        assert household.version == 1
        assert len(household) == 12
        assert household.has_account("bca")
        assert not household.has_account("ovo")
        assert household.account("kredivo").current_balance == Decimal("400000")
        assert [t.id for t in household.transactions_for("gopay")] == ["t08", "t09", "t10"]

    def test_net_worth(self, household):
        assert household.total_assets == Decimal("2600000")
        assert household.total_liabilities == Decimal("400000")
        assert household.net_worth == Decimal("2200000")

    def test_unknown_account_lookup(self, household):
        with pytest.raises(UnknownAccount, match="ovo"):
            household.account("ovo")
        with pytest.raises(UnknownAccount):
            household.transactions_for("ovo")

    def test_accounts_by_id_is_read_only(self, household):
        with pytest.raises(TypeError):
            household.accounts_by_id["x"] = asset("x", 1)

    def test_transaction_at_as_of_is_valid(self):
        as_of = utc(2025, 3, 15)
        snapshot = build_snapshot([asset("a", 1)], [tx("t", "a", as_of, 1)], as_of=as_of, version=1)
        assert len(snapshot) == 1

    def test_equal_snapshots_compare_equal(self):
        assert household_snapshot() == household_snapshot()
        assert household_snapshot(version=1) != household_snapshot(version=2)


class TestSnapshotValidation:
    """Malformed input fails at construction, before any index exists."""

    def test_unknown_account_reference(self):
        with pytest.raises(InvalidSnapshot, match="unknown account ghost"):
            build_snapshot([asset("a", 1)], [tx("t", "ghost", utc(2025, 1, 1), 1)],
                           as_of=utc(2025, 2, 1), version=1)

    def test_negative_balance(self):
        with pytest.raises(InvalidSnapshot, match="negative current_balance"):
            build_snapshot([loan("l", -5)], [], as_of=utc(2025, 2, 1), version=1)

    def test_future_dated_transaction(self):
        with pytest.raises(InvalidSnapshot, match="after as_of"):
            build_snapshot([asset("a", 1)], [tx("t", "a", utc(2025, 3, 1), 1)],
                           as_of=utc(2025, 2, 1), version=1)

    def test_naive_timestamp(self):
        naive = tx("t", "a", datetime(2025, 1, 1), 1)
        with pytest.raises(InvalidSnapshot, match="naive"):
            build_snapshot([asset("a", 1)], [naive], as_of=utc(2025, 2, 1), version=1)

    def test_naive_as_of(self):
        with pytest.raises(InvalidSnapshot, match="as_of"):
            build_snapshot([asset("a", 1)], [], as_of=datetime(2025, 2, 1), version=1)

    def test_duplicate_transaction_id(self):
        with pytest.raises(InvalidSnapshot, match="Duplicate transaction"):
            build_snapshot([asset("a", 1)],
                           [tx("t", "a", utc(2025, 1, 1), 1), tx("t", "a", utc(2025, 1, 2), 1)],
                           as_of=utc(2025, 2, 1), version=1)

    def test_duplicate_account_id(self):
        with pytest.raises(InvalidSnapshot, match="Duplicate account"):
            build_snapshot([asset("a", 1), loan("a", 1)], [], as_of=utc(2025, 2, 1), version=1)

    def test_unknown_account_type(self):
        with pytest.raises(InvalidSnapshot, match="unknown type"):
            build_snapshot([Account("a", "CRYPTO", Decimal("1"))], [], as_of=utc(2025, 2, 1), version=1)

    def test_unknown_time_zone(self):
        with pytest.raises(InvalidSnapshot, match="Unknown time zone"):
            build_snapshot([asset("a", 1)], [], as_of=utc(2025, 2, 1), version=1, time_zone="Nowhere/City")

    def test_version_must_be_int(self):
        with pytest.raises(InvalidSnapshot, match="version"):
            build_snapshot([asset("a", 1)], [], as_of=utc(2025, 2, 1), version="1")

    def test_direct_construction_rejects_unsorted_log(self):
        with pytest.raises(InvalidSnapshot, match="out of order"):
            LedgerSnapshot(
                accounts=(asset("a", 2),),
                transactions=(tx("t2", "a", utc(2025, 1, 2), 1), tx("t1", "a", utc(2025, 1, 1), 1)),
                as_of=utc(2025, 2, 1),
                version=1,
            )

    def test_non_transaction_rejected(self):
        with pytest.raises(InvalidSnapshot, match="Expected Transaction"):
            build_snapshot([asset("a", 1)], [{"id": "t"}], as_of=utc(2025, 2, 1), version=1)


class TestReconcile:
    """Tests for the advisory consistency check."""

    def test_consistent_snapshot(self, household):
        report = reconcile(household)
        assert report.valid
        assert report.discrepancies == ()
        assert report.expected_net_worth == report.replayed_net_worth == Decimal("2200000")

    def test_inconsistent_snapshot_warns_and_reports(self, single_step):
        with pytest.warns(InconsistentSnapshot, match="A"):
            report = reconcile(single_step)
        assert not report.valid
        (discrepancy,) = report.discrepancies
        assert discrepancy.account_id == "A"
        assert discrepancy.expected == Decimal("500000")
        assert discrepancy.replayed == Decimal("-50000")
        assert discrepancy.difference == Decimal("550000")

    def test_inconsistent_snapshot_logs_warning(self, single_step):
        with capture_logs() as logs, pytest.warns(InconsistentSnapshot):
            reconcile(single_step)
        events = [entry for entry in logs if entry["event"] == "snapshot_inconsistent"]
        assert len(events) == 1
        assert events[0]["log_level"] == "warning"
        assert events[0]["accounts"] == ["A"]

    def test_difference_within_tolerance_is_valid(self):
        snapshot = build_snapshot([asset("a", "100.004")], [tx("t", "a", utc(2025, 1, 1), 100)],
                                  as_of=utc(2025, 2, 1), version=1)
        assert reconcile(snapshot, tolerance=Decimal("0.01")).valid
        with pytest.warns(InconsistentSnapshot):
            assert not reconcile(snapshot, tolerance=Decimal("0.001")).valid

    def test_empty_log_with_zero_balances_is_valid(self):
        snapshot = build_snapshot([asset("a", 0), loan("l", 0)], [], as_of=utc(2025, 2, 1), version=1)
        assert reconcile(snapshot).valid
