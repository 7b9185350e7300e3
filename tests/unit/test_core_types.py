"""
test_core_types.py - Unit tests for core data structures

Tests:
- Account: creation, coercion, validation, sign convention
- Transaction: creation, coercion, validation, ordering key
- Account kinds and sign lookups
- Time helpers: zones and local day boundaries
"""

import pytest
from dataclasses import FrozenInstanceError
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import calendar_ledger

from calendar_ledger import (
    Account, Transaction,
    ACCOUNT_TYPE_ASSET, ACCOUNT_TYPE_LOAN,
    account_sign, account_type_for_kind, resolve_zone,
)
from calendar_ledger.core import is_aware, local_date, start_of_day, start_of_next_day

from tests.snapshots import utc


class TestAccount:
    """Tests for Account creation and validation."""

    def test_create_asset(self):
        account = Account("bca", ACCOUNT_TYPE_ASSET, Decimal("500000"), name="BCA")
        assert account.id == "bca"
        assert account.current_balance == Decimal("500000")
        assert account.sign == 1
        assert account.net_worth_contribution == Decimal("500000")

    def test_loan_contributes_negatively(self):
        account = Account("kredivo", ACCOUNT_TYPE_LOAN, Decimal("250000"))
        assert account.sign == -1
        assert account.net_worth_contribution == Decimal("-250000")

    def test_int_and_float_coerced_to_decimal(self):
        assert Account("a", ACCOUNT_TYPE_ASSET, 100).current_balance == Decimal("100")
        assert Account("a", ACCOUNT_TYPE_ASSET, 0.1).current_balance == Decimal("0.1")

    def test_empty_id_raises(self):
        with pytest.raises(ValueError, match="id cannot be empty"):
            Account("  ", ACCOUNT_TYPE_ASSET, Decimal("1"))

    def test_non_numeric_balance_raises(self):
        with pytest.raises(ValueError, match="numeric"):
            Account("a", ACCOUNT_TYPE_ASSET, "lots")

    def test_infinite_balance_raises(self):
        with pytest.raises(ValueError, match="finite"):
            Account("a", ACCOUNT_TYPE_ASSET, Decimal("Infinity"))

    def test_account_is_immutable(self):
        account = Account("a", ACCOUNT_TYPE_ASSET, Decimal("1"))
        with pytest.raises(FrozenInstanceError):
            account.current_balance = Decimal("2")

    def test_unknown_type_has_no_sign(self):
        account = Account("a", "CRYPTO", Decimal("1"))
        with pytest.raises(ValueError, match="Unknown account type"):
            account.sign


class TestTransaction:
    """Tests for Transaction creation and validation."""

    def test_create_transaction(self):
        t = Transaction("t1", "bca", utc(2025, 3, 14), Decimal("-50000"), "Food", "Lunch")
        assert t.amount == Decimal("-50000")
        assert t.category == "Food"
        assert t.description == "Lunch"

    def test_amount_coerced(self):
        t = Transaction("t1", "bca", utc(2025, 3, 14), -12.5)
        assert t.amount == Decimal("-12.5")

    def test_zero_amount_allowed(self):
        t = Transaction("t1", "bca", utc(2025, 3, 14), 0)
        assert t.amount == 0

    def test_empty_account_raises(self):
        with pytest.raises(ValueError, match="account_id"):
            Transaction("t1", "", utc(2025, 3, 14), 1)

    def test_timestamp_must_be_datetime(self):
        with pytest.raises(ValueError, match="timestamp must be datetime"):
            Transaction("t1", "bca", "2025-03-14", 1)

    def test_nan_amount_raises(self):
        with pytest.raises(ValueError, match="finite"):
            Transaction("t1", "bca", utc(2025, 3, 14), Decimal("NaN"))

    def test_sort_key_breaks_ties_by_id(self):
        when = utc(2025, 3, 14)
        a = Transaction("a", "bca", when, 1)
        b = Transaction("b", "bca", when, 1)
        assert sorted([b, a], key=lambda t: t.sort_key) == [a, b]

    def test_transactions_are_hashable(self):
        t = Transaction("t1", "bca", utc(2025, 3, 14), 1)
        assert len({t, t}) == 1


class TestAccountKinds:
    """Tests for account kind and sign lookups."""

    @pytest.mark.parametrize("kind", ["bank", "e-wallet", "investment", " Bank "])
    def test_asset_kinds(self, kind):
        assert account_type_for_kind(kind) == ACCOUNT_TYPE_ASSET

    def test_loan_kind(self):
        assert account_type_for_kind("loan") == ACCOUNT_TYPE_LOAN

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError, match="Unknown account kind"):
            account_type_for_kind("crypto")

    def test_signs(self):
        assert account_sign(ACCOUNT_TYPE_ASSET) == 1
        assert account_sign(ACCOUNT_TYPE_LOAN) == -1


class TestTimeHelpers:
    """Tests for zone resolution and day boundaries."""

    def test_default_zone_is_utc(self):
        assert resolve_zone(None) == ZoneInfo("UTC")

    def test_unknown_zone_raises(self):
        with pytest.raises(ValueError, match="Unknown time zone"):
            resolve_zone("Mars/Olympus_Mons")

    def test_is_aware(self):
        assert is_aware(utc(2025, 1, 1))
        assert not is_aware(datetime(2025, 1, 1))

    def test_local_date_crosses_midnight(self):
        # 20:00 UTC is 03:00 the next day in Jakarta (UTC+7)
        jakarta = ZoneInfo("Asia/Jakarta")
        assert local_date(utc(2025, 3, 14, 20), jakarta) == date(2025, 3, 15)
        assert local_date(utc(2025, 3, 14, 20), ZoneInfo("UTC")) == date(2025, 3, 14)

    def test_day_bounds(self):
        jakarta = ZoneInfo("Asia/Jakarta")
        start = start_of_day(date(2025, 3, 15), jakarta)
        end = start_of_next_day(date(2025, 3, 15), jakarta)
        assert start == datetime(2025, 3, 14, 17, tzinfo=timezone.utc)
        assert end - start == timedelta(days=1)


class TestPublicApi:

    def test_every_export_resolves(self):
        for name in calendar_ledger.__all__:
            assert hasattr(calendar_ledger, name), name
        assert "BalanceMap" not in calendar_ledger.__all__
