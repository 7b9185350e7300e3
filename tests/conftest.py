"""
conftest.py - Shared pytest fixtures for calendar ledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Snapshots (household ledger, single-account, empty)
- Derived structures (suffix table, calendar index)
- Query services with explicit settings (no environment dependence)
"""

import pytest

from calendar_ledger import (
    CalendarSettings,
    LedgerQueryService,
    build_index,
    build_snapshot,
    build_suffix_table,
    get_settings,
)

from tests.snapshots import (
    asset, loan, tx, utc,
    household_snapshot,
)


# =============================================================================
# SETTINGS
# =============================================================================

@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    """Keep LEDGER_CALENDAR_* variables from the developer's shell out of tests."""
    for name in ("LEDGER_CALENDAR_TIME_ZONE", "LEDGER_CALENDAR_RECONCILIATION_TOLERANCE",
                 "LEDGER_CALENDAR_RECONCILE_ON_BUILD"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def utc_settings():
    """UTC day boundaries, reconciliation enabled."""
    return CalendarSettings(time_zone="UTC", reconcile_on_build=True, _env_file=None)


@pytest.fixture
def quiet_settings():
    """UTC day boundaries, reconciliation disabled (for deliberately unreconciled snapshots)."""
    return CalendarSettings(time_zone="UTC", reconcile_on_build=False, _env_file=None)


# =============================================================================
# SNAPSHOT FIXTURES
# =============================================================================

@pytest.fixture
def household():
    """Consistent three-account ledger, version 1."""
    return household_snapshot()


@pytest.fixture
def single_step():
    """
    One asset account of 500,000 with a single -50,000 transaction yesterday.

    as_of is 2025-03-15 12:00 UTC; the transaction is 2025-03-14 10:00 UTC.
    """
    return build_snapshot(
        [asset("A", 500_000)],
        [tx("t1", "A", utc(2025, 3, 14, 10), -50_000, "Food")],
        as_of=utc(2025, 3, 15, 12),
        version=1,
    )


@pytest.fixture
def no_transactions():
    """Asset of 1,000,000 and loan of 250,000, empty log."""
    return build_snapshot(
        [asset("savings", 1_000_000), loan("mortgage", 250_000)],
        [],
        as_of=utc(2025, 3, 15, 12),
        version=1,
    )


# =============================================================================
# DERIVED FIXTURES
# =============================================================================

@pytest.fixture
def household_table(household):
    return build_suffix_table(household)


@pytest.fixture
def household_index(household, household_table):
    return build_index(household, household_table)


@pytest.fixture
def household_service(household, utc_settings):
    return LedgerQueryService(household, settings=utc_settings)
