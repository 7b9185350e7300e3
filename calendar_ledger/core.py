"""
Core types and pure helpers for the calendar ledger.

This module provides the foundational data structures for balance
reconstruction and calendar indexing:
1. Immutable data structures: Account, Transaction
2. Exceptions: LedgerCalendarError and domain-specific error types
3. Account type constants and their net-worth sign conventions
4. Time helpers: zone resolution and local day boundaries

All functions in this module are pure. Nothing here holds or mutates state.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from decimal import Decimal, ROUND_HALF_EVEN, InvalidOperation, getcontext
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# Balance arithmetic must be deterministic. The global context is configured
# at module load time; sums of amounts are exact at this precision.
#
#   - prec=50: Precision sufficient for financial calculations
#   - rounding=ROUND_HALF_EVEN: Banker's rounding (unbiased)
#
_CALENDAR_DECIMAL_CONTEXT = getcontext()
_CALENDAR_DECIMAL_CONTEXT.prec = 50
_CALENDAR_DECIMAL_CONTEXT.rounding = ROUND_HALF_EVEN


# ============================================================================
# CONSTANTS
# ============================================================================

# Account type constants (strings, not enum, so new types only need a sign).
ACCOUNT_TYPE_ASSET = "ASSET"
ACCOUNT_TYPE_LOAN = "LOAN"

# Contribution of each account type to net worth.
ACCOUNT_SIGNS: Mapping[str, int] = {
    ACCOUNT_TYPE_ASSET: 1,
    ACCOUNT_TYPE_LOAN: -1,
}

# Institution kinds reported by the account feed, mapped to sign conventions.
ACCOUNT_KIND_TYPES: Mapping[str, str] = {
    "bank": ACCOUNT_TYPE_ASSET,
    "e-wallet": ACCOUNT_TYPE_ASSET,
    "investment": ACCOUNT_TYPE_ASSET,
    "loan": ACCOUNT_TYPE_LOAN,
}

# Day boundaries fall back to this zone when neither settings nor snapshot name one.
DEFAULT_TIME_ZONE = "UTC"

# Rounding epsilon for the advisory reconciliation check.
DEFAULT_RECONCILIATION_TOLERANCE = Decimal("0.01")

ZERO = Decimal("0")


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Anything a caller may pass as a query point: an instant or a calendar day.
QueryPoint = Any  # datetime | date


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerCalendarError(Exception):
    """Base exception for all calendar ledger errors."""
    pass


class UnknownAccount(LedgerCalendarError):
    """Raised when an account ID is not present in the snapshot's account set."""
    pass


class FutureDate(LedgerCalendarError):
    """Raised when a query point lies after the snapshot's as-of instant."""
    pass


class InvalidSnapshot(LedgerCalendarError):
    """Raised when snapshot input is malformed. Records are never dropped or repaired."""
    pass


class StaleSnapshot(LedgerCalendarError):
    """Raised when installing a snapshot whose version is older than the current one."""
    pass


class InconsistentSnapshot(UserWarning):
    """
    Advisory diagnostic: transactions folded forward from zero do not match
    the supplied current balances.

    Issued through warnings.warn, never raised by the library. Queries keep
    answering with current_balance as ground truth.
    """
    pass


# ============================================================================
# HELPERS
# ============================================================================

def _to_decimal(value: Any, field_name: str) -> Decimal:
    """Coerce a numeric input to Decimal via str() so floats keep their printed value."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"{field_name} must be numeric, got {value!r}") from None
    if result.is_nan() or result.is_infinite():
        raise ValueError(f"{field_name} must be finite, got {result}")
    return result


def account_sign(account_type: str) -> int:
    """
    Return the net-worth sign for an account type.

    Raises:
        ValueError: If the account type has no defined sign convention
    """
    try:
        return ACCOUNT_SIGNS[account_type]
    except KeyError:
        raise ValueError(f"Unknown account type {account_type!r}") from None


def account_type_for_kind(kind: str) -> str:
    """
    Map an institution kind from the account feed ("bank", "e-wallet",
    "investment", "loan") to an account type constant.
    """
    normalized = kind.strip().lower()
    if normalized not in ACCOUNT_KIND_TYPES:
        raise ValueError(f"Unknown account kind {kind!r}")
    return ACCOUNT_KIND_TYPES[normalized]


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Account:
    """
    An account with its current balance.

    Attributes:
        id: Identifier, stable for the snapshot's lifetime.
        account_type: ACCOUNT_TYPE_ASSET or ACCOUNT_TYPE_LOAN.
        current_balance: Magnitude of the balance (>= 0). The sign used for
            net worth comes from account_type, never from this number.
        name: Display name.
        kind: Institution kind as reported by the feed (display only).
    """
    id: str
    account_type: str
    current_balance: Decimal
    name: str = ""
    kind: str = ""

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ValueError("Account id cannot be empty")
        object.__setattr__(
            self, 'current_balance',
            _to_decimal(self.current_balance, "Account current_balance"),
        )

    @property
    def sign(self) -> int:
        """Net-worth sign of this account (+1 asset, -1 loan)."""
        return account_sign(self.account_type)

    @property
    def net_worth_contribution(self) -> Decimal:
        return self.sign * self.current_balance

    def __repr__(self) -> str:
        return f"Account({self.id} [{self.account_type}] {self.current_balance})"


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    A single signed change to one account's balance.

    Attributes:
        id: Unique, immutable identifier (also the tie-breaker for ordering).
        account_id: Owning account.
        timestamp: When the change took effect (timezone-aware).
        amount: Signed delta; positive increases the account's balance,
            independent of account type.
        category: Display label, never used in balance math.
        description: Display text.
    """
    id: str
    account_id: str
    timestamp: datetime
    amount: Decimal
    category: str = ""
    description: str = ""

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ValueError("Transaction id cannot be empty")
        if not self.account_id or not self.account_id.strip():
            raise ValueError("Transaction account_id cannot be empty")
        if not isinstance(self.timestamp, datetime):
            raise ValueError(f"Transaction timestamp must be datetime, got {type(self.timestamp)}")
        object.__setattr__(self, 'amount', _to_decimal(self.amount, "Transaction amount"))

    @property
    def sort_key(self):
        """Chronological order, ties broken by id."""
        return (self.timestamp, self.id)

    def __repr__(self) -> str:
        return f"Transaction({self.id}: {self.amount} {self.account_id} @ {self.timestamp.isoformat()})"


# ============================================================================
# TIME HELPERS
# ============================================================================

def resolve_zone(name: Optional[str]) -> tzinfo:
    """
    Resolve a time zone identifier, defaulting to DEFAULT_TIME_ZONE.

    Raises:
        ValueError: If the identifier is not a known IANA zone
    """
    key = name or DEFAULT_TIME_ZONE
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown time zone {key!r}") from None


def is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.tzinfo.utcoffset(value) is not None


def local_date(instant: datetime, zone: tzinfo) -> date:
    """Calendar day on which an instant falls in the given zone."""
    return instant.astimezone(zone).date()


def start_of_day(day: date, zone: tzinfo) -> datetime:
    """First instant of a calendar day in the given zone."""
    return datetime.combine(day, time.min, tzinfo=zone)


def start_of_next_day(day: date, zone: tzinfo) -> datetime:
    """Exclusive upper bound of a calendar day in the given zone."""
    return start_of_day(day + timedelta(days=1), zone)
