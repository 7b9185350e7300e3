"""
records.py - Adapter from account-feed payloads to a snapshot

The account API hands over plain dictionaries:

    account:     {"id", "name", "type": "bank" | "e-wallet" | "investment" | "loan", "balance"}
    transaction: {"id", "date": ISO-8601, "description", "amount", "category", "accountId"}

snapshot_from_records() converts them into Account / Transaction values and
builds a validated snapshot. Any malformed record raises InvalidSnapshot
naming the offending record; nothing is skipped or repaired.
"""

from __future__ import annotations
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from .core import (
    Account, Transaction, InvalidSnapshot,
    account_type_for_kind, resolve_zone,
)
from .snapshot import LedgerSnapshot, build_snapshot


def parse_timestamp(value: Any, default_zone: Optional[str] = None) -> datetime:
    """
    Parse an ISO-8601 timestamp.

    Strings without an offset are interpreted in default_zone (UTC if None).
    A trailing "Z" is accepted.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Expected ISO-8601 string, got {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=resolve_zone(default_zone))
    return parsed


def _record_id(record: Any) -> str:
    if isinstance(record, Mapping):
        return repr(record.get("id", "?"))
    return f"of type {type(record).__name__}"


def account_from_record(record: Mapping[str, Any]) -> Account:
    """Convert one account payload to an Account."""
    try:
        if not isinstance(record, Mapping):
            raise TypeError("expected a mapping")
        kind = record["type"]
        if not isinstance(kind, str):
            raise TypeError(f"type must be a string, got {kind!r}")
        return Account(
            id=str(record["id"]),
            account_type=account_type_for_kind(kind),
            current_balance=record["balance"],
            name=record.get("name", ""),
            kind=kind,
        )
    except (KeyError, ValueError, TypeError) as e:
        raise InvalidSnapshot(f"Bad account record {_record_id(record)}: {e}") from e


def transaction_from_record(record: Mapping[str, Any], default_zone: Optional[str] = None) -> Transaction:
    """Convert one transaction payload to a Transaction."""
    try:
        if not isinstance(record, Mapping):
            raise TypeError("expected a mapping")
        return Transaction(
            id=str(record["id"]),
            account_id=str(record["accountId"]),
            timestamp=parse_timestamp(record["date"], default_zone),
            amount=record["amount"],
            category=record.get("category", ""),
            description=record.get("description", ""),
        )
    except (KeyError, ValueError, TypeError) as e:
        raise InvalidSnapshot(f"Bad transaction record {_record_id(record)}: {e}") from e


def snapshot_from_records(
    accounts: Iterable[Mapping[str, Any]],
    transactions: Iterable[Mapping[str, Any]],
    as_of: Any,
    version: int,
    time_zone: Optional[str] = None,
) -> LedgerSnapshot:
    """
    Build a snapshot from feed payloads.

    Args:
        accounts: Account dictionaries
        transactions: Transaction dictionaries
        as_of: Reference instant (datetime or ISO-8601 string)
        version: Fetch version
        time_zone: Fetch locale; also the zone for offset-less timestamps

    Raises:
        InvalidSnapshot: If any record is malformed
    """
    try:
        as_of_ts = parse_timestamp(as_of, time_zone)
    except ValueError as e:
        raise InvalidSnapshot(f"Bad as_of {as_of!r}: {e}") from e

    return build_snapshot(
        accounts=[account_from_record(r) for r in accounts],
        transactions=[transaction_from_record(r, time_zone) for r in transactions],
        as_of=as_of_ts,
        version=version,
        time_zone=time_zone,
    )
