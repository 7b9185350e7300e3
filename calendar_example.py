"""
calendar_example.py - Balances on Any Day, From Today's Snapshot

This tutorial walks through a month of household finances the way the
calendar screen sees them: the account feed only knows TODAY's balances,
yet every past day can show what the household was worth.

HOW PAST BALANCES ARE RECOVERED:
================================

    balance(day) = current_balance - (everything that happened after day)

A suffix-sum table turns "everything after day" into one binary search,
so each calendar cell costs O(log n) however long the history is.

SCENARIO: Budget Review
=======================

It is March 15, 2025. Dewi wants to know:

1. What was her net worth on the last day of February?
2. What happened on Valentine's Day?
3. How did March go so far, compared with February?
4. What did the last week look like, day by day?

Run:
    python calendar_example.py
"""

from datetime import date

from calendar_ledger import LedgerQueryService, CalendarSettings, configure_logging, snapshot_from_records


ACCOUNTS = [
    {"id": "bca", "name": "BCA Tahapan", "type": "bank", "balance": 2_500_000},
    {"id": "gopay", "name": "GoPay", "type": "e-wallet", "balance": 100_000},
    {"id": "kredivo", "name": "Kredivo PayLater", "type": "loan", "balance": 400_000},
]

TRANSACTIONS = [
    {"id": "t01", "accountId": "bca", "date": "2025-01-05T16:00:00+07:00", "amount": 1_000_000,
     "category": "Income", "description": "Salary"},
    {"id": "t02", "accountId": "bca", "date": "2025-01-20T21:00:00+07:00", "amount": -200_000,
     "category": "Transfer", "description": "Top up GoPay"},
    {"id": "t08", "accountId": "gopay", "date": "2025-01-21T15:00:00+07:00", "amount": 200_000,
     "category": "Transfer", "description": "Top up from BCA"},
    {"id": "t11", "accountId": "kredivo", "date": "2025-02-01T17:00:00+07:00", "amount": 600_000,
     "category": "Shopping", "description": "New phone"},
    {"id": "t03", "accountId": "bca", "date": "2025-02-05T16:00:00+07:00", "amount": 1_000_000,
     "category": "Income", "description": "Salary"},
    {"id": "t04", "accountId": "bca", "date": "2025-02-14T19:30:00+07:00", "amount": -150_000,
     "category": "Food", "description": "Valentine's dinner"},
    {"id": "t09", "accountId": "gopay", "date": "2025-02-15T19:00:00+07:00", "amount": -75_000,
     "category": "Transport", "description": "Ride home"},
    {"id": "t12", "accountId": "kredivo", "date": "2025-03-01T17:00:00+07:00", "amount": -200_000,
     "category": "Bills", "description": "Installment"},
    {"id": "t05", "accountId": "bca", "date": "2025-03-05T16:00:00+07:00", "amount": 1_000_000,
     "category": "Income", "description": "Salary"},
    {"id": "t06", "accountId": "bca", "date": "2025-03-14T16:00:00+07:00", "amount": -50_000,
     "category": "Food", "description": "Lunch"},
    {"id": "t07", "accountId": "bca", "date": "2025-03-14T20:00:00+07:00", "amount": -100_000,
     "category": "Shopping", "description": "Groceries"},
    {"id": "t10", "accountId": "gopay", "date": "2025-03-15T15:00:00+07:00", "amount": -25_000,
     "category": "Transport", "description": "Ride to office"},
]


def rupiah(amount) -> str:
    return f"Rp{amount:>14,.0f}"


def main():
    configure_logging(json=False)

    snapshot = snapshot_from_records(
        ACCOUNTS, TRANSACTIONS,
        as_of="2025-03-15T20:00:00+07:00",
        version=1,
        time_zone="Asia/Jakarta",
    )
    service = LedgerQueryService(snapshot, settings=CalendarSettings(_env_file=None))

    print("=" * 60)
    print("TODAY (from the account feed)")
    print("=" * 60)
    today = service.net_worth_breakdown_as_of(snapshot.as_of)
    print(f"  Assets:       {rupiah(today.assets)}")
    print(f"  Loans:        {rupiah(today.liabilities)}")
    print(f"  Net worth:    {rupiah(today.net_worth)}")

    report = service.reconcile()
    print(f"  Log reconciles with balances: {report.valid}")

    print("\n" + "=" * 60)
    print("QUESTION 1: Net worth at the end of February")
    print("=" * 60)
    print(f"  {rupiah(service.net_worth_as_of(date(2025, 2, 28)))}")

    print("\n" + "=" * 60)
    print("QUESTION 2: Valentine's Day")
    print("=" * 60)
    for tx in service.transactions_on_date(date(2025, 2, 14)):
        print(f"  {tx.timestamp.astimezone(service.zone):%H:%M}  {tx.description:<22} {rupiah(tx.amount)}")
    summary = service.day_summary(date(2025, 2, 14))
    print(f"  Spent {rupiah(summary.spent)}, balance {rupiah(summary.opening_balance)} -> "
          f"{rupiah(summary.closing_balance)} ({summary.change_pct:+.2f}%)")

    print("\n" + "=" * 60)
    print("QUESTION 3: February vs March")
    print("=" * 60)
    for ym in ("2025-02", "2025-03"):
        month = service.month_summary(ym)
        print(f"  {month.year_month}: in {rupiah(month.income)}  out {rupiah(month.outflow)}  "
              f"end {rupiah(month.end_balance)}  ({month.count} transactions)")
    print(f"  Active days in March: {', '.join(d.strftime('%d') for d in service.active_days('2025-03'))}")

    print("\n" + "=" * 60)
    print("QUESTION 4: The last seven days")
    print("=" * 60)
    for point in service.balance_history("7D"):
        print(f"  {point.day:%a %d %b}  {rupiah(point.balance)}  {rupiah(point.change)}")


if __name__ == "__main__":
    main()
