"""
Ledger - running balance.

Responsibility:
- Select the entries inside the displayed window.
- Order them chronologically and fold a running balance seeded with the opening balance.

Design notes:
- Keep it deterministic: stable sort on date only, so same-day entries keep the order
  they arrived in.
- Entries are frozen; the fold returns annotated copies.
"""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import date
from typing import Iterable, List, Optional

from .records import LedgerEntry, LedgerError


class LedgerIntegrityError(LedgerError):
    pass


def in_range(d: Optional[date], from_date: Optional[date], to_date: Optional[date]) -> bool:
    # Whole days on both ends: an entry dated to_date is in range.
    if d is None:
        return False
    if from_date and d < from_date:
        return False
    if to_date and d > to_date:
        return False
    return True


def select_in_range(
    entries: Iterable[LedgerEntry],
    from_date: Optional[date],
    to_date: Optional[date],
) -> List[LedgerEntry]:
    return [e for e in entries if in_range(e.date, from_date, to_date)]


def sort_chronologically(entries: Iterable[LedgerEntry]) -> List[LedgerEntry]:
    return sorted(entries, key=lambda e: e.date)


def apply_running_balance(entries: Iterable[LedgerEntry], opening: float) -> List[LedgerEntry]:
    balance = float(opening)
    out: List[LedgerEntry] = []
    for e in sort_chronologically(entries):
        balance += e.debit - e.credit
        out.append(replace(e, running_balance=balance))
    return out


def final_balance(entries: List[LedgerEntry], opening: float) -> float:
    if not entries:
        return float(opening)
    return float(entries[-1].running_balance)


def check_ledger_integrity(
    entries: Iterable[LedgerEntry],
    *,
    opening_balance: float = 0.0,
) -> dict:
    """
    Side-effect-free check of a folded ledger.

    Invariants:
    - Amounts are finite and non-negative on both sides.
    - Rows are in ascending date order.
    - running_balance[i] == running_balance[i-1] + debit[i] - credit[i], seeded
      with the opening balance.
    """
    rows = [e for e in entries if e.kind != "OpeningRow"]
    last_balance = float(opening_balance or 0.0)
    prev_date: Optional[date] = None
    debit_total = 0.0
    credit_total = 0.0

    for idx, row in enumerate(rows):
        for label, value in (("debit", row.debit), ("credit", row.credit)):
            if not math.isfinite(value):
                raise LedgerIntegrityError(f"Invariant violation: non-finite {label} at row {idx}.")

        if row.date is None:
            raise LedgerIntegrityError(f"Invariant violation: undated row {idx} in running ledger.")
        if prev_date and row.date < prev_date:
            raise LedgerIntegrityError("Invariant violation: ledger rows are not in date order.")

        if row.running_balance is None:
            raise LedgerIntegrityError(f"Invariant violation: row {idx} has no running balance.")
        expected = last_balance + row.debit - row.credit
        if abs(float(row.running_balance) - expected) > 1e-6:
            raise LedgerIntegrityError(
                f"Invariant violation: running balance mismatch at row {idx}."
            )

        debit_total += row.debit
        credit_total += row.credit
        last_balance = float(row.running_balance)
        prev_date = row.date

    return {
        "rows": len(rows),
        "debit_total": round(debit_total, 2),
        "credit_total": round(credit_total, 2),
        "net_change": round(debit_total - credit_total, 2),
        "final_balance": round(last_balance, 2),
    }
