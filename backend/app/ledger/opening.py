from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from .records import LedgerEntry

OPENING_ROW_ID = "opening"


def opening_balance(
    entries: Iterable[LedgerEntry],
    from_date: Optional[date],
    base_balance: float = 0.0,
) -> float:
    """
    Balance immediately before from_date.

    Folds the whole unfiltered history, never just what is displayed. Without a
    from_date the window starts at the beginning of history and the base balance
    is returned as-is. Undated entries cannot be placed before anything and are
    skipped.
    """
    balance = float(base_balance or 0.0)
    if from_date is None:
        return balance
    for e in entries:
        if e.date is not None and e.date < from_date:
            balance += e.debit - e.credit
    return balance


def make_opening_row(balance: float, as_of: Optional[date], *, particular: str = "Opening Balance") -> LedgerEntry:
    return LedgerEntry(
        id=OPENING_ROW_ID,
        kind="OpeningRow",
        date=as_of,
        particular=particular,
        folio="-",
        debit=0.0,
        credit=0.0,
        sequence=-1,
        running_balance=balance,
    )
