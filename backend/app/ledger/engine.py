"""
Ledger - statement pipeline.

Responsibility:
- Build one account's statement from already-fetched source records:
  normalize -> opening balance (full history) -> running balance (window)
  -> invoice grouping -> display visibility.

Design notes:
- Every input is an explicit parameter; callers rebuild from scratch whenever the
  account, the window or the records change.
- Same inputs always produce an equal LedgerResult.
- No tenancy, storage or rendering concerns live here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Tuple

from .grouping import group_invoices
from .normalize import normalize_records
from .opening import make_opening_row, opening_balance
from .records import AccountContext, InvalidDateRangeError, LedgerEntry, LedgerIssue, SourceRecord
from .running import apply_running_balance, final_balance, select_in_range
from .visibility import apply_visibility

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerWindow:
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    search: Optional[str] = None

    def validate(self) -> None:
        if self.from_date and self.to_date and self.to_date < self.from_date:
            raise InvalidDateRangeError(
                f"to_date {self.to_date.isoformat()} is before from_date {self.from_date.isoformat()}"
            )


@dataclass(frozen=True)
class LedgerResult:
    account: AccountContext
    window: LedgerWindow
    opening_balance: float
    closing_balance: float
    final_balance: float
    total_debit: float
    total_credit: float
    opening_row: LedgerEntry
    entries: Tuple[LedgerEntry, ...] = ()
    undated: Tuple[LedgerEntry, ...] = ()
    issues: Tuple[LedgerIssue, ...] = field(default_factory=tuple)

    @property
    def visible_entries(self) -> List[LedgerEntry]:
        return [e for e in self.entries if e.visible]


def split_undated(entries: Iterable[LedgerEntry]) -> Tuple[List[LedgerEntry], List[LedgerEntry]]:
    dated: List[LedgerEntry] = []
    undated: List[LedgerEntry] = []
    for e in entries:
        (dated if e.date is not None else undated).append(e)
    return dated, undated


def closing_balance(entries: Iterable[LedgerEntry], opening: float) -> float:
    visible = [e for e in entries if e.visible]
    if not visible:
        return float(opening)
    return float(visible[-1].running_balance)


def build_ledger(
    records: Iterable[SourceRecord],
    account: AccountContext,
    window: LedgerWindow,
) -> LedgerResult:
    window.validate()

    normalized = normalize_records(records, account)
    dated, undated = split_undated(normalized.entries)

    issues = list(normalized.issues)
    if undated:
        logger.warning(
            "Excluded %d undated entries from ledger account_id=%s", len(undated), account.account_id
        )
        issues.extend(
            LedgerIssue(source_id=e.source_id, code="undated", detail=f"entry {e.id} has no readable date")
            for e in undated
        )

    opening = opening_balance(dated, window.from_date, account.base_balance)
    folded = apply_running_balance(select_in_range(dated, window.from_date, window.to_date), opening)
    rows = apply_visibility(group_invoices(folded), window.search)

    as_of = window.from_date or (rows[0].date if rows else None)

    return LedgerResult(
        account=account,
        window=window,
        opening_balance=opening,
        closing_balance=closing_balance(rows, opening),
        final_balance=final_balance(rows, opening),
        total_debit=sum(e.debit for e in rows),
        total_credit=sum(e.credit for e in rows),
        opening_row=make_opening_row(opening, as_of),
        entries=tuple(rows),
        undated=tuple(undated),
        issues=tuple(issues),
    )
