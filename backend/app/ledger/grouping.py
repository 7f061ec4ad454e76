from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Sequence, Tuple

from .records import LedgerEntry

GROUPED_KINDS = ("SaleItem", "Purchase")


def group_key_for(entry: LedgerEntry) -> str:
    folio = (entry.folio or "").strip()
    if folio and folio != "-":
        return folio
    # purchases without a bill number group by their own record
    return entry.source_id


def group_invoices(entries: Sequence[LedgerEntry]) -> List[LedgerEntry]:
    """
    Cluster invoice line items by folio and put the subtotal on each group's last row.

    "Last" is the position in the already-sorted running ledger, so scattered lines of
    one invoice still resolve to a single terminal row. The subtotal is an annotation
    only; balances were folded before this stage and are left alone.
    """
    members: Dict[Tuple[str, str], List[int]] = {}
    keys: Dict[int, str] = {}
    for idx, e in enumerate(entries):
        if e.kind not in GROUPED_KINDS:
            continue
        key = group_key_for(e)
        keys[idx] = key
        members.setdefault((e.kind, key), []).append(idx)

    subtotals: Dict[int, float] = {}
    for idxs in members.values():
        subtotals[idxs[-1]] = sum(entries[i].debit + entries[i].credit for i in idxs)

    out: List[LedgerEntry] = []
    for idx, e in enumerate(entries):
        if idx not in keys:
            out.append(e)
            continue
        terminal = idx in subtotals
        out.append(
            replace(
                e,
                group_key=keys[idx],
                is_group_terminal=terminal,
                group_subtotal=subtotals[idx] if terminal else None,
            )
        )
    return out


def group_totals(entries: Sequence[LedgerEntry]) -> Dict[Tuple[str, str], float]:
    return {
        (e.kind, e.group_key): e.group_subtotal
        for e in entries
        if e.is_group_terminal and e.group_key is not None
    }
