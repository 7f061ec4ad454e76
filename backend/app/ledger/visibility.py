from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from .records import LedgerEntry


def normalize_query(search: Optional[str]) -> str:
    return (search or "").strip().casefold()


def matches(entry: LedgerEntry, query: str) -> bool:
    if not query:
        return True
    haystacks = (entry.particular, entry.folio, entry.notes)
    return any(query in (h or "").casefold() for h in haystacks)


def apply_visibility(entries: Sequence[LedgerEntry], search: Optional[str]) -> List[LedgerEntry]:
    """
    Mark rows visible or hidden for display.

    Rows are never dropped and balances, group keys and subtotals pass through
    untouched. The opening row always shows. Each invoice group anchors its subtotal
    on its last visible row; a fully hidden group shows no subtotal.
    """
    query = normalize_query(search)
    flagged = [
        replace(e, visible=e.kind == "OpeningRow" or matches(e, query), subtotal_anchor=False)
        for e in entries
    ]

    last_visible: Dict[Tuple[str, str], int] = {}
    for idx, e in enumerate(flagged):
        if e.group_key is not None and e.visible:
            last_visible[(e.kind, e.group_key)] = idx

    anchors = set(last_visible.values())
    return [replace(e, subtotal_anchor=True) if idx in anchors else e for idx, e in enumerate(flagged)]
