"""
Ledger - core record types.

SourceRecord is the tagged input: one record fetched from a source collection,
untouched. LedgerEntry is the uniform unit every stage of the pipeline works on.

Invariants:
- LedgerEntry is frozen; later stages attach derived fields through
  dataclasses.replace and never mutate an entry in place.
- running_balance / grouping / visibility fields are outputs only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal, Mapping, Optional

SourceKind = Literal["sale", "income", "purchase", "expense", "transfer"]
SOURCE_KINDS = ("sale", "income", "purchase", "expense", "transfer")

EntryKind = Literal[
    "SaleItem",
    "Payment",
    "Purchase",
    "Expense",
    "TransferIn",
    "TransferOut",
    "OpeningRow",
]

AccountScope = Literal["customer", "supplier", "bank", "cash"]


class LedgerError(ValueError):
    pass


class InvalidDateRangeError(LedgerError):
    pass


@dataclass(frozen=True)
class SourceRecord:
    kind: str
    id: str
    data: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LedgerEntry:
    id: str
    kind: EntryKind
    date: Optional[date]
    particular: str
    folio: str
    debit: float
    credit: float
    notes: str = ""
    source_id: str = ""
    sequence: int = 0

    # line-item columns, display only; never part of the balance math
    qty: Optional[float] = None
    rate: Optional[float] = None
    total_qty: Optional[float] = None
    size: str = ""
    ch_no: str = ""

    # derived
    running_balance: Optional[float] = None
    group_key: Optional[str] = None
    is_group_terminal: bool = False
    group_subtotal: Optional[float] = None
    visible: bool = True
    subtotal_anchor: bool = False

    @property
    def net(self) -> float:
        return self.debit - self.credit


@dataclass(frozen=True)
class LedgerIssue:
    """
    Diagnostic raised while normalizing; never fatal to a build.
    """
    source_id: str
    code: str
    detail: str


@dataclass(frozen=True)
class AccountContext:
    """
    The scoped account a ledger is built for.

    base_balance is the externally stored starting figure (a customer's
    previous balance, a bank account's seeded opening balance).
    """
    account_id: str
    name: str
    scope: AccountScope
    base_balance: float = 0.0

    def matches(self, ref: Any) -> bool:
        if ref is None:
            return False
        key = str(ref).strip().casefold()
        if not key:
            return False
        return key == str(self.account_id).strip().casefold() or key == (self.name or "").strip().casefold()
