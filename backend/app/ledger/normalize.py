"""
Ledger - transaction normalizer.

Responsibility:
- Turn tagged SourceRecords (sale, income, purchase, expense, transfer) into
  uniform LedgerEntry rows for one scoped account.

Design notes:
- PURE: no IO, source mappings are read and never written.
- One function per source kind; unknown kinds are reported, not guessed at.
- Amounts are lenient (legacy records); every coercion is reported as an issue.
- Debit/credit side depends on the account scope. Customer and supplier ledgers
  track an outstanding balance; bank and cash ledgers track money held.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .amounts import coerce_amount
from .dates import to_ledger_date
from .records import AccountContext, EntryKind, LedgerEntry, LedgerIssue, SourceRecord

logger = logging.getLogger(__name__)

Side = str  # "debit" | "credit"

OUTSTANDING_SIDES: Dict[str, Side] = {
    "SaleItem": "debit",
    "Purchase": "debit",
    "Payment": "credit",
    "Expense": "credit",
    "TransferIn": "credit",
    "TransferOut": "debit",
}

HOLDING_SIDES: Dict[str, Side] = {
    "SaleItem": "debit",
    "Payment": "debit",
    "TransferIn": "debit",
    "Purchase": "credit",
    "Expense": "credit",
    "TransferOut": "credit",
}

NOTE_FIELDS = ("details", "note", "notes", "remarks", "description")


def side_for(account: AccountContext, kind: str) -> Side:
    table = HOLDING_SIDES if account.scope in ("bank", "cash") else OUTSTANDING_SIDES
    return table[kind]


@dataclass
class NormalizationResult:
    entries: List[LedgerEntry] = field(default_factory=list)
    issues: List[LedgerIssue] = field(default_factory=list)


class _Normalizer:
    def __init__(self, account: AccountContext):
        self.account = account
        self.result = NormalizationResult()
        self._seq = 0

    def issue(self, rec: SourceRecord, code: str, detail: str) -> None:
        self.result.issues.append(LedgerIssue(source_id=_source_id(rec), code=code, detail=detail))

    def amount(self, rec: SourceRecord, value: Any, label: str) -> float:
        amt, ok = coerce_amount(value)
        if not ok:
            logger.warning("Coerced malformed %s to 0 on record %s: %r", label, _source_id(rec), value)
            self.issue(rec, "coerced_amount", f"{label}={value!r}")
        return amt

    def emit(
        self,
        *,
        entry_id: str,
        kind: EntryKind,
        rec: SourceRecord,
        particular: str,
        folio: str,
        amount: float,
        notes: str = "",
        display: Optional[Mapping[str, Any]] = None,
    ) -> None:
        side = side_for(self.account, kind)
        self.result.entries.append(
            LedgerEntry(
                id=entry_id,
                kind=kind,
                date=to_ledger_date(_record_date(rec.data)),
                particular=particular,
                folio=folio,
                debit=amount if side == "debit" else 0.0,
                credit=amount if side == "credit" else 0.0,
                notes=notes,
                source_id=_source_id(rec),
                sequence=self._seq,
                **dict(display or {}),
            )
        )
        self._seq += 1


def _source_id(rec: SourceRecord) -> str:
    return f"{rec.kind}:{rec.id}"


def _pick(data: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = data.get(name)
        if value is not None:
            return value
    return None


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    s = str(value).strip()
    return s if s else default


def _record_date(data: Mapping[str, Any]) -> Any:
    return _pick(data, "date", "createdAt", "created_at")


def _notes(data: Mapping[str, Any]) -> str:
    return _text(_pick(data, *NOTE_FIELDS))


def _items(data: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    items = data.get("items")
    if not isinstance(items, (list, tuple)):
        return []
    return [it if isinstance(it, Mapping) else {} for it in items]


def _unit_price(item: Mapping[str, Any]) -> Any:
    return _pick(item, "unitPrice", "unit_price", "rate")


def _display_number(value: Any) -> Optional[float]:
    # display columns only; malformed values are already reported by the amount path
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    amt, ok = coerce_amount(value)
    return amt if ok else None


def _line_display(item: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "qty": _display_number(item.get("qty")),
        "rate": _display_number(_unit_price(item)),
    }


def _total_qty(items: List[Mapping[str, Any]]) -> float:
    return sum(coerce_amount(it.get("qty"))[0] for it in items)


def _sale_line_amount(n: _Normalizer, rec: SourceRecord, item: Mapping[str, Any]) -> float:
    qty_raw = item.get("qty")
    price_raw = _unit_price(item)
    if item.get("amount") is not None and (qty_raw is None or price_raw is None):
        return n.amount(rec, item.get("amount"), "item.amount")
    qty = n.amount(rec, qty_raw, "item.qty")
    price = n.amount(rec, price_raw, "item.unitPrice")
    return qty * price


def _purchase_line_amount(n: _Normalizer, rec: SourceRecord, item: Mapping[str, Any]) -> float:
    # a stored line amount is authoritative (discounts, rounding on the supplier bill)
    if item.get("amount") is not None:
        return n.amount(rec, item.get("amount"), "item.amount")
    qty = n.amount(rec, item.get("qty"), "item.qty")
    price = n.amount(rec, _unit_price(item), "item.unitPrice")
    return qty * price


def normalize_sale(n: _Normalizer, rec: SourceRecord) -> None:
    data = rec.data
    folio = _text(_pick(data, "billNumber", "bill_number"), rec.id)
    items = _items(data)
    total_qty = _total_qty(items)
    for i, item in enumerate(items):
        n.emit(
            entry_id=f"sale-{rec.id}-{i}",
            kind="SaleItem",
            rec=rec,
            particular=_text(item.get("description"), "Item"),
            folio=folio,
            amount=_sale_line_amount(n, rec, item),
            display={**_line_display(item), "total_qty": total_qty},
        )


def normalize_income(n: _Normalizer, rec: SourceRecord) -> None:
    data = rec.data
    if n.account.scope in ("bank", "cash"):
        particular = _text(_pick(data, "customerName", "customer_name", "category"), "Income")
    else:
        particular = _text(data.get("details"), "Payment Received")
    n.emit(
        entry_id=f"pay-{rec.id}",
        kind="Payment",
        rec=rec,
        particular=particular,
        folio=_text(_pick(data, "billNumber", "bill_number"), "-"),
        amount=n.amount(rec, data.get("amount"), "amount"),
        notes=_notes(data),
    )


def normalize_purchase(n: _Normalizer, rec: SourceRecord) -> None:
    data = rec.data
    folio = _text(_pick(data, "billNumber", "bill_number"), "-")
    ch_no = _text(_pick(data, "chNo", "ch_no"))
    items = _items(data)
    if not items:
        n.emit(
            entry_id=f"purchase-{rec.id}",
            kind="Purchase",
            rec=rec,
            particular=_text(_pick(data, "details", "billNumber", "bill_number"), "Purchase"),
            folio=folio,
            amount=n.amount(rec, _pick(data, "total", "subtotal"), "total"),
            display={"ch_no": ch_no},
        )
        return
    for i, item in enumerate(items):
        n.emit(
            entry_id=f"purchase-{rec.id}-{i}",
            kind="Purchase",
            rec=rec,
            particular=_text(item.get("description"), folio if folio != "-" else "Purchase"),
            folio=folio,
            amount=_purchase_line_amount(n, rec, item),
            display={**_line_display(item), "size": _text(item.get("size")), "ch_no": ch_no},
        )


def normalize_expense(n: _Normalizer, rec: SourceRecord) -> None:
    data = rec.data
    default = "Payment" if n.account.scope == "supplier" else "Expense"
    n.emit(
        entry_id=f"expense-{rec.id}",
        kind="Expense",
        rec=rec,
        particular=_text(_pick(data, "category", "categoryName", "category_name"), default),
        folio=_text(_pick(data, "billNumber", "bill_number"), "-"),
        amount=n.amount(rec, data.get("amount"), "amount"),
        notes=_notes(data),
    )


def normalize_transfer(n: _Normalizer, rec: SourceRecord) -> None:
    data = rec.data
    src = _pick(data, "fromAccount", "from_account")
    dst = _pick(data, "toAccount", "to_account")
    incoming = n.account.matches(dst) or n.account.matches(_pick(data, "toAccountId", "to_account_id"))
    outgoing = n.account.matches(src) or n.account.matches(_pick(data, "fromAccountId", "from_account_id"))

    if incoming and outgoing:
        n.issue(rec, "self_transfer", "both legs name the scoped account")
        return
    if not incoming and not outgoing:
        n.issue(rec, "foreign_transfer", f"{src!r} -> {dst!r} does not touch {n.account.name!r}")
        return

    kind: EntryKind = "TransferIn" if incoming else "TransferOut"
    counter = src if incoming else dst
    n.emit(
        entry_id=f"transfer-{rec.id}",
        kind=kind,
        rec=rec,
        particular=_text(counter, "Transfer"),
        folio="-",
        amount=n.amount(rec, data.get("amount"), "amount"),
        notes=_notes(data),
    )


NORMALIZERS: Dict[str, Callable[[_Normalizer, SourceRecord], None]] = {
    "sale": normalize_sale,
    "income": normalize_income,
    "purchase": normalize_purchase,
    "expense": normalize_expense,
    "transfer": normalize_transfer,
}


def normalize_records(records: Iterable[SourceRecord], account: AccountContext) -> NormalizationResult:
    n = _Normalizer(account)
    for rec in records:
        fn = NORMALIZERS.get(rec.kind)
        if fn is None:
            logger.warning("Unrecognized source record kind=%r id=%s", rec.kind, rec.id)
            n.issue(rec, "unrecognized_record", f"kind={rec.kind!r}")
            continue
        fn(n, rec)
    return n.result
