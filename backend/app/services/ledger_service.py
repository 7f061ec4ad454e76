from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from backend.app.api.config import strict_integrity_enabled
from backend.app.db import SessionLocal
from backend.app.ledger.engine import LedgerResult, LedgerWindow, build_ledger
from backend.app.ledger.grouping import group_totals
from backend.app.ledger.records import InvalidDateRangeError, LedgerEntry
from backend.app.ledger.running import LedgerIntegrityError, check_ledger_integrity
from backend.app.models import Business, User
from backend.app.services.ledger_sources import (
    LedgerSourceError,
    ScopeDeniedError,
    fetch_sources,
    load_account,
    plan_for,
    resolve_scope,
)

logger = logging.getLogger(__name__)

LEDGER_SCOPES = ("customer", "supplier", "account")


@dataclass(frozen=True)
class LedgerBuild:
    result: LedgerResult
    degraded: bool = False


def require_business(db: Session, business_id: str) -> Business:
    biz = db.get(Business, business_id)
    if not biz:
        raise HTTPException(status_code=404, detail="business not found")
    return biz


def verify_ledger(result: LedgerResult, *, strict: Optional[bool] = None) -> Optional[dict]:
    if strict is None:
        strict = strict_integrity_enabled()
    try:
        return check_ledger_integrity(result.entries, opening_balance=result.opening_balance)
    except LedgerIntegrityError as exc:
        if strict:
            raise
        logger.warning(
            "Ledger integrity check failed account_id=%s: %s", result.account.account_id, exc
        )
        return None


def account_ledger(
    db: Session,
    business_id: str,
    user: User,
    scope_kind: str,
    account_id: str,
    window: LedgerWindow,
    *,
    session_factory=SessionLocal,
) -> LedgerBuild:
    """
    Fetch, build and verify one account's statement.

    scope_kind: customer | supplier | account (bank or cash)
    """
    if scope_kind not in LEDGER_SCOPES:
        raise HTTPException(status_code=404, detail="unknown ledger type")

    try:
        window.validate()
    except InvalidDateRangeError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    biz = require_business(db, business_id)
    try:
        scope = resolve_scope(db, biz, user)
    except ScopeDeniedError:
        raise HTTPException(status_code=403, detail="membership required")

    account = load_account(db, scope, scope_kind, account_id)
    if account is None:
        raise HTTPException(status_code=404, detail=f"{scope_kind} not found")

    try:
        records = fetch_sources(plan_for(account), scope, account, session_factory=session_factory)
    except LedgerSourceError as exc:
        raise HTTPException(status_code=502, detail=f"could not load ledger: {exc.source} unavailable")

    result = build_ledger(records, account, window)
    try:
        verify_ledger(result)
    except LedgerIntegrityError as exc:
        raise HTTPException(status_code=500, detail=str(exc))

    return LedgerBuild(result=result, degraded=scope.degraded)


# -------------------------
# Serialization
# -------------------------

def _entry_dict(e: LedgerEntry, subtotals: Dict[Any, float]) -> Dict[str, Any]:
    return {
        "id": e.id,
        "kind": e.kind,
        "date": e.date,
        "particular": e.particular,
        "folio": e.folio,
        "debit": round(e.debit, 2),
        "credit": round(e.credit, 2),
        "notes": e.notes,
        "source_id": e.source_id or None,
        "running_balance": round(e.running_balance, 2) if e.running_balance is not None else None,
        "qty": e.qty,
        "rate": e.rate,
        "total_qty": e.total_qty,
        "size": e.size,
        "ch_no": e.ch_no,
        "group_key": e.group_key,
        "is_group_terminal": e.is_group_terminal,
        "group_subtotal": round(e.group_subtotal, 2) if e.group_subtotal is not None else None,
        "visible": e.visible,
        "display_subtotal": (
            round(subtotals[(e.kind, e.group_key)], 2) if e.subtotal_anchor else None
        ),
    }


def ledger_to_dict(build: LedgerBuild) -> Dict[str, Any]:
    res = build.result
    subtotals = group_totals(res.entries)
    rows: List[Dict[str, Any]] = [_entry_dict(e, subtotals) for e in res.entries]
    return {
        "account_id": res.account.account_id,
        "account_name": res.account.name,
        "account_scope": res.account.scope,
        "from_date": res.window.from_date,
        "to_date": res.window.to_date,
        "search": res.window.search or None,
        "opening_balance": round(res.opening_balance, 2),
        "closing_balance": round(res.closing_balance, 2),
        "final_balance": round(res.final_balance, 2),
        "total_debit": round(res.total_debit, 2),
        "total_credit": round(res.total_credit, 2),
        "degraded_view": build.degraded,
        "opening_row": _entry_dict(res.opening_row, subtotals),
        "rows": rows,
        "undated": [_entry_dict(e, subtotals) for e in res.undated],
        "issues": [
            {"source_id": i.source_id, "code": i.code, "detail": i.detail} for i in res.issues
        ],
    }
