# backend/app/api/routes/ledger.py
from __future__ import annotations

from datetime import date as Date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user
from backend.app.db import get_db
from backend.app.ledger.engine import LedgerWindow
from backend.app.models import User
from backend.app.services import ledger_service

router = APIRouter(prefix="/api/ledger", tags=["ledger"])


# -------------------------
# Schemas
# -------------------------

class LedgerRowOut(BaseModel):
    id: str
    kind: str
    date: Optional[Date] = None
    particular: str
    folio: str
    debit: float
    credit: float
    notes: str = ""
    source_id: Optional[str] = None
    running_balance: Optional[float] = None

    qty: Optional[float] = None
    rate: Optional[float] = None
    total_qty: Optional[float] = None
    size: str = ""
    ch_no: str = ""

    group_key: Optional[str] = None
    is_group_terminal: bool = False
    group_subtotal: Optional[float] = None

    visible: bool = True
    display_subtotal: Optional[float] = None


class LedgerIssueOut(BaseModel):
    source_id: str
    code: str
    detail: str


class LedgerOut(BaseModel):
    account_id: str
    account_name: str
    account_scope: str
    from_date: Optional[Date] = None
    to_date: Optional[Date] = None
    search: Optional[str] = None

    opening_balance: float
    closing_balance: float
    final_balance: float
    total_debit: float
    total_credit: float
    degraded_view: bool

    opening_row: LedgerRowOut
    rows: List[LedgerRowOut]
    undated: List[LedgerRowOut]
    issues: List[LedgerIssueOut]


# -------------------------
# Endpoints
# -------------------------

def _ledger(
    db: Session,
    user: User,
    business_id: str,
    scope_kind: str,
    account_id: str,
    from_date: Optional[Date],
    to_date: Optional[Date],
    search: Optional[str],
):
    window = LedgerWindow(from_date=from_date, to_date=to_date, search=search)
    build = ledger_service.account_ledger(db, business_id, user, scope_kind, account_id, window)
    return ledger_service.ledger_to_dict(build)


@router.get("/business/{business_id}/customers/{customer_id}", response_model=LedgerOut)
def customer_ledger(
    business_id: str,
    customer_id: str,
    from_date: Optional[Date] = Query(None, description="Inclusive start date (YYYY-MM-DD)"),
    to_date: Optional[Date] = Query(None, description="Inclusive end date (YYYY-MM-DD)"),
    search: Optional[str] = Query(None, description="Matches particular, folio or notes"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _ledger(db, user, business_id, "customer", customer_id, from_date, to_date, search)


@router.get("/business/{business_id}/suppliers/{supplier_id}", response_model=LedgerOut)
def supplier_ledger(
    business_id: str,
    supplier_id: str,
    from_date: Optional[Date] = Query(None, description="Inclusive start date (YYYY-MM-DD)"),
    to_date: Optional[Date] = Query(None, description="Inclusive end date (YYYY-MM-DD)"),
    search: Optional[str] = Query(None, description="Matches particular, folio or notes"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _ledger(db, user, business_id, "supplier", supplier_id, from_date, to_date, search)


@router.get("/business/{business_id}/accounts/{account_id}", response_model=LedgerOut)
def account_ledger(
    business_id: str,
    account_id: str,
    from_date: Optional[Date] = Query(None, description="Inclusive start date (YYYY-MM-DD)"),
    to_date: Optional[Date] = Query(None, description="Inclusive end date (YYYY-MM-DD)"),
    search: Optional[str] = Query(None, description="Matches particular, folio or notes"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    # bank and cash accounts share one ledger shape
    return _ledger(db, user, business_id, "account", account_id, from_date, to_date, search)
