from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from backend.app.api.config import ledger_fetch_workers, owner_fallback_enabled
from backend.app.db import SessionLocal, session_scope
from backend.app.ledger.records import AccountContext, SourceRecord
from backend.app.models import (
    BankAccount,
    Business,
    BusinessMembership,
    Customer,
    Expense,
    Income,
    Purchase,
    Sale,
    Supplier,
    Transfer,
    User,
)

logger = logging.getLogger(__name__)


class ScopeDeniedError(PermissionError):
    pass


class LedgerSourceError(RuntimeError):
    def __init__(self, source: str, cause: BaseException):
        super().__init__(f"ledger source '{source}' failed: {cause}")
        self.source = source
        self.cause = cause


# -------------------------
# Query scope
# -------------------------

@dataclass(frozen=True)
class QueryScope:
    """
    Which rows a ledger may read.

    Primary scope reads the whole business. The fallback reads only rows the user
    owns and flags the view as degraded so callers can say so.
    """
    column: str  # "business_id" | "owner_id"
    value: str
    degraded: bool = False

    def where(self, model):
        return getattr(model, self.column) == self.value


def has_business_access(db: Session, business: Business, user: User) -> bool:
    if business.owner_id and business.owner_id == user.id:
        return True
    membership = (
        db.execute(
            select(BusinessMembership).where(
                BusinessMembership.business_id == business.id,
                BusinessMembership.user_id == user.id,
            )
        )
        .scalars()
        .first()
    )
    return membership is not None


def resolve_scope(
    db: Session,
    business: Business,
    user: User,
    *,
    allow_fallback: Optional[bool] = None,
) -> QueryScope:
    if has_business_access(db, business, user):
        return QueryScope(column="business_id", value=business.id)

    if allow_fallback is None:
        allow_fallback = owner_fallback_enabled()
    if not allow_fallback:
        raise ScopeDeniedError(f"user {user.id} has no access to business {business.id}")

    logger.warning(
        "Business scope denied for user_id=%s business_id=%s; falling back to owner scope",
        user.id,
        business.id,
    )
    return QueryScope(column="owner_id", value=user.id, degraded=True)


# -------------------------
# Accounts
# -------------------------

def _norm_name(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def load_account(db: Session, scope: QueryScope, scope_kind: str, account_id: str) -> Optional[AccountContext]:
    if scope_kind == "customer":
        row = db.execute(select(Customer).where(Customer.id == account_id, scope.where(Customer))).scalars().first()
        if row is None:
            return None
        return AccountContext(row.id, row.name, "customer", float(row.previous_balance or 0.0))

    if scope_kind == "supplier":
        row = db.execute(select(Supplier).where(Supplier.id == account_id, scope.where(Supplier))).scalars().first()
        if row is None:
            return None
        return AccountContext(row.id, row.name, "supplier", float(row.previous_balance or 0.0))

    if scope_kind == "account":
        row = db.execute(
            select(BankAccount).where(BankAccount.id == account_id, scope.where(BankAccount))
        ).scalars().first()
        if row is None:
            return None
        kind = "cash" if (row.kind or "").lower() == "cash" else "bank"
        return AccountContext(row.id, row.name, kind, float(row.opening_balance or 0.0))

    raise ValueError(f"unknown ledger scope: {scope_kind!r}")


# -------------------------
# Source fetchers
# -------------------------

Fetcher = Callable[[Session, QueryScope, AccountContext], List[SourceRecord]]


def _party_match(id_col, name_col, account: AccountContext):
    # Legacy rows only carry the party name; match those by normalized name.
    return or_(
        id_col == account.account_id,
        and_(id_col.is_(None), func.lower(func.trim(name_col)) == _norm_name(account.name)),
    )


def _method_match(model, account: AccountContext):
    if account.scope == "cash":
        return func.upper(model.payment_method) == "CASH"
    return and_(
        func.upper(model.payment_method) == "BANK",
        func.lower(func.trim(model.bank_name)) == _norm_name(account.name),
    )


def _records(db: Session, kind: str, stmt) -> List[SourceRecord]:
    rows = db.execute(stmt).scalars().all()
    return [SourceRecord(kind=kind, id=row.id, data=dict(row.payload or {})) for row in rows]


def _ordered(model, stmt):
    return stmt.order_by(model.created_at.asc(), model.id.asc())


def fetch_customer_sales(db: Session, scope: QueryScope, account: AccountContext) -> List[SourceRecord]:
    stmt = select(Sale).where(scope.where(Sale), _party_match(Sale.customer_id, Sale.customer_name, account))
    return _records(db, "sale", _ordered(Sale, stmt))


def fetch_customer_payments(db: Session, scope: QueryScope, account: AccountContext) -> List[SourceRecord]:
    stmt = select(Income).where(scope.where(Income), _party_match(Income.customer_id, Income.customer_name, account))
    return _records(db, "income", _ordered(Income, stmt))


def fetch_supplier_purchases(db: Session, scope: QueryScope, account: AccountContext) -> List[SourceRecord]:
    stmt = select(Purchase).where(
        scope.where(Purchase), _party_match(Purchase.supplier_id, Purchase.supplier_name, account)
    )
    return _records(db, "purchase", _ordered(Purchase, stmt))


def fetch_supplier_payments(db: Session, scope: QueryScope, account: AccountContext) -> List[SourceRecord]:
    stmt = select(Expense).where(
        scope.where(Expense), _party_match(Expense.supplier_id, Expense.supplier_name, account)
    )
    return _records(db, "expense", _ordered(Expense, stmt))


def fetch_account_income(db: Session, scope: QueryScope, account: AccountContext) -> List[SourceRecord]:
    stmt = select(Income).where(scope.where(Income), _method_match(Income, account))
    return _records(db, "income", _ordered(Income, stmt))


def fetch_account_expenses(db: Session, scope: QueryScope, account: AccountContext) -> List[SourceRecord]:
    stmt = select(Expense).where(scope.where(Expense), _method_match(Expense, account))
    return _records(db, "expense", _ordered(Expense, stmt))


def fetch_account_transfers(db: Session, scope: QueryScope, account: AccountContext) -> List[SourceRecord]:
    name = _norm_name(account.name)
    stmt = select(Transfer).where(
        scope.where(Transfer),
        or_(
            func.lower(func.trim(Transfer.from_account)) == name,
            func.lower(func.trim(Transfer.to_account)) == name,
            Transfer.from_account == account.account_id,
            Transfer.to_account == account.account_id,
        ),
    )
    return _records(db, "transfer", _ordered(Transfer, stmt))


FETCH_PLANS: Dict[str, Tuple[Tuple[str, Fetcher], ...]] = {
    "customer": (
        ("sales", fetch_customer_sales),
        ("income", fetch_customer_payments),
    ),
    "supplier": (
        ("purchases", fetch_supplier_purchases),
        ("expenses", fetch_supplier_payments),
    ),
    "bank": (
        ("income", fetch_account_income),
        ("expenses", fetch_account_expenses),
        ("transfers", fetch_account_transfers),
    ),
}
FETCH_PLANS["cash"] = FETCH_PLANS["bank"]


def plan_for(account: AccountContext) -> Tuple[Tuple[str, Fetcher], ...]:
    return FETCH_PLANS[account.scope]


def _run_fetch(fetcher: Fetcher, session_factory, scope: QueryScope, account: AccountContext) -> List[SourceRecord]:
    with session_scope(session_factory) as db:
        return fetcher(db, scope, account)


def fetch_sources(
    plan: Sequence[Tuple[str, Fetcher]],
    scope: QueryScope,
    account: AccountContext,
    *,
    session_factory=SessionLocal,
    workers: Optional[int] = None,
) -> List[SourceRecord]:
    """
    Run every source query of a plan concurrently and wait for all of them.

    Each fetch gets its own session. If any fetch fails the whole set is abandoned:
    a ledger missing one source would balance to the wrong figure. Records come back
    in plan order, each source keeping its own arrival order.
    """
    if not plan:
        return []

    results: Dict[str, List[SourceRecord]] = {}
    max_workers = min(workers or ledger_fetch_workers(), len(plan))

    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        future_map = {
            ex.submit(_run_fetch, fetcher, session_factory, scope, account): name
            for name, fetcher in plan
        }
        for fut in as_completed(future_map):
            name = future_map[fut]
            try:
                results[name] = fut.result()
            except Exception as exc:
                for other in future_map:
                    other.cancel()
                logger.warning(
                    "Ledger source fetch failed source=%s account_id=%s: %s",
                    name,
                    account.account_id,
                    exc,
                )
                raise LedgerSourceError(name, exc) from exc

    return [rec for name, _ in plan for rec in results[name]]
