from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[2]


def _load_database_url(cli_url: str | None) -> str:
    if cli_url:
        return cli_url
    env_url = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URL")
    if env_url:
        return env_url
    ini_url = Config(str(ROOT / "alembic.ini")).get_main_option("sqlalchemy.url")
    if not ini_url:
        raise RuntimeError("No DATABASE_URL or sqlalchemy.url configured.")
    return ini_url


def _alembic_config(database_url: str) -> Config:
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", database_url)
    return config


def _reset_postgres_db(database_url: str, db_name_override: str | None) -> str:
    url = make_url(database_url)
    target_db = db_name_override or url.database
    if not target_db:
        raise RuntimeError("Postgres URL is missing a database name.")

    maintenance_db = url.set(database="postgres")
    engine = create_engine(maintenance_db, future=True, isolation_level="AUTOCOMMIT")
    try:
        with engine.connect() as conn:
            conn.execute(
                text(
                    """
                    SELECT pg_terminate_backend(pid)
                    FROM pg_stat_activity
                    WHERE datname = :db_name AND pid <> pg_backend_pid();
                    """
                ),
                {"db_name": target_db},
            )
            conn.execute(text(f"DROP DATABASE IF EXISTS \"{target_db}\""))
            conn.execute(text(f"CREATE DATABASE \"{target_db}\""))
    finally:
        engine.dispose()

    return url.set(database=target_db).render_as_string(hide_password=False)


def _reset_sqlite_db(database_url: str) -> str:
    url = make_url(database_url)
    if url.database and url.database != ":memory:":
        db_path = Path(url.database)
        if db_path.exists():
            db_path.unlink()
    return database_url


def _seed_demo_books(database_url: str) -> str:
    """
    One business, one customer with a few invoices and payments, one bank account.
    Returns the business id.
    """
    os.environ.setdefault("DATABASE_URL", database_url)
    from backend.app.models import (
        BankAccount,
        Business,
        BusinessMembership,
        Customer,
        Expense,
        Income,
        Sale,
        User,
    )

    engine = create_engine(database_url, future=True)
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = Session()
    try:
        owner = User(email="owner@example.com", name="owner")
        session.add(owner)
        session.flush()
        biz = Business(name="Demo Traders", owner_id=owner.id)
        session.add(biz)
        session.flush()
        session.add(BusinessMembership(business_id=biz.id, user_id=owner.id, role="admin"))

        scoped = {"business_id": biz.id, "owner_id": owner.id}
        customer = Customer(name="Acme Stores", previous_balance=1000.0, **scoped)
        bank = BankAccount(name="Meezan Bank", kind="bank", opening_balance=25000.0, **scoped)
        session.add_all([customer, bank])
        session.flush()

        session.add_all([
            Sale(customer_id=customer.id, customer_name=customer.name, payload={
                "date": "2026-01-05",
                "billNumber": "INV-001",
                "items": [
                    {"description": "Cotton roll", "qty": 10, "unitPrice": 120},
                    {"description": "Thread box", "qty": 2, "unitPrice": 75},
                ],
            }, **scoped),
            Income(customer_id=customer.id, customer_name=customer.name, payment_method="BANK",
                   bank_name=bank.name, payload={
                       "date": "2026-01-20",
                       "amount": 800,
                       "details": "Cheque 44120",
                   }, **scoped),
            Expense(payment_method="BANK", bank_name=bank.name, payload={
                "date": "2026-01-22",
                "amount": 300,
                "category": "Utilities",
            }, **scoped),
        ])
        session.commit()
        return biz.id
    finally:
        session.close()
        engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Reset the development database.")
    parser.add_argument("--url", help="Override the database URL.")
    parser.add_argument("--db-name", help="Override the database name (Postgres only).")
    parser.add_argument("--yes", action="store_true", help="Confirm destructive reset.")
    parser.add_argument("--seed", action="store_true", help="Seed a demo business with ledger data.")
    args = parser.parse_args()

    if not args.yes:
        print("Refusing to reset database without --yes.")
        return 1

    database_url = _load_database_url(args.url)
    url = make_url(database_url)

    if url.get_backend_name().startswith("postgres"):
        database_url = _reset_postgres_db(database_url, args.db_name)
    elif url.get_backend_name().startswith("sqlite"):
        database_url = _reset_sqlite_db(database_url)
    else:
        print(f"Unsupported database backend: {url.get_backend_name()}")
        return 1

    command.upgrade(_alembic_config(database_url), "head")

    if args.seed:
        business_id = _seed_demo_books(database_url)
        print(f"Seeded business_id={business_id}")

    print("DONE")
    print(f"Database URL: {make_url(database_url).render_as_string(hide_password=True)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
