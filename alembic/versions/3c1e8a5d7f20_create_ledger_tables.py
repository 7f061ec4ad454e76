"""create ledger tables

Revision ID: 3c1e8a5d7f20
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "3c1e8a5d7f20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _scoped_columns():
    return [
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("business_id", sa.String(length=36), nullable=True),
        sa.Column("owner_id", sa.String(length=36), nullable=True),
    ]


def _scoped_indexes(table: str) -> None:
    op.create_index(f"ix_{table}_business_id", table, ["business_id"], unique=False)
    op.create_index(f"ix_{table}_owner_id", table, ["owner_id"], unique=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "businesses",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("owner_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_businesses_owner_id", "businesses", ["owner_id"], unique=False)
    op.create_table(
        "business_memberships",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("business_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("business_id", "user_id", name="uq_business_membership"),
    )
    op.create_index("ix_business_memberships_business_id", "business_memberships", ["business_id"], unique=False)
    op.create_index("ix_business_memberships_user_id", "business_memberships", ["user_id"], unique=False)

    for table in ("customers", "suppliers"):
        op.create_table(
            table,
            *_scoped_columns(),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("company", sa.String(length=200), nullable=True),
            sa.Column("previous_balance", sa.Float(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        _scoped_indexes(table)

    op.create_table(
        "bank_accounts",
        *_scoped_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("kind", sa.String(length=10), nullable=False),
        sa.Column("opening_balance", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _scoped_indexes("bank_accounts")

    op.create_table(
        "sales",
        *_scoped_columns(),
        sa.Column("customer_id", sa.String(length=36), nullable=True),
        sa.Column("customer_name", sa.String(length=200), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _scoped_indexes("sales")
    op.create_index("ix_sales_business_customer", "sales", ["business_id", "customer_id"], unique=False)

    op.create_table(
        "income",
        *_scoped_columns(),
        sa.Column("customer_id", sa.String(length=36), nullable=True),
        sa.Column("customer_name", sa.String(length=200), nullable=True),
        sa.Column("payment_method", sa.String(length=20), nullable=True),
        sa.Column("bank_name", sa.String(length=200), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _scoped_indexes("income")
    op.create_index("ix_income_business_customer", "income", ["business_id", "customer_id"], unique=False)

    op.create_table(
        "purchases",
        *_scoped_columns(),
        sa.Column("supplier_id", sa.String(length=36), nullable=True),
        sa.Column("supplier_name", sa.String(length=200), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _scoped_indexes("purchases")
    op.create_index("ix_purchases_business_supplier", "purchases", ["business_id", "supplier_id"], unique=False)

    op.create_table(
        "expenses",
        *_scoped_columns(),
        sa.Column("supplier_id", sa.String(length=36), nullable=True),
        sa.Column("supplier_name", sa.String(length=200), nullable=True),
        sa.Column("payment_method", sa.String(length=20), nullable=True),
        sa.Column("bank_name", sa.String(length=200), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _scoped_indexes("expenses")
    op.create_index("ix_expenses_business_supplier", "expenses", ["business_id", "supplier_id"], unique=False)

    op.create_table(
        "transfers",
        *_scoped_columns(),
        sa.Column("from_account", sa.String(length=200), nullable=False),
        sa.Column("to_account", sa.String(length=200), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _scoped_indexes("transfers")


def downgrade() -> None:
    for table in ("transfers", "expenses", "purchases", "income", "sales", "bank_accounts", "suppliers", "customers"):
        op.drop_index(f"ix_{table}_owner_id", table_name=table)
        op.drop_index(f"ix_{table}_business_id", table_name=table)
    op.drop_index("ix_expenses_business_supplier", table_name="expenses")
    op.drop_index("ix_purchases_business_supplier", table_name="purchases")
    op.drop_index("ix_income_business_customer", table_name="income")
    op.drop_index("ix_sales_business_customer", table_name="sales")
    for table in ("transfers", "expenses", "purchases", "income", "sales", "bank_accounts", "suppliers", "customers"):
        op.drop_table(table)
    op.drop_index("ix_business_memberships_user_id", table_name="business_memberships")
    op.drop_index("ix_business_memberships_business_id", table_name="business_memberships")
    op.drop_table("business_memberships")
    op.drop_index("ix_businesses_owner_id", table_name="businesses")
    op.drop_table("businesses")
    op.drop_table("users")
