"""Create categories, transactions, links and audit tables.

Revision ID: 5e1a9c3d7b20
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5e1a9c3d7b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("parent_id", sa.Uuid(), nullable=True),
        sa.Column("keywords", sa.JSON(), nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["parent_id"], ["categories.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "transactions",
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column("txn_hash", sa.String(length=128), nullable=True),
        sa.Column("txn_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("enrichment_data", sa.JSON(), nullable=True),
        sa.Column("raw_data", sa.JSON(), nullable=True),
        sa.Column("main_category_id", sa.Uuid(), nullable=True),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["main_category_id"], ["categories.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("txn_hash"),
    )
    op.create_index("ix_transactions_account_id", "transactions", ["account_id"])
    op.create_index("ix_transactions_txn_date", "transactions", ["txn_date"])
    op.create_index("ix_transactions_main_category_id", "transactions", ["main_category_id"])

    op.create_table(
        "transaction_categories",
        sa.Column("transaction_id", sa.Uuid(), nullable=False),
        sa.Column("category_id", sa.Uuid(), nullable=False),
        sa.Column("is_manual", sa.Boolean(), nullable=False),
        sa.Column("is_main", sa.Boolean(), nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["transaction_id"], ["transactions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("transaction_id", "category_id", name="uq_transaction_category"),
    )
    op.create_index(
        "ix_transaction_categories_category", "transaction_categories", ["category_id"]
    )
    # At most one main category per transaction.
    op.create_index(
        "uq_transaction_categories_single_main",
        "transaction_categories",
        ["transaction_id"],
        unique=True,
        postgresql_where=sa.text("is_main"),
        sqlite_where=sa.text("is_main = 1"),
    )

    # Audit tables carry no foreign keys so history survives deletions.
    op.create_table(
        "category_scores",
        sa.Column("transaction_id", sa.Uuid(), nullable=False),
        sa.Column("account_id", sa.Uuid(), nullable=True),
        sa.Column("vendor_id", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("description_top_score", sa.Float(), nullable=False),
        sa.Column("description_top_category_id", sa.Uuid(), nullable=True),
        sa.Column("vendor_score", sa.Float(), nullable=False),
        sa.Column("vendor_category_id", sa.Uuid(), nullable=True),
        sa.Column("main_category_id", sa.Uuid(), nullable=True),
        sa.Column("decision_source", sa.String(length=20), nullable=False),
        sa.Column("decision_confidence", sa.String(length=10), nullable=False),
        sa.Column("decision_reason", sa.Text(), nullable=False),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_category_scores_transaction_id", "category_scores", ["transaction_id"])
    op.create_index(
        "ix_category_scores_vendor_source", "category_scores", ["vendor_id", "decision_source"]
    )

    op.create_table(
        "category_overrides",
        sa.Column("transaction_id", sa.Uuid(), nullable=False),
        sa.Column("previous_main_category_id", sa.Uuid(), nullable=True),
        sa.Column("new_main_category_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(length=100), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("overridden_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_category_overrides_transaction_id", "category_overrides", ["transaction_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_category_overrides_transaction_id", table_name="category_overrides")
    op.drop_table("category_overrides")
    op.drop_index("ix_category_scores_vendor_source", table_name="category_scores")
    op.drop_index("ix_category_scores_transaction_id", table_name="category_scores")
    op.drop_table("category_scores")
    op.drop_index("uq_transaction_categories_single_main", table_name="transaction_categories")
    op.drop_index("ix_transaction_categories_category", table_name="transaction_categories")
    op.drop_table("transaction_categories")
    op.drop_index("ix_transactions_main_category_id", table_name="transactions")
    op.drop_index("ix_transactions_txn_date", table_name="transactions")
    op.drop_index("ix_transactions_account_id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("categories")
