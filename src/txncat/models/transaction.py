"""Transaction model as seen by the categorization subsystem."""
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Date, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from txncat.models.base import TimestampedModel


class Transaction(TimestampedModel):
    """A financial transaction to be categorized.

    Accounts live outside this service, so account_id is a plain reference.
    main_category_id is a denormalized pointer kept in sync with the main
    link in transaction_categories.
    """

    __tablename__ = "transactions"

    account_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    txn_hash: Mapped[str | None] = mapped_column(String(128), nullable=True, unique=True)
    txn_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="ILS")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")
    enrichment_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    raw_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    main_category_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, amount={self.amount}, main_category_id={self.main_category_id})>"
