"""Link rows between transactions and categories.

A transaction can carry several categories, but at most one of them is the
main category. The partial unique index enforces that at the database level.
"""
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from txncat.models.base import BaseModel
from txncat.models.category import Category


class TransactionCategory(BaseModel):
    """One transaction-to-category association carrying manual/main flags."""

    __tablename__ = "transaction_categories"

    transaction_id: Mapped[UUID] = mapped_column(
        ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False
    )
    category_id: Mapped[UUID] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"), nullable=False
    )
    is_manual: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_main: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("transaction_id", "category_id", name="uq_transaction_category"),
        Index("ix_transaction_categories_category", "category_id"),
        Index(
            "uq_transaction_categories_single_main",
            "transaction_id",
            unique=True,
            sqlite_where=text("is_main = 1"),
            postgresql_where=text("is_main"),
        ),
    )

    category: Mapped[Category] = relationship(Category, lazy="raise")

    @property
    def category_name(self) -> str | None:
        return self.category.name

    def __repr__(self) -> str:
        return (
            f"<TransactionCategory(transaction_id={self.transaction_id}, "
            f"category_id={self.category_id}, is_manual={self.is_manual}, is_main={self.is_main})>"
        )
