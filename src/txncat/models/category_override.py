"""Append-only record of manual category corrections."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from txncat.models.base import BaseModel


class CategoryOverride(BaseModel):
    """A human replacing a transaction's main category."""

    __tablename__ = "category_overrides"

    transaction_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    previous_main_category_id: Mapped[UUID | None] = mapped_column(nullable=True)
    new_main_category_id: Mapped[UUID] = mapped_column(nullable=False)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    overridden_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<CategoryOverride(transaction_id={self.transaction_id}, "
            f"from={self.previous_main_category_id}, to={self.new_main_category_id})>"
        )
