"""Append-only audit of every automatic categorization decision."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from txncat.models.base import BaseModel


class CategoryScore(BaseModel):
    """Audit record of the scores and decision behind one classification.

    Category ids are stored without foreign keys so the audit trail survives
    category deletion.
    """

    __tablename__ = "category_scores"

    transaction_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    account_id: Mapped[UUID | None] = mapped_column(nullable=True)
    vendor_id: Mapped[str] = mapped_column(String(100), nullable=False, default="unknown")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description_top_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    description_top_category_id: Mapped[UUID | None] = mapped_column(nullable=True)
    vendor_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    vendor_category_id: Mapped[UUID | None] = mapped_column(nullable=True)
    main_category_id: Mapped[UUID | None] = mapped_column(nullable=True)
    decision_source: Mapped[str] = mapped_column(String(20), nullable=False)
    decision_confidence: Mapped[str] = mapped_column(String(10), nullable=False)
    decision_reason: Mapped[str] = mapped_column(Text, nullable=False)
    calculated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_category_scores_vendor_source", "vendor_id", "decision_source"),
    )

    def __repr__(self) -> str:
        return (
            f"<CategoryScore(transaction_id={self.transaction_id}, "
            f"source={self.decision_source}, confidence={self.decision_confidence})>"
        )
