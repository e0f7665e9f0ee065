"""Category model: a spending category with its matching keywords."""
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from txncat.models.base import TimestampedModel


class Category(TimestampedModel):
    """Spending category scored against transaction descriptions."""

    __tablename__ = "categories"

    # Case-sensitive: "Food" and "food" are distinct categories.
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    parent_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    keywords: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name}, keywords={len(self.keywords or [])})>"
