"""Category repository."""
from sqlalchemy import String, cast, select
from sqlalchemy.ext.asyncio import AsyncSession

from txncat.models.category import Category
from txncat.repositories.base import BaseRepository


class CategoryRepository(BaseRepository[Category]):
    """Repository for Category model."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Category)

    async def list_all(self) -> list[Category]:
        """All categories ordered by name."""
        result = await self.db.execute(select(Category).order_by(Category.name))
        return list(result.scalars().all())

    async def get_by_name(self, name: str) -> Category | None:
        """Exact, case-sensitive name lookup."""
        result = await self.db.execute(select(Category).where(Category.name == name))
        return result.scalar_one_or_none()

    async def ensure_unknown(self, name: str = "Unknown") -> Category:
        """Return the fallback category, creating it on first use."""
        existing = await self.get_by_name(name)
        if existing:
            return existing
        return await self.create(Category(name=name, keywords=[]))

    async def search_by_keyword(self, keyword: str) -> list[Category]:
        """Categories whose keyword list mentions the given text."""
        result = await self.db.execute(
            select(Category)
            .where(cast(Category.keywords, String).ilike(f"%{keyword}%"))
            .order_by(Category.name)
        )
        return list(result.scalars().all())
