"""Category administration."""
import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from txncat.config import settings
from txncat.core.exceptions import (
    CategoryNotFoundError,
    DuplicateCategoryNameError,
    ProtectedCategoryError,
)
from txncat.models.category import Category
from txncat.repositories.category import CategoryRepository
from txncat.repositories.transaction import TransactionRepository

logger = logging.getLogger(__name__)


class CategoryService:
    """Service layer for category CRUD."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.category_repo = CategoryRepository(db)
        self.transaction_repo = TransactionRepository(db)

    async def list_categories(self, keyword: str | None = None) -> list[Category]:
        """All categories by name, or those with a keyword containing ``keyword``."""
        if keyword:
            return await self.category_repo.search_by_keyword(keyword.strip())
        return await self.category_repo.list_all()

    async def get_main_transaction_ids(
        self, category_id: UUID, skip: int = 0, limit: int = 100
    ) -> list[UUID]:
        await self.get_category(category_id)
        transactions = await self.transaction_repo.get_by_main_category(category_id, skip, limit)
        return [txn.id for txn in transactions]

    async def get_category(self, category_id: UUID) -> Category:
        category = await self.category_repo.get_by_id(category_id)
        if category is None:
            raise CategoryNotFoundError(details={"category_id": str(category_id)})
        return category

    async def create_category(
        self,
        name: str,
        keywords: Sequence[str] = (),
        parent_id: UUID | None = None,
    ) -> Category:
        """Create a category with a unique name.

        Raises:
            DuplicateCategoryNameError: The name is taken
            CategoryNotFoundError: ``parent_id`` does not exist
        """
        name = name.strip()
        if await self.category_repo.get_by_name(name):
            raise DuplicateCategoryNameError(details={"name": name})
        if parent_id is not None:
            await self.get_category(parent_id)

        category = await self.category_repo.create(
            Category(name=name, keywords=_clean_keywords(keywords), parent_id=parent_id)
        )
        logger.info("Category created", extra={"category_id": str(category.id)})
        return category

    async def update_category(self, category_id: UUID, data: dict) -> Category:
        """Apply a partial update. Renaming the fallback category is refused."""
        category = await self.get_category(category_id)
        data = {k: v for k, v in data.items() if v is not None or k == "parent_id"}

        if "name" in data:
            name = data["name"].strip()
            if name != category.name:
                if self._is_protected(category):
                    raise ProtectedCategoryError(details={"category_id": str(category_id)})
                if await self.category_repo.get_by_name(name):
                    raise DuplicateCategoryNameError(details={"name": name})
            data["name"] = name
        if "keywords" in data:
            data["keywords"] = _clean_keywords(data["keywords"])
        if data.get("parent_id") is not None:
            if data["parent_id"] == category_id:
                raise ProtectedCategoryError(
                    details={"category_id": str(category_id), "reason": "self_parent"}
                )
            await self.get_category(data["parent_id"])

        updated = await self.category_repo.update(category_id, data)
        logger.info("Category updated", extra={"category_id": str(category_id)})
        return updated

    async def delete_category(self, category_id: UUID) -> None:
        """Delete a category. Its links cascade away."""
        category = await self.get_category(category_id)
        if self._is_protected(category):
            raise ProtectedCategoryError(details={"category_id": str(category_id)})
        await self.category_repo.delete(category_id)
        logger.info("Category deleted", extra={"category_id": str(category_id)})

    @staticmethod
    def _is_protected(category: Category) -> bool:
        return category.name.lower() == settings.unknown_category_name.lower()


def _clean_keywords(keywords: Sequence[str]) -> list[str]:
    cleaned = []
    for keyword in keywords:
        keyword = keyword.strip()
        if keyword and keyword not in cleaned:
            cleaned.append(keyword)
    return cleaned
