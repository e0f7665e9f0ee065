"""Manual category management for transactions."""
import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from txncat.config import settings
from txncat.core.exceptions import (
    CategoryLinkNotFoundError,
    CategoryNotFoundError,
    TransactionNotFoundError,
)
from txncat.models.category import Category
from txncat.models.transaction import Transaction
from txncat.models.transaction_category import TransactionCategory
from txncat.repositories.category import CategoryRepository
from txncat.repositories.category_score import CategoryScoreRepository
from txncat.repositories.transaction import TransactionRepository
from txncat.repositories.transaction_category import TransactionCategoryRepository
from txncat.schemas.internal import OverrideRecord
from txncat.services.category import CategoryService
from txncat.services.locks import TransactionLocks, transaction_locks

logger = logging.getLogger(__name__)


class TransactionService:
    """Service layer for a transaction's category links."""

    def __init__(self, db: AsyncSession, locks: TransactionLocks | None = None):
        """Initialize transaction service.

        Args:
            db: Database session
            locks: Per-transaction lock registry
        """
        self.db = db
        self.locks = locks or transaction_locks
        self.category_repo = CategoryRepository(db)
        self.transaction_repo = TransactionRepository(db)
        self.link_repo = TransactionCategoryRepository(db)
        self.score_repo = CategoryScoreRepository(db)

    async def get_transaction(self, transaction_id: UUID) -> Transaction:
        """Get a transaction or raise TransactionNotFoundError."""
        transaction = await self.transaction_repo.get_by_id(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(details={"transaction_id": str(transaction_id)})
        return transaction

    async def get_categories(self, transaction_id: UUID) -> list[TransactionCategory]:
        """Links of an existing transaction, main first."""
        await self.get_transaction(transaction_id)
        return await self.link_repo.get_by_transaction_id(transaction_id)

    async def attach_categories(
        self,
        transaction_id: UUID,
        category_ids: Sequence[UUID],
        is_manual: bool = True,
        mark_first_as_main: bool = False,
    ) -> list[TransactionCategory]:
        """Attach categories that are not linked yet.

        An empty list attaches the Unknown category as an automatic main
        link, so a later sweep may upgrade it.

        Args:
            transaction_id: Transaction ID
            category_ids: Categories to attach, in order
            is_manual: Flag the new links as human decisions
            mark_first_as_main: Make the first category the main one

        Returns:
            All links of the transaction after the change

        Raises:
            TransactionNotFoundError: Unknown transaction
            CategoryNotFoundError: One of the categories does not exist
        """
        if not category_ids:
            unknown = await self.category_repo.ensure_unknown(settings.unknown_category_name)
            category_ids, is_manual, mark_first_as_main = [unknown.id], False, True

        for category_id in category_ids:
            await self._get_category(category_id)

        async with self.locks.hold(transaction_id):
            await self.get_transaction(transaction_id)
            for index, category_id in enumerate(category_ids):
                is_main = mark_first_as_main and index == 0
                if await self.link_repo.has_category(transaction_id, category_id):
                    if is_main:
                        await self.link_repo.set_as_main(transaction_id, category_id)
                    continue
                await self.link_repo.attach(
                    transaction_id, category_id, is_manual=is_manual, is_main=is_main
                )
            main = await self.link_repo.get_main_category(transaction_id)
            await self.transaction_repo.set_main_category_id(
                transaction_id, main.category_id if main else None
            )
            await self.db.commit()

        return await self.link_repo.get_by_transaction_id(transaction_id)

    async def set_main_category(
        self,
        transaction_id: UUID,
        category_id: UUID,
        user_id: str,
        reason: str | None = None,
    ) -> TransactionCategory:
        """Make a category the transaction's main one on behalf of a user.

        The category is attached as a manual link when missing, and an
        existing link is flagged manual so later sweeps leave it alone. An
        override record is written whenever the main category changes.

        Raises:
            CategoryNotFoundError: The category does not exist
            TransactionNotFoundError: The transaction does not exist
        """
        await self._get_category(category_id)

        async with self.locks.hold(transaction_id):
            transaction = await self.get_transaction(transaction_id)
            current = await self.link_repo.get_main_category(transaction_id)
            previous_id = current.category_id if current else transaction.main_category_id

            if await self.link_repo.has_category(transaction_id, category_id):
                await self.link_repo.mark_manual(transaction_id, category_id)
            else:
                await self.link_repo.attach(transaction_id, category_id, is_manual=True)
            link = await self.link_repo.set_as_main(transaction_id, category_id)
            await self.transaction_repo.set_main_category_id(transaction_id, category_id)

            if previous_id != category_id:
                await self.score_repo.record_override(
                    OverrideRecord(
                        transaction_id=transaction_id,
                        previous_main_category_id=previous_id,
                        new_main_category_id=category_id,
                        user_id=user_id,
                        reason=reason,
                        timestamp=datetime.now(timezone.utc),
                    )
                )
            await self.db.commit()

        logger.info(
            "Main category set",
            extra={
                "transaction_id": str(transaction_id),
                "category_id": str(category_id),
                "previous_category_id": str(previous_id) if previous_id else None,
                "user_id": user_id,
            },
        )
        return link

    async def assign_new_category(
        self,
        transaction_id: UUID,
        name: str,
        keywords: Sequence[str] = (),
        user_id: str = "anonymous",
        reason: str | None = None,
    ) -> tuple[Category, TransactionCategory]:
        """Create a category and make it the transaction's main category."""
        await self.get_transaction(transaction_id)
        category = await CategoryService(self.db).create_category(name, keywords)
        link = await self.set_main_category(transaction_id, category.id, user_id, reason)
        return category, link

    async def detach_category(self, transaction_id: UUID, category_id: UUID) -> None:
        """Remove a link. If it was the main one the transaction is left without main.

        Raises:
            CategoryLinkNotFoundError: The category is not attached
        """
        async with self.locks.hold(transaction_id):
            await self.get_transaction(transaction_id)
            if not await self.link_repo.detach(transaction_id, category_id):
                raise CategoryLinkNotFoundError(
                    details={
                        "transaction_id": str(transaction_id),
                        "category_id": str(category_id),
                    }
                )
            main = await self.link_repo.get_main_category(transaction_id)
            await self.transaction_repo.set_main_category_id(
                transaction_id, main.category_id if main else None
            )
            await self.db.commit()

    async def _get_category(self, category_id: UUID) -> Category:
        category = await self.category_repo.get_by_id(category_id)
        if category is None:
            raise CategoryNotFoundError(details={"category_id": str(category_id)})
        return category
