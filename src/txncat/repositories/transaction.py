"""Transaction repository: the queries the categorizer needs."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from txncat.models.transaction import Transaction
from txncat.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction model."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Transaction)

    async def get_all_ids(self) -> list[UUID]:
        """Ids of every stored transaction, newest first."""
        result = await self.db.execute(
            select(Transaction.id).order_by(Transaction.created_at.desc(), Transaction.id)
        )
        return list(result.scalars().all())

    async def get_by_main_category(
        self, category_id: UUID, skip: int = 0, limit: int = 100
    ) -> list[Transaction]:
        """Transactions whose main category is the given one."""
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.main_category_id == category_id)
            .order_by(Transaction.txn_date.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def set_main_category_id(
        self, transaction_id: UUID, category_id: UUID | None
    ) -> None:
        """Sync the denormalized main category pointer. Caller commits.

        Goes through the loaded object so the session never holds a stale
        pointer.
        """
        transaction = await self.db.get(Transaction, transaction_id)
        if transaction is None:
            return
        transaction.main_category_id = category_id
        await self.db.flush()
