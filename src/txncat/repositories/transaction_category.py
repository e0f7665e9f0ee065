"""Category assignment store.

Every mutation runs inside a SAVEPOINT so the "clear the old main, set the
new one" sequence is applied atomically or not at all. Methods flush but
never commit; the calling service owns the outer transaction.
"""
import logging
from collections.abc import Iterable, Sequence
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from txncat.core.exceptions import CategoryLinkNotFoundError, DuplicateCategoryLinkError
from txncat.models.transaction_category import TransactionCategory

logger = logging.getLogger(__name__)


class TransactionCategoryRepository:
    """Repository for transaction-to-category links."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_transaction_id(self, transaction_id: UUID) -> list[TransactionCategory]:
        """Links for a transaction, main first, then newest first."""
        result = await self.db.execute(
            select(TransactionCategory)
            .where(TransactionCategory.transaction_id == transaction_id)
            .options(selectinload(TransactionCategory.category))
            .order_by(TransactionCategory.is_main.desc(), TransactionCategory.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_main_category(self, transaction_id: UUID) -> TransactionCategory | None:
        result = await self.db.execute(
            select(TransactionCategory)
            .where(
                TransactionCategory.transaction_id == transaction_id,
                TransactionCategory.is_main.is_(True),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def has_category(self, transaction_id: UUID, category_id: UUID) -> bool:
        return await self._get_link(transaction_id, category_id) is not None

    async def get_transaction_ids_by_category(self, category_id: UUID) -> list[UUID]:
        result = await self.db.execute(
            select(TransactionCategory.transaction_id).where(
                TransactionCategory.category_id == category_id
            )
        )
        return list(result.scalars().all())

    async def attach(
        self,
        transaction_id: UUID,
        category_id: UUID,
        is_manual: bool = False,
        is_main: bool = False,
    ) -> TransactionCategory:
        """Create a link. With ``is_main`` any other main link is demoted first.

        Raises:
            DuplicateCategoryLinkError: The pair is already linked.
        """
        async with self.db.begin_nested():
            if await self._get_link(transaction_id, category_id) is not None:
                raise DuplicateCategoryLinkError(
                    details={
                        "transaction_id": str(transaction_id),
                        "category_id": str(category_id),
                    }
                )
            if is_main:
                await self._clear_main(transaction_id)

            link = TransactionCategory(
                transaction_id=transaction_id,
                category_id=category_id,
                is_manual=is_manual,
                is_main=is_main,
            )
            self.db.add(link)
            await self.db.flush()

        logger.debug(
            "Category attached",
            extra={
                "transaction_id": str(transaction_id),
                "category_id": str(category_id),
                "is_manual": is_manual,
                "is_main": is_main,
            },
        )
        return link

    async def set_as_main(self, transaction_id: UUID, category_id: UUID) -> TransactionCategory:
        """Make an existing link the single main link of its transaction.

        Raises:
            CategoryLinkNotFoundError: The category is not attached.
        """
        async with self.db.begin_nested():
            link = await self._get_link(transaction_id, category_id)
            if link is None:
                raise CategoryLinkNotFoundError(
                    details={
                        "transaction_id": str(transaction_id),
                        "category_id": str(category_id),
                    }
                )
            await self._clear_main(transaction_id)
            link.is_main = True
            await self.db.flush()
        return link

    async def mark_manual(self, transaction_id: UUID, category_id: UUID) -> None:
        """Flag an existing link as a human decision."""
        await self.db.execute(
            update(TransactionCategory)
            .where(
                TransactionCategory.transaction_id == transaction_id,
                TransactionCategory.category_id == category_id,
            )
            .values(is_manual=True)
        )

    async def replace_automatic(
        self,
        transaction_id: UUID,
        category_ids: Sequence[UUID],
        force_main_category_id: UUID | None = None,
    ) -> list[TransactionCategory]:
        """Swap the automatic links of a transaction for a new set.

        Manual links are untouched. If one of them holds main, the new links
        are all inserted as non-main. Otherwise the main link is the forced
        category when it is in the new set, else the first one.
        """
        async with self.db.begin_nested():
            manual = list(
                (
                    await self.db.execute(
                        select(TransactionCategory).where(
                            TransactionCategory.transaction_id == transaction_id,
                            TransactionCategory.is_manual.is_(True),
                        )
                    )
                ).scalars()
            )
            manual_ids = {link.category_id for link in manual}
            manual_holds_main = any(link.is_main for link in manual)

            await self.remove_automatic(transaction_id)

            ordered = [cid for cid in _unique(category_ids) if cid not in manual_ids]
            if manual_holds_main or not ordered:
                main_id = None
            elif force_main_category_id is not None and force_main_category_id in ordered:
                main_id = force_main_category_id
            else:
                main_id = ordered[0]

            links = [
                TransactionCategory(
                    transaction_id=transaction_id,
                    category_id=cid,
                    is_manual=False,
                    is_main=cid == main_id,
                )
                for cid in ordered
            ]
            self.db.add_all(links)
            await self.db.flush()
        return links

    async def bulk_replace_automatic(
        self, updates: Iterable[tuple[UUID, Sequence[UUID]]]
    ) -> int:
        """Apply ``replace_automatic`` to many transactions. Returns links written."""
        written = 0
        for transaction_id, category_ids in updates:
            written += len(await self.replace_automatic(transaction_id, category_ids))
        return written

    async def detach(self, transaction_id: UUID, category_id: UUID) -> int:
        result = await self.db.execute(
            delete(TransactionCategory).where(
                TransactionCategory.transaction_id == transaction_id,
                TransactionCategory.category_id == category_id,
            )
        )
        return result.rowcount

    async def remove_automatic(self, transaction_id: UUID) -> int:
        result = await self.db.execute(
            delete(TransactionCategory).where(
                TransactionCategory.transaction_id == transaction_id,
                TransactionCategory.is_manual.is_(False),
            )
        )
        return result.rowcount

    async def remove_all(self, transaction_id: UUID) -> int:
        result = await self.db.execute(
            delete(TransactionCategory).where(
                TransactionCategory.transaction_id == transaction_id
            )
        )
        return result.rowcount

    async def _get_link(
        self, transaction_id: UUID, category_id: UUID
    ) -> TransactionCategory | None:
        result = await self.db.execute(
            select(TransactionCategory)
            .where(
                TransactionCategory.transaction_id == transaction_id,
                TransactionCategory.category_id == category_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _clear_main(self, transaction_id: UUID) -> None:
        await self.db.execute(
            update(TransactionCategory)
            .where(
                TransactionCategory.transaction_id == transaction_id,
                TransactionCategory.is_main.is_(True),
            )
            .values(is_main=False)
        )


def _unique(ids: Iterable[UUID]) -> list[UUID]:
    seen: set[UUID] = set()
    out = []
    for cid in ids:
        if cid not in seen:
            seen.add(cid)
            out.append(cid)
    return out
