"""Categorization orchestrator.

Wires the in-memory categorizer to the database: loads the category
snapshot, writes the audit log after every decision and applies results to
the assignment store, one transaction at a time or in resilient bulk
sweeps.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from txncat.categorization.decision import DecisionConfig
from txncat.categorization.engine import Categorizer
from txncat.categorization.vendor import extract_vendor_id
from txncat.config import settings
from txncat.core.exceptions import TransactionNotFoundError
from txncat.models.transaction import Transaction
from txncat.models.transaction_category import TransactionCategory
from txncat.repositories.category import CategoryRepository
from txncat.repositories.category_score import CategoryScoreRepository
from txncat.repositories.transaction import TransactionRepository
from txncat.repositories.transaction_category import TransactionCategoryRepository
from txncat.schemas.internal import (
    CategorizationRecord,
    CategoryDefinition,
    CategorySnapshot,
    ClassificationResult,
    RecategorizationResult,
)
from txncat.services.locks import TransactionLocks, transaction_locks

logger = logging.getLogger(__name__)


class CategorizationService:
    """Service layer for automatic categorization."""

    def __init__(
        self,
        db: AsyncSession,
        categorizer: Categorizer,
        locks: TransactionLocks | None = None,
        batch_size: int | None = None,
    ):
        """Initialize categorization service.

        Args:
            db: Database session
            categorizer: Shared categorizer holding the category snapshot
            locks: Per-transaction lock registry
            batch_size: Transactions per bulk batch
        """
        self.db = db
        self.categorizer = categorizer
        self.locks = locks or transaction_locks
        self.batch_size = batch_size or settings.recategorize_batch_size
        self.category_repo = CategoryRepository(db)
        self.transaction_repo = TransactionRepository(db)
        self.link_repo = TransactionCategoryRepository(db)
        self.score_repo = CategoryScoreRepository(db)

    async def reload_categories(self) -> CategorySnapshot:
        """Re-read every category and swap the categorizer's snapshot."""
        await self.category_repo.ensure_unknown(self.categorizer.unknown_name)
        categories = await self.category_repo.list_all()
        return self.categorizer.replace_categories(
            CategoryDefinition(
                id=c.id,
                name=c.name,
                keywords=tuple(c.keywords or ()),
                parent_id=c.parent_id,
            )
            for c in categories
        )

    @property
    def categories(self) -> tuple[CategoryDefinition, ...]:
        return self.categorizer.snapshot.categories

    @property
    def unknown_category_id(self) -> UUID | None:
        return self.categorizer.snapshot.unknown_category_id

    async def classify(
        self, transaction: Transaction, description: str | None = None
    ) -> ClassificationResult:
        """Score a transaction and append the decision to the audit log.

        Does not touch the transaction's links.
        """
        text = transaction.description if description is None else description
        result = self.categorizer.classify(
            text,
            transaction.enrichment_data,
            transaction.raw_data,
            transaction_id=transaction.id,
        )
        decision = result.decision
        logger.debug(
            "Transaction classified",
            extra={
                "transaction_id": str(transaction.id),
                "description": text,
                "category_id": str(decision.category_id) if decision.category_id else None,
                "source": decision.source,
                "confidence": decision.confidence,
            },
        )

        await self.score_repo.record_categorization(
            CategorizationRecord(
                transaction_id=transaction.id,
                account_id=transaction.account_id,
                vendor_id=extract_vendor_id(transaction.raw_data),
                description=text or "",
                decision=decision,
                main_category_id=decision.category_id or self.unknown_category_id,
                timestamp=datetime.now(timezone.utc),
            )
        )
        return result

    async def classify_by_id(
        self, transaction_id: UUID, description: str | None = None
    ) -> ClassificationResult:
        """Classify a stored transaction and commit the audit record only."""
        transaction = await self._get_transaction(transaction_id)
        result = await self.classify(transaction, description)
        await self.db.commit()
        return result

    async def categorize_and_assign(self, transaction_id: UUID) -> ClassificationResult:
        """Classify a freshly imported transaction and attach its categories.

        The first category becomes main when the transaction has no main
        link and no manual link yet. With no match the Unknown category is
        used. Existing main and manual links are never displaced.
        """
        async with self.locks.hold(transaction_id):
            transaction = await self._get_transaction(transaction_id)
            result = await self.classify(transaction)

            category_ids = list(result.category_ids) or self._unknown_fallback()
            existing = {
                link.category_id: link
                for link in await self.link_repo.get_by_transaction_id(transaction_id)
            }
            promote = not any(link.is_manual or link.is_main for link in existing.values())
            for index, category_id in enumerate(category_ids):
                is_main = promote and index == 0
                if category_id in existing:
                    if is_main:
                        await self.link_repo.set_as_main(transaction_id, category_id)
                    continue
                await self.link_repo.attach(transaction_id, category_id, is_main=is_main)
            await self._sync_main_category(transaction_id)
            await self.db.commit()

        logger.info(
            "Transaction categorized",
            extra={"transaction_id": str(transaction_id), "categories": len(category_ids)},
        )
        return result

    async def reclassify_one(
        self,
        transaction_id: UUID,
        description: str | None = None,
        force_main_category_id: UUID | None = None,
    ) -> ClassificationResult:
        """Re-score one transaction and replace its automatic links.

        Manual links survive. ``description`` overrides the stored text for
        scoring only.
        """
        async with self.locks.hold(transaction_id):
            transaction = await self._get_transaction(transaction_id)
            result = await self.classify(transaction, description)

            category_ids = list(result.category_ids) or self._unknown_fallback()
            await self.link_repo.replace_automatic(
                transaction_id, category_ids, force_main_category_id
            )
            await self._sync_main_category(transaction_id)
            await self.db.commit()
        return result

    async def reclassify_all(
        self, force_main_category_id: UUID | None = None
    ) -> RecategorizationResult:
        """Re-score every transaction, upgrading categorizations conservatively.

        A transaction linked only to Unknown is upgraded to the new main
        category. A transaction carrying any manual link is left alone.
        Otherwise the new main category is attached when missing and only
        promoted to main if the transaction has none. A failure on one
        transaction is logged and the sweep moves on.
        """
        summary = RecategorizationResult()
        transaction_ids = await self.transaction_repo.get_all_ids()
        logger.info(
            "Re-categorization started",
            extra={"transactions_count": len(transaction_ids), "batch_size": self.batch_size},
        )

        for start in range(0, len(transaction_ids), self.batch_size):
            batch = await self.transaction_repo.get_by_ids(
                transaction_ids[start : start + self.batch_size]
            )
            for transaction in batch:
                transaction_id = transaction.id
                summary.processed += 1
                try:
                    if await self._recategorize(transaction, force_main_category_id):
                        summary.updated += 1
                except Exception as e:
                    summary.failed += 1
                    logger.error(
                        "Error re-categorizing transaction",
                        extra={
                            "transaction_id": str(transaction_id),
                            "error_type": type(e).__name__,
                            "error": str(e),
                        },
                    )
            # let interactive requests run between batches
            await asyncio.sleep(0)

        logger.info("Re-categorization finished", extra=summary.model_dump())
        return summary

    def match_keywords(self, description: str | None) -> list[UUID]:
        return self.categorizer.match_keywords(description)

    def update_thresholds(self, **changes: Any) -> DecisionConfig:
        return self.categorizer.update_thresholds(**changes)

    async def _recategorize(
        self, transaction: Transaction, force_main_category_id: UUID | None
    ) -> bool:
        """Apply the conservative upgrade rules to one transaction."""
        async with self.locks.hold(transaction.id):
            result = await self.classify(transaction)

            if force_main_category_id is not None and force_main_category_id in result.category_ids:
                target = force_main_category_id
            else:
                target = result.main_category_id
            if target is None:
                await self.db.commit()
                return False

            async with self.db.begin_nested():
                changed = await self._apply_target(transaction.id, target)
            await self.db.commit()
            return changed

    async def _apply_target(self, transaction_id: UUID, target: UUID) -> bool:
        links = await self.link_repo.get_by_transaction_id(transaction_id)

        if any(link.is_manual for link in links):
            return False

        unknown_id = self.unknown_category_id
        if unknown_id is not None and len(links) == 1 and links[0].category_id == unknown_id:
            await self.link_repo.detach(transaction_id, unknown_id)
            await self.link_repo.attach(transaction_id, target, is_main=True)
            await self.transaction_repo.set_main_category_id(transaction_id, target)
            return True

        has_main = any(link.is_main for link in links)
        if any(link.category_id == target for link in links):
            if has_main:
                return False
            await self.link_repo.set_as_main(transaction_id, target)
            await self.transaction_repo.set_main_category_id(transaction_id, target)
            return True

        await self.link_repo.attach(transaction_id, target, is_main=not has_main)
        if not has_main:
            await self.transaction_repo.set_main_category_id(transaction_id, target)
        return True

    async def _get_transaction(self, transaction_id: UUID) -> Transaction:
        transaction = await self.transaction_repo.get_by_id(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(details={"transaction_id": str(transaction_id)})
        return transaction

    async def _sync_main_category(self, transaction_id: UUID) -> TransactionCategory | None:
        main = await self.link_repo.get_main_category(transaction_id)
        await self.transaction_repo.set_main_category_id(
            transaction_id, main.category_id if main else None
        )
        return main

    def _unknown_fallback(self) -> list[UUID]:
        unknown_id = self.unknown_category_id
        return [unknown_id] if unknown_id is not None else []
