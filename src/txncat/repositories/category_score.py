"""Audit log of categorization decisions and manual overrides.

Writes are best-effort: a failed write is logged and swallowed inside its
own SAVEPOINT so the surrounding categorization is never interrupted.
"""
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from txncat.models.category_override import CategoryOverride
from txncat.models.category_score import CategoryScore
from txncat.schemas.analytics import OverridePattern
from txncat.schemas.internal import CategorizationRecord, OverrideRecord

logger = logging.getLogger(__name__)

ANALYTICS_ROW_LIMIT = 10000


class CategoryScoreRepository:
    """Repository for category_scores and category_overrides."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record_categorization(self, record: CategorizationRecord) -> CategoryScore | None:
        """Append one decision to the audit log. Returns None if the write failed."""
        decision = record.decision
        top = decision.top_description_match
        vendor = decision.vendor_candidate

        row = CategoryScore(
            transaction_id=record.transaction_id,
            account_id=record.account_id,
            vendor_id=record.vendor_id,
            description=record.description,
            description_top_score=top.final_score if top else 0,
            description_top_category_id=top.category_id if top else None,
            vendor_score=vendor.final_score if vendor else 0,
            vendor_category_id=vendor.category_id if vendor else None,
            main_category_id=record.main_category_id,
            decision_source=decision.source,
            decision_confidence=decision.confidence,
            decision_reason=decision.reason,
            calculated_at=record.timestamp,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(row)
                await self.db.flush()
        except Exception as exc:
            logger.error(
                "Failed to record categorization scores",
                extra={
                    "transaction_id": str(record.transaction_id),
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            return None
        return row

    async def record_override(self, record: OverrideRecord) -> CategoryOverride | None:
        """Append one manual correction. Returns None if the write failed."""
        row = CategoryOverride(
            transaction_id=record.transaction_id,
            previous_main_category_id=record.previous_main_category_id,
            new_main_category_id=record.new_main_category_id,
            user_id=record.user_id,
            reason=record.reason,
            overridden_at=record.timestamp,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(row)
                await self.db.flush()
        except Exception as exc:
            logger.error(
                "Failed to record category override",
                extra={
                    "transaction_id": str(record.transaction_id),
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            return None
        return row

    async def get_override_patterns(self, limit: int = 50) -> list[OverridePattern]:
        """Aggregate overrides per (system choice, user choice) pair.

        Only overrides that replaced the audited main category are counted.
        Pairs are ordered by override count, most frequent first.
        """
        override_count = func.count().label("override_count")
        stmt = (
            select(
                CategoryScore.description_top_category_id,
                CategoryOverride.new_main_category_id,
                override_count,
                func.avg(CategoryScore.description_top_score),
            )
            .join(
                CategoryOverride,
                CategoryScore.transaction_id == CategoryOverride.transaction_id,
            )
            .where(CategoryOverride.previous_main_category_id == CategoryScore.main_category_id)
            .group_by(
                CategoryScore.description_top_category_id,
                CategoryOverride.new_main_category_id,
            )
            .order_by(override_count.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [
            OverridePattern(
                system_choice=system_choice,
                user_choice=user_choice,
                override_count=count,
                avg_system_score=round(float(avg or 0), 2),
            )
            for system_choice, user_choice, count, avg in result.all()
        ]

    async def get_categorization_analytics(
        self,
        vendor_id: str | None = None,
        source: str | None = None,
        confidence: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = ANALYTICS_ROW_LIMIT,
    ) -> list[CategoryScore]:
        """Audited decisions matching the filters, newest first."""
        stmt = select(CategoryScore)
        if vendor_id:
            stmt = stmt.where(CategoryScore.vendor_id == vendor_id)
        if source:
            stmt = stmt.where(CategoryScore.decision_source == source)
        if confidence:
            stmt = stmt.where(CategoryScore.decision_confidence == confidence)
        if start:
            stmt = stmt.where(CategoryScore.calculated_at >= start)
        if end:
            stmt = stmt.where(CategoryScore.calculated_at <= end)
        stmt = stmt.order_by(CategoryScore.calculated_at.desc()).limit(min(limit, ANALYTICS_ROW_LIMIT))

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_scores_for_transaction(self, transaction_id: UUID) -> list[CategoryScore]:
        result = await self.db.execute(
            select(CategoryScore)
            .where(CategoryScore.transaction_id == transaction_id)
            .order_by(CategoryScore.calculated_at.desc())
        )
        return list(result.scalars().all())
