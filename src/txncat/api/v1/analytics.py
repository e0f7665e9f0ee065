"""Audit analytics and decision threshold tuning."""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from txncat.api.deps import get_categorization_service
from txncat.db.session import get_db
from txncat.repositories.category_score import ANALYTICS_ROW_LIMIT, CategoryScoreRepository
from txncat.schemas.analytics import (
    CategorizationAnalyticsList,
    CategorizationAnalyticsRecord,
    OverridePatternList,
    ThresholdsResponse,
    ThresholdsUpdateRequest,
)
from txncat.services.categorization import CategorizationService

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get(
    "/override-patterns",
    response_model=OverridePatternList,
    summary="Most frequent manual corrections",
)
async def get_override_patterns(
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> OverridePatternList:
    patterns = await CategoryScoreRepository(db).get_override_patterns(limit)
    return OverridePatternList(patterns=patterns)


@router.get(
    "/categorizations",
    response_model=CategorizationAnalyticsList,
    summary="Audited categorization decisions",
)
async def get_categorizations(
    vendor_id: str | None = Query(None),
    source: Literal["description", "vendor", "user", "unknown"] | None = Query(None),
    confidence: Literal["high", "medium", "low"] | None = Query(None),
    start: datetime | None = Query(None, description="Inclusive lower bound on calculated_at"),
    end: datetime | None = Query(None, description="Inclusive upper bound on calculated_at"),
    limit: int = Query(ANALYTICS_ROW_LIMIT, ge=1, le=ANALYTICS_ROW_LIMIT),
    db: AsyncSession = Depends(get_db),
) -> CategorizationAnalyticsList:
    rows = await CategoryScoreRepository(db).get_categorization_analytics(
        vendor_id=vendor_id,
        source=source,
        confidence=confidence,
        start=start,
        end=end,
        limit=limit,
    )
    return CategorizationAnalyticsList(
        count=len(rows),
        records=[CategorizationAnalyticsRecord.model_validate(row) for row in rows],
    )


@router.get("/thresholds", response_model=ThresholdsResponse, summary="Current thresholds")
async def get_thresholds(
    service: CategorizationService = Depends(get_categorization_service),
) -> ThresholdsResponse:
    return ThresholdsResponse(**service.categorizer.config.model_dump())


@router.put("/thresholds", response_model=ThresholdsResponse, summary="Retune thresholds")
async def update_thresholds(
    request: ThresholdsUpdateRequest,
    service: CategorizationService = Depends(get_categorization_service),
) -> ThresholdsResponse:
    config = service.update_thresholds(**request.model_dump(exclude_none=True))
    return ThresholdsResponse(**config.model_dump())
