"""Response and request models for the analytics endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class OverridePattern(BaseModel):
    """How often humans replaced one system choice with another."""

    system_choice: UUID | None = Field(None, description="Top description-match category")
    user_choice: UUID = Field(description="Category the user picked instead")
    override_count: int = Field(description="Number of overrides for this pair")
    avg_system_score: float = Field(description="Mean top description score, 2 decimals")


class OverridePatternList(BaseModel):
    patterns: list[OverridePattern]


class CategorizationAnalyticsRecord(BaseModel):
    """One audited categorization decision."""

    transaction_id: UUID
    vendor_id: str
    description: str
    description_top_score: float
    description_top_category_id: UUID | None = None
    vendor_score: float
    vendor_category_id: UUID | None = None
    main_category_id: UUID | None = None
    decision_source: str
    decision_confidence: str
    decision_reason: str
    calculated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CategorizationAnalyticsList(BaseModel):
    count: int
    records: list[CategorizationAnalyticsRecord]


class ThresholdsResponse(BaseModel):
    """Decision thresholds currently applied."""

    description_threshold: float
    vendor_threshold: float
    description_advantage: float


class ThresholdsUpdateRequest(BaseModel):
    """Partial threshold update. Omitted fields keep their value."""

    description_threshold: float | None = Field(None, ge=0, le=100)
    vendor_threshold: float | None = Field(None, ge=0, le=100)
    description_advantage: float | None = Field(None, gt=0)
