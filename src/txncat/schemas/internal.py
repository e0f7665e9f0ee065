"""Internal data schemas for the categorization pipeline.

These models flow between the fuzzy matcher, the decision policy and the
orchestrator. They are immutable so a decision can be logged, audited and
returned from the API without being mutated along the way.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

DecisionSource = Literal["description", "vendor", "user", "unknown"]
ConfidenceLevel = Literal["high", "medium", "low"]


class CategoryDefinition(BaseModel):
    """Category as seen by the scorer: identity plus the texts to match."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    name: str
    keywords: tuple[str, ...] = ()
    parent_id: UUID | None = None


class CategorySnapshot(BaseModel):
    """Categories loaded at one point in time.

    Reloading builds a new snapshot and swaps the reference; a snapshot is
    never edited in place.
    """

    model_config = ConfigDict(frozen=True)

    categories: tuple[CategoryDefinition, ...] = ()
    loaded_at: datetime | None = None
    unknown_category_id: UUID | None = None

    def by_id(self, category_id: UUID) -> CategoryDefinition | None:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None


class FuzzyScores(BaseModel):
    """The four similarity metrics for one candidate text (0-100)."""

    model_config = ConfigDict(frozen=True)

    ratio: int = 0
    partial_ratio: int = 0
    token_sort_ratio: int = 0
    token_set_ratio: int = 0


class DescriptionMatch(BaseModel):
    """Score of a transaction description against one category."""

    model_config = ConfigDict(frozen=True)

    category_id: UUID
    category_name: str
    scores: FuzzyScores
    combined_score: int = Field(description="Weighted combination of the metrics")
    final_score: int = Field(description="combined_score, or 0 below the validity floor")
    source: Literal["description"] = "description"


class VendorMatch(BaseModel):
    """Best category for a vendor-supplied label (category may be null)."""

    model_config = ConfigDict(frozen=True)

    category_id: UUID | None = None
    category_name: str | None = None
    final_score: int = 0
    source: Literal["vendor"] = "vendor"


class AppliedThresholds(BaseModel):
    """Policy values in force when a decision was taken."""

    model_config = ConfigDict(frozen=True)

    description: float
    vendor: float
    description_advantage: float


class CategorizationDecision(BaseModel):
    """Outcome of the decision policy for one transaction.

    category_id is None when the decision is the Unknown fallback.
    """

    model_config = ConfigDict(frozen=True)

    category_id: UUID | None
    category_name: str | None
    source: DecisionSource
    confidence: ConfidenceLevel
    reason: str
    description_candidates: tuple[DescriptionMatch, ...] = ()
    vendor_candidate: VendorMatch | None = None
    applied_thresholds: AppliedThresholds

    @property
    def is_unknown(self) -> bool:
        return self.category_id is None

    @property
    def top_description_match(self) -> DescriptionMatch | None:
        return self.description_candidates[0] if self.description_candidates else None


class ClassificationResult(BaseModel):
    """Decision plus the category ids to attach (main first)."""

    model_config = ConfigDict(frozen=True)

    transaction_id: UUID | None = None
    decision: CategorizationDecision
    category_ids: tuple[UUID, ...] = ()

    @property
    def main_category_id(self) -> UUID | None:
        return self.decision.category_id


class CategorizationRecord(BaseModel):
    """What the audit log keeps about one classification."""

    transaction_id: UUID
    account_id: UUID | None = None
    vendor_id: str = "unknown"
    description: str = ""
    decision: CategorizationDecision
    main_category_id: UUID | None = Field(
        None, description="Resolved main category (the Unknown row's id for Unknown decisions)"
    )
    timestamp: datetime


class OverrideRecord(BaseModel):
    """A human replacing a transaction's main category."""

    transaction_id: UUID
    previous_main_category_id: UUID | None = None
    new_main_category_id: UUID
    user_id: str
    reason: str | None = None
    timestamp: datetime


class RecategorizationResult(BaseModel):
    """Counts reported by a bulk re-categorization run."""

    processed: int = 0
    updated: int = 0
    failed: int = 0
