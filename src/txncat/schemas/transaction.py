"""Pydantic schemas for transaction categorization endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from txncat.schemas.category import CategoryResponse
from txncat.schemas.internal import CategorizationDecision


class CategoryLinkResponse(BaseModel):
    """One category attached to a transaction."""

    category_id: UUID
    category_name: str | None = None
    is_manual: bool
    is_main: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionCategoriesResponse(BaseModel):
    transaction_id: UUID
    main_category_id: UUID | None = None
    categories: list[CategoryLinkResponse]


class AttachCategoriesRequest(BaseModel):
    """Attach categories by hand."""

    category_ids: list[UUID] = Field(
        default_factory=list, description="Empty attaches the Unknown category as main"
    )
    mark_first_as_main: bool = Field(False, description="Make the first category main")


class SetMainCategoryRequest(BaseModel):
    """Replace the main category of a transaction."""

    category_id: UUID
    reason: str | None = Field(None, max_length=500)


class AssignNewCategoryRequest(BaseModel):
    """Create a category and make it the transaction's main category."""

    name: str = Field(..., min_length=1, max_length=100)
    keywords: list[str] = Field(default_factory=list)
    reason: str | None = Field(None, max_length=500)


class AssignNewCategoryResult(BaseModel):
    category: CategoryResponse
    link: CategoryLinkResponse
    job_id: UUID


class ClassifyRequest(BaseModel):
    description: str | None = Field(None, description="Score this text instead of the stored one")


class ReclassifyRequest(ClassifyRequest):
    """Options for re-classifying a single transaction."""

    force_main_category_id: UUID | None = Field(
        None, description="Pin this category as main when it is among the matches"
    )


class ClassificationResponse(BaseModel):
    transaction_id: UUID | None = None
    decision: CategorizationDecision
    category_ids: list[UUID]


class KeywordMatchRequest(BaseModel):
    description: str


class KeywordMatchResponse(BaseModel):
    category_ids: list[UUID]


class RecategorizeRequest(BaseModel):
    force_main_category_id: UUID | None = None

