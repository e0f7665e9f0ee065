"""Pydantic schemas for category endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CategoryCreateRequest(BaseModel):
    """Request model for creating a category."""

    name: str = Field(..., min_length=1, max_length=100, description="Unique category name")
    keywords: list[str] = Field(
        default_factory=list, description="Texts matched against transaction descriptions"
    )
    parent_id: UUID | None = Field(None, description="Optional parent category")


class CategoryUpdateRequest(BaseModel):
    """Partial update. Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=100)
    keywords: list[str] | None = None
    parent_id: UUID | None = None


class CategoryResponse(BaseModel):
    """Category data for API responses."""

    id: UUID
    name: str
    keywords: list[str] = Field(default_factory=list)
    parent_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CategoryListResult(BaseModel):
    categories: list[CategoryResponse]
    total: int


class CategoryMutationResult(BaseModel):
    """A changed category plus the re-categorization job it triggered."""

    category: CategoryResponse | None = None
    job_id: UUID = Field(description="Background re-categorization job to poll")


class CategoryTransactionsResult(BaseModel):
    """Transactions whose main category is the given one."""

    category_id: UUID
    transaction_ids: list[UUID]
