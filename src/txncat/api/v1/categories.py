"""Category administration endpoints.

Every create, update and delete reloads the shared category snapshot and
queues a background re-categorization sweep.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from txncat.api.deps import (
    get_categorization_service,
    get_category_service,
    get_recategorization_queue,
)
from txncat.schemas.category import (
    CategoryCreateRequest,
    CategoryListResult,
    CategoryMutationResult,
    CategoryResponse,
    CategoryTransactionsResult,
    CategoryUpdateRequest,
)
from txncat.services.categorization import CategorizationService
from txncat.services.category import CategoryService
from txncat.services.recategorization import RecategorizationQueue

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=CategoryListResult, summary="List categories")
async def list_categories(
    keyword: str | None = Query(None, min_length=1, description="Keyword substring filter"),
    service: CategoryService = Depends(get_category_service),
) -> CategoryListResult:
    categories = await service.list_categories(keyword)
    return CategoryListResult(
        categories=[CategoryResponse.model_validate(c) for c in categories],
        total=len(categories),
    )


@router.get("/{category_id}", response_model=CategoryResponse, summary="Get a category")
async def get_category(
    category_id: UUID,
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    return CategoryResponse.model_validate(await service.get_category(category_id))


@router.get(
    "/{category_id}/transactions",
    response_model=CategoryTransactionsResult,
    summary="Transactions with this main category",
)
async def get_category_transactions(
    category_id: UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    service: CategoryService = Depends(get_category_service),
) -> CategoryTransactionsResult:
    return CategoryTransactionsResult(
        category_id=category_id,
        transaction_ids=await service.get_main_transaction_ids(category_id, skip, limit),
    )


@router.post(
    "",
    response_model=CategoryMutationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create a category",
    description="""
    Create a category and queue a re-categorization of every transaction.

    Transactions stuck on Unknown are upgraded when the new category
    matches them. Poll the returned job id for progress.
    """,
)
async def create_category(
    request: CategoryCreateRequest,
    service: CategoryService = Depends(get_category_service),
    categorization: CategorizationService = Depends(get_categorization_service),
    queue: RecategorizationQueue = Depends(get_recategorization_queue),
) -> CategoryMutationResult:
    category = await service.create_category(request.name, request.keywords, request.parent_id)
    await categorization.reload_categories()
    job = queue.submit(reason="category_created", force_main_category_id=category.id)
    return CategoryMutationResult(category=CategoryResponse.model_validate(category), job_id=job.id)


@router.patch(
    "/{category_id}",
    response_model=CategoryMutationResult,
    summary="Update a category",
)
async def update_category(
    category_id: UUID,
    request: CategoryUpdateRequest,
    service: CategoryService = Depends(get_category_service),
    categorization: CategorizationService = Depends(get_categorization_service),
    queue: RecategorizationQueue = Depends(get_recategorization_queue),
) -> CategoryMutationResult:
    category = await service.update_category(
        category_id, request.model_dump(exclude_unset=True)
    )
    await categorization.reload_categories()
    job = queue.submit(reason="category_updated", force_main_category_id=category_id)
    return CategoryMutationResult(category=CategoryResponse.model_validate(category), job_id=job.id)


@router.delete(
    "/{category_id}",
    response_model=CategoryMutationResult,
    summary="Delete a category",
)
async def delete_category(
    category_id: UUID,
    service: CategoryService = Depends(get_category_service),
    categorization: CategorizationService = Depends(get_categorization_service),
    queue: RecategorizationQueue = Depends(get_recategorization_queue),
) -> CategoryMutationResult:
    await service.delete_category(category_id)
    await categorization.reload_categories()
    job = queue.submit(reason="category_deleted")
    return CategoryMutationResult(job_id=job.id)
