"""Transaction categorization endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from txncat.api.deps import (
    get_actor_id,
    get_categorization_service,
    get_recategorization_queue,
    get_transaction_service,
)
from txncat.core.exceptions import JobNotFoundError
from txncat.schemas.category import CategoryResponse
from txncat.schemas.transaction import (
    AssignNewCategoryRequest,
    AssignNewCategoryResult,
    AttachCategoriesRequest,
    CategoryLinkResponse,
    ClassificationResponse,
    ClassifyRequest,
    KeywordMatchRequest,
    KeywordMatchResponse,
    RecategorizeRequest,
    ReclassifyRequest,
    SetMainCategoryRequest,
    TransactionCategoriesResponse,
)
from txncat.services.categorization import CategorizationService
from txncat.services.recategorization import RecategorizationJob, RecategorizationQueue
from txncat.services.transaction import TransactionService

router = APIRouter(prefix="/transactions", tags=["transactions"])


async def _categories_response(
    service: TransactionService, transaction_id: UUID
) -> TransactionCategoriesResponse:
    links = await service.get_categories(transaction_id)
    main = next((link for link in links if link.is_main), None)
    return TransactionCategoriesResponse(
        transaction_id=transaction_id,
        main_category_id=main.category_id if main else None,
        categories=[CategoryLinkResponse.model_validate(link) for link in links],
    )


@router.post(
    "/recategorize",
    response_model=RecategorizationJob,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Re-categorize all transactions",
    description="""
    Queue a sweep over every transaction.

    Transactions linked only to Unknown are upgraded, transactions with a
    manual link are skipped, the rest gain the new main category when it
    is missing. A forced main category wins when it appears among a
    transaction's candidates.
    """,
)
async def recategorize_all(
    request: RecategorizeRequest,
    queue: RecategorizationQueue = Depends(get_recategorization_queue),
) -> RecategorizationJob:
    return queue.submit(
        reason="manual_request", force_main_category_id=request.force_main_category_id
    )


@router.get(
    "/recategorize",
    response_model=list[RecategorizationJob],
    summary="Recent re-categorization jobs, newest first",
)
async def list_recategorization_jobs(
    queue: RecategorizationQueue = Depends(get_recategorization_queue),
) -> list[RecategorizationJob]:
    return queue.list_jobs()


@router.get(
    "/recategorize/{job_id}",
    response_model=RecategorizationJob,
    summary="Get re-categorization job status",
)
async def get_recategorization_job(
    job_id: UUID,
    queue: RecategorizationQueue = Depends(get_recategorization_queue),
) -> RecategorizationJob:
    job = queue.get_job(job_id)
    if job is None:
        raise JobNotFoundError(details={"job_id": str(job_id)})
    return job


@router.post(
    "/keyword-match",
    response_model=KeywordMatchResponse,
    summary="Match a description against category keywords",
)
async def keyword_match(
    request: KeywordMatchRequest,
    service: CategorizationService = Depends(get_categorization_service),
) -> KeywordMatchResponse:
    return KeywordMatchResponse(category_ids=service.match_keywords(request.description))


@router.get(
    "/{transaction_id}/categories",
    response_model=TransactionCategoriesResponse,
    summary="List a transaction's categories",
)
async def get_transaction_categories(
    transaction_id: UUID,
    service: TransactionService = Depends(get_transaction_service),
) -> TransactionCategoriesResponse:
    return await _categories_response(service, transaction_id)


@router.post(
    "/{transaction_id}/categories",
    response_model=TransactionCategoriesResponse,
    summary="Attach categories manually",
)
async def attach_categories(
    transaction_id: UUID,
    request: AttachCategoriesRequest,
    service: TransactionService = Depends(get_transaction_service),
) -> TransactionCategoriesResponse:
    await service.attach_categories(
        transaction_id,
        request.category_ids,
        is_manual=True,
        mark_first_as_main=request.mark_first_as_main,
    )
    return await _categories_response(service, transaction_id)


@router.delete(
    "/{transaction_id}/categories/{category_id}",
    response_model=TransactionCategoriesResponse,
    summary="Detach a category",
)
async def detach_category(
    transaction_id: UUID,
    category_id: UUID,
    service: TransactionService = Depends(get_transaction_service),
) -> TransactionCategoriesResponse:
    await service.detach_category(transaction_id, category_id)
    return await _categories_response(service, transaction_id)


@router.put(
    "/{transaction_id}/main-category",
    response_model=TransactionCategoriesResponse,
    summary="Override the main category",
    description="""
    Make a category the transaction's main one. The choice is recorded as
    a manual override and later automatic sweeps leave the transaction
    alone. The caller is taken from the X-User-Id header.
    """,
)
async def set_main_category(
    transaction_id: UUID,
    request: SetMainCategoryRequest,
    user_id: str = Depends(get_actor_id),
    service: TransactionService = Depends(get_transaction_service),
) -> TransactionCategoriesResponse:
    await service.set_main_category(transaction_id, request.category_id, user_id, request.reason)
    return await _categories_response(service, transaction_id)


@router.post(
    "/{transaction_id}/new-category",
    response_model=AssignNewCategoryResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create a category and make it main",
)
async def assign_new_category(
    transaction_id: UUID,
    request: AssignNewCategoryRequest,
    user_id: str = Depends(get_actor_id),
    service: TransactionService = Depends(get_transaction_service),
    categorization: CategorizationService = Depends(get_categorization_service),
    queue: RecategorizationQueue = Depends(get_recategorization_queue),
) -> AssignNewCategoryResult:
    category, _ = await service.assign_new_category(
        transaction_id, request.name, request.keywords, user_id, request.reason
    )
    await categorization.reload_categories()
    job = queue.submit(reason="category_created", force_main_category_id=category.id)

    links = await service.get_categories(transaction_id)
    link = next(link for link in links if link.category_id == category.id)
    return AssignNewCategoryResult(
        category=CategoryResponse.model_validate(category),
        link=CategoryLinkResponse.model_validate(link),
        job_id=job.id,
    )


@router.post(
    "/{transaction_id}/categorize",
    response_model=ClassificationResponse,
    summary="Categorize a newly imported transaction",
)
async def categorize_transaction(
    transaction_id: UUID,
    service: CategorizationService = Depends(get_categorization_service),
) -> ClassificationResponse:
    result = await service.categorize_and_assign(transaction_id)
    return ClassificationResponse(
        transaction_id=transaction_id,
        decision=result.decision,
        category_ids=list(result.category_ids),
    )


@router.post(
    "/{transaction_id}/classify",
    response_model=ClassificationResponse,
    summary="Classify one transaction",
    description="Score the transaction and return the decision. Links are not changed.",
)
async def classify_transaction(
    transaction_id: UUID,
    request: ClassifyRequest | None = None,
    service: CategorizationService = Depends(get_categorization_service),
) -> ClassificationResponse:
    request = request or ClassifyRequest()
    result = await service.classify_by_id(transaction_id, request.description)
    return ClassificationResponse(
        transaction_id=transaction_id,
        decision=result.decision,
        category_ids=list(result.category_ids),
    )


@router.post(
    "/{transaction_id}/reclassify",
    response_model=ClassificationResponse,
    summary="Re-classify one transaction",
    description="Re-score the transaction and replace its automatic categories. Manual ones stay.",
)
async def reclassify_transaction(
    transaction_id: UUID,
    request: ReclassifyRequest | None = None,
    service: CategorizationService = Depends(get_categorization_service),
) -> ClassificationResponse:
    request = request or ReclassifyRequest()
    result = await service.reclassify_one(
        transaction_id, request.description, request.force_main_category_id
    )
    return ClassificationResponse(
        transaction_id=transaction_id,
        decision=result.decision,
        category_ids=list(result.category_ids),
    )
