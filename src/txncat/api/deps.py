"""FastAPI dependency injection for database, services and caller identity."""

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from txncat.categorization.engine import Categorizer
from txncat.db.session import get_db
from txncat.services.categorization import CategorizationService
from txncat.services.category import CategoryService
from txncat.services.recategorization import RecategorizationQueue
from txncat.services.transaction import TransactionService

ANONYMOUS_USER = "anonymous"


def get_categorizer(request: Request) -> Categorizer:
    """Shared categorizer created at application startup."""
    return request.app.state.categorizer


def get_recategorization_queue(request: Request) -> RecategorizationQueue:
    """Background job queue created at application startup."""
    return request.app.state.recategorization_queue


async def get_categorization_service(
    db: AsyncSession = Depends(get_db),
    categorizer: Categorizer = Depends(get_categorizer),
) -> CategorizationService:
    return CategorizationService(db, categorizer)


async def get_category_service(db: AsyncSession = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


async def get_transaction_service(db: AsyncSession = Depends(get_db)) -> TransactionService:
    return TransactionService(db)


async def get_actor_id(x_user_id: str | None = Header(None)) -> str:
    """Identity recorded on manual overrides.

    Authentication happens upstream; the gateway forwards the caller in
    the X-User-Id header.
    """
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return ANONYMOUS_USER
