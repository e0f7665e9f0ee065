"""API version 1 routes."""

from fastapi import APIRouter

from txncat.api.v1 import analytics, categories, transactions

router = APIRouter(prefix="/api/v1")

# Include routers
router.include_router(categories.router)
router.include_router(transactions.router)
router.include_router(analytics.router)
