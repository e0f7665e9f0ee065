from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from txncat.db.session import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    """Basic health check."""
    return {"status": "ok"}


@router.get("/health/ready")
async def health_ready(request: Request, db: AsyncSession = Depends(get_db)):
    """Readiness check with database connection and loaded categories."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not ready", "database": "disconnected", "error": type(e).__name__},
        )

    snapshot = request.app.state.categorizer.snapshot
    return {
        "status": "ready",
        "database": "connected",
        "categories_loaded": len(snapshot.categories),
    }
