from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError

from txncat.api.middleware.error_handler import (
    handle_categorization_error,
    handle_generic_error,
    handle_integrity_error,
    handle_validation_error,
)
from txncat.api.middleware.logging import RequestLoggingMiddleware
from txncat.api.v1 import router as v1_router
from txncat.api.v1.health import router as health_router
from txncat.categorization.decision import DecisionConfig
from txncat.categorization.engine import Categorizer
from txncat.config import settings
from txncat.core.exceptions import CategorizationError
from txncat.core.logging import setup_logging
from txncat.db.session import AsyncSessionLocal, async_engine
from txncat.services.categorization import CategorizationService
from txncat.services.recategorization import RecategorizationQueue


def build_categorizer() -> Categorizer:
    return Categorizer(
        DecisionConfig(
            description_threshold=settings.description_threshold,
            vendor_threshold=settings.vendor_threshold,
            description_advantage=settings.description_advantage,
        ),
        min_valid_score=settings.min_valid_score,
        unknown_name=settings.unknown_category_name,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging(settings.log_level, settings.log_json)
    async with AsyncSessionLocal() as session:
        await CategorizationService(session, app.state.categorizer).reload_categories()
    app.state.recategorization_queue.start()
    yield
    # Shutdown
    await app.state.recategorization_queue.stop()
    await async_engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Transaction Categorization API",
        description="Fuzzy categorization of bank transactions with manual overrides",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    categorizer = build_categorizer()
    app.state.categorizer = categorizer
    app.state.recategorization_queue = RecategorizationQueue(AsyncSessionLocal, categorizer)

    # Add request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    # Register exception handlers (order matters - most specific first)
    app.add_exception_handler(CategorizationError, handle_categorization_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(Exception, handle_generic_error)

    # Register routers
    app.include_router(health_router)
    app.include_router(v1_router)

    return app


app = create_app()


def run() -> None:
    uvicorn.run(
        "txncat.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
