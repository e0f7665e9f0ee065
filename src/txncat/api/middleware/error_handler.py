"""Exception handlers mapping errors to catalog responses.

Every error body has the same keys: error_code, message, user_message,
suggestion, retry_allowed. Domain errors add their ``details`` (ids only).
Free text such as descriptions and SQL parameters is never returned and
only reaches the log in debug mode.
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from txncat.config import settings
from txncat.core.errors import get_error
from txncat.core.exceptions import CategorizationError

logger = logging.getLogger(__name__)


def error_response(
    error_code: str,
    status_code: int,
    message: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build the JSON error body for a catalog code."""
    error_info = get_error(error_code)
    content = {
        "error_code": error_code,
        "message": message or error_info["message"],
        "user_message": error_info["user_message"],
        "suggestion": error_info["suggestion"],
        "retry_allowed": error_info["retry_allowed"],
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _request_extra(request: Request, **extra: Any) -> dict[str, Any]:
    return {"path": request.url.path, "method": request.method, **extra}


async def handle_categorization_error(
    request: Request, exc: CategorizationError
) -> JSONResponse:
    """Client errors log a warning, server-side ones an error."""
    log = logger.warning if exc.http_status < 500 else logger.error
    log(
        f"Categorization error: {exc.error_code}",
        extra=_request_extra(request, error_code=exc.error_code, details=exc.details),
    )
    return error_response(exc.error_code, exc.http_status, details=exc.details)


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    fields = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'Invalid value')}"
        for error in errors
    ]

    extra = _request_extra(request, error_code="VAL_001")
    if settings.debug:
        extra["errors"] = errors
    logger.warning(f"Validation error on {request.url.path}", extra=extra)

    return error_response("VAL_001", status.HTTP_400_BAD_REQUEST, message=" | ".join(fields))


async def handle_integrity_error(
    request: Request, exc: IntegrityError
) -> JSONResponse:
    """Constraint violations that escaped the services.

    Unique violations become 409 DB_002, anything else 500 DB_001.
    """
    duplicate = any(word in str(exc.orig).lower() for word in ("unique", "duplicate"))
    error_code = "DB_002" if duplicate else "DB_001"

    extra = _request_extra(request, error_code=error_code)
    # str(exc) carries SQL and bound parameters
    if settings.debug:
        logger.exception(f"Database integrity error on {request.url.path}", extra=extra)
    else:
        logger.error(f"Database integrity error on {request.url.path}", extra=extra)

    if duplicate:
        return error_response(error_code, status.HTTP_409_CONFLICT)
    return error_response(error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


async def handle_generic_error(request: Request, exc: Exception) -> JSONResponse:
    extra = _request_extra(request, error_code="SYS_001", error_type=type(exc).__name__)
    if settings.debug:
        logger.exception(f"Unexpected error on {request.url.path}", extra=extra)
    else:
        logger.error(f"Unexpected error on {request.url.path}", extra=extra)

    return error_response("SYS_001", status.HTTP_500_INTERNAL_SERVER_ERROR)
