"""Request logging middleware and JSON log formatting.

Transaction descriptions and vendor labels are free text and can carry
account numbers, card numbers or e-mail addresses. Everything written to
the structured log goes through ``filter_sensitive`` first.
"""

import json
import logging
import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


SENSITIVE_PATTERNS = [
    # Card numbers (13-19 digits, with or without spaces/dashes)
    (re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{1,7}\b"), "[CARD]"),
    # IBAN
    (re.compile(r"\b[A-Z]{2}\d{2}(?:\s?[A-Z0-9]{4}){3,7}(?:\s?[A-Z0-9]{1,3})?\b"), "[IBAN]"),
    # Email addresses
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
    # Phone numbers (international format)
    (re.compile(r"\+\d{1,3}[-.\s]?\(?\d{1,4}\)?[-.\s]?\d{3,4}[-.\s]?\d{3,5}"), "[PHONE]"),
    # Long digit runs (account numbers)
    (re.compile(r"\b\d{8,}\b"), "[ACCOUNT]"),
]

# Extra attributes copied into JSON records when present
EXTRA_FIELDS = (
    "request_id",
    "user_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "error_code",
    "error_type",
    "client_ip",
    "transaction_id",
    "category_id",
    "job_id",
    "source",
    "confidence",
    "processed",
    "updated",
    "failed",
)


def filter_sensitive(text: str) -> str:
    """Replace account-like identifiers in ``text`` with placeholders."""
    if not text:
        return text

    filtered = text
    for pattern, replacement in SENSITIVE_PATTERNS:
        filtered = pattern.sub(replacement, filtered)

    return filtered


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with a request id and duration.

    An incoming ``X-Request-ID`` is reused so ids line up with the caller's
    logs; otherwise a new one is generated. The acting user comes from
    ``X-User-Id``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID", "")[:64] or str(uuid.uuid4())
        request.state.request_id = request_id
        context = {
            "request_id": request_id,
            "user_id": request.headers.get("X-User-Id"),
            "method": request.method,
            "path": filter_sensitive(request.url.path),
        }
        started = time.perf_counter()
        logger.info(
            "Request started",
            extra={**context, "client_ip": request.client.host if request.client else None},
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "Request failed",
                extra={
                    **context,
                    "duration_ms": _elapsed_ms(started),
                    "error_type": type(exc).__name__,
                },
            )
            raise

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "Request completed",
            extra={
                **context,
                "status_code": response.status_code,
                "duration_ms": _elapsed_ms(started),
            },
        )
        return response


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class JSONLogFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": filter_sensitive(record.getMessage()),
        }

        for field in EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        # Descriptions only reach the log at DEBUG level.
        description = getattr(record, "description", None)
        if description:
            log_data["description"] = filter_sensitive(str(description))

        if record.exc_info:
            log_data["exception"] = filter_sensitive(self.formatException(record.exc_info))

        return json.dumps(log_data, default=str)
