"""Custom exception classes for transaction categorization.

Each exception carries an error_code that maps to the catalog in errors.py
and the HTTP status the API layer should answer with.
"""

from typing import Any


class CategorizationError(Exception):
    """Base exception for all categorization errors.

    Attributes:
        error_code: Code from the error catalog (e.g., "CAT_001")
        details: Additional context about the error (for logging)
        http_status: HTTP status code to return (default: 500)
    """

    default_code = "SYS_001"
    default_status = 500

    def __init__(
        self,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        http_status: int | None = None,
    ):
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.http_status = http_status or self.default_status
        super().__init__(self.error_code)


class CategoryNotFoundError(CategorizationError):
    """Raised when a referenced category does not exist.

    This indicates a caller bug (e.g., a stale category id), not a
    data-quality edge case, so it is surfaced instead of defaulted.
    """

    default_code = "CAT_001"
    default_status = 404


class DuplicateCategoryNameError(CategorizationError):
    """Raised when creating or renaming a category onto an existing name."""

    default_code = "CAT_002"
    default_status = 409


class ProtectedCategoryError(CategorizationError):
    """Raised when trying to rename or delete the Unknown fallback category."""

    default_code = "CAT_003"
    default_status = 400


class TransactionNotFoundError(CategorizationError):
    """Raised when a referenced transaction does not exist."""

    default_code = "TXN_001"
    default_status = 404


class DuplicateCategoryLinkError(CategorizationError):
    """Raised when a (transaction, category) link already exists."""

    default_code = "LINK_001"
    default_status = 409


class CategoryLinkNotFoundError(CategorizationError):
    """Raised when a link is required but the category is not attached."""

    default_code = "LINK_002"
    default_status = 404


class JobNotFoundError(CategorizationError):
    """Raised when polling a re-categorization job that is not tracked."""

    default_code = "JOB_001"
    default_status = 404
