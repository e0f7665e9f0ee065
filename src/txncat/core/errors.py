"""Error codes and user-friendly messages.

Each error has:
- code: Unique identifier
- message: Technical description (for logs)
- user_message: User-friendly explanation
- suggestion: Actionable guidance for the caller
- retry_allowed: Whether the error is retryable
"""

ERROR_CATALOG: dict[str, dict] = {
    "CAT_001": {
        "code": "CAT_001",
        "message": "Category not found",
        "user_message": "We couldn't find this category.",
        "suggestion": "Refresh the category list and choose an existing category.",
        "retry_allowed": False,
    },
    "CAT_002": {
        "code": "CAT_002",
        "message": "Category name already exists",
        "user_message": "A category with this name already exists.",
        "suggestion": "Choose a different name or edit the existing category.",
        "retry_allowed": False,
    },
    "CAT_003": {
        "code": "CAT_003",
        "message": "The fallback category cannot be modified",
        "user_message": "The Unknown category is built in and can't be changed.",
        "suggestion": "Create a new category instead.",
        "retry_allowed": False,
    },
    "TXN_001": {
        "code": "TXN_001",
        "message": "Transaction not found",
        "user_message": "We couldn't find this transaction.",
        "suggestion": "Please refresh and try again.",
        "retry_allowed": False,
    },
    "LINK_001": {
        "code": "LINK_001",
        "message": "Category already attached to transaction",
        "user_message": "This category is already assigned to the transaction.",
        "suggestion": "Set it as the main category instead of attaching it again.",
        "retry_allowed": False,
    },
    "LINK_002": {
        "code": "LINK_002",
        "message": "Category is not attached to transaction",
        "user_message": "This category isn't assigned to the transaction.",
        "suggestion": "Attach the category before changing its flags.",
        "retry_allowed": False,
    },
    "JOB_001": {
        "code": "JOB_001",
        "message": "Re-categorization job not found",
        "user_message": "We couldn't find this re-categorization job.",
        "suggestion": "Job history is bounded; start a new run if needed.",
        "retry_allowed": False,
    },
    "VAL_001": {
        "code": "VAL_001",
        "message": "Request validation failed",
        "user_message": "Invalid input data.",
        "suggestion": "Please check your input and try again.",
        "retry_allowed": True,
    },
    "DB_001": {
        "code": "DB_001",
        "message": "Database operation failed",
        "user_message": "A database error occurred.",
        "suggestion": "Please try again later.",
        "retry_allowed": True,
    },
    "DB_002": {
        "code": "DB_002",
        "message": "Resource already exists",
        "user_message": "This record already exists.",
        "suggestion": "Check whether the record was already created.",
        "retry_allowed": False,
    },
    "SYS_001": {
        "code": "SYS_001",
        "message": "Internal server error",
        "user_message": "An unexpected error occurred.",
        "suggestion": "Please try again later or contact support.",
        "retry_allowed": True,
    },
}


def get_error(error_code: str) -> dict:
    """Get error definition by code.

    Args:
        error_code: Error code from the catalog

    Returns:
        Dict with error details (a generic definition for unknown codes)
    """
    if error_code not in ERROR_CATALOG:
        return {
            "code": "UNKNOWN",
            "message": f"Unknown error code: {error_code}",
            "user_message": "An unexpected error occurred.",
            "suggestion": "Please try again. Contact support if the problem persists.",
            "retry_allowed": True,
        }
    return ERROR_CATALOG[error_code]
