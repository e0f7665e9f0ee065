"""Vendor hints carried in a transaction's enrichment payload.

Card issuers attach their own category hints when the transaction is
scraped. Known shapes, in priority order:

- ``sector``: issuer sector name (Isracard / Amex)
- ``maxCategoryId``: numeric issuer category id (Max)
- ``merchantMetadata.branchCode``: merchant branch code (Visa Cal)
"""

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

UNKNOWN_VENDOR_ID = "unknown"


def _as_dict(payload: Any) -> dict[str, Any] | None:
    if isinstance(payload, dict):
        return payload
    if isinstance(payload, (str, bytes)):
        try:
            decoded = json.loads(payload)
        except ValueError:
            logger.debug("Ignoring enrichment payload that is not valid JSON")
            return None
        return decoded if isinstance(decoded, dict) else None
    return None


def _non_empty(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def extract_vendor_label(
    enrichment_data: Any, raw_data: Any = None
) -> str | None:
    """Return the first non-empty vendor category hint, or None.

    ``raw_data["enrichmentData"]`` is used when the transaction has no
    enrichment payload of its own.
    """
    enrichment = _as_dict(enrichment_data)
    if enrichment is None:
        raw = _as_dict(raw_data)
        enrichment = _as_dict(raw.get("enrichmentData")) if raw else None
    if not enrichment:
        return None

    merchant = enrichment.get("merchantMetadata")
    branch_code = merchant.get("branchCode") if isinstance(merchant, dict) else None

    for candidate in (enrichment.get("sector"), enrichment.get("maxCategoryId"), branch_code):
        label = _non_empty(candidate)
        if label:
            return label
    return None


def extract_vendor_id(raw_data: Any) -> str:
    """Identify the originating vendor (issuer) for audit purposes."""
    raw = _as_dict(raw_data)
    if not raw:
        return UNKNOWN_VENDOR_ID
    return _non_empty(raw.get("vendorId")) or _non_empty(raw.get("companyId")) or UNKNOWN_VENDOR_ID
