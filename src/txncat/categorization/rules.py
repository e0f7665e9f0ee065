"""Keyword substring categorization.

The lightweight path used where fuzzy scoring is not wired in (e.g. quick
previews or callers that only have a description string). A category
matches when any of its keywords occurs in the description, compared
case-insensitively; the first matching keyword per category wins.

This is an exact-substring check (not fuzzy matching) and returns matches
in category order, unranked.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from txncat.categorization.fuzzy import UNKNOWN_CATEGORY_NAME, normalize_text
from txncat.schemas.internal import CategoryDefinition


def match_keywords(
    description: str | None,
    categories: Iterable[CategoryDefinition],
    *,
    unknown_name: str = UNKNOWN_CATEGORY_NAME,
) -> list[UUID]:
    """Return ids of every category with a keyword inside the description."""
    text = normalize_text(description)
    if not text:
        return []

    matched: list[UUID] = []
    for category in categories:
        if category.name.lower() == unknown_name.lower():
            continue
        for keyword in category.keywords:
            needle = normalize_text(keyword)
            if needle and needle in text:
                matched.append(category.id)
                break
    return matched
