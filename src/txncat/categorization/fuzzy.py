"""Fuzzy scoring of free text against category definitions.

Descriptions are compared to each category's name and keywords with four
rapidfuzz metrics. The weights favour partial and token-set matches because
merchant descriptions usually carry extra tokens (store numbers, branch
codes) that drag a whole-string ratio down.

Everything here is pure: no I/O, no shared state, never raises on empty
input.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable

from rapidfuzz import fuzz

from txncat.schemas.internal import (
    CategoryDefinition,
    DescriptionMatch,
    FuzzyScores,
    VendorMatch,
)

SCORE_WEIGHTS: dict[str, float] = {
    "ratio": 0.2,
    "partial_ratio": 0.3,
    "token_sort_ratio": 0.1,
    "token_set_ratio": 0.4,
}

# Below this a match is noise and must not look like a signal downstream.
MIN_VALID_SCORE = 50

UNKNOWN_CATEGORY_NAME = "Unknown"

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """Lowercase, trim and collapse whitespace runs to one space."""
    return _WHITESPACE.sub(" ", (text or "").lower().strip())


def _round_half_up(value: float) -> int:
    # Epsilon absorbs float noise from the weighted sum (74.4999... -> 74.5).
    return int(math.floor(value + 0.5 + 1e-9))


def calculate_scores(text: str, candidate: str) -> FuzzyScores:
    """All four metrics for two already-normalized strings."""
    return FuzzyScores(
        ratio=_round_half_up(fuzz.ratio(text, candidate)),
        partial_ratio=_round_half_up(fuzz.partial_ratio(text, candidate)),
        token_sort_ratio=_round_half_up(fuzz.token_sort_ratio(text, candidate)),
        token_set_ratio=_round_half_up(fuzz.token_set_ratio(text, candidate)),
    )


def combine_scores(scores: FuzzyScores) -> int:
    """Weighted combination of the metrics, rounded to 0-100."""
    return _round_half_up(
        scores.ratio * SCORE_WEIGHTS["ratio"]
        + scores.partial_ratio * SCORE_WEIGHTS["partial_ratio"]
        + scores.token_sort_ratio * SCORE_WEIGHTS["token_sort_ratio"]
        + scores.token_set_ratio * SCORE_WEIGHTS["token_set_ratio"]
    )


def _is_unknown(category: CategoryDefinition, unknown_name: str) -> bool:
    return category.name.lower() == unknown_name.lower()


def _candidate_texts(category: CategoryDefinition) -> list[str]:
    texts = [normalize_text(t) for t in (category.name, *category.keywords)]
    return [t for t in texts if t]


def score_description(
    description: str | None,
    categories: Iterable[CategoryDefinition],
    *,
    min_valid_score: int = MIN_VALID_SCORE,
    unknown_name: str = UNKNOWN_CATEGORY_NAME,
) -> list[DescriptionMatch]:
    """Score a transaction description against every category.

    Per category, the candidate text (name or keyword) with the highest
    combined score wins. Combined scores under ``min_valid_score`` are
    reported with ``final_score = 0``.

    Returns:
        Matches sorted by final_score descending; ties keep category order.
    """
    normalized = normalize_text(description)
    categories = list(categories)
    if not normalized or not categories:
        return []

    results: list[DescriptionMatch] = []
    for category in categories:
        if _is_unknown(category, unknown_name):
            continue

        best_scores = FuzzyScores()
        best_combined = 0
        for text in _candidate_texts(category):
            scores = calculate_scores(normalized, text)
            combined = combine_scores(scores)
            if combined > best_combined:
                best_combined = combined
                best_scores = scores

        results.append(
            DescriptionMatch(
                category_id=category.id,
                category_name=category.name,
                scores=best_scores,
                combined_score=best_combined,
                final_score=best_combined if best_combined >= min_valid_score else 0,
            )
        )

    return sorted(results, key=lambda m: m.final_score, reverse=True)


def score_vendor_label(
    label: str | None,
    categories: Iterable[CategoryDefinition],
    *,
    min_valid_score: int = MIN_VALID_SCORE,
    unknown_name: str = UNKNOWN_CATEGORY_NAME,
) -> VendorMatch:
    """Find the category best matching a short vendor-supplied label.

    Vendor labels are short codes rather than free text, so each candidate
    is scored with the more lenient max(partial_ratio, token_set_ratio).
    A best score under ``min_valid_score`` yields a null category.
    """
    normalized = normalize_text(label)
    categories = list(categories)
    if not normalized or not categories:
        return VendorMatch()

    best: VendorMatch | None = None
    for category in categories:
        if _is_unknown(category, unknown_name):
            continue
        for text in _candidate_texts(category):
            score = _round_half_up(
                max(fuzz.partial_ratio(normalized, text), fuzz.token_set_ratio(normalized, text))
            )
            if score > (best.final_score if best else 0):
                best = VendorMatch(
                    category_id=category.id,
                    category_name=category.name,
                    final_score=score,
                )

    if best is not None and best.final_score >= min_valid_score:
        return best
    return VendorMatch()
