"""Decision policy: pick a main category from description and vendor signals.

Ordered policy:

1. No vendor signal, or vendor score below ``vendor_threshold``: use the top
   description match if it reaches ``description_threshold``, else Unknown.
2. Vendor signal present: the description still wins when it reaches its
   threshold AND beats ``vendor_score * description_advantage``. The margin
   keeps near-tied signals from flip-flopping between runs.
3. Otherwise the vendor category wins, or Unknown when it has none.

The policy is a pure function of its inputs and its config. It never raises;
the worst case is the Unknown decision.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field

from txncat.schemas.internal import (
    AppliedThresholds,
    CategorizationDecision,
    ConfidenceLevel,
    DescriptionMatch,
    VendorMatch,
)

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE_SCORE = 85
MEDIUM_CONFIDENCE_SCORE = 70


class DecisionConfig(BaseModel):
    """Tunable policy thresholds. Replace with model_copy(update=...)."""

    model_config = ConfigDict(frozen=True)

    description_threshold: float = Field(75, ge=0, le=100)
    vendor_threshold: float = Field(60, ge=0, le=100)
    description_advantage: float = Field(1.1, gt=0)

    def applied(self) -> AppliedThresholds:
        return AppliedThresholds(
            description=self.description_threshold,
            vendor=self.vendor_threshold,
            description_advantage=self.description_advantage,
        )


def get_confidence(score: float) -> ConfidenceLevel:
    """Band the score that backed a decision."""
    if score >= HIGH_CONFIDENCE_SCORE:
        return "high"
    if score >= MEDIUM_CONFIDENCE_SCORE:
        return "medium"
    return "low"


class DecisionPolicy:
    """Combine description and vendor scores into one decision."""

    def __init__(self, config: DecisionConfig | None = None):
        self.config = config or DecisionConfig()

    def decide(
        self,
        description_matches: Sequence[DescriptionMatch],
        vendor_match: VendorMatch | None = None,
    ) -> CategorizationDecision:
        cfg = self.config
        candidates = tuple(description_matches)
        top = candidates[0] if candidates else None
        top_score = top.final_score if top else 0

        if vendor_match is None or vendor_match.final_score < cfg.vendor_threshold:
            logger.debug(
                "No usable vendor signal",
                extra={
                    "vendor_score": vendor_match.final_score if vendor_match else None,
                    "threshold": cfg.vendor_threshold,
                },
            )
            return self._description_only(top, candidates, vendor_match)

        vendor_score = vendor_match.final_score
        required = vendor_score * cfg.description_advantage
        if top is not None and top_score >= cfg.description_threshold and top_score > required:
            return CategorizationDecision(
                category_id=top.category_id,
                category_name=top.category_name,
                source="description",
                confidence=get_confidence(top_score),
                reason=(
                    f"Description match '{top.category_name}' ({top_score:.1f}) reached the "
                    f"description threshold {cfg.description_threshold:g} and exceeded vendor "
                    f"score {vendor_score:.1f} x advantage {cfg.description_advantage:g} "
                    f"= {required:.1f}"
                ),
                description_candidates=candidates,
                vendor_candidate=vendor_match,
                applied_thresholds=cfg.applied(),
            )

        if vendor_match.category_id is None:
            return self._unknown(
                candidates,
                vendor_match,
                reason=(
                    f"Vendor score {vendor_score:.1f} reached the vendor threshold "
                    f"{cfg.vendor_threshold:g} but no vendor category was determinable; "
                    f"top description score {top_score:.1f}"
                ),
            )

        return CategorizationDecision(
            category_id=vendor_match.category_id,
            category_name=vendor_match.category_name,
            source="vendor",
            confidence=get_confidence(vendor_score),
            reason=(
                f"Vendor category '{vendor_match.category_name}' selected (score "
                f"{vendor_score:.1f}, vendor threshold {cfg.vendor_threshold:g}); top "
                f"description score {top_score:.1f} did not reach the description threshold "
                f"{cfg.description_threshold:g} or did not exceed {required:.1f} "
                f"(advantage {cfg.description_advantage:g})"
            ),
            description_candidates=candidates,
            vendor_candidate=vendor_match,
            applied_thresholds=cfg.applied(),
        )

    def _description_only(
        self,
        top: DescriptionMatch | None,
        candidates: tuple[DescriptionMatch, ...],
        vendor_match: VendorMatch | None,
    ) -> CategorizationDecision:
        cfg = self.config
        if top is not None and top.final_score >= cfg.description_threshold:
            return CategorizationDecision(
                category_id=top.category_id,
                category_name=top.category_name,
                source="description",
                confidence=get_confidence(top.final_score),
                reason=(
                    f"Description match '{top.category_name}' ({top.final_score:.1f}) reached "
                    f"the description threshold {cfg.description_threshold:g}; "
                    + _vendor_note(vendor_match, cfg.vendor_threshold)
                ),
                description_candidates=candidates,
                vendor_candidate=vendor_match,
                applied_thresholds=cfg.applied(),
            )

        top_score = top.final_score if top else 0
        return self._unknown(
            candidates,
            vendor_match,
            reason=(
                f"No category reached the description threshold {cfg.description_threshold:g} "
                f"(top description score {top_score:.1f}); "
                + _vendor_note(vendor_match, cfg.vendor_threshold)
                + " - defaulting to Unknown"
            ),
        )

    def _unknown(
        self,
        candidates: tuple[DescriptionMatch, ...],
        vendor_match: VendorMatch | None,
        reason: str,
    ) -> CategorizationDecision:
        logger.debug("No match above thresholds, using Unknown")
        return CategorizationDecision(
            category_id=None,
            category_name=None,
            source="unknown",
            confidence="low",
            reason=reason,
            description_candidates=candidates,
            vendor_candidate=vendor_match,
            applied_thresholds=self.config.applied(),
        )


def _vendor_note(vendor_match: VendorMatch | None, vendor_threshold: float) -> str:
    if vendor_match is None:
        return "no vendor label"
    return (
        f"vendor score {vendor_match.final_score:.1f} below the vendor threshold "
        f"{vendor_threshold:g}"
    )
