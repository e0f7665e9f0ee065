"""In-memory categorizer: category snapshot plus decision policy.

One instance is shared by every request and background sweep. Both the
snapshot and the policy are immutable and replaced by reference, so a
classification that already started keeps a consistent view while an
admin reloads categories or retunes thresholds.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from txncat.categorization.decision import DecisionConfig, DecisionPolicy
from txncat.categorization.fuzzy import (
    MIN_VALID_SCORE,
    UNKNOWN_CATEGORY_NAME,
    score_description,
    score_vendor_label,
)
from txncat.categorization.rules import match_keywords
from txncat.categorization.vendor import extract_vendor_label
from txncat.schemas.internal import (
    CategorizationDecision,
    CategoryDefinition,
    CategorySnapshot,
    ClassificationResult,
)

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_ALTERNATIVES = 2


class Categorizer:
    """Scores transactions against the current category snapshot."""

    def __init__(
        self,
        config: DecisionConfig | None = None,
        *,
        min_valid_score: int = MIN_VALID_SCORE,
        unknown_name: str = UNKNOWN_CATEGORY_NAME,
    ):
        self.min_valid_score = min_valid_score
        self.unknown_name = unknown_name
        self._policy = DecisionPolicy(config)
        self._snapshot = CategorySnapshot()

    @property
    def snapshot(self) -> CategorySnapshot:
        return self._snapshot

    @property
    def config(self) -> DecisionConfig:
        return self._policy.config

    def replace_categories(self, categories: Iterable[CategoryDefinition]) -> CategorySnapshot:
        """Swap in a freshly loaded category set."""
        categories = tuple(categories)
        unknown_id = next(
            (c.id for c in categories if c.name.lower() == self.unknown_name.lower()),
            None,
        )
        snapshot = CategorySnapshot(
            categories=categories,
            loaded_at=datetime.now(timezone.utc),
            unknown_category_id=unknown_id,
        )
        self._snapshot = snapshot
        logger.info("Categories reloaded", extra={"count": len(categories)})
        return snapshot

    def update_thresholds(self, **changes: Any) -> DecisionConfig:
        """Validate and install a new policy config; returns it."""
        changes = {k: v for k, v in changes.items() if v is not None}
        config = DecisionConfig.model_validate({**self.config.model_dump(), **changes})
        self._policy = DecisionPolicy(config)
        logger.info("Decision thresholds updated", extra={"config": config.model_dump()})
        return config

    def classify(
        self,
        description: str | None,
        enrichment_data: Any = None,
        raw_data: Any = None,
        transaction_id: UUID | None = None,
    ) -> ClassificationResult:
        """Score a transaction and decide its main category. No I/O."""
        snapshot = self._snapshot
        policy = self._policy

        description_matches = score_description(
            description,
            snapshot.categories,
            min_valid_score=self.min_valid_score,
            unknown_name=self.unknown_name,
        )

        vendor_match = None
        vendor_label = extract_vendor_label(enrichment_data, raw_data)
        if vendor_label:
            vendor_match = score_vendor_label(
                vendor_label,
                snapshot.categories,
                min_valid_score=self.min_valid_score,
                unknown_name=self.unknown_name,
            )

        decision = policy.decide(description_matches, vendor_match)
        if decision.is_unknown:
            decision = decision.model_copy(update={"category_name": self.unknown_name})

        return ClassificationResult(
            transaction_id=transaction_id,
            decision=decision,
            category_ids=self.build_category_ids(decision),
        )

    def build_category_ids(self, decision: CategorizationDecision) -> tuple[UUID, ...]:
        """Main category first, then up to two description alternatives and
        the vendor category when it cleared its threshold."""
        main_id = decision.category_id
        ids: list[UUID] = []
        if main_id is not None:
            ids.append(main_id)

        alternatives = [
            m.category_id
            for m in decision.description_candidates
            if m.final_score >= self.min_valid_score and m.category_id != main_id
        ]
        for category_id in alternatives[:MAX_DESCRIPTION_ALTERNATIVES]:
            if category_id not in ids:
                ids.append(category_id)

        vendor = decision.vendor_candidate
        if (
            vendor is not None
            and vendor.category_id is not None
            and vendor.category_id != main_id
            and vendor.final_score >= decision.applied_thresholds.vendor
            and vendor.category_id not in ids
        ):
            ids.append(vendor.category_id)

        return tuple(ids)

    def match_keywords(self, description: str | None) -> list[UUID]:
        """Plain keyword substring matching against the current snapshot."""
        return match_keywords(
            description, self._snapshot.categories, unknown_name=self.unknown_name
        )
