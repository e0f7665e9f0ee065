"""Integration tests for the categorization audit log."""
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from txncat.repositories.category_score import CategoryScoreRepository
from txncat.schemas.internal import (
    AppliedThresholds,
    CategorizationDecision,
    CategorizationRecord,
    DescriptionMatch,
    FuzzyScores,
    OverrideRecord,
    VendorMatch,
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _decision(category_id, score, source="description", confidence="high", vendor=None):
    candidates = ()
    if category_id is not None:
        candidates = (
            DescriptionMatch(
                category_id=category_id,
                category_name="Cat",
                scores=FuzzyScores(),
                combined_score=score,
                final_score=score,
            ),
        )
    return CategorizationDecision(
        category_id=category_id,
        category_name="Cat",
        source=source,
        confidence=confidence,
        reason="test",
        description_candidates=candidates,
        vendor_candidate=vendor,
        applied_thresholds=AppliedThresholds(description=75, vendor=60, description_advantage=1.1),
    )


async def _record(repo, transaction_id, category_id, score, **kwargs):
    timestamp = kwargs.pop("timestamp", NOW)
    vendor_id = kwargs.pop("vendor_id", "isracard")
    return await repo.record_categorization(
        CategorizationRecord(
            transaction_id=transaction_id,
            vendor_id=vendor_id,
            description="desc",
            decision=_decision(category_id, score, **kwargs),
            main_category_id=category_id,
            timestamp=timestamp,
        )
    )


async def _override(repo, transaction_id, previous_id, new_id):
    return await repo.record_override(
        OverrideRecord(
            transaction_id=transaction_id,
            previous_main_category_id=previous_id,
            new_main_category_id=new_id,
            user_id="analyst",
            timestamp=NOW,
        )
    )


@pytest.mark.asyncio
async def test_record_categorization_stores_top_and_vendor(db_session):
    repo = CategoryScoreRepository(db_session)
    category_id, vendor_category = uuid4(), uuid4()

    row = await _record(
        repo,
        uuid4(),
        category_id,
        88,
        vendor=VendorMatch(category_id=vendor_category, category_name="V", final_score=70),
    )

    assert row.description_top_score == 88
    assert row.description_top_category_id == category_id
    assert row.vendor_score == 70
    assert row.vendor_category_id == vendor_category
    assert row.decision_confidence == "high"


@pytest.mark.asyncio
async def test_override_patterns_group_and_order(db_session):
    repo = CategoryScoreRepository(db_session)
    food, travel, fuel = uuid4(), uuid4(), uuid4()

    # Three overrides food -> travel, one food -> fuel
    for score in (80, 70, 61):
        txn = uuid4()
        await _record(repo, txn, food, score)
        await _override(repo, txn, food, travel)
    txn = uuid4()
    await _record(repo, txn, food, 90)
    await _override(repo, txn, food, fuel)
    await db_session.commit()

    patterns = await repo.get_override_patterns()

    assert [(p.system_choice, p.user_choice, p.override_count) for p in patterns] == [
        (food, travel, 3),
        (food, fuel, 1),
    ]
    assert patterns[0].avg_system_score == 70.33
    assert patterns[1].avg_system_score == 90


@pytest.mark.asyncio
async def test_override_patterns_ignore_overrides_of_other_mains(db_session):
    repo = CategoryScoreRepository(db_session)
    food, travel = uuid4(), uuid4()
    txn = uuid4()
    await _record(repo, txn, food, 80)
    # previous main differs from the audited main: not a correction of this decision
    await _override(repo, txn, uuid4(), travel)
    await db_session.commit()

    assert await repo.get_override_patterns() == []


@pytest.mark.asyncio
async def test_override_patterns_limit(db_session):
    repo = CategoryScoreRepository(db_session)
    food = uuid4()
    for _ in range(3):
        txn = uuid4()
        await _record(repo, txn, food, 80)
        await _override(repo, txn, food, uuid4())
    await db_session.commit()

    assert len(await repo.get_override_patterns(limit=2)) == 2


@pytest.mark.asyncio
async def test_categorization_analytics_filters(db_session):
    repo = CategoryScoreRepository(db_session)
    await _record(repo, uuid4(), uuid4(), 90, vendor_id="isracard", timestamp=NOW)
    await _record(
        repo,
        uuid4(),
        uuid4(),
        72,
        vendor_id="max",
        confidence="medium",
        timestamp=NOW - timedelta(days=10),
    )
    await _record(
        repo,
        uuid4(),
        None,
        0,
        vendor_id="max",
        source="unknown",
        confidence="low",
        timestamp=NOW - timedelta(days=20),
    )
    await db_session.commit()

    assert len(await repo.get_categorization_analytics()) == 3
    assert len(await repo.get_categorization_analytics(vendor_id="max")) == 2
    assert len(await repo.get_categorization_analytics(source="unknown")) == 1
    assert len(await repo.get_categorization_analytics(confidence="medium")) == 1

    recent = await repo.get_categorization_analytics(start=NOW - timedelta(days=15))
    assert len(recent) == 2
    assert recent[0].decision_confidence == "high"

    older = await repo.get_categorization_analytics(end=NOW - timedelta(days=5))
    assert len(older) == 2
