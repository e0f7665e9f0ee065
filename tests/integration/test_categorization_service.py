"""Integration tests for the categorization orchestrator."""
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from txncat.categorization.engine import Categorizer
from txncat.core.exceptions import TransactionNotFoundError
from txncat.models.category import Category
from txncat.models.category_score import CategoryScore
from txncat.models.transaction import Transaction
from txncat.repositories.category_score import CategoryScoreRepository
from txncat.repositories.transaction_category import TransactionCategoryRepository
from txncat.services.categorization import CategorizationService
from txncat.services.transaction import TransactionService


async def _links(db_session, transaction_id):
    return await TransactionCategoryRepository(db_session).get_by_transaction_id(transaction_id)


async def _main(db_session, transaction_id):
    links = await _links(db_session, transaction_id)
    return next((link.category_id for link in links if link.is_main), None)


async def _stored_main(db_session: AsyncSession, transaction_id):
    result = await db_session.execute(
        select(Transaction.main_category_id).where(Transaction.id == transaction_id)
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_reload_creates_unknown_when_missing(db_session):
    fresh = Categorizer(unknown_name="Uncategorized")
    snapshot = await CategorizationService(db_session, fresh).reload_categories()

    row = (
        await db_session.execute(select(Category).where(Category.name == "Uncategorized"))
    ).scalar_one()
    assert snapshot.unknown_category_id == row.id


@pytest.mark.asyncio
async def test_classify_writes_audit_record(service, make_transaction, db_session, categories):
    txn = await make_transaction("NETFLIX", raw_data={"vendorId": "isracard"})

    result = await service.classify(txn)
    await db_session.commit()

    assert result.decision.category_id == categories["Streaming"].id
    rows = await CategoryScoreRepository(db_session).get_scores_for_transaction(txn.id)
    assert len(rows) == 1
    assert rows[0].vendor_id == "isracard"
    assert rows[0].decision_source == "description"
    assert rows[0].description_top_score == 100
    assert rows[0].main_category_id == categories["Streaming"].id
    # classification alone never touches links
    assert await _links(db_session, txn.id) == []


@pytest.mark.asyncio
async def test_unknown_decision_is_audited_against_unknown_row(
    service, make_transaction, db_session, categories
):
    txn = await make_transaction("qqqq")

    result = await service.classify(txn)

    assert result.decision.is_unknown
    rows = await CategoryScoreRepository(db_session).get_scores_for_transaction(txn.id)
    assert rows[0].main_category_id == categories["Unknown"].id
    assert rows[0].decision_source == "unknown"


@pytest.mark.asyncio
async def test_audit_failure_does_not_break_classification(
    service, make_transaction, db_session, monkeypatch
):
    txn = await make_transaction("netflix")

    async def broken_flush(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(db_session, "flush", broken_flush)
    result = await service.classify(txn)
    monkeypatch.undo()

    assert result.decision.source == "description"
    assert await CategoryScoreRepository(db_session).get_scores_for_transaction(txn.id) == []


@pytest.mark.asyncio
async def test_categorize_and_assign_sets_main(service, make_transaction, db_session, categories):
    txn = await make_transaction("spotify premium")

    await service.categorize_and_assign(txn.id)

    assert await _main(db_session, txn.id) == categories["Streaming"].id
    assert await _stored_main(db_session, txn.id) == categories["Streaming"].id


@pytest.mark.asyncio
async def test_categorize_and_assign_updates_loaded_transaction(
    service, make_transaction, categories
):
    txn = await make_transaction("netflix monthly")

    await service.categorize_and_assign(txn.id)

    assert txn.main_category_id == categories["Streaming"].id


@pytest.mark.asyncio
async def test_categorize_and_assign_keeps_manual_main(
    service, make_transaction, db_session, locks, categories
):
    txn = await make_transaction("netflix monthly")
    await TransactionService(db_session, locks).set_main_category(
        txn.id, categories["Groceries"].id, "analyst-1"
    )

    await service.categorize_and_assign(txn.id)

    links = {link.category_id: link for link in await _links(db_session, txn.id)}
    assert links[categories["Groceries"].id].is_main
    assert links[categories["Groceries"].id].is_manual
    assert not links[categories["Streaming"].id].is_main
    assert await _stored_main(db_session, txn.id) == categories["Groceries"].id


@pytest.mark.asyncio
async def test_categorize_and_assign_promotes_existing_automatic_link(
    service, make_transaction, db_session, categories
):
    txn = await make_transaction("netflix monthly")
    await TransactionCategoryRepository(db_session).attach(txn.id, categories["Streaming"].id)
    await db_session.commit()

    await service.categorize_and_assign(txn.id)

    assert await _main(db_session, txn.id) == categories["Streaming"].id
    assert await _stored_main(db_session, txn.id) == categories["Streaming"].id


@pytest.mark.asyncio
async def test_categorize_and_assign_falls_back_to_unknown(
    service, make_transaction, db_session, categories
):
    txn = await make_transaction("qqqq")

    await service.categorize_and_assign(txn.id)

    links = await _links(db_session, txn.id)
    assert [(link.category_id, link.is_main) for link in links] == [
        (categories["Unknown"].id, True)
    ]


@pytest.mark.asyncio
async def test_reclassify_one_replaces_automatic_links(
    service, make_transaction, db_session, categories
):
    txn = await make_transaction("qqqq")
    await service.categorize_and_assign(txn.id)

    result = await service.reclassify_one(txn.id, description="petrol")

    assert result.decision.category_id == categories["Fuel"].id
    assert await _main(db_session, txn.id) == categories["Fuel"].id
    assert categories["Unknown"].id not in {
        link.category_id for link in await _links(db_session, txn.id)
    }


@pytest.mark.asyncio
async def test_reclassify_one_missing_transaction(service):
    with pytest.raises(TransactionNotFoundError):
        await service.reclassify_one(uuid4())


@pytest.mark.asyncio
async def test_reclassify_all_upgrades_unknown_only(
    service, make_transaction, db_session, categories
):
    txn = await make_transaction("netflix")
    repo = TransactionCategoryRepository(db_session)
    await repo.attach(txn.id, categories["Unknown"].id, is_main=True)
    await db_session.commit()

    summary = await service.reclassify_all()

    assert summary.processed == 1
    assert summary.updated == 1
    links = await _links(db_session, txn.id)
    assert [(link.category_id, link.is_main) for link in links] == [
        (categories["Streaming"].id, True)
    ]
    assert await _stored_main(db_session, txn.id) == categories["Streaming"].id


@pytest.mark.asyncio
async def test_reclassify_all_never_touches_manual_links(
    service, make_transaction, db_session, categories
):
    txn = await make_transaction("netflix")
    repo = TransactionCategoryRepository(db_session)
    await repo.attach(txn.id, categories["Groceries"].id, is_manual=True, is_main=True)
    await db_session.commit()

    summary = await service.reclassify_all()

    assert summary.updated == 0
    links = await _links(db_session, txn.id)
    assert [(link.category_id, link.is_manual, link.is_main) for link in links] == [
        (categories["Groceries"].id, True, True)
    ]


@pytest.mark.asyncio
async def test_reclassify_all_attaches_without_promoting(
    service, make_transaction, db_session, categories
):
    txn = await make_transaction("netflix")
    repo = TransactionCategoryRepository(db_session)
    await repo.attach(txn.id, categories["Groceries"].id, is_main=True)
    await db_session.commit()

    summary = await service.reclassify_all()

    assert summary.updated == 1
    links = {link.category_id: link for link in await _links(db_session, txn.id)}
    assert links[categories["Groceries"].id].is_main
    assert not links[categories["Streaming"].id].is_main


@pytest.mark.asyncio
async def test_reclassify_all_promotes_when_no_main(
    service, make_transaction, db_session, categories
):
    txn = await make_transaction("netflix")
    repo = TransactionCategoryRepository(db_session)
    await repo.attach(txn.id, categories["Streaming"].id)
    await db_session.commit()

    summary = await service.reclassify_all()

    assert summary.updated == 1
    assert await _main(db_session, txn.id) == categories["Streaming"].id


@pytest.mark.asyncio
async def test_reclassify_all_is_idempotent(service, make_transaction, db_session, categories):
    txn = await make_transaction("netflix")

    first = await service.reclassify_all()
    second = await service.reclassify_all()

    assert first.updated == 1
    assert second.updated == 0
    assert await _main(db_session, txn.id) == categories["Streaming"].id


@pytest.mark.asyncio
async def test_reclassify_all_leaves_unknown_decisions_alone(
    service, make_transaction, db_session, categories
):
    txn = await make_transaction("qqqq")
    repo = TransactionCategoryRepository(db_session)
    await repo.attach(txn.id, categories["Unknown"].id, is_main=True)
    await db_session.commit()

    summary = await service.reclassify_all()

    assert summary.updated == 0
    assert await _main(db_session, txn.id) == categories["Unknown"].id


@pytest.mark.asyncio
async def test_reclassify_all_uses_forced_main_when_it_is_a_candidate(
    service, make_transaction, db_session, categories
):
    # vendor label wins the decision, the description match is an alternative
    txn = await make_transaction("qqqq netflix", enrichment_data={"sector": "fuel"})
    result = service.categorizer.classify(txn.description, txn.enrichment_data)
    assert result.decision.category_id == categories["Fuel"].id
    assert categories["Streaming"].id in result.category_ids

    summary = await service.reclassify_all(force_main_category_id=categories["Streaming"].id)

    assert summary.updated == 1
    assert await _main(db_session, txn.id) == categories["Streaming"].id


@pytest.mark.asyncio
async def test_reclassify_all_survives_failures(
    service, make_transaction, db_session, categories, monkeypatch
):
    good_before = await make_transaction("netflix")
    bad = await make_transaction("BROKEN spotify")
    good_after = await make_transaction("petrol")

    original = service.categorizer.classify

    def flaky_classify(description, *args, **kwargs):
        if description and description.startswith("BROKEN"):
            raise ValueError("malformed transaction")
        return original(description, *args, **kwargs)

    monkeypatch.setattr(service.categorizer, "classify", flaky_classify)

    summary = await service.reclassify_all()

    assert summary.processed == 3
    assert summary.updated == 2
    assert summary.failed == 1
    assert await _main(db_session, good_before.id) == categories["Streaming"].id
    assert await _main(db_session, good_after.id) == categories["Fuel"].id
    assert await _links(db_session, bad.id) == []


@pytest.mark.asyncio
async def test_reclassify_all_writes_one_audit_record_per_transaction(
    service, make_transaction, db_session
):
    for description in ("netflix", "petrol", "qqqq"):
        await make_transaction(description)

    await service.reclassify_all()

    count = len((await db_session.execute(select(CategoryScore))).scalars().all())
    assert count == 3
