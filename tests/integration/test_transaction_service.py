"""Integration tests for manual category management."""
from uuid import uuid4

import pytest
from sqlalchemy import select

from txncat.core.exceptions import (
    CategoryLinkNotFoundError,
    CategoryNotFoundError,
    DuplicateCategoryNameError,
    TransactionNotFoundError,
)
from txncat.models.category_override import CategoryOverride
from txncat.repositories.transaction_category import TransactionCategoryRepository
from txncat.services.transaction import TransactionService


@pytest.fixture
def txn_service(db_session, locks) -> TransactionService:
    return TransactionService(db_session, locks)


async def _overrides(db_session, transaction_id):
    result = await db_session.execute(
        select(CategoryOverride).where(CategoryOverride.transaction_id == transaction_id)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_set_main_category_attaches_manual_link_and_records_override(
    txn_service, service, make_transaction, db_session, categories
):
    txn = await make_transaction("spotify premium")
    await service.categorize_and_assign(txn.id)

    link = await txn_service.set_main_category(
        txn.id, categories["Groceries"].id, "analyst-7", reason="family shopping"
    )

    assert link.is_main
    assert link.is_manual
    links = await txn_service.get_categories(txn.id)
    mains = [l.category_id for l in links if l.is_main]
    assert mains == [categories["Groceries"].id]
    assert (await txn_service.get_transaction(txn.id)).main_category_id == categories[
        "Groceries"
    ].id

    overrides = await _overrides(db_session, txn.id)
    assert len(overrides) == 1
    assert overrides[0].previous_main_category_id == categories["Streaming"].id
    assert overrides[0].new_main_category_id == categories["Groceries"].id
    assert overrides[0].user_id == "analyst-7"
    assert overrides[0].reason == "family shopping"


@pytest.mark.asyncio
async def test_set_main_category_on_existing_link_marks_it_manual(
    txn_service, make_transaction, db_session, categories
):
    txn = await make_transaction("netflix")
    repo = TransactionCategoryRepository(db_session)
    await repo.attach(txn.id, categories["Streaming"].id, is_main=True)
    await repo.attach(txn.id, categories["Fuel"].id)
    await db_session.commit()

    await txn_service.set_main_category(txn.id, categories["Fuel"].id, "anonymous")

    links = {l.category_id: l for l in await txn_service.get_categories(txn.id)}
    assert links[categories["Fuel"].id].is_main
    assert links[categories["Fuel"].id].is_manual
    assert not links[categories["Streaming"].id].is_main


@pytest.mark.asyncio
async def test_set_same_main_category_records_no_override(
    txn_service, make_transaction, db_session, categories
):
    txn = await make_transaction("netflix")
    await txn_service.set_main_category(txn.id, categories["Streaming"].id, "a")
    await txn_service.set_main_category(txn.id, categories["Streaming"].id, "a")

    assert len(await _overrides(db_session, txn.id)) == 1


@pytest.mark.asyncio
async def test_manual_override_survives_sweep(
    txn_service, service, make_transaction, categories
):
    txn = await make_transaction("netflix")
    await txn_service.set_main_category(txn.id, categories["Fuel"].id, "a")

    summary = await service.reclassify_all()

    assert summary.updated == 0
    links = await txn_service.get_categories(txn.id)
    assert [(l.category_id, l.is_main) for l in links] == [(categories["Fuel"].id, True)]


@pytest.mark.asyncio
async def test_set_main_category_unknown_category(txn_service, make_transaction):
    txn = await make_transaction("netflix")
    with pytest.raises(CategoryNotFoundError):
        await txn_service.set_main_category(txn.id, uuid4(), "a")


@pytest.mark.asyncio
async def test_set_main_category_unknown_transaction(txn_service, categories):
    with pytest.raises(TransactionNotFoundError):
        await txn_service.set_main_category(uuid4(), categories["Fuel"].id, "a")


@pytest.mark.asyncio
async def test_attach_categories(txn_service, make_transaction, categories):
    txn = await make_transaction("weekly shop")

    links = await txn_service.attach_categories(
        txn.id,
        [categories["Groceries"].id, categories["Fuel"].id],
        mark_first_as_main=True,
    )

    assert [(l.category_id, l.is_main, l.is_manual) for l in links][0] == (
        categories["Groceries"].id,
        True,
        True,
    )
    assert len(links) == 2

    # attaching again is a no-op
    again = await txn_service.attach_categories(txn.id, [categories["Fuel"].id])
    assert len(again) == 2


@pytest.mark.asyncio
async def test_attach_unknown_category(txn_service, make_transaction):
    txn = await make_transaction("weekly shop")
    with pytest.raises(CategoryNotFoundError):
        await txn_service.attach_categories(txn.id, [uuid4()])


@pytest.mark.asyncio
async def test_detach_category(txn_service, make_transaction, categories):
    txn = await make_transaction("weekly shop")
    await txn_service.attach_categories(
        txn.id, [categories["Groceries"].id], mark_first_as_main=True
    )

    await txn_service.detach_category(txn.id, categories["Groceries"].id)

    assert await txn_service.get_categories(txn.id) == []
    assert (await txn_service.get_transaction(txn.id)).main_category_id is None
    with pytest.raises(CategoryLinkNotFoundError):
        await txn_service.detach_category(txn.id, categories["Groceries"].id)


@pytest.mark.asyncio
async def test_assign_new_category(txn_service, make_transaction, categories):
    txn = await make_transaction("dog grooming salon")

    category, link = await txn_service.assign_new_category(
        txn.id, "Pets", ["grooming"], user_id="analyst"
    )

    assert category.name == "Pets"
    assert category.keywords == ["grooming"]
    assert link.is_main and link.is_manual
    with pytest.raises(DuplicateCategoryNameError):
        await txn_service.assign_new_category(txn.id, "Pets")
