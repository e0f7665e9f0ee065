import sys
from collections.abc import Awaitable, Callable
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

sys.path.append(str(Path(__file__).parents[1] / "src"))

from txncat.categorization.engine import Categorizer
from txncat.db.session import build_engine, get_db
from txncat.main import app
from txncat.models.base import Base
from txncat.models.category import Category
from txncat.models.transaction import Transaction
from txncat.services.categorization import CategorizationService
from txncat.services.locks import TransactionLocks
from txncat.services.recategorization import RecategorizationQueue


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite database file per test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Provide test database session with fresh connection per test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def categories(db_session: AsyncSession) -> dict[str, Category]:
    """Seed a small category tree keyed by name."""
    rows = [
        Category(name="Unknown", keywords=[]),
        Category(name="Streaming", keywords=["netflix", "spotify"]),
        Category(name="Groceries", keywords=["supermarket", "shufersal"]),
        Category(name="Fuel", keywords=["fuel station", "petrol"]),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return {c.name: c for c in rows}


@pytest.fixture
def locks() -> TransactionLocks:
    return TransactionLocks()


@pytest.fixture
async def categorizer(db_session: AsyncSession, categories) -> Categorizer:
    """Categorizer loaded with the seeded categories."""
    categorizer = Categorizer()
    await CategorizationService(db_session, categorizer).reload_categories()
    return categorizer


@pytest.fixture
def service(db_session, categorizer, locks) -> CategorizationService:
    return CategorizationService(db_session, categorizer, locks, batch_size=2)


@pytest.fixture
def make_transaction(db_session: AsyncSession) -> Callable[..., Awaitable[Transaction]]:
    """Factory persisting a transaction with sensible defaults."""

    async def _make(
        description: str,
        enrichment_data: dict | None = None,
        raw_data: dict | None = None,
        **kwargs,
    ) -> Transaction:
        txn = Transaction(
            account_id=kwargs.pop("account_id", uuid4()),
            txn_date=kwargs.pop("txn_date", date(2024, 1, 15)),
            amount=kwargs.pop("amount", Decimal("-42.90")),
            description=description,
            enrichment_data=enrichment_data,
            raw_data=raw_data,
            **kwargs,
        )
        db_session.add(txn)
        await db_session.commit()
        return txn

    return _make


@pytest.fixture
async def client(db_session: AsyncSession, categorizer: Categorizer, session_factory):
    """Provide test client with database and shared-state overrides."""

    async def override_get_db():
        yield db_session

    original_categorizer = app.state.categorizer
    original_queue = app.state.recategorization_queue
    app.state.categorizer = categorizer
    # Worker is not started: submitted jobs stay pending.
    app.state.recategorization_queue = RecategorizationQueue(session_factory, categorizer)
    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.categorizer = original_categorizer
    app.state.recategorization_queue = original_queue
