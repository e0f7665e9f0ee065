"""Generic repository shared by the categorization tables."""
from collections.abc import Sequence
from typing import Any, Generic, Type, TypeVar
from uuid import UUID

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from txncat.models.base import BaseModel

T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """Lookups by id plus committing create/update/delete for one model."""

    def __init__(self, db: AsyncSession, model: Type[T]):
        self.db = db
        self.model = model

    async def get_by_id(self, id: UUID) -> T | None:
        return await self.db.get(self.model, id)

    async def get_by_ids(self, ids: Sequence[UUID]) -> list[T]:
        """Load rows for ``ids`` in the given order. Missing ids are skipped."""
        if not ids:
            return []
        result = await self.db.execute(select(self.model).where(self.model.id.in_(ids)))
        by_id = {obj.id: obj for obj in result.scalars().all()}
        return [by_id[i] for i in ids if i in by_id]

    async def create(self, obj: T) -> T:
        """Insert and commit, returning the refreshed row."""
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def update(self, id: UUID, data: dict[str, Any]) -> T | None:
        """Set mapped columns from ``data`` and commit.

        Keys that are not columns of the model are ignored, as are the
        primary key and the timestamps.
        """
        obj = await self.get_by_id(id)
        if obj is None:
            return None

        columns = set(inspect(self.model).columns.keys()) - {"id", "created_at", "updated_at"}
        for key, value in data.items():
            if key in columns:
                setattr(obj, key, value)

        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def delete(self, id: UUID) -> bool:
        obj = await self.get_by_id(id)
        if obj is None:
            return False
        await self.db.delete(obj)
        await self.db.commit()
        return True
