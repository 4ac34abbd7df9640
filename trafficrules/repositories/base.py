"""
Base Repository

Generic data access shared by the model repositories. Repositories
receive the request's (or task's) AsyncSession and commit their own
writes.
"""

from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from trafficrules.db.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Lookup, insert, update and count for one model."""

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        result = await self.db.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def create(self, **values) -> ModelType:
        """Insert, commit and return the refreshed row (server defaults loaded)."""
        instance = self.model(**values)
        self.db.add(instance)
        await self.db.commit()
        await self.db.refresh(instance)
        return instance

    async def update(self, id: Any, **values) -> Optional[ModelType]:
        """Apply `values` to the row with `id`; None if it does not exist."""
        instance = await self.get_by_id(id)
        if instance is None:
            return None

        for key, value in values.items():
            setattr(instance, key, value)
        await self.db.commit()
        await self.db.refresh(instance)
        return instance

    async def count(self) -> int:
        result = await self.db.execute(select(func.count(self.model.id)))
        return result.scalar() or 0
