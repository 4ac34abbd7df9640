"""
User Repository

Read access to users for notification delivery.
"""

from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from trafficrules.repositories.base import BaseRepository
from trafficrules.models import User

class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    # =================
    # Active users
    # =================
    async def get_active_users(self, skip: int = 0, limit: int = 500) -> List[User]:
        """Active users in a stable order, for paging through everyone."""
        result = await self.db.execute(
            select(User)
            .where(User.is_active == True)
            .order_by(User.created_at, User.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())
