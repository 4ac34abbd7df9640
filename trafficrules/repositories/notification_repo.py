"""
Notification Repository

Data access layer for Notification model.
"""

from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from trafficrules.repositories.base import BaseRepository
from trafficrules.models.notification import Notification


class NotificationRepository(BaseRepository[Notification]):
    """Repository for Notification model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Notification, db)

    async def get_for_user(self, notification_id: UUID, user_id: UUID) -> Optional[Notification]:
        result = await self.db.execute(
            select(self.model).where(
                self.model.id == notification_id,
                self.model.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_user(
        self,
        user_id: UUID,
        skip: int = 0,
        limit: int = 20,
        unread_only: bool = False,
        type: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Tuple[List[Notification], int]:
        """Page of a user's notifications (newest first) and the total count."""
        conditions = [self.model.user_id == user_id]
        if unread_only:
            conditions.append(self.model.is_read == False)
        if type:
            conditions.append(self.model.type == type)
        if category:
            conditions.append(self.model.category == category)

        total = (
            await self.db.execute(select(func.count(self.model.id)).where(*conditions))
        ).scalar() or 0

        result = await self.db.execute(
            select(self.model)
            .where(*conditions)
            .order_by(self.model.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def count_unread(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(self.model.id)).where(
                self.model.user_id == user_id,
                self.model.is_read == False,
            )
        )
        return result.scalar() or 0

    async def mark_all_read(self, user_id: UUID) -> int:
        result = await self.db.execute(
            update(self.model)
            .where(
                self.model.user_id == user_id,
                self.model.is_read == False,
            )
            .values(is_read=True)
        )
        await self.db.commit()
        return result.rowcount

    async def get_pending_push(self, now: datetime, limit: int = 100) -> List[Notification]:
        """Notifications due for device push that have not been pushed yet."""
        result = await self.db.execute(
            select(self.model)
            .where(
                self.model.scheduled_for <= now,
                self.model.is_push_sent == False,
            )
            .order_by(self.model.scheduled_for)
            .limit(limit)
        )
        return list(result.scalars().all())
