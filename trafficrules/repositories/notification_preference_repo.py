"""
Notification Preference Repository

One preferences row per user, created with defaults on first read.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from trafficrules.repositories.base import BaseRepository
from trafficrules.models.notification_preference import NotificationPreference


class NotificationPreferenceRepository(BaseRepository[NotificationPreference]):
    """Repository for NotificationPreference model."""

    def __init__(self, db: AsyncSession):
        super().__init__(NotificationPreference, db)

    async def get_by_user(self, user_id: UUID) -> Optional[NotificationPreference]:
        result = await self.db.execute(
            select(self.model).where(self.model.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, user_id: UUID) -> NotificationPreference:
        """
        Return the user's preferences, creating the default row if missing.

        Two concurrent first reads can race on the unique user_id; the loser
        rolls back and reads the winner's row.
        """
        preferences = await self.get_by_user(user_id)
        if preferences:
            return preferences

        try:
            return await self.create(user_id=user_id)
        except IntegrityError:
            await self.db.rollback()
            preferences = await self.get_by_user(user_id)
            if preferences is None:
                raise
            return preferences
