"""
Study Reminder Repository

Data access layer for StudyReminder model, including the
time-window lookup the scheduler runs every minute.
"""

from datetime import time
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trafficrules.repositories.base import BaseRepository
from trafficrules.models.study_reminder import StudyReminder


class StudyReminderRepository(BaseRepository[StudyReminder]):
    """Repository for StudyReminder model."""

    def __init__(self, db: AsyncSession):
        super().__init__(StudyReminder, db)

    async def get_active_for_user(self, user_id: UUID) -> Optional[StudyReminder]:
        result = await self.db.execute(
            select(self.model)
            .where(
                self.model.user_id == user_id,
                self.model.is_active == True,
            )
            .order_by(self.model.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_owned(self, reminder_id: UUID, user_id: UUID) -> Optional[StudyReminder]:
        result = await self.db.execute(
            select(self.model).where(
                self.model.id == reminder_id,
                self.model.user_id == user_id,
                self.model.is_active == True,
            )
        )
        return result.scalar_one_or_none()

    async def get_schedulable_timezones(self) -> List[str]:
        """Distinct timezones among reminders that can currently fire."""
        result = await self.db.execute(
            select(self.model.timezone)
            .where(
                self.model.is_enabled == True,
                self.model.is_active == True,
            )
            .distinct()
        )
        return [tz for tz in result.scalars().all() if tz]

    async def find_due(
        self,
        timezone: str,
        reminder_time: time,
        skip: int = 0,
        limit: int = 100,
    ) -> List[StudyReminder]:
        """
        Enabled, active reminders in `timezone` set for exactly `reminder_time`.

        Day-of-week is stored as a JSON list and filtered by the caller, which
        pages with `skip` until it has enough reminders due today.
        """
        result = await self.db.execute(
            select(self.model)
            .where(
                self.model.is_enabled == True,
                self.model.is_active == True,
                self.model.timezone == timezone,
                self.model.reminder_time == reminder_time,
            )
            .order_by(self.model.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())
