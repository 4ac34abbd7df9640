"""
Study Reminder Service

Business logic for creating, updating and soft-deleting study reminders.

Every write keeps next_scheduled_at in sync with the reminder's time,
days and timezone. Delivery itself is done by the polling scheduler,
which only ever looks at enabled, active reminders.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from trafficrules.core.config import settings
from trafficrules.models.study_reminder import StudyReminder
from trafficrules.repositories.study_reminder_repo import StudyReminderRepository
from trafficrules.schemas.study_reminder import StudyReminderCreate, StudyReminderUpdate
from trafficrules.services.reminder_schedule import (
    get_zone,
    next_occurrence,
    parse_reminder_time,
    validate_days,
)

logger = logging.getLogger(__name__)

# Fields whose change moves the next fire time
SCHEDULE_FIELDS = {"reminder_time", "days_of_week", "timezone"}


class StudyReminderError(Exception):
    pass


class StudyReminderNotFoundError(StudyReminderError):
    pass


class StudyReminderExistsError(StudyReminderError):
    pass


class InvalidReminderError(StudyReminderError):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StudyReminderService:
    """Service class for study reminder operations."""

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = _utcnow):
        self.db = db
        self.clock = clock
        self.reminder_repo = StudyReminderRepository(db)

    # ============================================================
    # Create Reminder
    # ============================================================
    async def create_study_reminder(
        self,
        user_id: UUID,
        reminder_data: StudyReminderCreate,
    ) -> StudyReminder:
        """
        Create the user's study reminder and compute its first fire time.

        Raises:
            StudyReminderExistsError: If the user already has an active reminder
            InvalidReminderError: If time, days or timezone are invalid
        """
        existing = await self.reminder_repo.get_active_for_user(user_id)
        if existing:
            raise StudyReminderExistsError("User already has an active study reminder")

        tz_name = reminder_data.timezone or settings.TIMEZONE
        reminder_time, days = self._validate_schedule(
            reminder_data.reminder_time, reminder_data.days_of_week, tz_name
        )

        reminder = await self.reminder_repo.create(
            user_id=user_id,
            reminder_time=reminder_time,
            days_of_week=days,
            study_goal_minutes=reminder_data.study_goal_minutes,
            timezone=tz_name,
            is_enabled=True,
            is_active=True,
            next_scheduled_at=next_occurrence(reminder_time, days, tz_name, self.clock()),
        )
        logger.info(
            "Study reminder %s created for user %s (next at %s)",
            reminder.id, user_id, reminder.next_scheduled_at,
        )
        return reminder

    # ============================================================
    # Get Reminder
    # ============================================================
    async def get_study_reminder(self, user_id: UUID) -> Optional[StudyReminder]:
        """The user's active reminder, if any."""
        return await self.reminder_repo.get_active_for_user(user_id)

    # ============================================================
    # Update Reminder
    # ============================================================
    async def update_study_reminder(
        self,
        reminder_id: UUID,
        user_id: UUID,
        update_data: StudyReminderUpdate,
    ) -> StudyReminder:
        """
        Update a reminder, verifying ownership.

        next_scheduled_at is recomputed when the time, days or timezone
        change, and when a disabled reminder is switched back on.

        Raises:
            StudyReminderNotFoundError: If missing, not owned, or deleted
            InvalidReminderError: If the resulting schedule is invalid
        """
        reminder = await self.reminder_repo.get_owned(reminder_id, user_id)
        if not reminder:
            raise StudyReminderNotFoundError("Study reminder not found")

        changes = update_data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return reminder

        was_enabled = reminder.is_enabled
        for key, value in changes.items():
            setattr(reminder, key, value)

        reschedule = bool(SCHEDULE_FIELDS & changes.keys()) or (
            reminder.is_enabled and not was_enabled
        )
        if reschedule:
            reminder_time, days = self._validate_schedule(
                reminder.reminder_time, reminder.days_of_week, reminder.timezone
            )
            reminder.reminder_time = reminder_time
            reminder.days_of_week = days
            reminder.next_scheduled_at = next_occurrence(
                reminder_time, days, reminder.timezone, self.clock()
            )

        await self.db.commit()
        await self.db.refresh(reminder)
        return reminder

    # ============================================================
    # Delete Reminder
    # ============================================================
    async def delete_study_reminder(self, reminder_id: UUID, user_id: UUID) -> bool:
        """
        Soft-delete a reminder. The scheduler never picks up inactive reminders.

        Raises:
            StudyReminderNotFoundError: If missing, not owned, or already deleted
        """
        reminder = await self.reminder_repo.get_owned(reminder_id, user_id)
        if not reminder:
            raise StudyReminderNotFoundError("Study reminder not found")

        reminder.is_active = False
        reminder.next_scheduled_at = None
        await self.db.commit()
        logger.info("Study reminder %s deleted by user %s", reminder_id, user_id)
        return True

    # ============================================================
    # HELPERS
    # ============================================================

    def _validate_schedule(self, reminder_time, days_of_week, tz_name: str):
        try:
            get_zone(tz_name)
            return parse_reminder_time(reminder_time), validate_days(days_of_week)
        except ValueError as e:
            raise InvalidReminderError(str(e))
