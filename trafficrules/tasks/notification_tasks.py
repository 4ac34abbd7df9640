"""
Notification Tasks

Bodies of the periodic notification jobs run by the scheduler:

- check_study_reminders: find reminders due this minute and dispatch them
- process_scheduled_notifications: send device pushes for due notifications
- send_weekly_reports: weekly exam activity summary per user

Every function takes a session factory instead of a session. Each unit of
work (one reminder, one pending push, one user) opens its own session, so
concurrent dispatches never share a connection and a failure rolls back
only that unit.
"""

import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, TYPE_CHECKING
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trafficrules.core.config import settings
from trafficrules.repositories.exam_result_repo import ExamResultRepository
from trafficrules.repositories.notification_preference_repo import NotificationPreferenceRepository
from trafficrules.repositories.notification_repo import NotificationRepository
from trafficrules.repositories.study_reminder_repo import StudyReminderRepository
from trafficrules.repositories.user_repo import UserRepository
from trafficrules.schemas.notification import (
    NotificationCategory,
    NotificationPriority,
    NotificationType,
)
from trafficrules.services.notification_service import (
    NotificationService,
    send_push_notification,
)
from trafficrules.services.reminder_schedule import (
    day_name,
    due_wall_times,
    local_now,
    matches,
    next_occurrence,
    same_local_minute,
    validate_days,
)

if TYPE_CHECKING:
    from trafficrules.services.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]


def _as_utc(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def _coerce_days(value) -> List[str]:
    """days_of_week as a list, tolerating rows that stored a JSON string."""
    if isinstance(value, str):
        value = json.loads(value or "[]")
    return validate_days(value)


# ============================================================
# STUDY REMINDERS
# ============================================================

async def find_due_reminders(
    session_factory: SessionFactory,
    now: datetime,
    limit: int,
) -> List[UUID]:
    """
    IDs of enabled, active reminders due in the minute containing `now`,
    at most `limit` of them.

    Matching happens on each reminder's own wall clock: for every timezone
    in use, `now` is converted to local time and only reminders set for that
    local HH:MM (or a skipped DST wall time resolving to it) are fetched.
    Day-of-week is checked in-process, so rows are paged until `limit`
    reminders due today are found or the slot is exhausted.
    """
    due: List[UUID] = []

    async with session_factory() as db:
        repo = StudyReminderRepository(db)

        for tz_name in await repo.get_schedulable_timezones():
            if len(due) >= limit:
                logger.warning("Reminder cap of %d reached; remaining timezones wait for next tick", limit)
                break

            try:
                local = local_now(now, tz_name)
                wall_times = due_wall_times(now, tz_name)
            except ValueError:
                logger.error("Skipping reminders with unknown timezone %r", tz_name)
                continue

            today = day_name(local)
            for wall_time in wall_times:
                skip = 0
                while len(due) < limit:
                    candidates = await repo.find_due(tz_name, wall_time, skip=skip, limit=limit)
                    for reminder in candidates:
                        try:
                            days = _coerce_days(reminder.days_of_week)
                        except ValueError as e:
                            logger.error("Reminder %s has invalid days_of_week: %s", reminder.id, e)
                            continue
                        if today in days and len(due) < limit:
                            due.append(reminder.id)
                    if len(candidates) < limit:
                        break
                    skip += limit

    return due


async def dispatch_reminder(
    session_factory: SessionFactory,
    reminder_id: UUID,
    now: datetime,
    connection_manager: Optional["ConnectionManager"] = None,
) -> bool:
    """
    Turn one due reminder into at most one notification and advance it.

    The reminder is re-read and re-checked first, since it may have been
    edited, disabled or already sent since the matching query ran. When
    the user has study reminders switched off no notification is created,
    but last_sent_at and next_scheduled_at still move forward.

    Returns:
        True if the reminder was processed, False if skipped or failed
    """
    now = _as_utc(now)
    try:
        async with session_factory() as db:
            reminder = await StudyReminderRepository(db).get_by_id(reminder_id)
            if reminder is None or not (reminder.is_enabled and reminder.is_active):
                logger.info("Reminder %s no longer enabled, skipping", reminder_id)
                return False

            days = _coerce_days(reminder.days_of_week)
            if not matches(reminder.reminder_time, days, reminder.timezone, now):
                logger.info("Reminder %s no longer due at %s, skipping", reminder_id, now.isoformat())
                return False

            if reminder.last_sent_at and same_local_minute(reminder.last_sent_at, now, reminder.timezone):
                logger.info("Reminder %s already sent this minute, skipping", reminder_id)
                return False

            service = NotificationService(db, connection_manager)
            await service.send_study_reminder(reminder)

            reminder.last_sent_at = now
            reminder.next_scheduled_at = next_occurrence(
                reminder.reminder_time, days, reminder.timezone, now
            )
            await db.commit()

            logger.info("Reminder %s processed; next at %s", reminder_id, reminder.next_scheduled_at)
            return True

    except Exception:
        logger.exception("Failed to dispatch study reminder %s", reminder_id)
        return False


async def check_study_reminders(
    session_factory: SessionFactory,
    now: Optional[datetime] = None,
    connection_manager: Optional["ConnectionManager"] = None,
    limit: Optional[int] = None,
    batch_size: Optional[int] = None,
) -> int:
    """
    Dispatch every reminder due this minute.

    Due reminders are processed in fixed-size batches: reminders inside a
    batch run concurrently, batches run one after another.

    Returns:
        Number of reminders processed
    """
    now = _as_utc(now)
    limit = limit or settings.REMINDER_QUERY_LIMIT
    batch_size = batch_size or settings.REMINDER_BATCH_SIZE

    due_ids = await find_due_reminders(session_factory, now, limit)
    if not due_ids:
        logger.debug("No study reminders due at %s", now.isoformat())
        return 0

    logger.info("Dispatching %d due study reminders", len(due_ids))

    processed = 0
    for start in range(0, len(due_ids), batch_size):
        batch = due_ids[start:start + batch_size]
        results = await asyncio.gather(*(
            dispatch_reminder(session_factory, reminder_id, now, connection_manager)
            for reminder_id in batch
        ))
        processed += sum(1 for ok in results if ok)

    logger.info("Study reminder check complete: %d/%d processed", processed, len(due_ids))
    return processed


# ============================================================
# SCHEDULED NOTIFICATIONS (device push)
# ============================================================

async def _push_one(session_factory: SessionFactory, notification_id: UUID) -> bool:
    async with session_factory() as db:
        notification = await NotificationRepository(db).get_by_id(notification_id)
        if notification is None or notification.is_push_sent:
            return False

        preferences = await NotificationPreferenceRepository(db).get_or_create(notification.user_id)
        user = await UserRepository(db).get_by_id(notification.user_id)

        delivered = False
        if preferences.push_notifications and user and user.fcm_token:
            delivered = await send_push_notification(
                fcm_token=user.fcm_token,
                title=notification.title,
                body=notification.message,
                data={
                    "notification_id": str(notification.id),
                    "type": notification.type,
                },
            )

        # Marked even when not delivered: a missing token or disabled
        # channel must not be retried every minute
        notification.is_push_sent = True
        await db.commit()
        return delivered


async def process_scheduled_notifications(
    session_factory: SessionFactory,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> int:
    """
    Send device pushes for notifications whose scheduled_for has passed.

    Returns:
        Number of pushes actually delivered
    """
    now = _as_utc(now)
    limit = limit or settings.REMINDER_QUERY_LIMIT

    async with session_factory() as db:
        pending = await NotificationRepository(db).get_pending_push(now, limit=limit)
        pending_ids = [n.id for n in pending]

    if not pending_ids:
        return 0

    delivered = 0
    for notification_id in pending_ids:
        try:
            if await _push_one(session_factory, notification_id):
                delivered += 1
        except Exception:
            logger.exception("Failed to push notification %s", notification_id)

    logger.info("Scheduled push pass: %d/%d delivered", delivered, len(pending_ids))
    return delivered


# ============================================================
# WEEKLY REPORTS
# ============================================================

async def _active_user_ids(session_factory: SessionFactory, page_size: int) -> List[UUID]:
    user_ids: List[UUID] = []
    async with session_factory() as db:
        repo = UserRepository(db)
        skip = 0
        while True:
            users = await repo.get_active_users(skip=skip, limit=page_size)
            user_ids.extend(u.id for u in users)
            if len(users) < page_size:
                break
            skip += page_size
    return user_ids


async def send_weekly_report(
    session_factory: SessionFactory,
    user_id: UUID,
    now: datetime,
    connection_manager: Optional["ConnectionManager"] = None,
) -> bool:
    """
    Summarize one user's last seven days of exams.

    Returns:
        True if a report notification was created
    """
    week_start = now - timedelta(days=7)

    async with session_factory() as db:
        preferences = await NotificationPreferenceRepository(db).get_or_create(user_id)
        if not preferences.weekly_reports:
            return False

        summary = await ExamResultRepository(db).summarize_for_user(user_id, week_start, now)
        if summary.total_exams == 0:
            return False

        average = round(summary.average_score, 1)
        await NotificationService(db, connection_manager).create_notification(
            user_id=user_id,
            type=NotificationType.WEEKLY_REPORT,
            title="Weekly Study Report",
            message=(
                f"This week you took {summary.total_exams} exams, passed {summary.passed_exams}, "
                f"with an average score of {average:.1f}%. Keep up the great work!"
            ),
            category=NotificationCategory.GENERAL,
            priority=NotificationPriority.LOW,
            data={
                "totalExams": summary.total_exams,
                "passedExams": summary.passed_exams,
                "averageScore": average,
                "weekStart": week_start.isoformat(),
                "weekEnd": now.isoformat(),
            },
        )
        return True


async def send_weekly_reports(
    session_factory: SessionFactory,
    now: Optional[datetime] = None,
    connection_manager: Optional["ConnectionManager"] = None,
    page_size: int = 500,
) -> int:
    """
    Send the weekly report to every active user who opted in and had
    at least one exam result in the past seven days.

    Returns:
        Number of reports sent
    """
    now = _as_utc(now)
    user_ids = await _active_user_ids(session_factory, page_size)

    sent = 0
    for user_id in user_ids:
        try:
            if await send_weekly_report(session_factory, user_id, now, connection_manager):
                sent += 1
        except Exception:
            logger.exception("Failed to send weekly report to user %s", user_id)

    logger.info("Weekly reports sent: %d (of %d active users)", sent, len(user_ids))
    return sent
