"""
Background Tasks Module

Bodies of the periodic notification jobs. They are scheduled by
trafficrules.scheduler.NotificationScheduler and can also be awaited
directly (tests, admin "fire now" tooling).

Task Organization:
-----------------
- notification_tasks.py: study reminders, scheduled device pushes,
  weekly reports

Each task takes an async_sessionmaker rather than a session, so the
same function runs against the application database or a test one.
"""

from trafficrules.tasks.notification_tasks import (
    check_study_reminders,
    dispatch_reminder,
    process_scheduled_notifications,
    send_weekly_reports,
)

__all__ = [
    "check_study_reminders",
    "dispatch_reminder",
    "process_scheduled_notifications",
    "send_weekly_reports",
]
