import uuid
from datetime import datetime, time, timedelta, timezone

from sqlalchemy import select

from trafficrules.models import ExamResult, Notification, StudyReminder
from trafficrules.schemas.notification import NotificationType
from trafficrules.services.notification_service import NotificationService
from trafficrules.tasks import notification_tasks
from trafficrules.tasks.notification_tasks import (
    check_study_reminders,
    process_scheduled_notifications,
    send_weekly_reports,
)

UTC = timezone.utc

# Monday 09:00:20 UTC
NOW = datetime(2026, 10, 19, 9, 0, 20, tzinfo=UTC)


def _utc(value):
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


async def _notifications(session_factory, user_id):
    async with session_factory() as session:
        result = await session.execute(
            select(Notification).where(Notification.user_id == user_id)
        )
        return list(result.scalars().all())


async def _reload(session_factory, model, id):
    async with session_factory() as session:
        return await session.get(model, id)


class FakeConnectionManager:
    def __init__(self):
        self.sent = []

    async def send_to_user(self, user_id, data):
        self.sent.append((user_id, data))


# ============================================================
# Study reminders
# ============================================================

async def test_due_reminder_creates_one_notification(session_factory, make_user, make_reminder):
    user = await make_user()
    reminder = await make_reminder(user.id, reminder_time=time(9, 0), days_of_week=["Monday"], study_goal_minutes=45)

    processed = await check_study_reminders(session_factory, now=NOW)

    assert processed == 1
    notifications = await _notifications(session_factory, user.id)
    assert len(notifications) == 1
    notification = notifications[0]
    assert notification.type == NotificationType.STUDY_REMINDER.value
    assert notification.category == "STUDY"
    assert "45" in notification.message
    assert notification.data["reminderId"] == str(reminder.id)

    reloaded = await _reload(session_factory, StudyReminder, reminder.id)
    assert abs(_utc(reloaded.last_sent_at) - NOW) < timedelta(seconds=5)
    assert _utc(reloaded.next_scheduled_at) == datetime(2026, 10, 26, 9, 0, tzinfo=UTC)


async def test_live_channel_receives_reminder(session_factory, make_user, make_reminder):
    user = await make_user()
    await make_reminder(user.id)
    manager = FakeConnectionManager()

    await check_study_reminders(session_factory, now=NOW, connection_manager=manager)

    assert len(manager.sent) == 1
    user_id, payload = manager.sent[0]
    assert user_id == str(user.id)
    assert payload["type"] == "STUDY_REMINDER"


async def test_disabled_preference_still_advances_schedule(
    session_factory, make_user, make_reminder, set_preferences
):
    user = await make_user()
    await set_preferences(user.id, study_reminders=False)
    before = NOW.replace(second=0)
    reminder = await make_reminder(user.id, next_scheduled_at=before)

    processed = await check_study_reminders(session_factory, now=NOW)

    assert processed == 1
    assert await _notifications(session_factory, user.id) == []
    reloaded = await _reload(session_factory, StudyReminder, reminder.id)
    assert _utc(reloaded.next_scheduled_at) > before
    assert reloaded.last_sent_at is not None


async def test_failing_reminder_does_not_stop_batch(
    session_factory, make_user, make_reminder, monkeypatch
):
    reminders = []
    for i in range(4):
        user = await make_user(full_name=f"Driver {i}")
        reminders.append(await make_reminder(user.id))
    failing = reminders[1]

    original = NotificationService.send_study_reminder

    async def flaky(self, reminder):
        if reminder.id == failing.id:
            raise RuntimeError("notification insert failed")
        return await original(self, reminder)

    monkeypatch.setattr(NotificationService, "send_study_reminder", flaky)

    processed = await check_study_reminders(session_factory, now=NOW, batch_size=2)

    assert processed == 3
    for reminder in reminders:
        reloaded = await _reload(session_factory, StudyReminder, reminder.id)
        if reminder.id == failing.id:
            assert reloaded.last_sent_at is None
            assert reloaded.next_scheduled_at is None
        else:
            assert _utc(reloaded.next_scheduled_at) > NOW
            assert len(await _notifications(session_factory, reloaded.user_id)) == 1


async def test_second_run_in_same_minute_is_skipped(session_factory, make_user, make_reminder):
    user = await make_user()
    await make_reminder(user.id)

    assert await check_study_reminders(session_factory, now=NOW) == 1
    assert await check_study_reminders(session_factory, now=NOW + timedelta(seconds=30)) == 0

    assert len(await _notifications(session_factory, user.id)) == 1


async def test_reminders_not_due_are_ignored(session_factory, make_user, make_reminder):
    user = await make_user()
    await make_reminder(user.id, days_of_week=["Tuesday"])
    await make_reminder(user.id, reminder_time=time(9, 1))
    await make_reminder(user.id, is_enabled=False)
    await make_reminder(user.id, is_active=False)

    assert await check_study_reminders(session_factory, now=NOW) == 0
    assert await _notifications(session_factory, user.id) == []


async def test_reminder_matched_on_its_own_wall_clock(session_factory, make_user, make_reminder):
    user = await make_user()
    await make_reminder(user.id, reminder_time=time(9, 0), days_of_week=["Monday"], tz="Africa/Kigali")

    # 09:00 UTC is 11:00 in Kigali
    assert await check_study_reminders(session_factory, now=NOW) == 0
    assert await check_study_reminders(session_factory, now=NOW - timedelta(hours=2)) == 1


async def test_invalid_days_are_skipped(session_factory, make_user, make_reminder):
    broken_owner = await make_user(full_name="Broken")
    owner = await make_user(full_name="Fine")
    await make_reminder(broken_owner.id, days_of_week=["Funday"])
    await make_reminder(owner.id)

    assert await check_study_reminders(session_factory, now=NOW) == 1
    assert await _notifications(session_factory, broken_owner.id) == []


async def test_query_limit_caps_a_tick(session_factory, make_user, make_reminder):
    for i in range(3):
        user = await make_user(full_name=f"Driver {i}")
        await make_reminder(user.id)

    assert await check_study_reminders(session_factory, now=NOW, limit=2) == 2


async def test_limit_counts_only_reminders_due_today(session_factory, make_user, make_reminder):
    # Tuesday-only reminders at the same time sort ahead of the Monday one
    for i in (1, 2):
        user = await make_user(full_name=f"Tuesday driver {i}")
        await make_reminder(user.id, days_of_week=("Tuesday",), id=uuid.UUID(int=i))
    due_user = await make_user(full_name="Monday driver")
    await make_reminder(due_user.id, days_of_week=("Monday",), id=uuid.UUID(int=3))

    assert await check_study_reminders(session_factory, now=NOW, limit=2) == 1
    assert len(await _notifications(session_factory, due_user.id)) == 1


async def test_reminder_in_spring_forward_gap_fires_after_the_jump(session_factory, make_user, make_reminder):
    # New York skips 02:00-03:00 on Sunday 2027-03-14; 02:30 fires at 03:30 EDT
    user = await make_user()
    reminder = await make_reminder(
        user.id,
        reminder_time=time(2, 30),
        days_of_week=("Sunday",),
        tz="America/New_York",
    )
    jump = datetime(2027, 3, 14, 7, 30, 10, tzinfo=UTC)

    assert await check_study_reminders(session_factory, now=jump - timedelta(hours=1)) == 0
    assert await check_study_reminders(session_factory, now=jump) == 1

    stored = await _reload(session_factory, StudyReminder, reminder.id)
    assert _utc(stored.last_sent_at) == jump
    assert _utc(stored.next_scheduled_at) == datetime(2027, 3, 21, 6, 30, tzinfo=UTC)


# ============================================================
# Scheduled device pushes
# ============================================================

async def test_scheduled_push_is_sent_once(session_factory, make_user, monkeypatch):
    user = await make_user(fcm_token="device-token-1")
    pushed = []

    async def fake_push(fcm_token, title, body, data=None):
        pushed.append((fcm_token, title, data))
        return True

    monkeypatch.setattr(notification_tasks, "send_push_notification", fake_push)

    async with session_factory() as session:
        notification = await NotificationService(session).create_notification(
            user_id=user.id,
            type=NotificationType.SYSTEM_UPDATE,
            title="Maintenance",
            message="The app will be down for maintenance tonight.",
            scheduled_for=NOW - timedelta(minutes=5),
        )

    assert await process_scheduled_notifications(session_factory, now=NOW) == 1
    assert pushed == [(
        "device-token-1",
        "Maintenance",
        {"notification_id": str(notification.id), "type": "SYSTEM_UPDATE"},
    )]

    reloaded = await _reload(session_factory, Notification, notification.id)
    assert reloaded.is_push_sent is True

    assert await process_scheduled_notifications(session_factory, now=NOW) == 0
    assert len(pushed) == 1


async def test_push_skipped_without_token_or_when_disabled(
    session_factory, make_user, set_preferences, monkeypatch
):
    no_token = await make_user(full_name="No Token")
    opted_out = await make_user(full_name="Opted Out", fcm_token="device-token-2")
    await set_preferences(opted_out.id, push_notifications=False)
    pushed = []

    async def fake_push(fcm_token, title, body, data=None):
        pushed.append(fcm_token)
        return True

    monkeypatch.setattr(notification_tasks, "send_push_notification", fake_push)

    ids = []
    async with session_factory() as session:
        service = NotificationService(session)
        for user in (no_token, opted_out):
            notification = await service.create_notification(
                user_id=user.id,
                type=NotificationType.GENERAL,
                title="Hello",
                message="Welcome aboard",
                scheduled_for=NOW - timedelta(minutes=1),
            )
            ids.append(notification.id)

    assert await process_scheduled_notifications(session_factory, now=NOW) == 0
    assert pushed == []
    for notification_id in ids:
        reloaded = await _reload(session_factory, Notification, notification_id)
        assert reloaded.is_push_sent is True


async def test_future_notifications_wait(session_factory, make_user, monkeypatch):
    user = await make_user(fcm_token="device-token-3")

    async def fake_push(fcm_token, title, body, data=None):
        return True

    monkeypatch.setattr(notification_tasks, "send_push_notification", fake_push)

    async with session_factory() as session:
        notification = await NotificationService(session).create_notification(
            user_id=user.id,
            type=NotificationType.EXAM_REMINDER,
            title="Exam tomorrow",
            message="Your exam is scheduled for tomorrow.",
            scheduled_for=NOW + timedelta(hours=1),
        )

    assert await process_scheduled_notifications(session_factory, now=NOW) == 0
    reloaded = await _reload(session_factory, Notification, notification.id)
    assert reloaded.is_push_sent is False


# ============================================================
# Weekly reports
# ============================================================

async def _add_exam(session_factory, user_id, score, passed, completed_at):
    async with session_factory() as session:
        session.add(ExamResult(
            user_id=user_id,
            exam_id=uuid.uuid4(),
            score=score,
            passed=passed,
            completed_at=completed_at,
        ))
        await session.commit()


async def test_weekly_report_only_for_opted_in_users_with_activity(
    session_factory, make_user, set_preferences
):
    active = await make_user(full_name="Active")
    idle = await make_user(full_name="Idle")
    not_opted_in = await make_user(full_name="Not Opted In")
    stale = await make_user(full_name="Stale")

    for user in (active, idle, stale):
        await set_preferences(user.id, weekly_reports=True)

    await _add_exam(session_factory, active.id, 90, True, NOW - timedelta(days=1))
    await _add_exam(session_factory, active.id, 60, False, NOW - timedelta(days=3))
    await _add_exam(session_factory, not_opted_in.id, 80, True, NOW - timedelta(days=2))
    await _add_exam(session_factory, stale.id, 70, True, NOW - timedelta(days=10))

    sent = await send_weekly_reports(session_factory, now=NOW)

    assert sent == 1
    reports = await _notifications(session_factory, active.id)
    assert len(reports) == 1
    report = reports[0]
    assert report.type == "WEEKLY_REPORT"
    assert report.priority == "LOW"
    assert "2 exams" in report.message
    assert "passed 1" in report.message
    assert report.data["averageScore"] == 75.0

    for user in (idle, not_opted_in, stale):
        assert await _notifications(session_factory, user.id) == []


async def test_weekly_report_skips_inactive_users(session_factory, make_user, set_preferences):
    user = await make_user(is_active=False)
    await set_preferences(user.id, weekly_reports=True)
    await _add_exam(session_factory, user.id, 95, True, NOW - timedelta(days=1))

    assert await send_weekly_reports(session_factory, now=NOW) == 0
