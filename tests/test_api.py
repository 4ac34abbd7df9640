import uuid
from datetime import datetime, timezone

import pytest
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from trafficrules.api.v1.endpoints import notifications as notification_endpoints
from trafficrules.core.config import settings
from trafficrules.core.security import create_access_token
from trafficrules.db.database import get_db
from trafficrules.main import app
from trafficrules.scheduler import NotificationScheduler, get_scheduler
from trafficrules.services.notification_service import NotificationService
from trafficrules.tasks import notification_tasks

API = settings.API_V1_PREFIX


def _auth(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    # No live channel in tests
    async def override_service(db: AsyncSession = Depends(get_db)):
        return NotificationService(db)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[notification_endpoints.get_notification_service] = override_service
    app.dependency_overrides[get_scheduler] = lambda: NotificationScheduler(session_factory)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================
# Study reminders
# ============================================================

async def test_study_reminder_lifecycle(client, make_user):
    user = await make_user()
    headers = _auth(user)

    response = await client.post(
        f"{API}/study-reminders",
        json={"reminder_time": "19:30", "days_of_week": ["Monday", "Thursday"], "study_goal_minutes": 45},
        headers=headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["reminder_time"] == "19:30:00"
    assert body["days_of_week"] == ["Monday", "Thursday"]
    assert body["next_scheduled_at"] is not None
    reminder_id = body["id"]

    duplicate = await client.post(
        f"{API}/study-reminders",
        json={"reminder_time": "08:00", "days_of_week": ["Friday"]},
        headers=headers,
    )
    assert duplicate.status_code == 409

    response = await client.put(
        f"{API}/study-reminders/{reminder_id}",
        json={"study_goal_minutes": 60},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["study_goal_minutes"] == 60

    response = await client.get(f"{API}/study-reminders", headers=headers)
    assert response.json()["id"] == reminder_id

    response = await client.delete(f"{API}/study-reminders/{reminder_id}", headers=headers)
    assert response.status_code == 200

    response = await client.get(f"{API}/study-reminders", headers=headers)
    assert response.json() is None


async def test_study_reminder_validation(client, make_user):
    user = await make_user()

    response = await client.post(
        f"{API}/study-reminders",
        json={"reminder_time": "19:30", "days_of_week": ["Caturday"]},
        headers=_auth(user),
    )
    assert response.status_code == 422


async def test_update_unknown_reminder_is_404(client, make_user):
    user = await make_user()

    response = await client.put(
        f"{API}/study-reminders/{uuid.uuid4()}",
        json={"is_enabled": False},
        headers=_auth(user),
    )
    assert response.status_code == 404


async def test_requests_without_token_are_rejected(client):
    response = await client.get(f"{API}/study-reminders")
    assert response.status_code in (401, 403)

    response = await client.get(f"{API}/notifications", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


# ============================================================
# Notifications
# ============================================================

async def test_staff_send_and_user_inbox(client, make_user):
    manager = await make_user(full_name="Manager", role="MANAGER")
    user = await make_user(full_name="Learner")

    response = await client.post(
        f"{API}/notifications/send",
        json={
            "user_id": str(user.id),
            "type": "SYSTEM_UPDATE",
            "title": "New question bank",
            "message": "200 new road sign questions are available.",
            "category": "SYSTEM",
        },
        headers=_auth(manager),
    )
    assert response.status_code == 201
    notification_id = response.json()["id"]

    response = await client.get(f"{API}/notifications/unread-count", headers=_auth(user))
    assert response.json() == {"unread_count": 1}

    response = await client.get(f"{API}/notifications", params={"category": "SYSTEM"}, headers=_auth(user))
    body = response.json()
    assert body["pagination"]["total"] == 1
    assert body["notifications"][0]["title"] == "New question bank"

    response = await client.put(f"{API}/notifications/{notification_id}/read", headers=_auth(user))
    assert response.status_code == 200
    assert response.json()["is_read"] is True

    response = await client.get(f"{API}/notifications", params={"unread_only": True}, headers=_auth(user))
    assert response.json()["pagination"]["total"] == 0


async def test_regular_user_cannot_send(client, make_user):
    user = await make_user()

    response = await client.post(
        f"{API}/notifications/send",
        json={"user_id": str(user.id), "type": "GENERAL", "title": "Hi", "message": "Hello"},
        headers=_auth(user),
    )
    assert response.status_code == 403


async def test_mark_other_users_notification_is_404(client, make_user):
    admin = await make_user(full_name="Admin", role="ADMIN")
    owner = await make_user(full_name="Owner")
    other = await make_user(full_name="Other")

    response = await client.post(
        f"{API}/notifications/send",
        json={"user_id": str(owner.id), "type": "GENERAL", "title": "Hi", "message": "Hello"},
        headers=_auth(admin),
    )
    notification_id = response.json()["id"]

    response = await client.put(f"{API}/notifications/{notification_id}/read", headers=_auth(other))
    assert response.status_code == 404


async def test_preferences_defaults_and_update(client, make_user):
    user = await make_user()
    headers = _auth(user)

    response = await client.get(f"{API}/notifications/preferences", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["study_reminders"] is True
    assert body["weekly_reports"] is False
    assert body["quiet_hours_start"] == "22:00:00"

    response = await client.put(
        f"{API}/notifications/preferences",
        json={"weekly_reports": True, "push_notifications": False},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["weekly_reports"] is True
    assert response.json()["push_notifications"] is False
    assert response.json()["study_reminders"] is True

    response = await client.put(
        f"{API}/notifications/preferences",
        json={"dark_mode": True},
        headers=headers,
    )
    assert response.status_code == 422


# ============================================================
# Admin
# ============================================================

async def test_manual_reminder_check(client, make_user):
    admin = await make_user(full_name="Admin", role="ADMIN")
    user = await make_user()

    response = await client.post(f"{API}/admin/scheduler/check-reminders", headers=_auth(admin))
    assert response.status_code == 200
    assert response.json() == {"completed": True, "processed": 0}

    response = await client.post(f"{API}/admin/scheduler/check-reminders", headers=_auth(user))
    assert response.status_code == 403


async def test_manual_reminder_check_reports_processed_count(client, session_factory, make_user, make_reminder):
    admin = await make_user(full_name="Admin", role="ADMIN")
    user = await make_user()
    await make_reminder(user.id)

    scheduler = NotificationScheduler(session_factory)

    async def check_monday_nine(now=None):
        return await notification_tasks.check_study_reminders(
            session_factory, now=datetime(2026, 10, 19, 9, 0, 5, tzinfo=timezone.utc)
        )

    scheduler.check_study_reminders = check_monday_nine
    app.dependency_overrides[get_scheduler] = lambda: scheduler

    response = await client.post(f"{API}/admin/scheduler/check-reminders", headers=_auth(admin))
    assert response.status_code == 200
    assert response.json() == {"completed": True, "processed": 1}

    # already sent this minute
    response = await client.post(f"{API}/admin/scheduler/check-reminders", headers=_auth(admin))
    assert response.json() == {"completed": True, "processed": 0}
