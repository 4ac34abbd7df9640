"""
Notification Service

Persists in-app notifications, pushes them live over WebSockets,
sends device pushes via Firebase Cloud Messaging (FCM), and manages
per-user notification preferences.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TYPE_CHECKING
from uuid import UUID

import firebase_admin
from firebase_admin import credentials, messaging
from sqlalchemy.ext.asyncio import AsyncSession

from trafficrules.core.config import settings
from trafficrules.models.notification import Notification
from trafficrules.models.notification_preference import NotificationPreference
from trafficrules.models.study_reminder import StudyReminder
from trafficrules.repositories.notification_repo import NotificationRepository
from trafficrules.repositories.notification_preference_repo import NotificationPreferenceRepository
from trafficrules.schemas.notification import (
    NotificationCategory,
    NotificationPriority,
    NotificationType,
    NotificationPreferencesUpdate,
)

if TYPE_CHECKING:
    from trafficrules.services.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)

_firebase_initialized = False


class NotificationServiceError(Exception):
    pass


class NotificationNotFoundError(NotificationServiceError):
    pass


# ============================================================
# FCM (device push)
# ============================================================

def _ensure_firebase():
    """Initialize Firebase Admin SDK once."""
    global _firebase_initialized
    if _firebase_initialized:
        return
    try:
        key_path = settings.FIREBASE_SERVICE_ACCOUNT_KEY_PATH
        if key_path:
            cred = credentials.Certificate(key_path)
            firebase_admin.initialize_app(cred)
        else:
            firebase_admin.initialize_app()
        _firebase_initialized = True
        logger.info("Firebase Admin SDK initialized")
    except Exception as e:
        logger.warning("Firebase Admin SDK init failed (device push disabled): %s", e)


async def send_push_notification(
    fcm_token: str,
    title: str,
    body: str,
    data: Optional[dict] = None,
) -> bool:
    """Send a push notification to a single device."""
    _ensure_firebase()
    if not _firebase_initialized:
        return False

    try:
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            # FCM data payloads must be string -> string
            data={k: str(v) for k, v in (data or {}).items()},
            token=fcm_token,
        )
        messaging.send(message)
        logger.info("Push sent to token %s...", fcm_token[:20])
        return True
    except messaging.UnregisteredError:
        logger.warning("FCM token expired/unregistered: %s...", fcm_token[:20])
        return False
    except Exception as e:
        logger.error("Failed to send push: %s", e)
        return False


def serialize_notification(notification: Notification) -> Dict[str, Any]:
    """Payload sent to live clients."""
    return {
        "id": str(notification.id),
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "data": notification.data or {},
        "priority": notification.priority,
        "category": notification.category,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


# ============================================================
# Service
# ============================================================

class NotificationService:
    """Service for notification persistence, delivery and preferences."""

    def __init__(
        self,
        db: AsyncSession,
        connection_manager: Optional["ConnectionManager"] = None,
    ):
        self.db = db
        self.connection_manager = connection_manager
        self.notification_repo = NotificationRepository(db)
        self.preference_repo = NotificationPreferenceRepository(db)

    # ============================================================
    # CREATE
    # ============================================================

    async def create_notification(
        self,
        user_id: UUID,
        type: NotificationType,
        title: str,
        message: str,
        category: NotificationCategory = NotificationCategory.GENERAL,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        data: Optional[Dict[str, Any]] = None,
        scheduled_for: Optional[datetime] = None,
    ) -> Notification:
        """
        Persist a notification and push it to the user's live connections.

        scheduled_for defaults to now, which makes the notification
        immediately eligible for device push.
        """
        notification = await self.notification_repo.create(
            user_id=user_id,
            type=NotificationType(type).value,
            title=title,
            message=message,
            category=NotificationCategory(category).value,
            priority=NotificationPriority(priority).value,
            data=data or {},
            scheduled_for=scheduled_for or datetime.now(timezone.utc),
        )

        if self.connection_manager is not None:
            try:
                await self.connection_manager.send_to_user(
                    str(user_id), serialize_notification(notification)
                )
            except Exception as e:
                logger.warning("Live push failed for notification %s: %s", notification.id, e)

        return notification

    # ============================================================
    # READ
    # ============================================================

    async def get_user_notifications(
        self,
        user_id: UUID,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
        type: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Dict[str, Any]:
        skip = (page - 1) * limit
        notifications, total = await self.notification_repo.list_for_user(
            user_id,
            skip=skip,
            limit=limit,
            unread_only=unread_only,
            type=type,
            category=category,
        )
        return {
            "notifications": notifications,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if limit else 0,
            },
        }

    async def unread_count(self, user_id: UUID) -> int:
        return await self.notification_repo.count_unread(user_id)

    # ============================================================
    # UPDATE
    # ============================================================

    async def mark_as_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await self.notification_repo.get_for_user(notification_id, user_id)
        if not notification:
            raise NotificationNotFoundError("Notification not found")

        notification.is_read = True
        await self.db.commit()
        await self.db.refresh(notification)
        return notification

    async def mark_all_as_read(self, user_id: UUID) -> int:
        return await self.notification_repo.mark_all_read(user_id)

    # ============================================================
    # PREFERENCES
    # ============================================================

    async def get_preferences(self, user_id: UUID) -> NotificationPreference:
        """Preferences for a user; the default row is created on first read."""
        return await self.preference_repo.get_or_create(user_id)

    async def update_preferences(
        self,
        user_id: UUID,
        update: NotificationPreferencesUpdate,
    ) -> NotificationPreference:
        preferences = await self.preference_repo.get_or_create(user_id)
        for key, value in update.model_dump(exclude_unset=True).items():
            setattr(preferences, key, value)
        await self.db.commit()
        await self.db.refresh(preferences)
        return preferences

    # ============================================================
    # DOMAIN NOTIFICATIONS
    # ============================================================

    async def send_study_reminder(self, reminder: StudyReminder) -> Optional[Notification]:
        """
        Create the STUDY_REMINDER notification for a due reminder.

        Returns None when the user has switched study reminders off.
        """
        preferences = await self.get_preferences(reminder.user_id)
        if not preferences.study_reminders:
            logger.info("Study reminders disabled for user %s", reminder.user_id)
            return None

        notification = await self.create_notification(
            user_id=reminder.user_id,
            type=NotificationType.STUDY_REMINDER,
            title="Time to Study!",
            message=(
                "Haven't studied today? Take a practice exam to keep your skills sharp! "
                f"Your daily goal is {reminder.study_goal_minutes} minutes."
            ),
            category=NotificationCategory.STUDY,
            priority=NotificationPriority.MEDIUM,
            data={
                "reminderId": str(reminder.id),
                "studyGoalMinutes": reminder.study_goal_minutes,
            },
        )
        logger.info("Study reminder notification %s created for user %s", notification.id, reminder.user_id)
        return notification

    async def notify_access_granted(
        self,
        user_id: UUID,
        access_code: str,
        access_code_id: UUID,
        expires_at: datetime,
    ) -> Notification:
        return await self.create_notification(
            user_id=user_id,
            type=NotificationType.ACCESS_GRANTED,
            title="Access Granted!",
            message=(
                f"You have been granted access to all exams! Your access code is {access_code} "
                f"and expires on {expires_at.date().isoformat()}."
            ),
            category=NotificationCategory.ACCESS,
            priority=NotificationPriority.HIGH,
            data={
                "accessCodeId": str(access_code_id),
                "expiresAt": expires_at.isoformat(),
            },
        )

    async def notify_access_revoked(
        self,
        user_id: UUID,
        reason: str = "Access has been revoked by administrator",
    ) -> Notification:
        return await self.create_notification(
            user_id=user_id,
            type=NotificationType.ACCESS_REVOKED,
            title="Access Revoked",
            message=reason,
            category=NotificationCategory.ACCESS,
            priority=NotificationPriority.HIGH,
            data={"reason": reason},
        )

    async def notify_payment_status(
        self,
        user_id: UUID,
        approved: bool,
        payment_request_id: UUID,
        reason: Optional[str] = None,
    ) -> Notification:
        if approved:
            type_ = NotificationType.PAYMENT_APPROVED
            title = "Payment Approved!"
            message = "Your payment request has been approved. You now have access to all exams!"
        else:
            type_ = NotificationType.PAYMENT_REJECTED
            title = "Payment Rejected"
            detail = f"Reason: {reason}" if reason else "Please contact support for more information."
            message = f"Your payment request was rejected. {detail}"

        return await self.create_notification(
            user_id=user_id,
            type=type_,
            title=title,
            message=message,
            category=NotificationCategory.PAYMENT,
            priority=NotificationPriority.HIGH,
            data={
                "paymentRequestId": str(payment_request_id),
                "status": "APPROVED" if approved else "REJECTED",
                "reason": reason,
            },
        )

    async def notify_exam_result(
        self,
        user_id: UUID,
        exam_id: UUID,
        exam_result_id: UUID,
        score: int,
        passed: bool,
    ) -> Notification:
        if passed:
            type_ = NotificationType.EXAM_PASSED
            title = "Congratulations!"
            message = f"You passed the exam with a score of {score}%! Great job!"
        else:
            type_ = NotificationType.EXAM_FAILED
            title = "Keep Studying!"
            message = f"You didn't pass this time with a score of {score}%. Keep practicing to improve!"

        return await self.create_notification(
            user_id=user_id,
            type=type_,
            title=title,
            message=message,
            category=NotificationCategory.EXAM,
            priority=NotificationPriority.MEDIUM,
            data={
                "examId": str(exam_id),
                "examResultId": str(exam_result_id),
                "score": score,
                "passed": passed,
            },
        )
