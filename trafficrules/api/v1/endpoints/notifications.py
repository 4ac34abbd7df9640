"""
Notification Endpoints

Endpoints:
----------
- GET   /notifications                 - List user notifications
- GET   /notifications/unread-count    - Get unread count
- PUT   /notifications/read-all        - Mark all as read
- PUT   /notifications/{id}/read       - Mark one as read
- POST  /notifications/send            - Send a notification (staff only)
- GET   /notifications/preferences     - Get notification preferences
- PUT   /notifications/preferences     - Update notification preferences
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from trafficrules.db.database import get_db
from trafficrules.api.deps import get_current_user, get_current_staff_user
from trafficrules.models.user import User
from trafficrules.repositories.user_repo import UserRepository
from trafficrules.schemas.notification import (
    NotificationCategory,
    NotificationListResponse,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
    NotificationResponse,
    NotificationSendRequest,
    NotificationType,
)
from trafficrules.services.notification_service import (
    NotificationService,
    NotificationNotFoundError,
)
from trafficrules.services.websocket_manager import get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_service(db: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(db, get_connection_manager())


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List notifications for the current user",
)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False),
    type: Optional[NotificationType] = Query(None),
    category: Optional[NotificationCategory] = Query(None),
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.get_user_notifications(
        current_user.id,
        page=page,
        limit=limit,
        unread_only=unread_only,
        type=type.value if type else None,
        category=category.value if category else None,
    )


@router.get(
    "/unread-count",
    summary="Get count of unread notifications",
)
async def unread_count(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    count = await service.unread_count(current_user.id)
    return {"unread_count": count}


@router.put(
    "/read-all",
    summary="Mark all notifications as read",
)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    await service.mark_all_as_read(current_user.id)
    return {"message": "All notifications marked as read."}


@router.get(
    "/preferences",
    response_model=NotificationPreferencesResponse,
    summary="Get notification preferences",
)
async def get_preferences(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.get_preferences(current_user.id)


@router.put(
    "/preferences",
    response_model=NotificationPreferencesResponse,
    summary="Update notification preferences",
)
async def update_preferences(
    update: NotificationPreferencesUpdate,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.update_preferences(current_user.id, update)


@router.put(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification as read",
)
async def mark_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        return await service.mark_as_read(notification_id, current_user.id)
    except NotificationNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )


@router.post(
    "/send",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a notification to a user (admin/manager)",
)
async def send_notification(
    request: NotificationSendRequest,
    current_user: User = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
):
    recipient = await UserRepository(db).get_by_id(request.user_id)
    if not recipient:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    notification = await service.create_notification(
        user_id=recipient.id,
        type=request.type,
        title=request.title,
        message=request.message,
        category=request.category,
        priority=request.priority,
        data=request.data,
    )
    logger.info("User %s sent notification %s to %s", current_user.id, notification.id, recipient.id)
    return notification
