"""
Study Reminder Endpoints

Endpoints:
----------
- POST    /study-reminders                 - Create the user's reminder
- GET     /study-reminders                 - Get the user's active reminder
- PUT     /study-reminders/{reminder_id}   - Update a reminder
- DELETE  /study-reminders/{reminder_id}   - Soft-delete a reminder
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from trafficrules.db.database import get_db
from trafficrules.api.deps import get_current_user
from trafficrules.models.user import User
from trafficrules.schemas.study_reminder import (
    StudyReminderCreate,
    StudyReminderResponse,
    StudyReminderUpdate,
)
from trafficrules.services.study_reminder_service import (
    StudyReminderService,
    StudyReminderNotFoundError,
    StudyReminderExistsError,
    InvalidReminderError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/study-reminders", tags=["Study Reminders"])


def get_study_reminder_service(db: AsyncSession = Depends(get_db)) -> StudyReminderService:
    return StudyReminderService(db)


@router.post(
    "",
    response_model=StudyReminderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a study reminder",
    description="""
    Creates the weekly study reminder for the current user.
    A user can have only one active reminder at a time.
    """,
)
async def create_study_reminder(
    request: StudyReminderCreate,
    current_user: User = Depends(get_current_user),
    service: StudyReminderService = Depends(get_study_reminder_service),
):
    try:
        return await service.create_study_reminder(current_user.id, request)
    except StudyReminderExistsError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    except InvalidReminderError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.get(
    "",
    response_model=Optional[StudyReminderResponse],
    summary="Get the current user's study reminder",
)
async def get_study_reminder(
    current_user: User = Depends(get_current_user),
    service: StudyReminderService = Depends(get_study_reminder_service),
):
    return await service.get_study_reminder(current_user.id)


@router.put(
    "/{reminder_id}",
    response_model=StudyReminderResponse,
    summary="Update a study reminder",
)
async def update_study_reminder(
    reminder_id: UUID,
    request: StudyReminderUpdate,
    current_user: User = Depends(get_current_user),
    service: StudyReminderService = Depends(get_study_reminder_service),
):
    try:
        return await service.update_study_reminder(reminder_id, current_user.id, request)
    except StudyReminderNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Study reminder not found",
        )
    except InvalidReminderError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.delete(
    "/{reminder_id}",
    summary="Delete a study reminder",
)
async def delete_study_reminder(
    reminder_id: UUID,
    current_user: User = Depends(get_current_user),
    service: StudyReminderService = Depends(get_study_reminder_service),
):
    try:
        await service.delete_study_reminder(reminder_id, current_user.id)
    except StudyReminderNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Study reminder not found",
        )
    return {"message": "Study reminder deleted successfully"}
