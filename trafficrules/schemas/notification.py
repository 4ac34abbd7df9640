"""
Notification Schemas

Enumerations and Pydantic models for notifications and
per-user notification preferences.
"""

from datetime import datetime, time
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================
# Enumerations
# ============================================================

class NotificationType(str, Enum):
    """What happened."""
    EXAM_REMINDER = "EXAM_REMINDER"
    ACHIEVEMENT_ALERT = "ACHIEVEMENT_ALERT"
    STUDY_REMINDER = "STUDY_REMINDER"
    SYSTEM_UPDATE = "SYSTEM_UPDATE"
    PAYMENT_NOTIFICATION = "PAYMENT_NOTIFICATION"
    WEEKLY_REPORT = "WEEKLY_REPORT"
    PAYMENT_APPROVED = "PAYMENT_APPROVED"
    PAYMENT_REJECTED = "PAYMENT_REJECTED"
    EXAM_PASSED = "EXAM_PASSED"
    EXAM_FAILED = "EXAM_FAILED"
    NEW_EXAM = "NEW_EXAM"
    ACCESS_GRANTED = "ACCESS_GRANTED"
    ACCESS_REVOKED = "ACCESS_REVOKED"
    GENERAL = "GENERAL"


class NotificationPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class NotificationCategory(str, Enum):
    """Grouping used for filtering in the client inbox."""
    EXAM = "EXAM"
    PAYMENT = "PAYMENT"
    ACHIEVEMENT = "ACHIEVEMENT"
    SYSTEM = "SYSTEM"
    STUDY = "STUDY"
    ACCESS = "ACCESS"
    GENERAL = "GENERAL"


# ============================================================
# Request Schemas
# ============================================================

class NotificationSendRequest(BaseModel):
    """Admin request to send a notification to one user."""
    user_id: UUID
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    category: NotificationCategory = NotificationCategory.GENERAL
    priority: NotificationPriority = NotificationPriority.MEDIUM
    data: Dict[str, Any] = Field(default_factory=dict)


class NotificationPreferencesUpdate(BaseModel):
    """Partial update of notification preferences. Unknown keys are rejected."""
    model_config = ConfigDict(extra="forbid")

    push_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None
    exam_reminders: Optional[bool] = None
    payment_updates: Optional[bool] = None
    system_announcements: Optional[bool] = None
    study_reminders: Optional[bool] = None
    achievement_notifications: Optional[bool] = None
    weekly_reports: Optional[bool] = None
    quiet_hours_enabled: Optional[bool] = None
    quiet_hours_start: Optional[time] = None
    quiet_hours_end: Optional[time] = None
    vibration_enabled: Optional[bool] = None
    sound_enabled: Optional[bool] = None

    @field_validator("quiet_hours_start", "quiet_hours_end")
    @classmethod
    def truncate_seconds(cls, value: Optional[time]) -> Optional[time]:
        if value is None:
            return None
        return value.replace(second=0, microsecond=0)


# ============================================================
# Response Schemas
# ============================================================

class NotificationResponse(BaseModel):
    id: UUID
    user_id: UUID
    type: str
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    is_read: bool = False
    is_push_sent: bool = False
    scheduled_for: Optional[datetime] = None
    priority: str
    category: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    pagination: PaginationInfo


class NotificationPreferencesResponse(BaseModel):
    user_id: UUID
    push_notifications: bool
    sms_notifications: bool
    exam_reminders: bool
    payment_updates: bool
    system_announcements: bool
    study_reminders: bool
    achievement_notifications: bool
    weekly_reports: bool
    quiet_hours_enabled: bool
    quiet_hours_start: time
    quiet_hours_end: time
    vibration_enabled: bool
    sound_enabled: bool

    model_config = ConfigDict(from_attributes=True)
