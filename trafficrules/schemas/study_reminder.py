"""
Study Reminder Schemas

Pydantic models for study reminder requests and responses.
"""

from datetime import datetime, time
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trafficrules.services.reminder_schedule import (
    get_zone,
    parse_reminder_time,
    validate_days,
)


# ============================================================
# Request Schemas (What client sends)
# ============================================================

class StudyReminderCreate(BaseModel):
    """Schema for creating a study reminder."""

    reminder_time: time = Field(
        ...,
        description="Wall-clock time of day (HH:MM) in the reminder's timezone",
    )
    days_of_week: List[str] = Field(
        ...,
        min_length=1,
        description="Weekday names, e.g. [\"Monday\", \"Thursday\"]",
    )
    study_goal_minutes: int = Field(
        default=30,
        ge=5,
        le=480,
        description="Daily study goal in minutes (5 to 480)",
    )
    timezone: Optional[str] = Field(
        default=None,
        description="IANA timezone name; defaults to the server TIMEZONE setting",
    )

    @field_validator("reminder_time", mode="before")
    @classmethod
    def normalize_time(cls, value):
        """Accept "HH:MM" strings and drop seconds."""
        return parse_reminder_time(value)

    @field_validator("days_of_week")
    @classmethod
    def check_days(cls, value: List[str]) -> List[str]:
        return validate_days(value)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        get_zone(value)
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "reminder_time": "19:30",
                "days_of_week": ["Monday", "Wednesday", "Friday"],
                "study_goal_minutes": 45,
                "timezone": "Africa/Kigali",
            }
        }


class StudyReminderUpdate(BaseModel):
    """Schema for updating an existing study reminder. All fields optional."""

    reminder_time: Optional[time] = None
    days_of_week: Optional[List[str]] = None
    study_goal_minutes: Optional[int] = Field(None, ge=5, le=480)
    timezone: Optional[str] = None
    is_enabled: Optional[bool] = None

    @field_validator("reminder_time", mode="before")
    @classmethod
    def normalize_time(cls, value):
        if value is None:
            return None
        return parse_reminder_time(value)

    @field_validator("days_of_week")
    @classmethod
    def check_days(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        return validate_days(value)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        get_zone(value)
        return value


# ============================================================
# Response Schemas (What server sends back)
# ============================================================

class StudyReminderResponse(BaseModel):
    id: UUID
    user_id: UUID
    is_enabled: bool
    reminder_time: time
    days_of_week: List[str]
    study_goal_minutes: int
    timezone: str
    last_sent_at: Optional[datetime] = None
    next_scheduled_at: Optional[datetime] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
