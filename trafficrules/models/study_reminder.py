from sqlalchemy import Column, String, Boolean, ForeignKey, Integer, Time, DateTime, JSON, Uuid
from sqlalchemy.orm import relationship
from .base import BaseModel


class StudyReminder(BaseModel):
    """
    Weekly study nudge: fires at reminder_time (wall clock in `timezone`)
    on each day listed in days_of_week.

    is_enabled is the user's on/off switch; is_active=False marks a
    soft-deleted reminder that must never be scheduled again.
    """
    __tablename__ = "study_reminders"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_enabled = Column(Boolean, default=True, nullable=False, index=True)
    reminder_time = Column(Time, nullable=False, index=True)  # seconds always 0
    days_of_week = Column(JSON, nullable=False, default=list)  # ["Monday", "Wednesday", ...]
    study_goal_minutes = Column(Integer, default=30, nullable=False)  # 5-480
    timezone = Column(String(64), default="UTC", nullable=False)
    last_sent_at = Column(DateTime(timezone=True), nullable=True)
    next_scheduled_at = Column(DateTime(timezone=True), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    user = relationship("User", back_populates="study_reminders")
