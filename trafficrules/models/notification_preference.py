from datetime import time

from sqlalchemy import Column, Boolean, ForeignKey, Time, Uuid
from sqlalchemy.orm import relationship
from .base import BaseModel


class NotificationPreference(BaseModel):
    __tablename__ = "notification_preferences"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)

    # Channels
    push_notifications = Column(Boolean, default=True, nullable=False)
    sms_notifications = Column(Boolean, default=False, nullable=False)

    # Categories
    exam_reminders = Column(Boolean, default=True, nullable=False)
    payment_updates = Column(Boolean, default=True, nullable=False)
    system_announcements = Column(Boolean, default=True, nullable=False)
    study_reminders = Column(Boolean, default=True, nullable=False)
    achievement_notifications = Column(Boolean, default=True, nullable=False)
    weekly_reports = Column(Boolean, default=False, nullable=False)

    # Quiet hours
    quiet_hours_enabled = Column(Boolean, default=True, nullable=False)
    quiet_hours_start = Column(Time, default=time(22, 0), nullable=False)
    quiet_hours_end = Column(Time, default=time(7, 0), nullable=False)

    vibration_enabled = Column(Boolean, default=True, nullable=False)
    sound_enabled = Column(Boolean, default=True, nullable=False)

    user = relationship("User", back_populates="notification_preference")
