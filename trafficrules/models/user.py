from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from .base import BaseModel

class User(BaseModel):
    """
    Application user. Owned by the authentication service; this package
    only reads it (id, activity flag, FCM token).
    """
    __tablename__ = "users"

    full_name = Column(String(200), nullable=False)
    phone_number = Column(String(20), unique=True, nullable=True, index=True)
    device_id = Column(String(255), nullable=True)
    role = Column(String(20), default="USER", nullable=False)  # USER, MANAGER, ADMIN
    is_active = Column(Boolean, default=True, nullable=False)
    fcm_token = Column(String(500), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)

    # Relationships - User OWNS these
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
    study_reminders = relationship("StudyReminder", back_populates="user", cascade="all, delete-orphan")
    notification_preference = relationship(
        "NotificationPreference", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    exam_results = relationship("ExamResult", back_populates="user", cascade="all, delete-orphan")
