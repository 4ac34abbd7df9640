from sqlalchemy import Column, String, Boolean, ForeignKey, Text, DateTime, JSON, Uuid
from sqlalchemy.orm import relationship
from .base import BaseModel


class Notification(BaseModel):
    __tablename__ = "notifications"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False, index=True)  # see schemas.notification.NotificationType
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True, default=dict)
    is_read = Column(Boolean, default=False, nullable=False, index=True)
    is_push_sent = Column(Boolean, default=False, nullable=False)
    scheduled_for = Column(DateTime(timezone=True), nullable=True, index=True)
    priority = Column(String(10), default="MEDIUM", nullable=False)  # LOW, MEDIUM, HIGH, URGENT
    category = Column(String(20), nullable=False, index=True)  # STUDY, PAYMENT, EXAM, ...

    user = relationship("User", back_populates="notifications")
