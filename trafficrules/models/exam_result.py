from sqlalchemy import Column, Integer, Boolean, ForeignKey, DateTime, Uuid, func
from sqlalchemy.orm import relationship
from .base import BaseModel


class ExamResult(BaseModel):
    """Completed exam attempt. Written by the exam service, read for weekly reports."""
    __tablename__ = "exam_results"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    exam_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    score = Column(Integer, nullable=False)  # 0-100
    passed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    user = relationship("User", back_populates="exam_results")
