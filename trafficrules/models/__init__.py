from trafficrules.models.base import Base
from trafficrules.models.user import User
from trafficrules.models.exam_result import ExamResult
from trafficrules.models.notification import Notification
from trafficrules.models.notification_preference import NotificationPreference
from trafficrules.models.study_reminder import StudyReminder

__all__ = [
    "Base",
    "User",
    "ExamResult",
    "Notification",
    "NotificationPreference",
    "StudyReminder",
]
