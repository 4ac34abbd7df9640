from trafficrules.repositories.base import BaseRepository
from trafficrules.repositories.user_repo import UserRepository
from trafficrules.repositories.exam_result_repo import ExamResultRepository
from trafficrules.repositories.notification_repo import NotificationRepository
from trafficrules.repositories.notification_preference_repo import NotificationPreferenceRepository
from trafficrules.repositories.study_reminder_repo import StudyReminderRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "ExamResultRepository",
    "NotificationRepository",
    "NotificationPreferenceRepository",
    "StudyReminderRepository",
]
