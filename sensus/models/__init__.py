from sensus.models.achievement import Achievement
from sensus.models.diary import DiaryEntry
from sensus.models.evaluation import Evaluation
from sensus.models.notification import Notification
from sensus.models.user import User

__all__ = ["User", "DiaryEntry", "Evaluation", "Achievement", "Notification"]
