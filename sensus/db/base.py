"""SQLAlchemy declarative base and model imports for Alembic."""
from sensus.db.session import Base

# Import all models so Alembic can see them
from sensus.models.achievement import Achievement  # noqa: F401
from sensus.models.diary import DiaryEntry  # noqa: F401
from sensus.models.evaluation import Evaluation  # noqa: F401
from sensus.models.notification import Notification  # noqa: F401
from sensus.models.user import User  # noqa: F401

__all__ = ["Base", "User", "DiaryEntry", "Evaluation", "Achievement", "Notification"]
