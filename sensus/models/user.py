"""User account: identity, profile, preferences and running counters."""
from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Integer, String
from sqlalchemy.orm import relationship

from sensus.db.session import Base, new_id, utcnow

DEFAULT_ROLE = "user"
DEFAULT_PERMISSIONS = [
    "read:profile",
    "write:profile",
    "read:diary",
    "write:diary",
    "read:evaluations",
    "write:evaluations",
]
DEFAULT_PREFERENCES = {
    "theme": "light",
    "notifications": True,
    "language": "es",
    "weeklyReport": False,
}
DEFAULT_PRIVACY = {
    "shareAnonymousData": False,
    "showInLeaderboards": False,
}


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    birth_date = Column(Date, nullable=True)

    role = Column(String(32), nullable=False, default=DEFAULT_ROLE)
    permissions = Column(JSON, nullable=False, default=lambda: list(DEFAULT_PERMISSIONS))
    preferences = Column(JSON, nullable=False, default=lambda: dict(DEFAULT_PREFERENCES))
    privacy = Column(JSON, nullable=False, default=lambda: dict(DEFAULT_PRIVACY))
    is_active = Column(Boolean, nullable=False, default=True)

    # maintained by background triggers
    total_diary_entries = Column(Integer, nullable=False, default=0)
    total_evaluations = Column(Integer, nullable=False, default=0)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_diary_entry_at = Column(DateTime, nullable=True)
    last_evaluation_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    last_login = Column(DateTime, nullable=True)
    deleted_at = Column(DateTime, nullable=True)

    diary_entries = relationship("DiaryEntry", back_populates="user", passive_deletes=True)
    evaluations = relationship("Evaluation", back_populates="user", passive_deletes=True)
    achievements = relationship("Achievement", back_populates="user", passive_deletes=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
