"""Diary entry: one free-text journal note with a mood rating."""
from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from sensus.db.session import Base, new_id, utcnow


class DiaryEntry(Base):
    __tablename__ = "diary_entries"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    mood = Column(Integer, nullable=False)  # 1..10
    tags = Column(JSON, nullable=False, default=list)
    entry_date = Column(Date, nullable=False, index=True)
    anxiety_level = Column(Integer, nullable=True)  # 1..10
    reflection = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="diary_entries")
