"""Evaluation: one completed questionnaire. Append-only."""
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from sensus.db.session import Base, new_id, utcnow


class Evaluation(Base):
    __tablename__ = "evaluations"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    test_type = Column(String(32), nullable=False, index=True)
    answers = Column(JSON, nullable=False)
    score = Column(Integer, nullable=False)
    max_score = Column(Integer, nullable=False)
    severity = Column(String(64), nullable=False)
    level = Column(String(32), nullable=False)
    risk_level = Column(String(16), nullable=False)
    duration = Column(Integer, nullable=True)  # seconds spent answering
    completed_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    user = relationship("User", back_populates="evaluations")
