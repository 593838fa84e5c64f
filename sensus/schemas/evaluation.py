"""Pydantic schemas for questionnaire results."""
from datetime import datetime
from typing import Literal

from pydantic import Field

from sensus.schemas.common import CamelModel

TestType = Literal["gad7", "phq9", "pss", "wellness", "selfesteem"]


class EvaluationCreateSchema(CamelModel):
    test_type: TestType
    answers: list[int] = Field(min_length=1, max_length=50)
    duration: int | None = Field(default=None, ge=0)


class EvaluationOutSchema(CamelModel):
    id: str
    user_id: str
    test_type: str
    answers: list[int]
    score: int
    max_score: int
    severity: str
    level: str
    risk_level: str
    duration: int | None = None
    completed_at: datetime


class InterpretationSchema(CamelModel):
    level: str
    severity: str
    description: str
    recommendations: list[str]
    risk_level: str
