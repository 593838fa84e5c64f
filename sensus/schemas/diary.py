"""Pydantic schemas for diary entries."""
from datetime import date, datetime
from typing import Annotated

from pydantic import AfterValidator, Field

from sensus.core.gate import sanitize_text
from sensus.schemas.common import CamelModel, Text

MAX_TAGS = 20


def clean_tags(tags: list[str]) -> list[str]:
    """Sanitize, lowercase and dedupe tags keeping first-seen order."""
    seen = []
    for tag in tags:
        cleaned = sanitize_text(tag).lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    if len(seen) > MAX_TAGS:
        raise ValueError(f"at most {MAX_TAGS} tags")
    return seen


Tags = Annotated[list[str], AfterValidator(clean_tags)]
Mood = Annotated[int, Field(ge=1, le=10)]


class DiaryCreateSchema(CamelModel):
    content: Text
    mood: Mood
    tags: Tags = []
    entry_date: date | None = Field(default=None, alias="date")
    anxiety_level: Mood | None = None
    reflection: Text | None = None


class DiaryUpdateSchema(CamelModel):
    content: Text | None = None
    mood: Mood | None = None
    tags: Tags | None = None
    entry_date: date | None = Field(default=None, alias="date")
    anxiety_level: Mood | None = None
    reflection: Text | None = None


class DiaryOutSchema(CamelModel):
    id: str
    user_id: str
    content: str
    mood: int
    tags: list[str]
    entry_date: date = Field(alias="date")
    anxiety_level: int | None = None
    reflection: str | None = None
    created_at: datetime
    updated_at: datetime
