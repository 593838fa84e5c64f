"""Pydantic schemas for accounts, profile, preferences and privacy."""
import re
from datetime import date, datetime
from typing import Annotated, Literal

from pydantic import AfterValidator, Field

from sensus.schemas.common import CamelModel, Name

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()


def _valid_email(value: str) -> str:
    email = normalize_email(value)
    if not EMAIL_RE.match(email):
        raise ValueError("Invalid email format")
    return email


Email = Annotated[str, Field(max_length=255), AfterValidator(_valid_email)]


class RegisterSchema(CamelModel):
    email: Email
    password: str
    first_name: Name
    last_name: Name
    birth_date: date | None = None


class LoginSchema(CamelModel):
    email: Annotated[str, AfterValidator(normalize_email)]
    password: str


class PreferencesSchema(CamelModel):
    theme: Literal["light", "dark", "auto"] | None = None
    notifications: bool | None = None
    language: Literal["es", "en"] | None = None
    weekly_report: bool | None = None


class PrivacySchema(CamelModel):
    share_anonymous_data: bool | None = None
    show_in_leaderboards: bool | None = None


class ProfileUpdateSchema(CamelModel):
    first_name: Name | None = None
    last_name: Name | None = None
    birth_date: date | None = None
    preferences: PreferencesSchema | None = None


class PasswordChangeSchema(CamelModel):
    current_password: str
    new_password: str


class DeleteAccountSchema(CamelModel):
    password: str


class UserOutSchema(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    birth_date: date | None = None
    role: str
    permissions: list[str]
    preferences: dict
    privacy: dict
    is_active: bool
    created_at: datetime
    updated_at: datetime
    last_login: datetime | None = None


class AchievementSchema(CamelModel):
    code: str
    name: str
    unlocked_at: datetime


class UserStatsSchema(CamelModel):
    total_diary_entries: int
    total_evaluations: int
    current_streak: int
    longest_streak: int
    last_diary_entry_at: datetime | None = None
    last_evaluation_at: datetime | None = None
    achievements: list[AchievementSchema] = []
