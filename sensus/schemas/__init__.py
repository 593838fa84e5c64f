from sensus.schemas.common import CamelModel, PaginationSchema, envelope
from sensus.schemas.diary import DiaryCreateSchema, DiaryOutSchema, DiaryUpdateSchema
from sensus.schemas.evaluation import EvaluationCreateSchema, EvaluationOutSchema, InterpretationSchema
from sensus.schemas.user import (
    AchievementSchema,
    DeleteAccountSchema,
    LoginSchema,
    PasswordChangeSchema,
    PreferencesSchema,
    PrivacySchema,
    ProfileUpdateSchema,
    RegisterSchema,
    UserOutSchema,
    UserStatsSchema,
)

__all__ = [
    "AchievementSchema",
    "CamelModel",
    "DeleteAccountSchema",
    "DiaryCreateSchema",
    "DiaryOutSchema",
    "DiaryUpdateSchema",
    "EvaluationCreateSchema",
    "EvaluationOutSchema",
    "InterpretationSchema",
    "LoginSchema",
    "PaginationSchema",
    "PasswordChangeSchema",
    "PreferencesSchema",
    "PrivacySchema",
    "ProfileUpdateSchema",
    "RegisterSchema",
    "UserOutSchema",
    "UserStatsSchema",
    "envelope",
]
