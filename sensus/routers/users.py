"""Account routes: register, login, logout, profile, settings, deletion, admin."""
import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import delete, func, select
from starlette.concurrency import run_in_threadpool

from sensus.core.errors import AuthError, ConflictError, RateLimitError, ValidationError
from sensus.core.security import validate_password_strength
from sensus.db.session import utcnow
from sensus.deps import (
    DB,
    AppMetrics,
    Cache,
    Claims,
    CurrentUser,
    Gate,
    Hasher,
    Tokens,
    client_ip,
    require_permissions,
    require_role,
)
from sensus.models.achievement import Achievement
from sensus.models.diary import DiaryEntry
from sensus.models.evaluation import Evaluation
from sensus.models.notification import Notification
from sensus.models.user import DEFAULT_PERMISSIONS, DEFAULT_PREFERENCES, DEFAULT_PRIVACY, User
from sensus.schemas.common import PaginationSchema, dump, envelope
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

router = APIRouter(prefix="/api/v1/users", tags=["users"])
logger = logging.getLogger("sensus.users")

ProfileReader = Annotated[User, Depends(require_permissions("read:profile"))]
ProfileWriter = Annotated[User, Depends(require_permissions("write:profile"))]
Admin = Annotated[User, Depends(require_role("admin"))]


def _check_password(password: str) -> None:
    check = validate_password_strength(password)
    if not check.is_valid:
        raise ValidationError("Password does not meet the requirements", error="weak_password", details=check.feedback)


def _issue(tokens, user: User) -> str:
    return tokens.issue(user.id, user.email, user.role, user.permissions)


@router.post("/register", status_code=201)
async def register(body: RegisterSchema, db: DB, tokens: Tokens, hasher: Hasher):
    """Create an account and return it with a bearer token."""
    _check_password(body.password)

    existing = await db.scalar(select(User.id).where(User.email == body.email))
    if existing:
        raise ConflictError("Email already registered", error="email_exists")

    user = User(
        email=body.email,
        hashed_password=await run_in_threadpool(hasher.hash, body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        birth_date=body.birth_date,
        permissions=list(DEFAULT_PERMISSIONS),
        preferences=dict(DEFAULT_PREFERENCES),
        privacy=dict(DEFAULT_PRIVACY),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Registered user %s", user.id)
    return envelope(
        {"user": dump(UserOutSchema.model_validate(user)), "token": _issue(tokens, user)},
        message="User registered",
    )


@router.post("/login")
async def login(
    request: Request,
    body: LoginSchema,
    db: DB,
    tokens: Tokens,
    hasher: Hasher,
    gate: Gate,
    metrics: AppMetrics,
    cache: Cache,
):
    """Authenticate by email and password. Repeated failures lock the pair out."""
    ip = client_ip(request)
    locked = gate.login_attempts.locked_for(ip, body.email)
    if locked is not None:
        metrics.security_event("account_locked")
        raise RateLimitError(locked, "Too many failed login attempts", error="account_locked")

    user = (await db.execute(select(User).where(User.email == body.email))).scalar_one_or_none()
    valid = (
        user is not None
        and not user.is_deleted
        and await run_in_threadpool(hasher.verify, body.password, user.hashed_password)
    )
    if not valid:
        if gate.login_attempts.record_failure(ip, body.email):
            metrics.security_event("account_locked")
        logger.info("Failed login for %s from %s", body.email, ip)
        raise AuthError()
    if not user.is_active:
        raise AuthError("Account is disabled", error="account_disabled")

    gate.login_attempts.reset(ip, body.email)
    user.last_login = utcnow()
    await db.commit()
    await db.refresh(user)
    await cache.invalidate_user(user.id)
    return envelope(
        {"user": dump(UserOutSchema.model_validate(user)), "token": _issue(tokens, user)},
        message="Login successful",
    )


@router.post("/logout")
async def logout(user: CurrentUser, claims: Claims, cache: Cache):
    remaining = int((claims.expires_at - datetime.now(timezone.utc)).total_seconds())
    revoked = await cache.revoke_token(claims.jti, remaining)
    if not revoked:
        logger.info("Token %s not revoked; cache unavailable", claims.jti)
    return envelope(message="Logged out")


@router.get("/profile")
async def get_profile(user: ProfileReader, cache: Cache):
    cached = await cache.get_user(user.id)
    if cached is not None:
        return envelope(cached)
    data = dump(UserOutSchema.model_validate(user))
    await cache.set_user(user.id, data)
    return envelope(data)


@router.put("/profile")
async def update_profile(body: ProfileUpdateSchema, user: ProfileWriter, db: DB, cache: Cache):
    changes = body.model_dump(exclude_unset=True, exclude={"preferences"})
    for field, value in changes.items():
        if value is None and field in ("first_name", "last_name"):
            continue
        setattr(user, field, value)
    if body.preferences is not None:
        user.preferences = {**(user.preferences or {}), **body.preferences.model_dump(by_alias=True, exclude_none=True)}
    await db.commit()
    await db.refresh(user)
    await cache.invalidate_user(user.id)
    return envelope(dump(UserOutSchema.model_validate(user)), message="Profile updated")


@router.put("/password")
async def change_password(body: PasswordChangeSchema, user: ProfileWriter, db: DB, hasher: Hasher, cache: Cache):
    if not await run_in_threadpool(hasher.verify, body.current_password, user.hashed_password):
        raise AuthError("Current password is incorrect", error="invalid_password")
    _check_password(body.new_password)
    user.hashed_password = await run_in_threadpool(hasher.hash, body.new_password)
    await db.commit()
    await cache.invalidate_user(user.id)
    logger.info("Password changed for %s", user.id)
    return envelope(message="Password updated")


@router.get("/preferences")
async def get_preferences(user: ProfileReader):
    return envelope(user.preferences or {})


@router.put("/preferences")
async def update_preferences(body: PreferencesSchema, user: ProfileWriter, db: DB, cache: Cache):
    user.preferences = {**(user.preferences or {}), **body.model_dump(by_alias=True, exclude_none=True)}
    await db.commit()
    await cache.invalidate_user(user.id)
    return envelope(user.preferences, message="Preferences updated")


@router.get("/privacy")
async def get_privacy(user: ProfileReader):
    return envelope(user.privacy or {})


@router.put("/privacy")
async def update_privacy(body: PrivacySchema, user: ProfileWriter, db: DB, cache: Cache):
    user.privacy = {**(user.privacy or {}), **body.model_dump(by_alias=True, exclude_none=True)}
    await db.commit()
    await cache.invalidate_user(user.id)
    return envelope(user.privacy, message="Privacy settings updated")


@router.get("/stats")
async def get_stats(user: ProfileReader, db: DB):
    achievements = (
        await db.execute(
            select(Achievement).where(Achievement.user_id == user.id).order_by(Achievement.unlocked_at)
        )
    ).scalars().all()
    stats = UserStatsSchema(
        total_diary_entries=user.total_diary_entries,
        total_evaluations=user.total_evaluations,
        current_streak=user.current_streak,
        longest_streak=user.longest_streak,
        last_diary_entry_at=user.last_diary_entry_at,
        last_evaluation_at=user.last_evaluation_at,
        achievements=[AchievementSchema.model_validate(a) for a in achievements],
    )
    return envelope(dump(stats))


@router.delete("/account")
async def delete_account(
    body: DeleteAccountSchema,
    user: ProfileWriter,
    claims: Claims,
    db: DB,
    hasher: Hasher,
    cache: Cache,
):
    """Soft-delete the account and remove everything the user wrote, in one transaction."""
    if not await run_in_threadpool(hasher.verify, body.password, user.hashed_password):
        raise AuthError("Password is incorrect", error="invalid_password")

    now = utcnow()
    user.is_active = False
    user.deleted_at = now
    for model in (DiaryEntry, Evaluation, Achievement, Notification):
        await db.execute(delete(model).where(model.user_id == user.id))
    await db.commit()

    await cache.invalidate_user(user.id)
    remaining = int((claims.expires_at - datetime.now(timezone.utc)).total_seconds())
    await cache.revoke_token(claims.jti, remaining)
    logger.info("Deleted account %s", user.id)
    return envelope(message="Account deleted")


@router.get("/admin/users")
async def admin_list_users(
    admin: Admin,
    db: DB,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    total = await db.scalar(select(func.count()).select_from(User)) or 0
    users = (
        await db.execute(select(User).order_by(User.created_at.desc()).limit(limit).offset(offset))
    ).scalars().all()
    pagination = PaginationSchema(limit=limit, offset=offset, total=total, has_more=offset + len(users) < total)
    return envelope([dump(UserOutSchema.model_validate(u)) for u in users], pagination=dump(pagination))


@router.get("/admin/stats")
async def admin_stats(admin: Admin, db: DB):
    total_users = await db.scalar(select(func.count()).select_from(User)) or 0
    active_users = await db.scalar(
        select(func.count()).select_from(User).where(User.is_active.is_(True), User.deleted_at.is_(None))
    ) or 0
    deleted_users = await db.scalar(select(func.count()).select_from(User).where(User.deleted_at.isnot(None))) or 0
    return envelope(
        {
            "totalUsers": total_users,
            "activeUsers": active_users,
            "deletedUsers": deleted_users,
            "totalDiaryEntries": await db.scalar(select(func.count()).select_from(DiaryEntry)) or 0,
            "totalEvaluations": await db.scalar(select(func.count()).select_from(Evaluation)) or 0,
        }
    )
