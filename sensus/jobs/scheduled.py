"""Cron jobs: reminders, weekly reports, notification cleanup."""
import logging
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sensus.models.diary import DiaryEntry
from sensus.models.evaluation import Evaluation
from sensus.models.notification import Notification
from sensus.models.user import User

logger = logging.getLogger("sensus.jobs")


async def _active_users(db: AsyncSession) -> list[User]:
    stmt = select(User).where(User.is_active.is_(True), User.deleted_at.is_(None))
    return list((await db.execute(stmt)).scalars().all())


async def send_reminders(
    sessionmaker: async_sessionmaker[AsyncSession],
    now: datetime,
    diary_after_days: int = 1,
    test_after_days: int = 7,
) -> int:
    """Queue diary and test reminders for users who have been away. Daily at 20:00."""
    queued = 0
    async with sessionmaker() as db:
        for user in await _active_users(db):
            if not (user.preferences or {}).get("notifications", True):
                continue
            last_entry = user.last_diary_entry_at
            if last_entry is None or now - last_entry >= timedelta(days=diary_after_days):
                db.add(
                    Notification(
                        user_id=user.id,
                        type="diary_reminder",
                        title="📝 Recordatorio del Diario",
                        body="Es hora de escribir en tu diario emocional. ¿Cómo te sientes hoy?",
                        data={"url": "/diario"},
                    )
                )
                queued += 1
            last_test = user.last_evaluation_at
            if last_test is not None and now - last_test >= timedelta(days=test_after_days):
                db.add(
                    Notification(
                        user_id=user.id,
                        type="test_reminder",
                        title="📊 Recordatorio de Test",
                        body="Es hora de realizar tu test de ansiedad semanal. ¿Cómo te sientes?",
                        data={"url": "/evaluacion"},
                    )
                )
                queued += 1
        await db.commit()
    logger.info("Queued %d reminders", queued)
    return queued


async def build_weekly_report(db: AsyncSession, user: User, now: datetime) -> dict:
    since = now - timedelta(days=7)
    entries = (
        await db.execute(
            select(DiaryEntry).where(DiaryEntry.user_id == user.id, DiaryEntry.created_at >= since)
        )
    ).scalars().all()
    evaluations = (
        await db.execute(
            select(Evaluation).where(Evaluation.user_id == user.id, Evaluation.completed_at >= since)
        )
    ).scalars().all()
    moods = [e.mood for e in entries]
    return {
        "weekStart": since.date().isoformat(),
        "weekEnd": now.date().isoformat(),
        "diaryEntries": len(entries),
        "averageMood": round(sum(moods) / len(moods), 1) if moods else None,
        "evaluations": len(evaluations),
        "currentStreak": user.current_streak,
    }


async def generate_weekly_reports(sessionmaker: async_sessionmaker[AsyncSession], now: datetime) -> int:
    """Weekly summary for users who opted in. Mondays at 09:00."""
    created = 0
    async with sessionmaker() as db:
        for user in await _active_users(db):
            if not (user.preferences or {}).get("weeklyReport"):
                continue
            report = await build_weekly_report(db, user, now)
            db.add(
                Notification(
                    user_id=user.id,
                    type="weekly_report",
                    title="📈 Tu Reporte Semanal",
                    body="Tu reporte semanal de bienestar está listo. ¡Revisa tu progreso!",
                    data=report,
                )
            )
            created += 1
        await db.commit()
    logger.info("Generated %d weekly reports", created)
    return created


async def cleanup_old_notifications(
    sessionmaker: async_sessionmaker[AsyncSession], now: datetime, retention_days: int = 365
) -> int:
    """Delete notifications past retention. Sundays at 02:00."""
    cutoff = now - timedelta(days=retention_days)
    async with sessionmaker() as db:
        result = await db.execute(delete(Notification).where(Notification.created_at < cutoff))
        await db.commit()
    removed = result.rowcount or 0
    logger.info("Removed %d notifications older than %s", removed, cutoff.date())
    return removed
