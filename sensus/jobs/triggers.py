"""Post-create triggers: counters, streaks, achievements, notifications.

Each trigger opens its own session. There is no idempotency key, so
running a trigger twice for the same record counts it twice.
"""
import logging
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sensus.db.session import utcnow
from sensus.models.achievement import Achievement
from sensus.models.diary import DiaryEntry
from sensus.models.evaluation import Evaluation
from sensus.models.notification import Notification
from sensus.models.user import User
from sensus.services import scoring

logger = logging.getLogger("sensus.jobs")

ACHIEVEMENT_TITLE = "🏆 ¡Nuevo Logro Desbloqueado!"


async def unlock_achievements(db: AsyncSession, user: User, codes: list[str]) -> list[Achievement]:
    """Insert achievements the user does not have yet and queue a notification for each."""
    if not codes:
        return []
    existing = set(
        (await db.execute(select(Achievement.code).where(Achievement.user_id == user.id))).scalars().all()
    )
    unlocked = []
    for code in codes:
        if code in existing:
            continue
        name, _ = scoring.ACHIEVEMENTS[code]
        achievement = Achievement(user_id=user.id, code=code, name=name, unlocked_at=utcnow())
        db.add(achievement)
        db.add(
            Notification(
                user_id=user.id,
                type="achievement",
                title=ACHIEVEMENT_TITLE,
                body=f"Has conseguido: {name}. ¡Sigue así!",
                data={"achievementId": code},
            )
        )
        unlocked.append(achievement)
        logger.info("User %s unlocked %s", user.id, code)
    return unlocked


async def on_diary_entry_created(
    sessionmaker: async_sessionmaker[AsyncSession], user_id: str, entry_id: str, entry_date: date
) -> None:
    async with sessionmaker() as db:
        user = await db.get(User, user_id)
        if user is None or user.is_deleted:
            return
        previous_day = await db.scalar(
            select(func.max(DiaryEntry.entry_date)).where(
                DiaryEntry.user_id == user_id, DiaryEntry.id != entry_id
            )
        )
        user.current_streak = scoring.next_streak(user.current_streak, previous_day, entry_date)
        user.longest_streak = max(user.longest_streak, user.current_streak)
        user.total_diary_entries += 1
        user.last_diary_entry_at = utcnow()
        await unlock_achievements(
            db, user, scoring.diary_achievements(user.total_diary_entries, user.current_streak)
        )
        await db.commit()
        logger.info(
            "Diary stats for %s: total=%d streak=%d",
            user_id,
            user.total_diary_entries,
            user.current_streak,
        )


async def on_evaluation_created(
    sessionmaker: async_sessionmaker[AsyncSession], user_id: str, evaluation_id: str
) -> None:
    async with sessionmaker() as db:
        user = await db.get(User, user_id)
        evaluation = await db.get(Evaluation, evaluation_id)
        if user is None or user.is_deleted or evaluation is None:
            return
        user.total_evaluations += 1
        user.last_evaluation_at = utcnow()

        scores = (
            await db.execute(
                select(Evaluation.score)
                .where(Evaluation.user_id == user_id, Evaluation.test_type == evaluation.test_type)
                .order_by(Evaluation.completed_at.asc())
            )
        ).scalars().all()
        direction = scoring.trend(list(scores), evaluation.test_type in scoring.LOWER_IS_BETTER)
        logger.info("Evaluation %s for %s: %s trend %s", evaluation.test_type, user_id, evaluation.score, direction)

        await unlock_achievements(db, user, scoring.evaluation_achievements(user.total_evaluations))
        await db.commit()
