"""Diary queries and statistics."""
import re
from collections import Counter
from datetime import date, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sensus.core.errors import AuthorizationError, NotFoundError, ValidationError
from sensus.models.diary import DiaryEntry
from sensus.services.scoring import calculate_streak

PERIOD_RE = re.compile(r"^(\d{1,4})d$")
MOST_USED_TAGS = 10
MOOD_TREND_DAYS = 30


def parse_period(period: str, today: date) -> date | None:
    """'30d' -> first day of the window; 'all' -> None."""
    if period == "all":
        return None
    match = PERIOD_RE.match(period)
    if not match or int(match.group(1)) < 1:
        raise ValidationError("period must look like '30d' or be 'all'")
    return today - timedelta(days=int(match.group(1)) - 1)


def _owner_query(user_id: str, start_date: date | None = None, end_date: date | None = None, mood: int | None = None):
    stmt = select(DiaryEntry).where(DiaryEntry.user_id == user_id)
    if start_date is not None:
        stmt = stmt.where(DiaryEntry.entry_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(DiaryEntry.entry_date <= end_date)
    if mood is not None:
        stmt = stmt.where(DiaryEntry.mood == mood)
    return stmt.order_by(DiaryEntry.entry_date.desc(), DiaryEntry.created_at.desc())


def _has_tags(entry: DiaryEntry, tags: list[str]) -> bool:
    return any(t in (entry.tags or []) for t in tags)


async def list_entries(
    db: AsyncSession,
    user_id: str,
    limit: int,
    offset: int,
    start_date: date | None = None,
    end_date: date | None = None,
    mood: int | None = None,
    tags: list[str] | None = None,
) -> tuple[list[DiaryEntry], int]:
    """One page of a user's entries, newest first, and the total match count."""
    stmt = _owner_query(user_id, start_date, end_date, mood)
    if tags:
        # JSON membership is filtered here to stay portable across backends
        rows = (await db.execute(stmt)).scalars().all()
        matched = [e for e in rows if _has_tags(e, tags)]
        return matched[offset:offset + limit], len(matched)

    total = await db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    rows = (await db.execute(stmt.limit(limit).offset(offset))).scalars().all()
    return list(rows), total or 0


async def get_owned_entry(db: AsyncSession, entry_id: str, user_id: str) -> DiaryEntry:
    entry = await db.get(DiaryEntry, entry_id)
    if entry is None:
        raise NotFoundError("Diary entry not found", error="entry_not_found")
    if entry.user_id != user_id:
        raise AuthorizationError()
    return entry


async def search_entries(
    db: AsyncSession,
    user_id: str,
    q: str | None = None,
    tags: list[str] | None = None,
    mood: int | None = None,
    limit: int = 20,
) -> list[DiaryEntry]:
    """Case-insensitive text search over content, reflection and tags."""
    stmt = _owner_query(user_id, mood=mood)
    needle = q.strip().lower() if q else None
    rows = (await db.execute(stmt)).scalars().all()
    results = []
    for entry in rows:
        if needle and not (
            needle in entry.content.lower()
            or needle in (entry.reflection or "").lower()
            or any(needle in t for t in entry.tags or [])
        ):
            continue
        if tags and not _has_tags(entry, tags):
            continue
        results.append(entry)
        if len(results) >= limit:
            break
    return results


async def diary_stats(db: AsyncSession, user_id: str, period: str, today: date) -> dict:
    since = parse_period(period, today)
    entries = (await db.execute(_owner_query(user_id, start_date=since))).scalars().all()
    all_dates = (
        await db.execute(select(DiaryEntry.entry_date).where(DiaryEntry.user_id == user_id))
    ).scalars().all()

    distribution = {str(m): 0 for m in range(1, 11)}
    tag_counter: Counter = Counter()
    anxiety = []
    by_day: dict[date, list[int]] = {}
    for e in entries:
        distribution[str(e.mood)] += 1
        tag_counter.update(e.tags or [])
        if e.anxiety_level is not None:
            anxiety.append(e.anxiety_level)
        by_day.setdefault(e.entry_date, []).append(e.mood)

    total = len(entries)
    trend_start = today - timedelta(days=MOOD_TREND_DAYS - 1)
    mood_trend = [
        {"date": day.isoformat(), "mood": round(sum(moods) / len(moods), 1)}
        for day, moods in sorted(by_day.items())
        if day >= trend_start
    ]
    return {
        "period": period,
        "totalEntries": total,
        "avgMood": round(sum(e.mood for e in entries) / total, 1) if total else 0,
        "avgAnxiety": round(sum(anxiety) / len(anxiety), 1) if anxiety else None,
        "moodDistribution": distribution,
        "mostUsedTags": [{"tag": t, "count": c} for t, c in tag_counter.most_common(MOST_USED_TAGS)],
        "moodTrend": mood_trend,
        "streak": calculate_streak(list(all_dates), today),
        "lastEntry": entries[0].entry_date.isoformat() if entries else None,
    }
