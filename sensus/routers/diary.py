"""Diary routes. Every entry is visible to its owner only."""
import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from sensus.core.errors import ValidationError
from sensus.db.session import utcnow
from sensus.deps import DB, require_permissions
from sensus.jobs.triggers import on_diary_entry_created
from sensus.models.diary import DiaryEntry
from sensus.models.user import User
from sensus.schemas.common import PaginationSchema, dump, envelope
from sensus.schemas.diary import DiaryCreateSchema, DiaryOutSchema, DiaryUpdateSchema
from sensus.services import diary as diary_service

router = APIRouter(prefix="/api/v1/diary", tags=["diary"])
logger = logging.getLogger("sensus.diary")

Reader = Annotated[User, Depends(require_permissions("read:diary"))]
Writer = Annotated[User, Depends(require_permissions("write:diary"))]


def _split(value: str | None) -> list[str] | None:
    if not value:
        return None
    items = [v.strip().lower() for v in value.split(",") if v.strip()]
    return items or None


def _out(entry: DiaryEntry) -> dict:
    return dump(DiaryOutSchema.model_validate(entry))


@router.post("", status_code=201)
async def create_entry(
    request: Request,
    body: DiaryCreateSchema,
    user: Writer,
    db: DB,
    background_tasks: BackgroundTasks,
):
    entry = DiaryEntry(
        user_id=user.id,
        content=body.content,
        mood=body.mood,
        tags=body.tags,
        entry_date=body.entry_date or utcnow().date(),
        anxiety_level=body.anxiety_level,
        reflection=body.reflection,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    background_tasks.add_task(
        on_diary_entry_created, request.app.state.sessionmaker, user.id, entry.id, entry.entry_date
    )
    return envelope(_out(entry), message="Diary entry created")


@router.get("")
async def list_entries(
    user: Reader,
    db: DB,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    start_date: Annotated[date | None, Query(alias="startDate")] = None,
    end_date: Annotated[date | None, Query(alias="endDate")] = None,
    mood: Annotated[int | None, Query(ge=1, le=10)] = None,
    tags: str | None = None,
):
    """Newest first. tags is a comma separated list; any match counts."""
    entries, total = await diary_service.list_entries(
        db, user.id, limit, offset, start_date, end_date, mood, _split(tags)
    )
    pagination = PaginationSchema(limit=limit, offset=offset, total=total, has_more=offset + len(entries) < total)
    return envelope([_out(e) for e in entries], pagination=dump(pagination))


@router.get("/stats")
async def get_stats(user: Reader, db: DB, period: str = "30d"):
    return envelope(await diary_service.diary_stats(db, user.id, period, utcnow().date()))


@router.get("/search")
async def search_entries(
    user: Reader,
    db: DB,
    q: Annotated[str | None, Query(max_length=200)] = None,
    tags: str | None = None,
    mood: Annotated[int | None, Query(ge=1, le=10)] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    if not (q and q.strip()) and not tags and mood is None:
        raise ValidationError("Provide at least one of q, tags or mood")
    entries = await diary_service.search_entries(db, user.id, q, _split(tags), mood, limit)
    return envelope([_out(e) for e in entries], total=len(entries))


@router.get("/{entry_id}")
async def get_entry(entry_id: str, user: Reader, db: DB):
    entry = await diary_service.get_owned_entry(db, entry_id, user.id)
    return envelope(_out(entry))


@router.put("/{entry_id}")
async def update_entry(entry_id: str, body: DiaryUpdateSchema, user: Writer, db: DB):
    entry = await diary_service.get_owned_entry(db, entry_id, user.id)
    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field in ("content", "mood", "tags", "entry_date"):
            continue
        setattr(entry, field, value)
    await db.commit()
    await db.refresh(entry)
    return envelope(_out(entry), message="Diary entry updated")


@router.delete("/{entry_id}")
async def delete_entry(entry_id: str, user: Writer, db: DB):
    entry = await diary_service.get_owned_entry(db, entry_id, user.id)
    await db.delete(entry)
    await db.commit()
    logger.info("Deleted diary entry %s", entry_id)
    return envelope(message="Diary entry deleted")
