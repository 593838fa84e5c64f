"""Evaluation routes. Results are append-only; scores are derived server side."""
import logging
from dataclasses import asdict
from datetime import date
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from sensus.core.errors import NotFoundError, ValidationError
from sensus.deps import DB, Cache, require_permissions
from sensus.jobs.triggers import on_evaluation_created
from sensus.models.evaluation import Evaluation
from sensus.models.user import User
from sensus.schemas.common import PaginationSchema, dump, envelope
from sensus.schemas.evaluation import EvaluationCreateSchema, EvaluationOutSchema, InterpretationSchema
from sensus.services import evaluations as evaluation_service
from sensus.services import scoring

router = APIRouter(prefix="/api/v1/evaluations", tags=["evaluations"])
logger = logging.getLogger("sensus.evaluations")

Reader = Annotated[User, Depends(require_permissions("read:evaluations"))]
Writer = Annotated[User, Depends(require_permissions("write:evaluations"))]

CATALOGUE_KEY = "questionnaires"


def _out(evaluation: Evaluation) -> dict:
    return dump(EvaluationOutSchema.model_validate(evaluation))


def _test_types(value: str | None) -> list[str] | None:
    if not value:
        return None
    types = [t.strip().lower() for t in value.split(",") if t.strip()]
    unknown = [t for t in types if t not in scoring.TEST_TYPES]
    if unknown:
        raise ValidationError(f"Unknown test type: {', '.join(unknown)}")
    return types or None


@router.post("", status_code=201)
async def create_evaluation(
    request: Request,
    body: EvaluationCreateSchema,
    user: Writer,
    db: DB,
    background_tasks: BackgroundTasks,
):
    evaluation, interpretation = evaluation_service.build_evaluation(
        user.id, body.test_type, body.answers, body.duration
    )
    db.add(evaluation)
    await db.commit()
    await db.refresh(evaluation)
    background_tasks.add_task(
        on_evaluation_created, request.app.state.sessionmaker, user.id, evaluation.id
    )
    data = _out(evaluation)
    data["interpretation"] = dump(InterpretationSchema(**asdict(interpretation)))
    return envelope(data, message="Evaluation saved")


@router.get("")
async def list_evaluations(
    user: Reader,
    db: DB,
    test_type: Annotated[str | None, Query(alias="testType")] = None,
    date_from: Annotated[date | None, Query(alias="dateFrom")] = None,
    date_to: Annotated[date | None, Query(alias="dateTo")] = None,
    score_min: Annotated[int | None, Query(alias="scoreMin", ge=0)] = None,
    score_max: Annotated[int | None, Query(alias="scoreMax", ge=0)] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    items, total = await evaluation_service.list_evaluations(
        db,
        user.id,
        limit,
        offset,
        test_types=_test_types(test_type),
        date_from=date_from,
        date_to=date_to,
        score_min=score_min,
        score_max=score_max,
    )
    pagination = PaginationSchema(limit=limit, offset=offset, total=total, has_more=offset + len(items) < total)
    return envelope([_out(e) for e in items], pagination=dump(pagination))


@router.get("/stats")
async def get_stats(user: Reader, db: DB):
    return envelope(await evaluation_service.evaluation_stats(db, user.id))


@router.get("/tests")
async def list_tests(user: Reader, cache: Cache):
    """Questionnaire catalogue, cached under config:questionnaires."""
    catalogue = await cache.get_config(CATALOGUE_KEY)
    if catalogue is None:
        catalogue = [
            {
                "testType": test_type,
                "questions": scoring.ANSWER_RULES[test_type][0],
                "maxAnswer": scoring.ANSWER_RULES[test_type][1],
                "lowerIsBetter": test_type in scoring.LOWER_IS_BETTER,
                **scoring.QUESTIONNAIRES[test_type],
            }
            for test_type in scoring.TEST_TYPES
        ]
        await cache.set_config(CATALOGUE_KEY, catalogue)
    return envelope(catalogue)


@router.get("/latest")
async def get_latest(
    user: Reader,
    db: DB,
    test_type: Annotated[str | None, Query(alias="testType")] = None,
):
    types = _test_types(test_type)
    found = await evaluation_service.latest(db, user.id, types[0] if types else None)
    if not found:
        raise NotFoundError("No evaluations found", error="evaluation_not_found")
    return envelope(_out(found[0]))


@router.get("/compare")
async def compare_latest(
    user: Reader,
    db: DB,
    test_type: Annotated[str, Query(alias="testType")],
):
    """Compare the two most recent results of one test."""
    types = _test_types(test_type)
    if not types or len(types) != 1:
        raise ValidationError("testType must name exactly one test")
    recent = await evaluation_service.latest(db, user.id, types[0], count=2)
    if len(recent) < 2:
        raise NotFoundError("At least two evaluations are needed to compare", error="not_enough_evaluations")
    latest, previous = recent
    return envelope(
        {
            "testType": types[0],
            "latest": _out(latest),
            "previous": _out(previous),
            **scoring.compare(types[0], latest, previous),
        }
    )


@router.get("/{evaluation_id}")
async def get_evaluation(evaluation_id: str, user: Reader, db: DB):
    evaluation = await evaluation_service.get_owned_evaluation(db, evaluation_id, user.id)
    return envelope(_out(evaluation))
