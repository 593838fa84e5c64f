"""Evaluation scoring on write, queries and per-test statistics."""
from datetime import date, datetime, time

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sensus.core.errors import AuthorizationError, NotFoundError, ValidationError
from sensus.db.session import utcnow
from sensus.models.evaluation import Evaluation
from sensus.services import scoring


def build_evaluation(user_id: str, test_type: str, answers: list[int], duration: int | None = None):
    """Validate answers and derive score, severity and interpretation server side."""
    problems = scoring.validate_answers(test_type, answers)
    if problems:
        raise ValidationError("; ".join(problems), details=problems)
    total = sum(answers)
    max_total = scoring.max_score(test_type, len(answers))
    interpretation = scoring.interpret(test_type, total, max_total)
    evaluation = Evaluation(
        user_id=user_id,
        test_type=test_type,
        answers=list(answers),
        score=total,
        max_score=max_total,
        severity=interpretation.severity,
        level=interpretation.level,
        risk_level=interpretation.risk_level,
        duration=duration,
        completed_at=utcnow(),
    )
    return evaluation, interpretation


def _filtered(
    user_id: str,
    test_types: list[str] | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    score_min: int | None = None,
    score_max: int | None = None,
):
    stmt = select(Evaluation).where(Evaluation.user_id == user_id)
    if test_types:
        stmt = stmt.where(Evaluation.test_type.in_(test_types))
    if date_from is not None:
        stmt = stmt.where(Evaluation.completed_at >= datetime.combine(date_from, time.min))
    if date_to is not None:
        stmt = stmt.where(Evaluation.completed_at <= datetime.combine(date_to, time.max))
    if score_min is not None:
        stmt = stmt.where(Evaluation.score >= score_min)
    if score_max is not None:
        stmt = stmt.where(Evaluation.score <= score_max)
    return stmt.order_by(Evaluation.completed_at.desc())


async def list_evaluations(db: AsyncSession, user_id: str, limit: int, offset: int, **filters):
    stmt = _filtered(user_id, **filters)
    total = await db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    rows = (await db.execute(stmt.limit(limit).offset(offset))).scalars().all()
    return list(rows), total or 0


async def get_owned_evaluation(db: AsyncSession, evaluation_id: str, user_id: str) -> Evaluation:
    evaluation = await db.get(Evaluation, evaluation_id)
    if evaluation is None:
        raise NotFoundError("Evaluation not found", error="evaluation_not_found")
    if evaluation.user_id != user_id:
        raise AuthorizationError()
    return evaluation


async def latest(db: AsyncSession, user_id: str, test_type: str | None = None, count: int = 1) -> list[Evaluation]:
    stmt = _filtered(user_id, [test_type] if test_type else None).limit(count)
    return list((await db.execute(stmt)).scalars().all())


async def history(db: AsyncSession, user_id: str) -> list[Evaluation]:
    """All of a user's evaluations, oldest first."""
    stmt = select(Evaluation).where(Evaluation.user_id == user_id).order_by(Evaluation.completed_at.asc())
    return list((await db.execute(stmt)).scalars().all())


async def evaluation_stats(db: AsyncSession, user_id: str) -> dict:
    items = await history(db, user_id)
    by_type: dict[str, list[Evaluation]] = {}
    for e in items:
        by_type.setdefault(e.test_type, []).append(e)

    per_test = {}
    for test_type, results in by_type.items():
        scores = [e.score for e in results]
        per_test[test_type] = {
            "count": len(results),
            "averageScore": round(sum(scores) / len(scores), 1),
            "bestScore": min(scores) if test_type in scoring.LOWER_IS_BETTER else max(scores),
            "latestScore": scores[-1],
            "latestSeverity": results[-1].severity,
            "trend": scoring.trend(scores, test_type in scoring.LOWER_IS_BETTER),
        }
    return {
        "totalEvaluations": len(items),
        "byTestType": per_test,
        "improvementRate": scoring.improvement_rate(items),
        "lastEvaluation": items[-1].completed_at.isoformat() if items else None,
    }
