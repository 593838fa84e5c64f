"""Liveness, detailed health for admins, Prometheus metrics."""
import logging
import time
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from sensus.deps import DB, AppMetrics, AppSettings, Cache, Gate, require_role
from sensus.models.user import User
from sensus.schemas.common import envelope

router = APIRouter(tags=["health"])
logger = logging.getLogger("sensus.health")

Admin = Annotated[User, Depends(require_role("admin"))]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
async def health(settings: AppSettings, metrics: AppMetrics):
    return {
        "success": True,
        "status": "healthy",
        "timestamp": _now(),
        "uptime": round(metrics.uptime_seconds(), 3),
        "version": settings.app_version,
        "environment": settings.environment,
    }


async def _database_status(db) -> dict:
    started = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", exc)
        return {"status": "unhealthy", "error": "database unreachable"}
    return {"status": "healthy", "responseTime": round((time.perf_counter() - started) * 1000, 2)}


async def _cache_status(cache) -> dict:
    if not cache.enabled:
        return {"status": "disabled"}
    started = time.perf_counter()
    if not await cache.ping():
        return {"status": "unhealthy"}
    stats = await cache.stats()
    return {
        "status": "healthy",
        "keys": stats["keys"],
        "responseTime": round((time.perf_counter() - started) * 1000, 2),
    }


@router.get("/health/detailed")
async def health_detailed(
    admin: Admin,
    db: DB,
    cache: Cache,
    gate: Gate,
    settings: AppSettings,
    metrics: AppMetrics,
):
    started = time.perf_counter()
    services = {"database": await _database_status(db), "cache": await _cache_status(cache)}
    degraded = any(s["status"] == "unhealthy" for s in services.values())
    return {
        "success": True,
        "status": "degraded" if degraded else "healthy",
        "timestamp": _now(),
        "uptime": round(metrics.uptime_seconds(), 3),
        "version": settings.app_version,
        "environment": settings.environment,
        "services": services,
        "security": gate.stats(),
        "config": {
            "rateLimitEnabled": settings.rate_limit_enabled,
            "corsEnabled": settings.cors_enabled,
            "compressionEnabled": settings.compression_enabled,
            "securityHeadersEnabled": settings.security_headers_enabled,
        },
        "responseTime": round((time.perf_counter() - started) * 1000, 2),
    }


@router.get("/metrics")
async def metrics_endpoint(metrics: AppMetrics, gate: Gate):
    return Response(content=metrics.render(gate.stats()), media_type=metrics.content_type)


@router.get("/api/info")
async def api_info(settings: AppSettings):
    return envelope(
        {
            "name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "endpoints": {
                "users": "/api/v1/users",
                "diary": "/api/v1/diary",
                "evaluations": "/api/v1/evaluations",
                "health": "/health",
                "metrics": "/metrics",
            },
        }
    )
