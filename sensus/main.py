"""Sensus API - FastAPI app entry point."""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from sensus.core.config import Settings, get_settings
from sensus.core.errors import register_error_handlers, unhandled_exception_handler
from sensus.core.gate import RequestGate
from sensus.core.logging import configure_logging
from sensus.core.metrics import Metrics
from sensus.core.security import PasswordHasher, TokenService
from sensus.db.base import Base
from sensus.db.session import build_engine, build_sessionmaker
from sensus.deps import client_ip, enforce_rate_limit, reject_suspicious_payload
from sensus.routers import diary, evaluations, health, users
from sensus.services.cache import CacheService

logger = logging.getLogger("sensus")

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


def create_app(settings: Settings | None = None, cache: CacheService | None = None) -> FastAPI:
    """Build an app with its own engine, cache, gate state and metrics registry."""
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(settings.database_url, settings.database_echo)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        app.state.engine = engine
        app.state.sessionmaker = build_sessionmaker(engine)
        app.state.cache = cache or CacheService.from_url(
            settings.redis_url,
            user_ttl=settings.user_cache_ttl_seconds,
            config_ttl=settings.config_cache_ttl_seconds,
        )
        logger.info("%s %s started (%s)", settings.app_name, settings.app_version, settings.environment)
        yield
        await app.state.cache.close()
        await engine.dispose()
        logger.info("%s stopped", settings.app_name)

    app = FastAPI(
        title=settings.app_name,
        description="Mental-wellness API: accounts, diary, self-assessments",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        dependencies=[Depends(enforce_rate_limit), Depends(reject_suspicious_payload)],
    )
    app.state.settings = settings
    app.state.gate = RequestGate(settings)
    app.state.metrics = Metrics()
    app.state.tokens = TokenService(settings)
    app.state.hasher = PasswordHasher(settings.bcrypt_rounds)

    register_error_handlers(app)

    if settings.compression_enabled:
        app.add_middleware(GZipMiddleware, minimum_size=1024)
    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type"],
        )

    @app.middleware("http")
    async def audit_requests(request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            # 500s still get security headers and an audit line
            response = await unhandled_exception_handler(request, exc)
        duration = time.perf_counter() - started
        app.state.metrics.observe_request(request.method, _route_label(request), response.status_code, duration)
        if settings.security_headers_enabled:
            response.headers.update(SECURITY_HEADERS)
        logger.log(
            logging.ERROR if response.status_code >= 500 else logging.INFO,
            "%s %s %d %.1fms user=%s ip=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration * 1000,
            getattr(request.state, "user_id", "-"),
            client_ip(request),
        )
        return response

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(diary.router)
    app.include_router(evaluations.router)
    return app


app = create_app()
