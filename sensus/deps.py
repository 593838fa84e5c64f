"""Request dependencies: gate steps, identity and per-app services."""
import json
import logging
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sensus.core.config import Settings
from sensus.core.errors import (
    AuthError,
    AuthorizationError,
    NotFoundError,
    RateLimitError,
    SuspiciousPayloadError,
)
from sensus.core.gate import RequestGate, is_hacking_tool, scan_payload
from sensus.core.metrics import Metrics
from sensus.core.security import ExpiredToken, InvalidToken, PasswordHasher, TokenClaims, TokenService
from sensus.db.session import get_db
from sensus.models.user import User
from sensus.services.cache import CacheService

logger = logging.getLogger("sensus.gate")


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request) -> CacheService:
    return request.app.state.cache


def get_gate(request: Request) -> RequestGate:
    return request.app.state.gate


def get_metrics(request: Request) -> Metrics:
    return request.app.state.metrics


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


DB = Annotated[AsyncSession, Depends(get_db)]
Cache = Annotated[CacheService, Depends(get_cache)]
Gate = Annotated[RequestGate, Depends(get_gate)]
AppMetrics = Annotated[Metrics, Depends(get_metrics)]
Tokens = Annotated[TokenService, Depends(get_tokens)]
Hasher = Annotated[PasswordHasher, Depends(get_hasher)]
AppSettings = Annotated[Settings, Depends(get_settings_dep)]


def client_ip(request: Request) -> str:
    settings = request.app.state.settings
    if settings.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(request: Request, gate: Gate, metrics: AppMetrics) -> None:
    """Step 1: blocked IPs, then the fixed-window rate limit."""
    ip = client_ip(request)
    if gate.blocklist.is_blocked(ip):
        metrics.security_event("ip_blocked")
        logger.warning("Rejected request from blocked IP %s to %s", ip, request.url.path)
        raise AuthorizationError("Access denied", error="ip_blocked")

    if not gate.settings.rate_limit_enabled:
        return
    retry_after = gate.rate_limiter.hit(ip, request.url.path)
    if retry_after is not None:
        metrics.security_event("rate_limited")
        logger.warning("Rate limit exceeded for %s on %s", ip, request.url.path)
        raise RateLimitError(retry_after)


async def reject_suspicious_payload(request: Request, gate: Gate, metrics: AppMetrics) -> None:
    """Step 2: attack-signature scan over the query string, JSON body and user agent."""
    found = None
    if is_hacking_tool(request.headers.get("user-agent")):
        found = "hacking-tool user agent"
    if found is None:
        found = scan_payload(list(request.query_params.values()))
    if found is None and request.method in ("POST", "PUT", "PATCH", "DELETE"):
        raw = await request.body()
        if raw:
            try:
                found = scan_payload(json.loads(raw))
            except (ValueError, UnicodeDecodeError):
                # not JSON; body validation reports it
                found = None
    if found is None:
        return

    ip = client_ip(request)
    metrics.security_event("suspicious_payload")
    logger.warning("Suspicious payload from %s on %s matched %r", ip, request.url.path, found)
    if gate.settings.block_suspicious_ips:
        gate.blocklist.block(ip, gate.settings.suspicious_block_seconds)
    raise SuspiciousPayloadError()


async def get_current_claims(
    request: Request,
    tokens: Tokens,
    cache: Cache,
    metrics: AppMetrics,
    authorization: Annotated[str | None, Header()] = None,
) -> TokenClaims:
    """Step 3: Authorization: Bearer <token> -> verified claims."""
    if not authorization:
        raise AuthError("Access token required", error="token_required")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthError("Invalid authorization header", error="invalid_token")
    try:
        claims = tokens.verify(parts[1])
    except ExpiredToken:
        raise AuthError("Token expired", error="token_expired")
    except InvalidToken:
        metrics.security_event("invalid_token")
        logger.warning("Invalid token presented from %s", client_ip(request))
        raise AuthError("Invalid token", error="invalid_token")
    if await cache.is_revoked(claims.jti):
        raise AuthError("Token revoked", error="token_revoked")
    return claims


Claims = Annotated[TokenClaims, Depends(get_current_claims)]


async def get_current_user(request: Request, claims: Claims, db: DB) -> User:
    """Step 4: claims -> an existing, active user attached to the request."""
    result = await db.execute(select(User).where(User.id == claims.user_id))
    user = result.scalar_one_or_none()
    if user is None or user.is_deleted:
        raise NotFoundError("User not found", error="user_not_found")
    if not user.is_active:
        raise AuthorizationError("Account disabled", error="account_disabled")
    request.state.user_id = user.id
    request.state.identity = {
        "userId": user.id,
        "email": claims.email,
        "role": claims.role,
        "permissions": claims.permissions,
    }
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_role(*roles: str):
    """Step 5: caller's role must be one of roles."""

    async def checker(user: CurrentUser, claims: Claims) -> User:
        if claims.role not in roles:
            raise AuthorizationError()
        return user

    return checker


def require_permissions(*permissions: str):
    """Step 5: caller must hold every permission; admins hold all."""

    async def checker(user: CurrentUser, claims: Claims) -> User:
        if claims.role == "admin":
            return user
        if not set(permissions).issubset(claims.permissions):
            raise AuthorizationError()
        return user

    return checker
