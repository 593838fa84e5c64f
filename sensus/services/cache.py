"""Best-effort Redis cache. Failures read as misses and are never raised."""
import json
import logging
from typing import Any

from redis import asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger("sensus.cache")

USER_PREFIX = "user:"
SESSION_PREFIX = "session:"
CONFIG_PREFIX = "config:"
BLACKLIST_PREFIX = "blacklist:"

USER_TTL = 3600
SESSION_TTL = 1800
CONFIG_TTL = 1800

# what a broken connection or bad payload can raise
CACHE_ERRORS = (RedisError, OSError, ValueError, TypeError)


class CacheService:
    def __init__(self, client=None, user_ttl: int = USER_TTL, config_ttl: int = CONFIG_TTL):
        self.client = client
        self.user_ttl = user_ttl
        self.config_ttl = config_ttl

    @classmethod
    def from_url(cls, url: str | None, **kwargs) -> "CacheService":
        if not url:
            logger.info("Redis not configured; cache disabled")
            return cls(None, **kwargs)
        return cls(aioredis.from_url(url, decode_responses=True), **kwargs)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def get(self, key: str) -> Any | None:
        if self.client is None:
            return None
        try:
            raw = await self.client.get(key)
            return json.loads(raw) if raw is not None else None
        except CACHE_ERRORS as exc:
            logger.warning("cache get %s failed: %s", key, exc)
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        if self.client is None:
            return False
        try:
            raw = json.dumps(value, default=str)
            if ttl:
                await self.client.set(key, raw, ex=ttl)
            else:
                await self.client.set(key, raw)
            return True
        except CACHE_ERRORS as exc:
            logger.warning("cache set %s failed: %s", key, exc)
            return False

    async def delete(self, key: str) -> bool:
        if self.client is None:
            return False
        try:
            return bool(await self.client.delete(key))
        except CACHE_ERRORS as exc:
            logger.warning("cache delete %s failed: %s", key, exc)
            return False

    async def delete_pattern(self, pattern: str) -> int:
        if self.client is None:
            return 0
        try:
            keys = await self.client.keys(pattern)
            if not keys:
                return 0
            return int(await self.client.delete(*keys))
        except CACHE_ERRORS as exc:
            logger.warning("cache delete_pattern %s failed: %s", pattern, exc)
            return 0

    async def exists(self, key: str) -> bool:
        if self.client is None:
            return False
        try:
            return bool(await self.client.exists(key))
        except CACHE_ERRORS as exc:
            logger.warning("cache exists %s failed: %s", key, exc)
            return False

    async def ttl(self, key: str) -> int:
        if self.client is None:
            return -1
        try:
            return int(await self.client.ttl(key))
        except CACHE_ERRORS as exc:
            logger.warning("cache ttl %s failed: %s", key, exc)
            return -1

    async def increment(self, key: str, amount: int = 1) -> int:
        if self.client is None:
            return 0
        try:
            return int(await self.client.incrby(key, amount))
        except CACHE_ERRORS as exc:
            logger.warning("cache increment %s failed: %s", key, exc)
            return 0

    async def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            return bool(await self.client.ping())
        except CACHE_ERRORS as exc:
            logger.warning("cache ping failed: %s", exc)
            return False

    async def stats(self) -> dict:
        connected = await self.ping()
        keys = 0
        if connected:
            try:
                keys = len(await self.client.keys("*"))
            except CACHE_ERRORS as exc:
                logger.warning("cache stats failed: %s", exc)
        return {"enabled": self.enabled, "connected": connected, "keys": keys}

    async def close(self) -> None:
        if self.client is None:
            return
        try:
            await self.client.aclose()
        except CACHE_ERRORS as exc:
            logger.warning("cache close failed: %s", exc)

    # prefixed helpers

    async def get_user(self, user_id: str) -> dict | None:
        return await self.get(USER_PREFIX + user_id)

    async def set_user(self, user_id: str, data: dict) -> bool:
        return await self.set(USER_PREFIX + user_id, data, self.user_ttl)

    async def invalidate_user(self, user_id: str) -> bool:
        return await self.delete(USER_PREFIX + user_id)

    async def get_session(self, session_id: str) -> dict | None:
        return await self.get(SESSION_PREFIX + session_id)

    async def set_session(self, session_id: str, data: dict) -> bool:
        return await self.set(SESSION_PREFIX + session_id, data, SESSION_TTL)

    async def get_config(self, name: str) -> Any | None:
        return await self.get(CONFIG_PREFIX + name)

    async def set_config(self, name: str, value: Any) -> bool:
        return await self.set(CONFIG_PREFIX + name, value, self.config_ttl)

    async def revoke_token(self, jti: str, ttl: int) -> bool:
        return await self.set(BLACKLIST_PREFIX + jti, True, max(1, ttl))

    async def is_revoked(self, jti: str) -> bool:
        return await self.exists(BLACKLIST_PREFIX + jti)
