import fnmatch
import sqlite3

import pytest
from fastapi.testclient import TestClient

from sensus.core.config import Settings
from sensus.main import create_app
from sensus.services.cache import CacheService

PASSWORD = "Sereno#Lago82"


class FakeRedis:
    """In-memory stand-in for the redis.asyncio client calls CacheService makes."""

    def __init__(self):
        self.data = {}
        self.expiry = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        if ex:
            self.expiry[key] = ex
        else:
            self.expiry.pop(key, None)
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self.data:
                del self.data[key]
                self.expiry.pop(key, None)
                removed += 1
        return removed

    async def exists(self, key):
        return int(key in self.data)

    async def ttl(self, key):
        if key not in self.data:
            return -2
        return self.expiry.get(key, -1)

    async def incrby(self, key, amount):
        value = int(self.data.get(key, 0)) + amount
        self.data[key] = str(value)
        return value

    async def keys(self, pattern):
        return [k for k in self.data if fnmatch.fnmatch(k, pattern)]

    async def ping(self):
        return True

    async def aclose(self):
        return None


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        "secret_key": "test-secret",
        "bcrypt_rounds": 4,
        "redis_url": None,
        "rate_limit_max_requests": 10_000,
        "rate_limit_endpoint_limits": {},
        "compression_enabled": False,
    }
    values.update(overrides)
    return Settings(**values)


def db_path(client: TestClient) -> str:
    url = client.app.state.settings.database_url
    return url.split(":///", 1)[1]


def set_role(client: TestClient, email: str, role: str) -> None:
    with sqlite3.connect(db_path(client)) as conn:
        conn.execute("UPDATE users SET role = ? WHERE email = ?", (role, email))


def register(client: TestClient, email: str = "ana@example.com", password: str = PASSWORD, **extra):
    body = {"email": email, "password": password, "firstName": "Ana", "lastName": "García", **extra}
    response = client.post("/api/v1/users/register", json=body)
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    return data["user"], data["token"]


def login(client: TestClient, email: str, password: str = PASSWORD) -> str:
    response = client.post("/api/v1/users/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["data"]["token"]


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def client(tmp_path):
    with TestClient(create_app(make_settings(tmp_path))) as c:
        yield c


@pytest.fixture
def cached_client(tmp_path, fake_redis):
    app = create_app(make_settings(tmp_path), cache=CacheService(fake_redis))
    with TestClient(app) as c:
        yield c
