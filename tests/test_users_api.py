from fastapi.testclient import TestClient
from jose import jwt

from sensus.main import create_app

from conftest import PASSWORD, auth, login, make_settings, register, set_role


def _claims(token: str) -> dict:
    return jwt.get_unverified_claims(token)


def test_register_then_login_returns_same_user(client):
    user, token = register(client)
    assert user["email"] == "ana@example.com"
    assert "hashedPassword" not in user
    assert user["preferences"]["language"] == "es"
    assert "write:diary" in user["permissions"]

    login_token = login(client, "ANA@example.com")
    assert _claims(login_token)["sub"] == user["id"] == _claims(token)["sub"]
    assert _claims(login_token)["jti"] != _claims(token)["jti"]


def test_register_missing_fields_lists_them(client):
    response = client.post("/api/v1/users/register", json={"email": "ana@example.com"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "validation_error"
    assert "password" in body["message"]
    assert "firstName" in body["message"]


def test_register_rejects_bad_email(client):
    response = client.post(
        "/api/v1/users/register",
        json={"email": "not-an-email", "password": PASSWORD, "firstName": "A", "lastName": "B"},
    )
    assert response.status_code == 400


def test_weak_password_is_rejected_and_not_stored(client):
    response = client.post(
        "/api/v1/users/register",
        json={"email": "weak@example.com", "password": "short1A", "firstName": "A", "lastName": "B"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "weak_password"
    assert response.json()["details"]

    response = client.post("/api/v1/users/login", json={"email": "weak@example.com", "password": "short1A"})
    assert response.status_code == 401


def test_duplicate_email_conflicts(client):
    register(client)
    response = client.post(
        "/api/v1/users/register",
        json={"email": "ana@example.com", "password": PASSWORD, "firstName": "A", "lastName": "B"},
    )
    assert response.status_code == 409
    assert response.json()["error"] == "email_exists"


def test_login_failure_is_generic(client):
    register(client)
    wrong_password = client.post("/api/v1/users/login", json={"email": "ana@example.com", "password": "Nope#Nope99"})
    unknown_user = client.post("/api/v1/users/login", json={"email": "who@example.com", "password": PASSWORD})
    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json()["message"] == unknown_user.json()["message"]


def test_login_lockout(tmp_path):
    app = create_app(make_settings(tmp_path, max_login_attempts=3))
    with TestClient(app) as client:
        register(client)
        for _ in range(3):
            response = client.post("/api/v1/users/login", json={"email": "ana@example.com", "password": "Bad#Pass99"})
            assert response.status_code == 401
        response = client.post("/api/v1/users/login", json={"email": "ana@example.com", "password": PASSWORD})
        assert response.status_code == 429
        assert response.json()["error"] == "account_locked"
        assert 0 < response.json()["retryAfter"] <= 900


def test_profile_requires_token(client):
    response = client.get("/api/v1/users/profile")
    assert response.status_code == 401
    assert response.json()["error"] == "token_required"

    response = client.get("/api/v1/users/profile", headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401
    assert response.json()["error"] == "invalid_token"


def test_profile_update_and_preferences(client):
    _, token = register(client)
    response = client.put(
        "/api/v1/users/profile",
        json={"firstName": "Anita", "birthDate": "1990-05-01", "preferences": {"theme": "dark"}},
        headers=auth(token),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["firstName"] == "Anita"
    assert data["lastName"] == "García"
    assert data["birthDate"] == "1990-05-01"
    assert data["preferences"]["theme"] == "dark"
    assert data["preferences"]["language"] == "es"

    response = client.put("/api/v1/users/preferences", json={"weeklyReport": True}, headers=auth(token))
    assert response.json()["data"]["weeklyReport"] is True
    assert client.get("/api/v1/users/preferences", headers=auth(token)).json()["data"]["theme"] == "dark"

    response = client.put("/api/v1/users/privacy", json={"shareAnonymousData": True}, headers=auth(token))
    assert response.json()["data"] == {"shareAnonymousData": True, "showInLeaderboards": False}


def test_profile_is_cached_and_invalidated(cached_client, fake_redis):
    user, token = register(cached_client)
    cached_client.get("/api/v1/users/profile", headers=auth(token))
    assert f"user:{user['id']}" in fake_redis.data

    cached_client.put("/api/v1/users/profile", json={"lastName": "López"}, headers=auth(token))
    assert f"user:{user['id']}" not in fake_redis.data
    profile = cached_client.get("/api/v1/users/profile", headers=auth(token)).json()["data"]
    assert profile["lastName"] == "López"


def test_login_refreshes_cached_profile(cached_client, fake_redis):
    user, token = register(cached_client)
    profile = cached_client.get("/api/v1/users/profile", headers=auth(token)).json()["data"]
    assert profile["lastLogin"] is None
    assert f"user:{user['id']}" in fake_redis.data

    login(cached_client, "ana@example.com")
    assert f"user:{user['id']}" not in fake_redis.data
    profile = cached_client.get("/api/v1/users/profile", headers=auth(token)).json()["data"]
    assert profile["lastLogin"] is not None


def test_change_password(client):
    _, token = register(client)
    response = client.put(
        "/api/v1/users/password",
        json={"currentPassword": "Wrong#Pass11", "newPassword": "Nuevo#Bosque93"},
        headers=auth(token),
    )
    assert response.status_code == 401

    response = client.put(
        "/api/v1/users/password",
        json={"currentPassword": PASSWORD, "newPassword": "weakpass"},
        headers=auth(token),
    )
    assert response.status_code == 400
    login(client, "ana@example.com")

    response = client.put(
        "/api/v1/users/password",
        json={"currentPassword": PASSWORD, "newPassword": "Nuevo#Bosque93"},
        headers=auth(token),
    )
    assert response.status_code == 200
    login(client, "ana@example.com", "Nuevo#Bosque93")


def test_logout_revokes_token(cached_client):
    _, token = register(cached_client)
    assert cached_client.post("/api/v1/users/logout", headers=auth(token)).status_code == 200
    response = cached_client.get("/api/v1/users/profile", headers=auth(token))
    assert response.status_code == 401
    assert response.json()["error"] == "token_revoked"


def test_delete_account_removes_data(client):
    _, token = register(client)
    entry = client.post("/api/v1/diary", json={"content": "Día tranquilo", "mood": 7}, headers=auth(token))
    assert entry.status_code == 201
    client.post("/api/v1/evaluations", json={"testType": "gad7", "answers": [1] * 7}, headers=auth(token))

    response = client.request("DELETE", "/api/v1/users/account", json={"password": "Wrong#Pass11"}, headers=auth(token))
    assert response.status_code == 401

    response = client.request("DELETE", "/api/v1/users/account", json={"password": PASSWORD}, headers=auth(token))
    assert response.status_code == 200

    assert client.get("/api/v1/users/profile", headers=auth(token)).status_code == 404
    response = client.post("/api/v1/users/login", json={"email": "ana@example.com", "password": PASSWORD})
    assert response.status_code == 401

    # the entry id is gone for everyone, including a new account
    _, other = register(client, "otro@example.com")
    entry_id = entry.json()["data"]["id"]
    assert client.get(f"/api/v1/diary/{entry_id}", headers=auth(other)).status_code == 404


def test_stats_include_achievements(client):
    _, token = register(client)
    client.post("/api/v1/diary", json={"content": "Primera nota", "mood": 6}, headers=auth(token))
    client.post("/api/v1/evaluations", json={"testType": "gad7", "answers": [0] * 7}, headers=auth(token))

    stats = client.get("/api/v1/users/stats", headers=auth(token)).json()["data"]
    assert stats["totalDiaryEntries"] == 1
    assert stats["totalEvaluations"] == 1
    assert stats["currentStreak"] == 1
    assert {a["code"] for a in stats["achievements"]} == {"first_entry", "first_test"}


def test_admin_routes_need_admin_role(client):
    _, token = register(client)
    assert client.get("/api/v1/users/admin/users", headers=auth(token)).status_code == 403

    set_role(client, "ana@example.com", "admin")
    admin_token = login(client, "ana@example.com")
    register(client, "luis@example.com")

    response = client.get("/api/v1/users/admin/users?limit=1", headers=auth(admin_token))
    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]) == 1
    assert body["pagination"] == {"limit": 1, "offset": 0, "total": 2, "hasMore": True}

    stats = client.get("/api/v1/users/admin/stats", headers=auth(admin_token)).json()["data"]
    assert stats["totalUsers"] == 2
    assert stats["activeUsers"] == 2
