from fastapi.testclient import TestClient

from sensus.main import SECURITY_HEADERS, create_app

from conftest import auth, make_settings, register


def test_rate_limit_returns_retry_after(tmp_path):
    app = create_app(make_settings(tmp_path, rate_limit_max_requests=3))
    with TestClient(app) as client:
        for _ in range(3):
            assert client.get("/health").status_code == 200
        response = client.get("/health")
        assert response.status_code == 429
        body = response.json()
        assert body["error"] == "rate_limited"
        assert 0 < body["retryAfter"] <= 900
        assert response.headers["Retry-After"] == str(body["retryAfter"])

        # the budget is per client, not per path
        assert client.get("/api/info").status_code == 429
        assert client.get("/metrics").status_code == 429


def test_endpoint_limit_overrides_global(tmp_path):
    settings = make_settings(tmp_path, rate_limit_endpoint_limits={"/api/info": 1})
    with TestClient(create_app(settings)) as client:
        assert client.get("/api/info").status_code == 200
        assert client.get("/api/info").status_code == 429
        assert client.get("/health").status_code == 200


def test_rate_limit_can_be_disabled(tmp_path):
    settings = make_settings(tmp_path, rate_limit_max_requests=1, rate_limit_enabled=False)
    with TestClient(create_app(settings)) as client:
        for _ in range(3):
            assert client.get("/health").status_code == 200


def test_suspicious_body_blocks_the_caller(client):
    response = client.post(
        "/api/v1/users/register",
        json={"email": "x@example.com", "password": "x", "firstName": "<script>alert(1)</script>", "lastName": "B"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "suspicious_content"

    response = client.get("/health")
    assert response.status_code == 403
    assert response.json()["error"] == "ip_blocked"


def test_suspicious_payload_without_blocking(tmp_path):
    with TestClient(create_app(make_settings(tmp_path, block_suspicious_ips=False))) as client:
        _, token = register(client)
        response = client.get("/api/v1/diary/search?q=1 UNION SELECT password", headers=auth(token))
        assert response.status_code == 400
        assert client.get("/health").status_code == 200

        response = client.get("/health", headers={"User-Agent": "sqlmap/1.7"})
        assert response.status_code == 400


def test_sanitised_text_is_not_suspicious(client):
    _, token = register(client)
    response = client.post(
        "/api/v1/diary",
        json={"content": "Hoy me siento <mejor> que ayer", "mood": 7},
        headers=auth(token),
    )
    assert response.status_code == 201
    assert response.json()["data"]["content"] == "Hoy me siento mejor que ayer"


def test_configured_blocked_ip(tmp_path):
    with TestClient(create_app(make_settings(tmp_path, blocked_ips=["testclient"]))) as client:
        response = client.get("/health")
        assert response.status_code == 403
        assert response.json()["error"] == "ip_blocked"


def test_security_headers(client):
    response = client.get("/health")
    for name, value in SECURITY_HEADERS.items():
        assert response.headers[name] == value


def test_unknown_route_envelope(client):
    response = client.get("/api/v1/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "not_found", "message": "Not Found"}


def test_unhandled_error_is_hidden(tmp_path):
    app = create_app(make_settings(tmp_path))

    async def boom():
        raise RuntimeError("database password is hunter2")

    app.add_api_route("/boom", boom)
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/boom")
    assert response.status_code == 500
    assert response.json()["error"] == "internal_error"
    assert "hunter2" not in response.text
    for name, value in SECURITY_HEADERS.items():
        assert response.headers[name] == value
