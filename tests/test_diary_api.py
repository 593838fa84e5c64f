from datetime import timedelta

from sensus.db.session import utcnow

from conftest import auth, register


def _create(client, token, **fields):
    body = {"content": "Paseo por el parque", "mood": 6, **fields}
    response = client.post("/api/v1/diary", json=body, headers=auth(token))
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_create_entry_defaults_and_cleaning(client):
    _, token = register(client)
    entry = _create(client, token, tags=[" Calma ", "calma", "Familia"], reflection="  bien  ")
    assert entry["date"] == utcnow().date().isoformat()
    assert entry["tags"] == ["calma", "familia"]
    assert entry["reflection"] == "bien"
    assert entry["anxietyLevel"] is None


def test_create_entry_validation(client):
    _, token = register(client)
    response = client.post("/api/v1/diary", json={"mood": 5}, headers=auth(token))
    assert response.status_code == 400
    assert "content" in response.json()["message"]

    response = client.post("/api/v1/diary", json={"content": "x", "mood": 11}, headers=auth(token))
    assert response.status_code == 400


def test_get_entry_is_repeatable(client):
    _, token = register(client)
    entry = _create(client, token)
    first = client.get(f"/api/v1/diary/{entry['id']}", headers=auth(token))
    second = client.get(f"/api/v1/diary/{entry['id']}", headers=auth(token))
    assert first.status_code == 200
    assert first.json()["data"] == second.json()["data"] == entry


def test_other_users_get_403(client):
    _, owner = register(client)
    _, intruder = register(client, "intruso@example.com")
    entry = _create(client, owner)
    url = f"/api/v1/diary/{entry['id']}"

    assert client.get(url, headers=auth(intruder)).status_code == 403
    assert client.put(url, json={"mood": 1}, headers=auth(intruder)).status_code == 403
    response = client.delete(url, headers=auth(intruder))
    assert response.status_code == 403
    assert response.json()["error"] == "insufficient_permissions"

    assert client.get(url, headers=auth(owner)).json()["data"]["mood"] == 6


def test_update_and_delete(client):
    _, token = register(client)
    entry = _create(client, token)
    url = f"/api/v1/diary/{entry['id']}"
    response = client.put(url, json={"mood": 9, "tags": ["Alegría"]}, headers=auth(token))
    assert response.status_code == 200
    assert response.json()["data"]["mood"] == 9
    assert response.json()["data"]["tags"] == ["alegría"]
    assert response.json()["data"]["content"] == entry["content"]

    assert client.delete(url, headers=auth(token)).status_code == 200
    assert client.get(url, headers=auth(token)).status_code == 404


def test_list_paginates_and_filters(client):
    _, token = register(client)
    today = utcnow().date()
    for i in range(5):
        _create(client, token, date=(today - timedelta(days=i)).isoformat(), mood=i + 1, tags=["t"] if i % 2 else [])

    response = client.get("/api/v1/diary?limit=2&offset=0", headers=auth(token))
    body = response.json()
    assert [e["date"] for e in body["data"]] == [today.isoformat(), (today - timedelta(days=1)).isoformat()]
    assert body["pagination"] == {"limit": 2, "offset": 0, "total": 5, "hasMore": True}

    start = (today - timedelta(days=2)).isoformat()
    body = client.get(f"/api/v1/diary?startDate={start}", headers=auth(token)).json()
    assert body["pagination"]["total"] == 3

    body = client.get("/api/v1/diary?tags=t", headers=auth(token)).json()
    assert body["pagination"]["total"] == 2
    assert all(e["tags"] == ["t"] for e in body["data"])

    body = client.get("/api/v1/diary?mood=3", headers=auth(token)).json()
    assert [e["mood"] for e in body["data"]] == [3]


def test_list_only_shows_own_entries(client):
    _, a = register(client)
    _, b = register(client, "b@example.com")
    _create(client, a)
    assert client.get("/api/v1/diary", headers=auth(b)).json()["pagination"]["total"] == 0


def test_stats(client):
    _, token = register(client)
    today = utcnow().date()
    _create(client, token, mood=8, tags=["calma"], anxietyLevel=2)
    _create(client, token, mood=4, tags=["calma", "trabajo"], date=(today - timedelta(days=1)).isoformat())
    _create(client, token, mood=6, date=(today - timedelta(days=60)).isoformat())

    stats = client.get("/api/v1/diary/stats?period=30d", headers=auth(token)).json()["data"]
    assert stats["totalEntries"] == 2
    assert stats["avgMood"] == 6.0
    assert stats["avgAnxiety"] == 2.0
    assert stats["moodDistribution"]["8"] == 1
    assert stats["moodDistribution"]["4"] == 1
    assert len(stats["moodDistribution"]) == 10
    assert stats["mostUsedTags"][0] == {"tag": "calma", "count": 2}
    assert stats["streak"] == 2
    assert stats["lastEntry"] == today.isoformat()

    stats = client.get("/api/v1/diary/stats?period=all", headers=auth(token)).json()["data"]
    assert stats["totalEntries"] == 3

    response = client.get("/api/v1/diary/stats?period=monthly", headers=auth(token))
    assert response.status_code == 400


def test_search(client):
    _, token = register(client)
    _create(client, token, content="Hablé con mi hermana", tags=["familia"])
    _create(client, token, content="Reunión larga", reflection="Necesito descansar", mood=3)
    _create(client, token, content="Nada especial", tags=["Descanso"])

    found = client.get("/api/v1/diary/search?q=HERMANA", headers=auth(token)).json()["data"]
    assert [e["content"] for e in found] == ["Hablé con mi hermana"]

    found = client.get("/api/v1/diary/search?q=descans", headers=auth(token)).json()["data"]
    assert len(found) == 2

    found = client.get("/api/v1/diary/search?mood=3", headers=auth(token)).json()["data"]
    assert [e["content"] for e in found] == ["Reunión larga"]

    found = client.get("/api/v1/diary/search?tags=familia", headers=auth(token)).json()["data"]
    assert len(found) == 1

    assert client.get("/api/v1/diary/search", headers=auth(token)).status_code == 400


def test_entries_feed_streak(client):
    _, token = register(client)
    today = utcnow().date()
    for i in (2, 1, 0):
        _create(client, token, date=(today - timedelta(days=i)).isoformat())
    stats = client.get("/api/v1/users/stats", headers=auth(token)).json()["data"]
    assert stats["totalDiaryEntries"] == 3
    assert stats["currentStreak"] == 3
    assert stats["longestStreak"] == 3
