import uuid

from conftest import auth, make_token


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["service"] == "tentshift-service"
    assert body["events_enabled"] is False


async def test_submit_requires_token(client):
    r = await client.post(
        "/availability",
        json={"start_time": "2026-02-01T09:00:00", "end_time": "2026-02-01T10:00:00", "status": "available"},
    )
    assert r.status_code == 401
    assert r.json()["code"] == "unauthorized"


async def test_submit_rejects_bad_token(client):
    r = await client.get("/availability/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


async def test_expired_token_is_rejected(client, tent):
    token = make_token(tent["member_id"], expires_in=-60)
    r = await client.get("/availability/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid or expired token"


async def test_subject_must_be_a_user_id(client):
    r = await client.get("/availability/me", headers=auth("someone@example.com"))
    assert r.status_code == 401


async def test_submit_without_tent_returns_no_tent(client):
    r = await client.post(
        "/availability",
        json={"start_time": "2026-02-01T09:00:00", "end_time": "2026-02-01T10:00:00", "status": "available"},
        headers=auth(uuid.uuid4()),
    )
    assert r.status_code == 403
    assert r.json()["code"] == "no_tent"


async def test_submit_invalid_range(client, tent):
    r = await client.post(
        "/availability",
        json={"start_time": "2026-02-01T10:00:00", "end_time": "2026-02-01T10:00:00", "status": "available"},
        headers=auth(tent["member_id"]),
    )
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_range"


async def test_submit_unknown_status_is_validation_error(client, tent):
    r = await client.post(
        "/availability",
        json={"start_time": "2026-02-01T09:00:00", "end_time": "2026-02-01T10:00:00", "status": "busy"},
        headers=auth(tent["member_id"]),
    )
    assert r.status_code == 422


async def test_submit_replaces_overlap_and_lists_mine(client, tent):
    headers = auth(tent["member_id"])
    r = await client.post(
        "/availability",
        json={"start_time": "2026-02-01T09:00:00", "end_time": "2026-02-01T11:00:00", "status": "unavailable"},
        headers=headers,
    )
    assert r.status_code == 201
    assert r.json()["tent_id"] == str(tent["tent_id"])

    r = await client.post(
        "/availability",
        json={"start_time": "2026-02-01T10:00:00Z", "end_time": "2026-02-01T12:00:00Z", "status": "available"},
        headers=headers,
    )
    assert r.status_code == 201

    r = await client.get("/availability/me", headers=headers)
    assert r.status_code == 200
    mine = r.json()
    assert len(mine) == 1
    assert mine[0]["start_time"] == "2026-02-01T10:00:00"
    assert mine[0]["end_time"] == "2026-02-01T12:00:00"
    assert mine[0]["status"] == "available"


async def test_tent_view_lists_members_and_intervals(client, tent):
    await client.post(
        "/availability",
        json={"start_time": "2026-02-01T09:00:00", "end_time": "2026-02-01T10:00:00", "status": "maybe"},
        headers=auth(tent["captain_id"]),
    )
    await client.post(
        "/availability",
        json={"start_time": "2026-02-02T09:00:00", "end_time": "2026-02-02T10:00:00", "status": "available"},
        headers=auth(tent["member_id"]),
    )

    r = await client.get("/availability", headers=auth(tent["member_id"]))
    assert r.status_code == 200
    view = r.json()
    assert view["tent_id"] == str(tent["tent_id"])
    assert [m["full_name"] for m in view["members"]] == ["Alice", "Bob"]
    assert len(view["availabilities"]) == 2

    r = await client.get(
        "/availability",
        params={"start": "2026-02-02T00:00:00", "end": "2026-02-03T00:00:00"},
        headers=auth(tent["member_id"]),
    )
    filtered = r.json()["availabilities"]
    assert len(filtered) == 1
    assert filtered[0]["user_id"] == str(tent["member_id"])


async def test_tent_view_rejects_inverted_window(client, tent):
    r = await client.get(
        "/availability",
        params={"start": "2026-02-03T00:00:00", "end": "2026-02-02T00:00:00"},
        headers=auth(tent["member_id"]),
    )
    assert r.status_code == 400


async def test_tent_view_is_cached_and_invalidated(client, tent, fake_redis):
    key = f"availability_view:{tent['tent_id']}:0"
    headers = auth(tent["member_id"])

    r = await client.get("/availability", headers=headers)
    assert r.status_code == 200
    assert key in fake_redis.store
    assert fake_redis.ttls[key] == 60
    assert r.json()["availabilities"] == []

    r = await client.post(
        "/availability",
        json={"start_time": "2026-02-01T09:00:00", "end_time": "2026-02-01T10:00:00", "status": "available"},
        headers=headers,
    )
    assert r.status_code == 201
    assert fake_redis.store[f"availability_view_gen:{tent['tent_id']}"] == "1"

    r = await client.get("/availability", headers=headers)
    assert len(r.json()["availabilities"]) == 1
    assert f"availability_view:{tent['tent_id']}:1" in fake_redis.store


async def test_member_who_left_drops_out_of_tent_views(client, tent):
    member = auth(tent["member_id"])
    captain = auth(tent["captain_id"])

    r = await client.post(
        "/shifts",
        json={"start_time": "2026-02-01T01:00:00", "end_time": "2026-02-01T07:00:00", "required_count": 1},
        headers=captain,
    )
    assert r.status_code == 201
    r = await client.post(
        "/availability",
        json={"start_time": "2026-02-01T00:00:00", "end_time": "2026-02-01T08:00:00", "status": "available"},
        headers=member,
    )
    assert r.status_code == 201

    r = await client.get("/shifts/coverage", headers=captain)
    assert r.json()[0]["available_members"] == [str(tent["member_id"])]

    r = await client.post("/tents", json={"name": "Splinter", "tent_type": "White"}, headers=member)
    assert r.status_code == 201

    r = await client.get("/shifts/coverage", headers=captain)
    assert r.json()[0]["available_members"] == []

    r = await client.get("/availability", headers=captain)
    body = r.json()
    assert str(tent["member_id"]) not in [m["id"] for m in body["members"]]
    assert body["availabilities"] == []


async def test_request_id_is_echoed(client):
    r = await client.get("/health", headers={"X-Request-Id": "req-42"})
    assert r.headers["X-Request-Id"] == "req-42"
