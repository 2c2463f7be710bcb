import uuid

import pytest

from conftest import auth

NIGHT = {"start_time": "2026-02-01T01:00:00", "end_time": "2026-02-01T07:00:00", "required_count": 2}


@pytest.fixture
async def shift(client, tent):
    r = await client.post("/shifts", json=NIGHT, headers=auth(tent["captain_id"]))
    assert r.status_code == 201
    return r.json()


async def test_create_shift(shift, tent):
    assert shift["tent_id"] == str(tent["tent_id"])
    assert shift["required_count"] == 2
    assert shift["is_grace"] is False


async def test_member_cannot_create_shift(client, tent):
    r = await client.post("/shifts", json=NIGHT, headers=auth(tent["member_id"]))
    assert r.status_code == 403


async def test_create_shift_invalid_range(client, tent):
    body = {"start_time": "2026-02-01T07:00:00", "end_time": "2026-02-01T01:00:00"}
    r = await client.post("/shifts", json=body, headers=auth(tent["captain_id"]))
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_range"


async def test_assign_and_list_shifts(client, tent, shift):
    captain = auth(tent["captain_id"])
    r = await client.post(
        f"/shifts/{shift['id']}/assignments",
        json={"user_id": str(tent["member_id"])},
        headers=captain,
    )
    assert r.status_code == 201
    assert r.json()["user"]["full_name"] == "Bob"

    r = await client.post(
        f"/shifts/{shift['id']}/assignments",
        json={"user_id": str(tent["member_id"])},
        headers=captain,
    )
    assert r.status_code == 409

    r = await client.get("/shifts", headers=auth(tent["member_id"]))
    shifts = r.json()
    assert len(shifts) == 1
    assert [a["user_id"] for a in shifts[0]["assignments"]] == [str(tent["member_id"])]

    r = await client.get(f"/shifts/members/{tent['member_id']}", headers=auth(tent["member_id"]))
    assert [s["id"] for s in r.json()] == [shift["id"]]

    r = await client.get(f"/shifts/members/{tent['captain_id']}", headers=auth(tent["member_id"]))
    assert r.json() == []


async def test_assign_outsider_is_rejected(client, tent, shift):
    r = await client.post(
        f"/shifts/{shift['id']}/assignments",
        json={"user_id": str(uuid.uuid4())},
        headers=auth(tent["captain_id"]),
    )
    assert r.status_code == 404


async def test_member_shifts_of_outsider(client, tent):
    r = await client.get(f"/shifts/members/{uuid.uuid4()}", headers=auth(tent["member_id"]))
    assert r.status_code == 404


async def test_unassign_and_delete(client, tent, shift):
    captain = auth(tent["captain_id"])
    await client.post(
        f"/shifts/{shift['id']}/assignments",
        json={"user_id": str(tent["member_id"])},
        headers=captain,
    )

    r = await client.delete(f"/shifts/{shift['id']}/assignments/{tent['member_id']}", headers=captain)
    assert r.status_code == 200
    r = await client.delete(f"/shifts/{shift['id']}/assignments/{tent['member_id']}", headers=captain)
    assert r.status_code == 404

    r = await client.delete(f"/shifts/{shift['id']}", headers=captain)
    assert r.status_code == 200
    r = await client.get("/shifts", headers=captain)
    assert r.json() == []

    r = await client.delete(f"/shifts/{shift['id']}", headers=captain)
    assert r.status_code == 404


async def test_coverage_counts_assignments_and_available_members(client, tent, shift):
    captain = auth(tent["captain_id"])
    member = auth(tent["member_id"])

    # member covers the night with two touching available ranges
    for start, end in (("01:00", "04:00"), ("04:00", "08:00")):
        r = await client.post(
            "/availability",
            json={
                "start_time": f"2026-02-01T{start}:00",
                "end_time": f"2026-02-01T{end}:00",
                "status": "available",
            },
            headers=member,
        )
        assert r.status_code == 201

    # captain only partially available
    await client.post(
        "/availability",
        json={"start_time": "2026-02-01T02:00:00", "end_time": "2026-02-01T07:00:00", "status": "available"},
        headers=captain,
    )
    await client.post(
        f"/shifts/{shift['id']}/assignments",
        json={"user_id": str(tent["member_id"])},
        headers=captain,
    )

    r = await client.get("/shifts/coverage", headers=member)
    assert r.status_code == 200
    [row] = r.json()
    assert row["shift_id"] == shift["id"]
    assert row["assigned_count"] == 1
    assert row["required_count"] == 2
    assert row["fully_staffed"] is False
    assert row["available_members"] == [str(tent["member_id"])]
