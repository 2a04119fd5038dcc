import pytest
from httpx import ASGITransport, AsyncClient

from accountability.init_db import get_db
from accountability.main import app


@pytest.fixture
async def client(session_factory, users):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def test_acting_user_comes_from_dev_header(client):
    me = await client.get("/me", headers={"X-Dev-User": "alice"})
    assert me.json()["display_name"] == "Alice"

    unknown = await client.get("/me")
    assert unknown.status_code == 404


async def invite(client, inviter="alice", invitee="bob", key="workout"):
    response = await client.post(
        "/partnerships/invites",
        json={"invitee_id": invitee, "habit_type": "core", "identifier": key},
        headers={"X-Dev-User": inviter},
    )
    assert response.status_code == 200
    return response.json()


async def test_invite_and_accept(client):
    partnership = await invite(client)
    assert partnership["status"] == "pending"
    assert partnership["mode"] == "supportive"

    pending = await client.get("/partnerships/invites/pending", headers={"X-Dev-User": "bob"})
    assert [p["id"] for p in pending.json()] == [partnership["id"]]
    assert pending.json()[0]["partner"]["display_name"] == "Alice"

    forbidden = await client.post(f"/partnerships/{partnership['id']}/accept", headers={"X-Dev-User": "carol"})
    assert forbidden.status_code == 403

    accepted = await client.post(f"/partnerships/{partnership['id']}/accept", headers={"X-Dev-User": "bob"})
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"

    active = await client.get("/partnerships/active", headers={"X-Dev-User": "alice"})
    assert [p["id"] for p in active.json()] == [partnership["id"]]
    assert active.json()[0]["partner"]["id"] == "bob"


async def test_self_invite_is_rejected(client):
    response = await client.post(
        "/partnerships/invites",
        json={"invitee_id": "alice", "habit_type": "core", "identifier": "workout"},
        headers={"X-Dev-User": "alice"},
    )
    assert response.status_code == 400


async def test_unknown_partnership_is_not_found(client):
    response = await client.post("/partnerships/missing/decline", headers={"X-Dev-User": "bob"})
    assert response.status_code == 404


async def test_second_nudge_returns_429_with_retry_after(client, clock):
    partnership = await invite(client)
    await client.post(f"/partnerships/{partnership['id']}/accept", headers={"X-Dev-User": "bob"})

    first = await client.post(
        f"/nudges/{partnership['id']}", json={"nudged_user_id": "bob"}, headers={"X-Dev-User": "alice"}
    )
    assert first.status_code == 200

    second = await client.post(
        f"/nudges/{partnership['id']}", json={"nudged_user_id": "bob"}, headers={"X-Dev-User": "alice"}
    )
    assert second.status_code == 429
    assert second.headers["Retry-After"] == str(3 * 60 * 60 + 1)
    assert second.json()["detail"] == "You can nudge your partner again in 3h 0m."

    availability = await client.get(f"/nudges/{partnership['id']}", headers={"X-Dev-User": "bob"})
    assert availability.json()["can_nudge"] is False


async def test_progress_round_trip(client, clock):
    partnership = await invite(client)
    await client.post(f"/partnerships/{partnership['id']}/accept", headers={"X-Dev-User": "bob"})

    response = await client.put(
        f"/progress/{partnership['id']}",
        json={"date": "2026-10-18", "completed": True},
        headers={"X-Dev-User": "bob"},
    )
    assert response.status_code == 200

    status = await client.get(
        f"/partnerships/{partnership['id']}/partner-progress",
        params={"progress_date": "2026-10-18"},
        headers={"X-Dev-User": "alice"},
    )
    assert status.json()["completed"] is True


async def test_outsiders_cannot_read_partnership_progress_or_nudges(client, clock):
    partnership = await invite(client)
    await client.post(f"/partnerships/{partnership['id']}/accept", headers={"X-Dev-User": "bob"})
    await client.put(
        f"/progress/{partnership['id']}",
        json={"date": "2026-10-18", "completed": True},
        headers={"X-Dev-User": "bob"},
    )
    await client.post(f"/nudges/{partnership['id']}", json={"nudged_user_id": "bob"}, headers={"X-Dev-User": "alice"})

    as_partner = await client.get(
        f"/progress/{partnership['id']}/bob", params={"progress_date": "2026-10-18"}, headers={"X-Dev-User": "alice"}
    )
    assert as_partner.status_code == 200
    assert as_partner.json() == {"completed": True, "streak": 1}

    outsider = {"X-Dev-User": "carol"}
    progress = await client.get(
        f"/progress/{partnership['id']}/bob", params={"progress_date": "2026-10-18"}, headers=outsider
    )
    assert progress.status_code == 403

    availability = await client.get(f"/nudges/{partnership['id']}", headers=outsider)
    assert availability.status_code == 403

    last = await client.post("/nudges/last", json={"partnership_ids": [partnership["id"]]}, headers=outsider)
    assert last.status_code == 200
    assert last.json() == {}
