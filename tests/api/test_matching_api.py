import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(api_client: AsyncClient):
    response = await api_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_requests_without_session_are_rejected(api_client: AsyncClient):
    response = await api_client.post("/api/v1/queue", json={})
    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "NOT_AUTHENTICATED"

    response = await api_client.post(
        "/api/v1/queue", json={}, headers={"Authorization": "Bearer unknown"}
    )
    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "SESSION_EXPIRED"


@pytest.mark.asyncio
async def test_match_chat_and_skip(api_client: AsyncClient, alice, bob, auth_headers):
    a, b = auth_headers(alice), auth_headers(bob)

    assert (await api_client.post("/api/v1/queue", json={}, headers=a)).status_code == 201
    assert (await api_client.post("/api/v1/queue", json={}, headers=b)).status_code == 201

    matched = (await api_client.post("/api/v1/matches/attempt", headers=a)).json()
    assert matched["matched"] is True
    assert matched["partner"] == {"kind": "guest", "id": "bob"}
    pairing_id = matched["pairing"]["id"]

    polled = (await api_client.post("/api/v1/matches/attempt", headers=b)).json()
    assert polled["pairing"]["id"] == pairing_id

    room_a = (await api_client.post(f"/api/v1/matches/{pairing_id}/room", headers=a)).json()
    room_b = (await api_client.post(f"/api/v1/matches/{pairing_id}/room", headers=b)).json()
    assert room_a["id"] == room_b["id"]
    assert room_a["state"] == "OPEN"
    room_id = room_a["id"]

    active = (await api_client.get("/api/v1/chat/rooms/active", headers=b)).json()
    assert active["id"] == room_id

    rejoin = await api_client.post("/api/v1/queue", json={}, headers=a)
    assert rejoin.status_code == 409
    assert rejoin.json()["detail"]["code"] == "ALREADY_IN_ROOM"
    assert rejoin.json()["detail"]["room_id"] == room_id

    sent = await api_client.post(
        f"/api/v1/chat/rooms/{room_id}/messages", json={"content": "hi there"}, headers=a
    )
    assert sent.status_code == 201
    assert sent.json()["seq"] == 1

    closed = (await api_client.post(f"/api/v1/chat/rooms/{room_id}/close", headers=b)).json()
    assert closed["state"] == "CLOSED"
    assert closed["closed_by"] == {"kind": "guest", "id": "bob"}

    again = (await api_client.post(f"/api/v1/chat/rooms/{room_id}/close", headers=a)).json()
    assert again["closed_by"] == {"kind": "guest", "id": "bob"}

    late = await api_client.post(
        f"/api/v1/chat/rooms/{room_id}/messages", json={"content": "wait"}, headers=a
    )
    assert late.status_code == 409
    assert late.json()["detail"]["code"] == "ROOM_CLOSED"

    history = (await api_client.get(f"/api/v1/chat/rooms/{room_id}/messages", headers=b)).json()
    assert history["room_state"] == "CLOSED"
    assert [m["content"] for m in history["items"]] == ["hi there"]

    state = (await api_client.get(f"/api/v1/chat/rooms/{room_id}/state", headers=a)).json()
    assert state["state"] == "CLOSED"
    assert (await api_client.get("/api/v1/chat/rooms/active", headers=b)).json() is None
    assert (await api_client.post("/api/v1/queue", json={}, headers=a)).status_code == 201


@pytest.mark.asyncio
async def test_queue_position_and_leave(api_client: AsyncClient, alice, auth_headers):
    a = auth_headers(alice)
    assert (await api_client.get("/api/v1/queue/position", headers=a)).json() is None

    await api_client.post("/api/v1/queue", json={}, headers=a)
    position = (await api_client.get("/api/v1/queue/position", headers=a)).json()
    assert position["position"] == 1
    assert position["waiting"] == 1
    assert (await api_client.post("/api/v1/queue/heartbeat", headers=a)).json() == {"queued": True}

    assert (await api_client.delete("/api/v1/queue", headers=a)).json() == {"removed": True}
    assert (await api_client.post("/api/v1/queue/heartbeat", headers=a)).json() == {"queued": False}
    assert (await api_client.delete("/api/v1/queue", headers=a)).json() == {"removed": False}


@pytest.mark.asyncio
async def test_saved_filters_apply_on_enter(api_client: AsyncClient, alice, auth_headers):
    a = auth_headers(alice)
    assert (await api_client.get("/api/v1/queue/filters", headers=a)).json() is None

    saved = await api_client.put("/api/v1/queue/filters", json={"country": "JP"}, headers=a)
    assert saved.status_code == 200
    assert saved.json()["country"] == "jp"

    entry = (await api_client.post("/api/v1/queue", json={}, headers=a)).json()
    assert entry["filters"]["country"] == "jp"

    bad = await api_client.put("/api/v1/queue/filters", json={"age_min": 40, "age_max": 20}, headers=a)
    assert bad.status_code == 422


@pytest.mark.asyncio
async def test_wait_times_out_without_partner(api_client: AsyncClient, alice, auth_headers):
    a = auth_headers(alice)
    await api_client.post("/api/v1/queue", json={}, headers=a)
    response = await api_client.post("/api/v1/matches/wait?timeout=0.2", headers=a)
    assert response.json() == {"matched": False, "pairing": None, "partner": None}


@pytest.mark.asyncio
async def test_outsider_cannot_see_room(api_client: AsyncClient, alice, bob, carol, auth_headers):
    a, b, c = auth_headers(alice), auth_headers(bob), auth_headers(carol)
    await api_client.post("/api/v1/queue", json={}, headers=a)
    await api_client.post("/api/v1/queue", json={}, headers=b)
    pairing_id = (await api_client.post("/api/v1/matches/attempt", headers=b)).json()["pairing"]["id"]

    assert (await api_client.post(f"/api/v1/matches/{pairing_id}/room", headers=c)).status_code == 403
    room_id = (await api_client.post(f"/api/v1/matches/{pairing_id}/room", headers=a)).json()["id"]
    assert (await api_client.get(f"/api/v1/chat/rooms/{room_id}", headers=c)).status_code == 403
    response = await api_client.get(
        "/api/v1/chat/rooms/00000000-0000-0000-0000-000000000000", headers=c
    )
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "NOT_FOUND"
