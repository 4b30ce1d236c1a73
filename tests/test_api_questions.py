import pytest

from tests.api_helpers import draft, host_login, register


@pytest.mark.asyncio
async def test_guest_submission_is_pending(client, outbox):
    resp = await client.post("/questions", json={**draft(), "status": "SELECTED"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "PENDING"
    assert body["userId"] is None
    assert len(outbox) == 1


@pytest.mark.asyncio
async def test_moderator_endpoints_need_host(client):
    assert (await client.get("/questions")).status_code == 403
    assert (await client.get("/questions/mine")).status_code == 401


@pytest.mark.asyncio
async def test_rejection_without_reason_is_refused(make_client, outbox):
    viewer, host = make_client(), make_client()
    question = (await viewer.post("/questions", json=draft())).json()
    await host_login(host)
    outbox.clear()

    resp = await host.post(f"/questions/{question['id']}/status", json={"status": "REJECTED", "feedback": "  "})
    assert resp.status_code == 400
    assert outbox == []
    assert (await host.get(f"/questions/{question['id']}")).json()["status"] == "PENDING"

    resp = await host.post(
        f"/questions/{question['id']}/status", json={"status": "REJECTED", "feedback": "Слишком известно"}
    )
    assert resp.status_code == 200
    assert resp.json()["feedback"] == "Слишком известно"
    assert len(outbox) == 1
    assert outbox[0]["feedback"] == "Слишком известно"


@pytest.mark.asyncio
async def test_status_change_of_missing_question(client, outbox):
    await host_login(client)
    resp = await client.post("/questions/999/status", json={"status": "APPROVED"})
    assert resp.status_code == 404
    assert outbox == []


@pytest.mark.asyncio
async def test_outcome_only_for_played(make_client):
    viewer, host = make_client(), make_client()
    question = (await viewer.post("/questions", json=draft())).json()
    await host_login(host)

    assert (await host.post(f"/questions/{question['id']}/outcome")).status_code == 400
    await host.post(f"/questions/{question['id']}/status", json={"status": "PLAYED"})
    resp = await host.post(f"/questions/{question['id']}/outcome")
    assert resp.status_code == 200
    assert resp.json()["isAnsweredCorrectly"] is True


@pytest.mark.asyncio
async def test_patch_outcome_requires_played(make_client):
    viewer, host = make_client(), make_client()
    question = (await viewer.post("/questions", json=draft())).json()
    await host_login(host)

    resp = await host.patch(f"/questions/{question['id']}", json={"isAnsweredCorrectly": True})
    assert resp.status_code == 400
    stored = (await host.get("/questions")).json()[0]
    assert stored["status"] == "PENDING"
    assert stored["isAnsweredCorrectly"] is None


@pytest.mark.asyncio
async def test_reverting_played_clears_outcome(make_client):
    viewer, host = make_client(), make_client()
    question = (await viewer.post("/questions", json=draft())).json()
    await host_login(host)

    await host.post(f"/questions/{question['id']}/status", json={"status": "PLAYED"})
    await host.post(f"/questions/{question['id']}/outcome")
    resp = await host.post(f"/questions/{question['id']}/status", json={"status": "SELECTED"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "SELECTED"
    assert resp.json()["isAnsweredCorrectly"] is None


@pytest.mark.asyncio
async def test_tags_game_filter_and_patch(make_client):
    viewer, host = make_client(), make_client()
    first = (await viewer.post("/questions", json=draft(questionText="Первый?"))).json()
    second = (await viewer.post("/questions", json=draft(questionText="Второй?"))).json()
    await host_login(host)

    game = (await host.post("/games", json={"name": "Весенняя серия"})).json()
    resp = await host.patch(f"/questions/{first['id']}", json={"gameId": game["id"]})
    assert resp.json()["gameId"] == game["id"]
    assert (await host.patch(f"/questions/{first['id']}", json={"gameId": 777})).status_code == 400

    resp = await host.post(f"/questions/{second['id']}/tags/SUPER_BLITZ")
    assert resp.json()["tags"] == ["SUPER_BLITZ"]

    unassigned = (await host.get("/questions", params={"game": "NONE"})).json()
    assert [q["id"] for q in unassigned] == [second["id"]]
    in_game = (await host.get("/questions", params={"game": str(game["id"])})).json()
    assert [q["id"] for q in in_game] == [first["id"]]
    assert (await host.get("/questions", params={"game": "soon"})).status_code == 400


@pytest.mark.asyncio
async def test_viewer_sees_own_questions_and_stats(client):
    await register(client, email="gia@example.com")
    await client.post("/questions", json=draft(authorEmail="gia@example.com"))

    mine = (await client.get("/questions/mine")).json()
    assert len(mine) == 1
    stats = (await client.get("/questions/mine/stats")).json()
    assert stats["total"] == 1
    assert stats["counts"]["PENDING"] == 1

    notes = (await client.get("/notifications")).json()
    assert notes["unreadCount"] == 1
    assert (await client.post("/notifications/read-all")).json() == {"ok": True}
    assert (await client.get("/notifications")).json()["unreadCount"] == 0
