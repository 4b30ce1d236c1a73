import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from itsdangerous import TimestampSigner
from sqlalchemy.exc import OperationalError

from chgk_portal.config import settings
from chgk_portal.models.hidden_item import HiddenItemType
from chgk_portal.models.user import User
from chgk_portal.services import communication, profiles
from chgk_portal.services.communication import PollClosedError
from tests.api_helpers import host_login, register


async def _user(db, email):
    user = User(email=email, password_hash="x")
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def _poll(db, allow_multiple=False, **extra):
    return await communication.create_poll(
        db,
        {"question": "Когда?", "options": ["Субботы", "Воскресенья"], "allow_multiple": allow_multiple, **extra},
    )


# ── polls ──

@pytest.mark.asyncio
async def test_single_choice_vote_toggles(db):
    user = await _user(db, "nino@example.com")
    poll = await _poll(db)

    assert await communication.vote(db, poll.id, user.id, 0) == [0]
    assert await communication.results(db, poll) == {0: 1, 1: 0}

    assert await communication.vote(db, poll.id, user.id, 1) == [1]
    assert await communication.results(db, poll) == {0: 0, 1: 1}

    assert await communication.vote(db, poll.id, user.id, 1) == []
    assert await communication.results(db, poll) == {0: 0, 1: 0}


@pytest.mark.asyncio
async def test_multiple_choice_votes_accumulate(db):
    nino = await _user(db, "nino@example.com")
    gia = await _user(db, "gia@example.com")
    poll = await _poll(db, allow_multiple=True)

    await communication.vote(db, poll.id, nino.id, 0)
    assert await communication.vote(db, poll.id, nino.id, 1) == [0, 1]
    await communication.vote(db, poll.id, gia.id, 1)
    assert await communication.results(db, poll) == {0: 1, 1: 2}

    assert await communication.clear_votes(db, poll.id, nino.id)
    assert await communication.results(db, poll) == {0: 0, 1: 1}


@pytest.mark.asyncio
async def test_vote_rejections(db):
    user = await _user(db, "nino@example.com")
    poll = await _poll(db)

    with pytest.raises(ValueError):
        await communication.vote(db, poll.id, user.id, 5)
    assert await communication.vote(db, 404, user.id, 0) is None

    ended = await _poll(db, ends_at=datetime.now(timezone.utc) - timedelta(hours=1))
    assert communication.is_closed(ended)
    with pytest.raises(PollClosedError):
        await communication.vote(db, ended.id, user.id, 0)

    inactive = await _poll(db, is_active=False)
    with pytest.raises(PollClosedError):
        await communication.vote(db, inactive.id, user.id, 0)
    assert [p.id for p in await communication.list_active_polls(db)] == [ended.id, poll.id]


@pytest.mark.asyncio
async def test_shortening_options_drops_out_of_range_votes(db):
    user = await _user(db, "nino@example.com")
    poll = await _poll(db)
    await communication.vote(db, poll.id, user.id, 1)

    poll = await communication.update_poll(db, poll.id, {"options": ["Субботы"]})
    assert await communication.results(db, poll) == {0: 0}
    assert await communication.user_votes(db, poll.id, user.id) == []


@pytest.mark.asyncio
async def test_switching_to_single_choice_keeps_newest_vote(db):
    nino = await _user(db, "nino@example.com")
    gia = await _user(db, "gia@example.com")
    poll = await _poll(db, allow_multiple=True)
    await communication.vote(db, poll.id, nino.id, 0)
    await communication.vote(db, poll.id, nino.id, 1)
    await communication.vote(db, poll.id, gia.id, 0)

    poll = await communication.update_poll(db, poll.id, {"allow_multiple": False})

    assert poll.allow_multiple is False
    assert await communication.user_votes(db, poll.id, nino.id) == [1]
    assert await communication.user_votes(db, poll.id, gia.id) == [0]
    assert await communication.results(db, poll) == {0: 1, 1: 1}


@pytest.mark.asyncio
async def test_vote_details_grouped_with_names(db):
    nino = await _user(db, "nino@example.com")
    gia = await _user(db, "gia@example.com")
    await profiles.upsert(db, nino.id, {"full_name": "Нино Тариели"})
    poll = await _poll(db, allow_multiple=True)
    await communication.vote(db, poll.id, nino.id, 0)
    await communication.vote(db, poll.id, gia.id, 0)
    await communication.vote(db, poll.id, gia.id, 1)

    details = await communication.vote_details(db, poll.id)
    assert sorted(details) == [0, 1]
    assert {d["full_name"] for d in details[0]} == {"Нино Тариели", "gia"}
    assert [d["user_id"] for d in details[1]] == [gia.id]


# ── announcements ──

@pytest.mark.asyncio
async def test_increment_views_skips_failing_id(db, monkeypatch):
    broken = await communication.create_announcement(db, {"title": "Серия", "message": "Скоро"})
    fine = await communication.create_announcement(db, {"title": "Опрос", "message": "Голосуйте"})
    real_get = communication.get_announcement

    async def flaky_get(session, announcement_id):
        if announcement_id == broken.id:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return await real_get(session, announcement_id)

    monkeypatch.setattr(communication, "get_announcement", flaky_get)

    assert await communication.increment_views(db, [broken.id, fine.id]) == 1
    assert (await real_get(db, fine.id)).views == 1
    assert (await real_get(db, broken.id)).views == 0


# ── hidden items ──

@pytest.mark.asyncio
async def test_hidden_items_are_per_user(db):
    nino = await _user(db, "nino@example.com")
    gia = await _user(db, "gia@example.com")
    item = await communication.create_announcement(db, {"title": "Серия", "message": "Скоро"})

    assert await communication.hide(db, nino.id, item.id, HiddenItemType.ANNOUNCEMENT)
    assert await communication.hide(db, nino.id, item.id, HiddenItemType.ANNOUNCEMENT)

    items = await communication.list_announcements(db)
    nino_hidden = await communication.list_hidden_ids(db, nino.id, HiddenItemType.ANNOUNCEMENT)
    gia_hidden = await communication.list_hidden_ids(db, gia.id, HiddenItemType.ANNOUNCEMENT)
    assert communication.partition_feed(items, nino_hidden) == ([], [item])
    assert communication.partition_feed(items, gia_hidden) == ([item], [])
    assert await communication.list_hidden_ids(db, nino.id, HiddenItemType.POLL) == set()

    assert await communication.unhide(db, nino.id, item.id, HiddenItemType.ANNOUNCEMENT)
    assert await communication.list_hidden_ids(db, nino.id) == set()


@pytest.mark.asyncio
async def test_deleting_announcement_removes_hide_markers(db):
    nino = await _user(db, "nino@example.com")
    item = await communication.create_announcement(db, {"title": "Серия", "message": "Скоро"})
    await communication.hide(db, nino.id, item.id, HiddenItemType.ANNOUNCEMENT)

    assert await communication.delete_announcement(db, item.id)
    assert await communication.list_hidden_ids(db, nino.id) == set()
    assert await communication.delete_announcement(db, item.id) is False


# ── API ──

@pytest.mark.asyncio
async def test_announcement_views_count_once_per_session(make_client):
    host, nino, gia = make_client(), make_client(), make_client()
    await host_login(host)
    await register(nino, email="nino@example.com")
    await register(gia, email="gia@example.com")

    created = (await host.post("/announcements", json={"title": "Открыта весенняя серия", "message": "Ждём вопросы"})).json()

    await nino.get("/announcements")
    await nino.get("/announcements")
    feed = (await gia.get("/announcements")).json()
    assert feed["archived"] == []

    listed = (await host.get("/announcements/all")).json()
    assert listed[0]["id"] == created["id"]
    assert listed[0]["views"] == 2

    assert (await gia.post(f"/announcements/{created['id']}/hide")).status_code == 204
    feed = (await gia.get("/announcements")).json()
    assert feed["current"] == []
    assert [a["id"] for a in feed["archived"]] == [created["id"]]
    assert (await gia.post("/announcements/999/hide")).status_code == 404


def _seen_in_session(client):
    payload = TimestampSigner(settings.SECRET_KEY).unsign(client.cookies["session"])
    return json.loads(base64.b64decode(payload)).get("seen_announcements", [])


@pytest.mark.asyncio
async def test_seen_announcements_follow_the_feed(make_client, monkeypatch):
    host, nino = make_client(), make_client()
    await host_login(host)
    await register(nino, email="nino@example.com")
    first = (await host.post("/announcements", json={"title": "Серия", "message": "Скоро"})).json()
    second = (await host.post("/announcements", json={"title": "Опрос", "message": "Голосуйте"})).json()

    async def nothing_counted(session, ids):
        return 0

    with monkeypatch.context() as m:
        m.setattr(communication, "increment_views", nothing_counted)
        await nino.get("/announcements")
    assert _seen_in_session(nino) == []

    await nino.get("/announcements")
    assert _seen_in_session(nino) == sorted([first["id"], second["id"]])
    assert {a["views"] for a in (await host.get("/announcements/all")).json()} == {1}

    await host.delete(f"/announcements/{first['id']}")
    await nino.get("/announcements")
    assert _seen_in_session(nino) == [second["id"]]


@pytest.mark.asyncio
async def test_poll_api_vote_and_archive(make_client):
    host, viewer = make_client(), make_client()
    await host_login(host)
    await register(viewer)

    assert (await host.post("/polls", json={"question": "Когда?", "options": [" ", ""]})).status_code == 422
    poll = (await host.post("/polls", json={"question": "Когда?", "options": ["Субботы", "Воскресенья"]})).json()
    assert poll["results"] == {"0": 0, "1": 0}

    resp = await viewer.post(f"/polls/{poll['id']}/vote", json={"optionIndex": 1})
    assert resp.status_code == 200
    assert resp.json()["userVotes"] == [1]
    assert resp.json()["results"] == {"0": 0, "1": 1}
    assert (await viewer.post(f"/polls/{poll['id']}/vote", json={"optionIndex": 9})).status_code == 400
    assert (await viewer.post("/polls/999/vote", json={"optionIndex": 0})).status_code == 404

    details = (await host.get(f"/polls/{poll['id']}/votes")).json()
    assert details["1"][0]["fullName"] == "nino"

    await viewer.post(f"/polls/{poll['id']}/hide")
    feed = (await viewer.get("/polls")).json()
    assert feed["current"] == []
    assert feed["archived"][0]["userVotes"] == [1]

    await host.patch(f"/polls/{poll['id']}", json={"isActive": False})
    assert (await viewer.get("/polls")).json()["archived"] == []
    resp = await viewer.delete(f"/polls/{poll['id']}/vote")
    assert resp.status_code == 400
