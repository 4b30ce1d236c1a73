import asyncio

import httpx
import pytest

from chgk_portal.client import ModeratorFeed, PortalClient
from chgk_portal.utils.polling import PeriodicRefresher


@pytest.mark.asyncio
async def test_stale_response_is_dropped():
    slow_gate = asyncio.Event()
    responses = iter(["old", "new"])
    applied = []

    async def fetch():
        value = next(responses)
        if value == "old":
            await slow_gate.wait()
        return value

    refresher = PeriodicRefresher(fetch, applied.append, interval=60)

    slow = asyncio.create_task(refresher.refresh())
    await asyncio.sleep(0)
    assert await refresher.refresh() is True
    slow_gate.set()
    assert await slow is False

    assert applied == ["new"]
    assert refresher.last_applied == 2


@pytest.mark.asyncio
async def test_loop_keeps_polling_after_errors_until_stopped():
    calls = []

    async def fetch():
        calls.append(1)
        if len(calls) == 1:
            raise httpx.ConnectError("offline")
        return len(calls)

    applied = []
    refresher = PeriodicRefresher(fetch, applied.append, interval=0.01)
    refresher.start()
    refresher.start()
    for _ in range(100):
        if len(applied) >= 2:
            break
        await asyncio.sleep(0.01)
    await refresher.stop()

    assert not refresher.running
    assert applied[:2] == [2, 3]
    count = len(calls)
    await asyncio.sleep(0.05)
    assert len(calls) == count


@pytest.mark.asyncio
async def test_moderator_feed_fetches_filtered_questions():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": 1, "status": "PENDING"}])

    updates = []
    async with PortalClient("http://portal", transport=httpx.MockTransport(handler)) as client:
        feed = ModeratorFeed(client, status="PENDING", game="NONE", on_update=updates.append)
        assert await feed.refresh() is True

    assert feed.questions == [{"id": 1, "status": "PENDING"}]
    assert updates == [feed.questions]
    assert seen[0].url.path == "/questions"
    assert seen[0].url.params["status_filter"] == "PENDING"
    assert seen[0].url.params["game"] == "NONE"


@pytest.mark.asyncio
async def test_client_raises_on_error_status():
    transport = httpx.MockTransport(lambda request: httpx.Response(403, json={"detail": "Host access required"}))
    async with PortalClient("http://portal", transport=transport) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await client.questions()
