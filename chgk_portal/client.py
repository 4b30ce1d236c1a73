"""
Async HTTP client for the portal API, plus polling feeds built on it.

    async with PortalClient("http://127.0.0.1:8000") as client:
        await client.host_login("editor")
        feed = ModeratorFeed(client, status="PENDING")
        feed.start()
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from chgk_portal.utils.polling import PeriodicRefresher

logger = logging.getLogger(__name__)


class PortalClient:
    """Thin wrapper over ``httpx.AsyncClient``; cookies keep the viewer/host session."""

    def __init__(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 10.0):
        self.http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        await self.http.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        resp = await self.http.request(method, url, **kwargs)
        resp.raise_for_status()
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    # ── session ──

    async def register(self, email: str, password: str, full_name: Optional[str] = None) -> Dict[str, Any]:
        body = {"email": email, "password": password}
        if full_name:
            body["fullName"] = full_name
        return await self._request("POST", "/auth/register", json=body)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        return await self._request("POST", "/auth/login", json={"email": email, "password": password})

    async def host_login(self, password: str) -> Dict[str, Any]:
        return await self._request("POST", "/auth/host-login", json={"password": password})

    async def session(self) -> Dict[str, Any]:
        return await self._request("GET", "/auth/session")

    async def logout(self) -> Dict[str, Any]:
        return await self._request("GET", "/auth/logout")

    # ── questions ──

    async def submit_question(self, draft: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/questions", json=draft)

    async def my_questions(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/questions/mine")

    async def questions(self, status: Optional[str] = None, game: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {}
        if status:
            params["status_filter"] = status
        if game:
            params["game"] = game
        return await self._request("GET", "/questions", params=params)

    async def change_status(self, question_id: int, status: str, feedback: Optional[str] = None) -> Dict[str, Any]:
        return await self._request(
            "POST", f"/questions/{question_id}/status", json={"status": status, "feedback": feedback}
        )

    # ── news ──

    async def announcements(self) -> Dict[str, Any]:
        return await self._request("GET", "/announcements")

    async def polls(self) -> Dict[str, Any]:
        return await self._request("GET", "/polls")

    async def vote(self, poll_id: int, option_index: int) -> Dict[str, Any]:
        return await self._request("POST", f"/polls/{poll_id}/vote", json={"optionIndex": option_index})

    async def notifications(self) -> Dict[str, Any]:
        return await self._request("GET", "/notifications")


class ModeratorFeed:
    """Keeps the moderator's question list fresh by polling ``GET /questions``."""

    def __init__(
        self,
        client: PortalClient,
        status: Optional[str] = None,
        game: Optional[str] = None,
        interval: Optional[float] = None,
        on_update: Optional[Callable[[List[Dict[str, Any]]], None]] = None,
    ):
        self.client = client
        self.status = status
        self.game = game
        self.on_update = on_update
        self.questions: List[Dict[str, Any]] = []
        self.refresher = PeriodicRefresher(self._fetch, self._apply, interval=interval, name="moderator-feed")

    async def _fetch(self) -> List[Dict[str, Any]]:
        return await self.client.questions(status=self.status, game=self.game)

    def _apply(self, questions: List[Dict[str, Any]]) -> None:
        self.questions = questions
        if self.on_update is not None:
            self.on_update(questions)

    def start(self) -> None:
        self.refresher.start()

    async def stop(self) -> None:
        await self.refresher.stop()

    async def refresh(self) -> bool:
        return await self.refresher.refresh()
