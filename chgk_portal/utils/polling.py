"""
Periodic refresh for polling consumers.

A ``PeriodicRefresher`` re-runs a fetch coroutine every ``interval`` seconds
in its own asyncio task and hands each result to an ``apply`` callback.
Every fetch is numbered when it starts; a result that finishes after a
newer one has already been applied is dropped instead of overwriting
fresher state.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from chgk_portal.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PeriodicRefresher(Generic[T]):

    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        apply: Callable[[T], None],
        interval: Optional[float] = None,
        name: str = "refresher",
    ):
        self.fetch = fetch
        self.apply = apply
        self.interval = interval if interval is not None else settings.POLL_INTERVAL_SECONDS
        self.name = name
        self._issued = 0
        self._applied = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_applied(self) -> int:
        """Sequence number of the newest result applied so far (0 = none)."""
        return self._applied

    async def refresh(self) -> bool:
        """Fetch once. Returns False when the result arrived out of order and was dropped."""
        self._issued += 1
        seq = self._issued
        data = await self.fetch()
        if seq < self._applied:
            logger.debug(f"[{self.name}] dropped stale response #{seq} (already at #{self._applied})")
            return False
        self._applied = seq
        self.apply(data)
        return True

    async def _loop(self) -> None:
        while True:
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # keep polling; the next tick retries
                logger.error(f"[{self.name}] refresh failed: {e}")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=self.name)
        logger.info(f"[{self.name}] polling every {self.interval}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"[{self.name}] stopped")
