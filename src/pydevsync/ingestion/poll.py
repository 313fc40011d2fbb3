"""Snapshot polling.

This module owns the fixed-interval poll of the coarse project snapshot.
The query itself lives in :mod:`pydevsync._api.project`; what a refresh does
with its result is up to the injected coroutine.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable


class PollScheduler:
    """Run a refresh coroutine on a fixed cadence, plus on demand.

    ``refresh_now()`` is coalesced: while a refresh is requested but not yet
    started, further requests are absorbed by it. A request made while a
    refresh is running queues exactly one follow-up refresh, so data changed
    after the running refresh read it is picked up.
    The regular cadence is not shifted by triggered refreshes.
    """

    def __init__(
        self,
        refresh: Callable[[], Awaitable[None]],
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._refresh = refresh
        self._logger = logger or logging.getLogger(__name__)
        self._task: asyncio.Task[None] | None = None
        self._trigger = asyncio.Event()
        self._interval = 0.0
        self.refresh_count = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval(self) -> float:
        return self._interval

    def start(self, interval: float) -> None:
        """Start polling every *interval* seconds."""
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if self.is_running:
            self._logger.debug("Poll scheduler already running")
            return
        self._interval = interval
        self._trigger.clear()
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._logger.debug("Poll scheduler started interval=%.1fs", interval)

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self._logger.debug("Poll scheduler stopped")

    def refresh_now(self) -> bool:
        """Request an immediate refresh. Returns ``False`` if absorbed or not running."""
        if not self.is_running:
            self._logger.debug("Refresh requested while poll scheduler is stopped")
            return False
        if self._trigger.is_set():
            self._logger.debug("Refresh already pending; coalescing")
            return False
        self._trigger.set()
        return True

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self._interval
        while True:
            timeout = max(0.0, next_tick - loop.time())
            try:
                await asyncio.wait_for(self._trigger.wait(), timeout)
                reason = "triggered"
            except TimeoutError:
                reason = "interval"
                next_tick += self._interval

            # Cleared before the refresh starts: a request arriving while it
            # runs re-arms the trigger for one more pass.
            self._trigger.clear()
            try:
                await self._refresh()
                self.refresh_count += 1
            except asyncio.CancelledError:
                raise
            except Exception:
                self._logger.warning("Snapshot refresh failed (%s)", reason, exc_info=True)

            now = loop.time()
            if next_tick <= now:
                next_tick = now + self._interval
