"""Full-resync coordination.

A resync refetches the whole project document and replaces the store. The
merge engine requests one on every cache miss and the push loop requests
one on every reconnect, so requests made while a resync is in flight join
that resync instead of starting another.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from pydevsync.models.project import ProjectDocument
from pydevsync.state.store import EntityStore


class ResyncCoordinator:
    """Coalesce resync requests into at most one in-flight bulk fetch.

    Parameters
    ----------
    fetch
        Coroutine function returning a fresh :class:`ProjectDocument`.
    store
        The store replaced by each successful fetch.
    on_loaded
        Called with the document after it has been loaded into the store.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[ProjectDocument]],
        store: EntityStore,
        *,
        on_loaded: Callable[[ProjectDocument], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._fetch = fetch
        self._store = store
        self._on_loaded = on_loaded
        self._logger = logger or logging.getLogger(__name__)
        self._task: asyncio.Task[bool] | None = None
        self._closed = False
        self.completed = 0

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def request(self) -> bool:
        """Schedule a resync. Returns ``False`` if one is already running or the coordinator is closed."""
        if self._closed:
            self._logger.debug("Resync requested after close; ignoring")
            return False
        if self.in_flight:
            self._logger.debug("Resync already in flight; coalescing")
            return False
        self._task = asyncio.get_running_loop().create_task(self._run())
        return True

    async def wait(self) -> bool:
        """Wait for the in-flight resync, if any. Returns whether it loaded."""
        task = self._task
        if task is None:
            return False
        with contextlib.suppress(asyncio.CancelledError):
            return await asyncio.shield(task)
        return False

    async def close(self) -> None:
        self._closed = True
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> bool:
        self._logger.debug("Full resync started")
        try:
            document = await self._fetch()
        except asyncio.CancelledError:
            raise
        except Exception:
            self._logger.warning("Full resync failed", exc_info=True)
            return False

        if self._closed:
            self._logger.debug("Discarding resync result after close")
            return False
        if not self._store.load(document):
            return False

        self.completed += 1
        self._logger.info(
            "Full resync loaded project=%s sources=%d",
            document.current_project.id,
            len(document.current_project.sources),
        )
        if self._on_loaded is not None:
            try:
                self._on_loaded(document)
            except Exception:
                self._logger.debug("Resync callback failed", exc_info=True)
        return True
