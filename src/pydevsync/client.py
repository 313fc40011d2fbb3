"""High-level async client for the developer tools console state."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from pydevsync._api.project import fetch_project, fetch_project_snapshot, update_last_read
from pydevsync._client.resync import ResyncCoordinator
from pydevsync._transport import GraphQLTransport, Transport
from pydevsync.config import DevToolsConfig
from pydevsync.exceptions import DevSyncChannelError, DevSyncError
from pydevsync.ingestion.poll import PollScheduler
from pydevsync.ingestion.subscription import GraphQLSubscriptionChannel, PushChannel
from pydevsync.models.project import Project, ProjectDocument
from pydevsync.state.cursor import CursorTracker, LastReadUpdate
from pydevsync.state.events import MessageEvent
from pydevsync.state.merge import MergeEngine, MergeOutcome
from pydevsync.state.store import EntityStore
from pydevsync.state.view import ProjectView, ViewSelection, ViewSelector

_logger = logging.getLogger(__name__)


class DevToolsClient:
    """Keeps a local copy of the console state in sync with the server.

    Usage::

        async with DevToolsClient(config) as client:
            await client.start()
            print(client.window_title())

    The initial bulk load fills the store, then two writers keep it fresh:
    the message subscription (merged event by event) and the snapshot poll
    (coarse project fields only).
    """

    def __init__(
        self,
        config: DevToolsConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        channel: PushChannel | None = None,
        on_change: Callable[[DevToolsClient], None] | None = None,
        foreground: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._logger = logger or _logger
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._channel = channel
        self._on_change = on_change
        self._foreground = foreground

        self._store = EntityStore(logger=self._logger)
        self._views = ViewSelector(self._store)
        self._cursor_tracker = CursorTracker(self._post_last_read, logger=self._logger)
        self._resync = ResyncCoordinator(
            self._fetch_document,
            self._store,
            on_loaded=self._on_reloaded,
            logger=self._logger,
        )
        self._scheduler = PollScheduler(self.refresh_snapshot, logger=self._logger)
        self._engine = MergeEngine(
            self._store,
            cursor_tracker=self._cursor_tracker,
            view_provider=self._views.project_view,
            is_foreground=lambda: self._foreground,
            request_resync=self.request_resync,
            request_refresh=self._scheduler.refresh_now,
            logger=self._logger,
        )

        self._resume_cursor: str | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[Any]] = set()
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> DevToolsClient:
        needs_http = self._transport is None or (self._channel is None and self._config.push_enabled)
        if needs_http and self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        if self._transport is None:
            assert self._http_session is not None  # noqa: S101
            self._transport = GraphQLTransport(self._config, self._http_session)
        if self._channel is None and self._config.push_enabled:
            assert self._http_session is not None  # noqa: S101
            self._channel = GraphQLSubscriptionChannel(self._config, self._http_session, logger=self._logger)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self, document: ProjectDocument | None = None) -> None:
        """Load the project and start the subscription and the snapshot poll.

        Pass *document* to seed the store with an already fetched bulk
        result instead of querying the server.
        """
        if self._closed:
            raise DevSyncError("Client is closed")
        if self._started:
            return
        if document is None:
            document = await self._fetch_document()
        self._store.load(document)
        self._resume_cursor = document.last_cursor
        self._started = True
        self._logger.info(
            "Loaded project=%s sources=%d cursor=%s",
            document.current_project.id,
            len(document.current_project.sources),
            self._resume_cursor,
        )
        self._notify_change()

        if self._config.push_enabled and self._channel is not None:
            self._consumer = asyncio.get_running_loop().create_task(self._consume_push())
        self._scheduler.start(self._config.poll_interval)

    async def close(self) -> None:
        """Tear down in dependency order. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._engine.close()

        if self._channel is not None:
            try:
                await self._channel.close()
            except Exception:
                self._logger.debug("Closing message subscription failed", exc_info=True)

        consumer = self._consumer
        self._consumer = None
        if consumer is not None:
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer

        await self._scheduler.stop()
        await self._resync.close()

        background = list(self._background)
        self._background.clear()
        for task in background:
            task.cancel()
        if background:
            await asyncio.gather(*background, return_exceptions=True)

        self._store.dispose()

        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
        self._http_session = None
        self._logger.debug("Client closed")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def store(self) -> EntityStore:
        return self._store

    @property
    def is_foreground(self) -> bool:
        return self._foreground

    @property
    def resume_cursor(self) -> str | None:
        """Cursor the subscription resumes from after a reconnect."""
        return self._resume_cursor

    def set_foreground(self, foreground: bool) -> None:
        """Record whether the console is in front of the user.

        Read on every added message to decide if it counts as read.
        """
        self._foreground = foreground

    def project(self) -> Project | None:
        return self._store.project()

    def view_selection(self) -> ViewSelection:
        return self._views.selection()

    def project_view(self) -> ProjectView:
        return self._views.project_view()

    def total_unread_count(self) -> int:
        """Unread messages summed over every project source."""
        return sum(summary.unread_count for summary in self._store.source_summaries())

    def window_title(self) -> str:
        suffix = self._config.title_suffix
        project = self._store.project()
        if project is None:
            return suffix
        unread = self.total_unread_count()
        if unread > 0:
            return f"({unread}) {project.config.name} on {suffix}"
        return f"{project.config.name} on {suffix}"

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def handle_event(self, event: MessageEvent) -> MergeOutcome:
        """Merge one subscription event into the store."""
        outcome = self._engine.handle(event)
        if outcome != MergeOutcome.DISCARDED and event.cursor:
            self._resume_cursor = event.cursor
        if outcome == MergeOutcome.APPLIED:
            self._notify_change()
        return outcome

    async def refresh_snapshot(self) -> None:
        """Poll the coarse project fields and write them into the store.

        A snapshot of a different project than the one loaded means the
        server switched projects; the whole store is reloaded instead.
        """
        snapshot = await fetch_project_snapshot(self._require_transport())
        if self._closed:
            return
        loaded = self._store.project_id
        if loaded is not None and snapshot.current_project.id != loaded:
            self._logger.info(
                "Current project changed %s -> %s; requesting full resync",
                loaded,
                snapshot.current_project.id,
            )
            requested = self.request_resync()
            self._logger.debug(
                "Discarding snapshot of project %s; store keeps project %s until a resync succeeds (resync %s)",
                snapshot.current_project.id,
                loaded,
                "started" if requested else "already in flight",
            )
            return
        if self._store.write_snapshot(snapshot):
            self._notify_change()

    def request_resync(self) -> bool:
        """Ask for a full reload. Coalesced while one is in flight."""
        if self._closed:
            return False
        return self._resync.request()

    async def _consume_push(self) -> None:
        channel = self._channel
        assert channel is not None  # noqa: S101
        while not self._closed:
            try:
                async for event in channel.open(self._resume_cursor):
                    self.handle_event(event)
                if self._closed:
                    return
                self._logger.info("Message subscription ended; resubscribing")
            except asyncio.CancelledError:
                raise
            except DevSyncChannelError as exc:
                if self._closed:
                    return
                self._logger.warning("Message subscription failed: %s; resubscribing", exc)
            except Exception:
                self._logger.warning("Message subscription loop error; resubscribing", exc_info=True)

            # Events missed while disconnected are recovered by a full reload.
            self.request_resync()
            await asyncio.sleep(self._config.resubscribe_delay)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise DevSyncError("Client not initialized. Use 'async with DevToolsClient(...) as client:'")
        return self._transport

    async def _fetch_document(self) -> ProjectDocument:
        return await fetch_project(self._require_transport())

    def _on_reloaded(self, document: ProjectDocument) -> None:
        if self._resume_cursor is None:
            self._resume_cursor = document.last_cursor
        self._notify_change()

    def _post_last_read(self, update: LastReadUpdate) -> None:
        if self._closed or self._transport is None:
            return
        task = asyncio.get_running_loop().create_task(self._send_last_read(update))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _send_last_read(self, update: LastReadUpdate) -> None:
        try:
            await update_last_read(self._require_transport(), update)
        except asyncio.CancelledError:
            raise
        except Exception:
            self._logger.debug("updateLastRead failed for source=%s", update.source_id, exc_info=True)

    def _notify_change(self) -> None:
        if self._on_change is None or self._closed:
            return
        try:
            self._on_change(self)
        except Exception:
            self._logger.debug("on_change callback failed", exc_info=True)
