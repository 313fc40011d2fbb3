"""Incremental message merge.

This is the only component allowed to merge subscription events into the
store. Events are handled one at a time, synchronously, in arrival order.

A merge reads the scalar state of the owning source, then appends or
removes a single node. Existing nodes are neither copied nor revalidated,
so the cost of one merge does not grow with the message history.

When the source is unknown to the store the event is dropped and a full
resync is requested instead; the resync result is assumed to already
contain the dropped event.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydevsync.models.project import HostType
from pydevsync.state.cursor import CursorDecision, CursorTracker, LastReadUpdate
from pydevsync.state.events import EventKind, MessageEvent
from pydevsync.state.policy import clamp_unread, should_refresh_snapshot
from pydevsync.state.store import EntityStore, Miss, SourceSummary
from pydevsync.state.view import ProjectView


class MergeState(StrEnum):
    IDLE = "idle"
    MERGING = "merging"
    ESCALATING = "escalating"
    CLOSED = "closed"


class MergeOutcome(StrEnum):
    APPLIED = "applied"
    NOOP = "noop"
    ESCALATED = "escalated"
    DISCARDED = "discarded"


class MergeEngine:
    """Merge subscription events into an :class:`EntityStore`.

    Parameters
    ----------
    store
        The store to read from and write to.
    cursor_tracker
        Decides read/unread and forwards last-read updates.
    view_provider
        Returns the sources currently on screen.
    is_foreground
        Returns whether the application is foregrounded.
    request_resync
        Escalation hook, called on a cache miss. Must coalesce repeated calls.
    request_refresh
        Asks the snapshot poll for an out-of-band refresh.
    host_type_provider
        Returns the project's host type; defaults to the store's value.
    """

    def __init__(
        self,
        store: EntityStore,
        *,
        cursor_tracker: CursorTracker,
        view_provider: Callable[[], ProjectView],
        is_foreground: Callable[[], bool],
        request_resync: Callable[[], Any],
        request_refresh: Callable[[], Any],
        host_type_provider: Callable[[], HostType | None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._cursor_tracker = cursor_tracker
        self._view_provider = view_provider
        self._is_foreground = is_foreground
        self._request_resync = request_resync
        self._request_refresh = request_refresh
        self._host_type_provider = host_type_provider or store.host_type
        self._logger = logger or logging.getLogger(__name__)
        self._state = MergeState.IDLE

    @property
    def state(self) -> MergeState:
        return self._state

    def close(self) -> None:
        """Stop merging. Events handled afterwards are discarded."""
        self._state = MergeState.CLOSED

    def handle(self, event: MessageEvent) -> MergeOutcome:
        """Merge a single event. Never raises."""
        if self._state == MergeState.CLOSED:
            self._logger.debug("Discarding %s event after close cursor=%s", event.kind, event.cursor)
            return MergeOutcome.DISCARDED

        self._state = MergeState.MERGING
        try:
            if event.kind == EventKind.ADDED:
                outcome = self._merge_added(event)
            else:
                outcome = self._merge_deleted(event)
            if outcome == MergeOutcome.APPLIED and event.kind == EventKind.ADDED:
                self._maybe_request_refresh(event)
        except Exception:
            self._logger.warning(
                "Merge of %s event for source=%s failed; requesting full resync",
                event.kind,
                event.source.id,
                exc_info=True,
            )
            outcome = self._escalate(event)
        finally:
            if self._state != MergeState.CLOSED:
                self._state = MergeState.IDLE

        return outcome

    def _read_connection(self, event: MessageEvent) -> SourceSummary | None:
        state = self._store.connection(event.entity_kind, event.source.id)
        if isinstance(state, Miss):
            return None
        return state

    def _escalate(self, event: MessageEvent) -> MergeOutcome:
        self._state = MergeState.ESCALATING
        self._logger.debug(
            "Source %s/%s not in store; requesting full resync",
            event.source.kind,
            event.source.id,
        )
        self._request_resync()
        return MergeOutcome.ESCALATED

    def _merge_added(self, event: MessageEvent) -> MergeOutcome:
        state = self._read_connection(event)
        if state is None:
            return self._escalate(event)

        if self._store.has_message(state.kind, state.id, event.node.id):
            # Redelivery of a message we already hold.
            self._logger.debug("Ignoring duplicate message id=%s source=%s", event.node.id, state.id)
            return MergeOutcome.NOOP

        assert event.cursor is not None  # noqa: S101
        unread_count = state.unread_count
        last_read_cursor = state.last_read_cursor

        decision = self._cursor_tracker.decide(self._view_provider(), self._is_foreground(), state.id)
        if decision == CursorDecision.ADVANCE:
            last_read_cursor = event.cursor
            self._cursor_tracker.notify(
                LastReadUpdate(source_id=state.id, source_kind=event.source.kind, last_read_cursor=event.cursor)
            )
        else:
            unread_count += 1

        count = state.node_count + 1
        appended = self._store.append_message(
            state.kind,
            state.id,
            event.node.model_dump(),
            messages={
                "count": count,
                "unread_count": clamp_unread(unread_count, count),
                "page_info": {"last_read_cursor": last_read_cursor},
            },
        )
        return MergeOutcome.APPLIED if appended else MergeOutcome.DISCARDED

    def _merge_deleted(self, event: MessageEvent) -> MergeOutcome:
        state = self._read_connection(event)
        if state is None:
            return self._escalate(event)

        if not self._store.has_message(state.kind, state.id, event.node.id):
            # Deletions may race with eviction; nothing to do.
            return MergeOutcome.NOOP

        count = state.node_count - 1
        messages: dict[str, Any] = {"count": count}
        # Deleting an unread message does not decrement the unread count; it
        # is only capped so it never exceeds the remaining count.
        if state.unread_count > count:
            messages["unread_count"] = count
        removed = self._store.remove_message(state.kind, state.id, event.node.id, messages=messages)
        return MergeOutcome.APPLIED if removed else MergeOutcome.DISCARDED

    def _maybe_request_refresh(self, event: MessageEvent) -> None:
        host_type = self._host_type_provider()
        if should_refresh_snapshot(event.node.kind, host_type):
            self._logger.debug("Phase transition %s under host_type=%s; refreshing snapshot", event.node.kind, host_type)
            self._request_refresh()
