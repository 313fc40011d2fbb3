"""Read/unread cursor decisions."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from pydevsync.models.message import SourceKind
from pydevsync.state.view import ProjectView


class CursorDecision(StrEnum):
    ADVANCE = "advance"
    LEAVE_UNREAD = "leave_unread"


@dataclass(frozen=True, slots=True)
class LastReadUpdate:
    """A source's last-read cursor moved; peers viewing the project should follow."""

    source_id: str
    source_kind: SourceKind
    last_read_cursor: str


def decide(view: ProjectView, foreground: bool, source_id: str) -> CursorDecision:
    """A new message counts as read only if the app is foregrounded and its source is on screen."""
    if foreground and source_id in view:
        return CursorDecision.ADVANCE
    return CursorDecision.LEAVE_UNREAD


class CursorTracker:
    """Cursor decisions plus the outbound last-read notification."""

    def __init__(
        self,
        sink: Callable[[LastReadUpdate], None] | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._sink = sink
        self._logger = logger or logging.getLogger(__name__)

    decide = staticmethod(decide)

    def notify(self, update: LastReadUpdate) -> None:
        if self._sink is None:
            return
        try:
            self._sink(update)
        except Exception:
            self._logger.debug("Last-read sink failed for source=%s", update.source_id, exc_info=True)
