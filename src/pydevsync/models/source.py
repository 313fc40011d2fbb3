"""Message source and message connection models."""

from __future__ import annotations

from pydantic import Field

from pydevsync.models._base import DevSyncBaseModel
from pydevsync.models.message import Message, SourceKind


class PageInfo(DevSyncBaseModel):
    last_read_cursor: str | None = None
    """Cursor of the last message the user has seen in this source."""

    last_cursor: str | None = None
    """Cursor of the newest message (only set on the project-wide connection)."""


class MessageConnection(DevSyncBaseModel):
    """Messages of a source plus their read summary.

    ``nodes`` is kept in arrival order, which may differ from ``time`` order
    when the server delivers out of order.
    """

    count: int = 0
    unread_count: int = 0
    nodes: list[Message] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo)


class Source(DevSyncBaseModel):
    """A message source shown as a console section (process, device, issues)."""

    id: str
    kind: SourceKind = Field(alias="__typename")
    name: str = ""
    messages: MessageConnection = Field(default_factory=MessageConnection)
