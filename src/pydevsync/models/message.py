"""Console message models."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from pydevsync.models._base import DevSyncBaseModel, DevSyncEnum


class SourceKind(DevSyncEnum):
    """Kind of a message source (its GraphQL ``__typename``)."""

    PROCESS = "Process"
    DEVICE = "Device"
    ISSUES = "Issues"


class MessageKind(DevSyncEnum):
    """Kind of a console message (its GraphQL ``__typename``)."""

    LOG = "Log"
    ISSUE = "Issue"
    METRO_INITIALIZE_STARTED = "MetroInitializeStarted"
    BUILD_PROGRESS = "BuildProgress"
    BUILD_FINISHED = "BuildFinished"
    BUILD_ERROR = "BuildError"
    TUNNEL_READY = "TunnelReady"
    UNKNOWN = "Unknown"


class MessageLevel(DevSyncEnum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    UNKNOWN = "UNKNOWN"


class SourceRef(DevSyncBaseModel):
    """Reference from a message to its owning source."""

    id: str
    kind: SourceKind = Field(alias="__typename")


class Message(DevSyncBaseModel):
    """A single console message.

    ``id`` is unique within the owning source. ``source`` is set on messages
    delivered by the subscription; nodes loaded by the bulk query omit it.
    """

    id: str
    kind: MessageKind = Field(default=MessageKind.LOG, alias="__typename")
    msg: str = ""
    time: datetime | None = None
    level: MessageLevel = MessageLevel.INFO
    source: SourceRef | None = None
