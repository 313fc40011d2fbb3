"""Normalized message events.

The subscription adapter converts wire payloads into these events. Only the
state layer (:mod:`pydevsync.state.merge`) is allowed to merge them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pydevsync.models.message import Message, SourceKind, SourceRef


class EventKind(StrEnum):
    ADDED = "ADDED"
    DELETED = "DELETED"


class IngestionSource(StrEnum):
    """Who is writing into the store."""

    PUSH = "push"
    POLL = "poll"
    BULK = "bulk"


class EntityKind(StrEnum):
    """Record kinds held by the entity store.

    Source kinds share their value with :class:`SourceKind` so a message's
    owning source reference maps straight onto a store key.
    """

    PROCESS = "Process"
    DEVICE = "Device"
    ISSUES = "Issues"
    PROJECT = "Project"
    USER_SETTINGS = "UserSettings"
    LAYOUT = "ProjectManagerLayout"
    PROCESS_INFO = "ProcessInfo"
    USER = "User"

    @classmethod
    def from_source(cls, kind: SourceKind) -> EntityKind:
        return cls(kind.value)

    @property
    def is_source(self) -> bool:
        return self in _SOURCE_ENTITY_KINDS


_SOURCE_ENTITY_KINDS = frozenset({EntityKind.PROCESS, EntityKind.DEVICE, EntityKind.ISSUES})


class MessageEvent(BaseModel):
    """A single subscription event: a message was added to or deleted from a source."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    cursor: str | None = Field(default=None, description="Opaque resume cursor; may be absent on deletions")
    node: Message
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("node")
    @classmethod
    def _require_source(cls, value: Message) -> Message:
        if value.source is None:
            raise ValueError("event node must reference its owning source")
        return value

    @model_validator(mode="after")
    def _require_cursor_on_added(self) -> MessageEvent:
        if self.kind == EventKind.ADDED and not self.cursor:
            raise ValueError("added events must carry a cursor")
        return self

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def source(self) -> SourceRef:
        assert self.node.source is not None  # noqa: S101
        return self.node.source

    @property
    def entity_kind(self) -> EntityKind:
        return EntityKind.from_source(self.source.kind)
