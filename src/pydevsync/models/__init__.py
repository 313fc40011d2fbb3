"""Data models for developer tools GraphQL records."""

from pydevsync.models._base import DevSyncBaseModel, DevSyncEnum
from pydevsync.models.message import Message, MessageKind, MessageLevel, SourceKind, SourceRef
from pydevsync.models.project import (
    EntityRef,
    HostType,
    ProcessInfo,
    Project,
    ProjectConfig,
    ProjectDocument,
    ProjectManagerLayout,
    ProjectSettings,
    ProjectSnapshot,
    User,
    UserSettings,
)
from pydevsync.models.source import MessageConnection, PageInfo, Source

__all__ = [
    "DevSyncBaseModel",
    "DevSyncEnum",
    "EntityRef",
    "HostType",
    "Message",
    "MessageConnection",
    "MessageKind",
    "MessageLevel",
    "PageInfo",
    "ProcessInfo",
    "Project",
    "ProjectConfig",
    "ProjectDocument",
    "ProjectManagerLayout",
    "ProjectSettings",
    "ProjectSnapshot",
    "Source",
    "SourceKind",
    "SourceRef",
    "User",
    "UserSettings",
]
