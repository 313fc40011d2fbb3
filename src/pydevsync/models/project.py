"""Project, layout and process models returned by the bulk and poll queries."""

from __future__ import annotations

from pydantic import Field

from pydevsync.models._base import DevSyncBaseModel, DevSyncEnum
from pydevsync.models.source import MessageConnection, Source


class HostType(DevSyncEnum):
    TUNNEL = "tunnel"
    LAN = "lan"
    LOCALHOST = "localhost"
    UNKNOWN = "unknown"


class ProjectSettings(DevSyncBaseModel):
    host_type: HostType | None = None


class ProjectConfig(DevSyncBaseModel):
    name: str = ""
    description: str | None = None
    slug: str | None = None
    github_url: str | None = None


class EntityRef(DevSyncBaseModel):
    id: str


class Project(DevSyncBaseModel):
    """The current project.

    The poll query only carries the coarse fields; ``sources`` and
    ``messages`` are populated by the bulk query.
    """

    id: str
    manifest_url: str | None = None
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    config: ProjectConfig = Field(default_factory=ProjectConfig)
    sources: list[Source] = Field(default_factory=list)
    messages: MessageConnection | None = None


class UserSettings(DevSyncBaseModel):
    id: str
    send_to: str | None = None


class ProjectManagerLayout(DevSyncBaseModel):
    """Which sources the user has laid out as sections, and which one is selected."""

    id: str
    selected: EntityRef | None = None
    sources: list[EntityRef] = Field(default_factory=list)


class ProcessInfo(DevSyncBaseModel):
    network_status: str | None = None
    is_android_simulator_supported: bool = False
    is_ios_simulator_supported: bool = False


class User(DevSyncBaseModel):
    username: str | None = None


class ProjectSnapshot(DevSyncBaseModel):
    """Result of the periodic project poll."""

    current_project: Project
    user_settings: UserSettings | None = None
    project_manager_layout: ProjectManagerLayout | None = None
    process_info: ProcessInfo | None = None


class ProjectDocument(ProjectSnapshot):
    """Result of the bulk project query (initial load and full resync)."""

    user: User | None = None

    @property
    def last_cursor(self) -> str | None:
        """Resume cursor for the message subscription."""
        messages = self.current_project.messages
        return messages.page_info.last_cursor if messages is not None else None
