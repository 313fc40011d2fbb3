"""pydevsync - Async client keeping a local copy of a developer tools console in sync."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pydevsync")
except PackageNotFoundError:
    __version__ = "0+local"
from pydevsync.client import DevToolsClient
from pydevsync.config import DevToolsConfig
from pydevsync.exceptions import (
    DevSyncApiError,
    DevSyncChannelError,
    DevSyncConfigError,
    DevSyncError,
    DevSyncTransportError,
    FieldOwnershipError,
)
from pydevsync.models import (
    HostType,
    Message,
    MessageConnection,
    MessageKind,
    MessageLevel,
    Project,
    ProjectDocument,
    ProjectSnapshot,
    Source,
    SourceKind,
)
from pydevsync.state.events import EventKind, MessageEvent
from pydevsync.state.merge import MergeEngine, MergeOutcome
from pydevsync.state.store import EntityStore, Found, Miss

__all__ = [
    "__version__",
    "DevSyncApiError",
    "DevSyncChannelError",
    "DevSyncConfigError",
    "DevSyncError",
    "DevSyncTransportError",
    "DevToolsClient",
    "DevToolsConfig",
    "EntityStore",
    "EventKind",
    "FieldOwnershipError",
    "Found",
    "HostType",
    "MergeEngine",
    "MergeOutcome",
    "Message",
    "MessageConnection",
    "MessageEvent",
    "MessageKind",
    "MessageLevel",
    "Miss",
    "Project",
    "ProjectDocument",
    "ProjectSnapshot",
    "Source",
    "SourceKind",
]
