"""Custom exception hierarchy for pydevsync."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class DevSyncError(Exception):
    """Base exception for all pydevsync errors."""


class DevSyncConfigError(DevSyncError):
    """Invalid or missing configuration."""


class DevSyncTransportError(DevSyncError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class DevSyncApiError(DevSyncError):
    """GraphQL returned errors, or a response that does not match the query shape."""

    def __init__(
        self,
        message: str,
        *,
        errors: Sequence[Any] = (),
        operation: str = "",
    ) -> None:
        self.errors = list(errors)
        self.operation = operation
        super().__init__(message)


class DevSyncChannelError(DevSyncError):
    """The push channel failed or dropped.

    Raised from the subscription stream on protocol errors and socket
    drops.  The client reacts by requesting a full resync and reopening
    the channel from the last known cursor.
    """


class FieldOwnershipError(DevSyncError):
    """A writer tried to write a store field owned by another writer.

    Push merges own the message connection of a source; poll snapshots own
    the coarse project fields.  Crossing that line is a programming error.
    """

    def __init__(self, message: str, *, fields: Sequence[str] = (), origin: str = "") -> None:
        self.fields = tuple(fields)
        self.origin = origin
        super().__init__(message)
