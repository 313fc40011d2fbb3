"""Project queries and the last-read mutation."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pydevsync._api.queries import PROJECT_POLL_QUERY, PROJECT_QUERY, UPDATE_LAST_READ_MUTATION
from pydevsync._transport import Transport
from pydevsync.exceptions import DevSyncApiError
from pydevsync.models.project import ProjectDocument, ProjectSnapshot
from pydevsync.state.cursor import LastReadUpdate

TModel = TypeVar("TModel", bound=BaseModel)


def _parse(model_cls: type[TModel], data: dict[str, Any], operation: str) -> TModel:
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise DevSyncApiError(
            f"Unexpected {operation} reply shape: {exc.error_count()} validation errors",
            errors=exc.errors(include_url=False),
            operation=operation,
        ) from exc


async def fetch_project(transport: Transport) -> ProjectDocument:
    """Fetch the whole project view (initial load and full resync)."""
    data = await transport.execute(PROJECT_QUERY, operation_name="IndexPageQuery")
    return _parse(ProjectDocument, data, "IndexPageQuery")


async def fetch_project_snapshot(transport: Transport) -> ProjectSnapshot:
    """Fetch the coarse project fields refreshed by the poll."""
    data = await transport.execute(PROJECT_POLL_QUERY, operation_name="IndexPagePollQuery")
    return _parse(ProjectSnapshot, data, "IndexPagePollQuery")


async def update_last_read(transport: Transport, update: LastReadUpdate) -> None:
    """Tell the server (and through it, other open consoles) what was read."""
    await transport.execute(
        UPDATE_LAST_READ_MUTATION,
        {
            "input": {
                "sourceId": update.source_id,
                "sourceType": str(update.source_kind),
                "lastReadCursor": update.last_read_cursor,
            }
        },
        operation_name="UpdateLastRead",
    )
