from __future__ import annotations

import copy
from collections.abc import Callable
from typing import Any

import pytest

from pydevsync.models.project import ProjectDocument
from pydevsync.state.events import EventKind, MessageEvent

PROCESS_ID = "src-process"
DEVICE_ID = "src-device"
ISSUES_ID = "src-issues"


def wire_node(node_id: str, *, kind: str = "Log", msg: str | None = None) -> dict[str, Any]:
    return {
        "__typename": kind,
        "id": node_id,
        "msg": msg if msg is not None else f"message {node_id}",
        "time": "2026-01-01T10:00:00Z",
        "level": "INFO",
    }


DOCUMENT_PAYLOAD: dict[str, Any] = {
    "currentProject": {
        "id": "project-1",
        "manifestUrl": "exp://192.168.1.10:19000",
        "settings": {"hostType": "lan"},
        "config": {"name": "Hello World", "slug": "hello-world", "description": None, "githubUrl": None},
        "sources": [
            {
                "__typename": "Process",
                "id": PROCESS_ID,
                "name": "Metro Bundler",
                "messages": {
                    "count": 2,
                    "unreadCount": 0,
                    "nodes": [wire_node("m1"), wire_node("m2")],
                    "pageInfo": {"lastReadCursor": "c2"},
                },
            },
            {
                "__typename": "Device",
                "id": DEVICE_ID,
                "name": "iPhone 15",
                "messages": {
                    "count": 0,
                    "unreadCount": 0,
                    "nodes": [],
                    "pageInfo": {"lastReadCursor": None},
                },
            },
            {
                "__typename": "Issues",
                "id": ISSUES_ID,
                "name": "Issues",
                "messages": {
                    "count": 0,
                    "unreadCount": 0,
                    "nodes": [],
                    "pageInfo": {"lastReadCursor": None},
                },
            },
        ],
        "messages": {"pageInfo": {"lastCursor": "c2"}},
    },
    "userSettings": {"id": "user-settings", "sendTo": "dev@example.com"},
    "projectManagerLayout": {
        "id": "layout-1",
        "selected": {"id": PROCESS_ID},
        "sources": [{"id": PROCESS_ID}],
    },
    "processInfo": {
        "networkStatus": "ONLINE",
        "isAndroidSimulatorSupported": True,
        "isIosSimulatorSupported": False,
    },
    "user": {"username": "dev"},
}


@pytest.fixture
def document_payload() -> dict[str, Any]:
    return copy.deepcopy(DOCUMENT_PAYLOAD)


@pytest.fixture
def document(document_payload: dict[str, Any]) -> ProjectDocument:
    return ProjectDocument.model_validate(document_payload)


@pytest.fixture
def snapshot_payload(document_payload: dict[str, Any]) -> dict[str, Any]:
    payload = copy.deepcopy(document_payload)
    project = payload["currentProject"]
    del project["sources"]
    del project["messages"]
    del payload["user"]
    return payload


@pytest.fixture
def make_event() -> Callable[..., MessageEvent]:
    def _make(
        node_id: str,
        *,
        kind: EventKind = EventKind.ADDED,
        cursor: str | None = None,
        source_id: str = PROCESS_ID,
        source_kind: str = "Process",
        message_kind: str = "Log",
    ) -> MessageEvent:
        node = wire_node(node_id, kind=message_kind)
        node["source"] = {"__typename": source_kind, "id": source_id}
        if cursor is None and kind == EventKind.ADDED:
            cursor = f"cursor-{node_id}"
        return MessageEvent.model_validate({"kind": kind, "cursor": cursor, "node": node})

    return _make
