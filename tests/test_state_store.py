from __future__ import annotations

from typing import Any

import pytest

from pydevsync.exceptions import FieldOwnershipError
from pydevsync.models.project import HostType, ProjectDocument, ProjectSnapshot
from pydevsync.state.events import EntityKind, IngestionSource
from pydevsync.state.store import (
    NODE_FIELDS,
    SNAPSHOT_FIELDS,
    EntityStore,
    Found,
    Miss,
    SourceSummary,
    check_ownership,
    normalize_document,
)

PROCESS_ID = "src-process"
DEVICE_ID = "src-device"
ISSUES_ID = "src-issues"


def _loaded(document: ProjectDocument) -> EntityStore:
    store = EntityStore()
    assert store.load(document)
    return store


def test_field_partitions_are_disjoint() -> None:
    assert NODE_FIELDS.isdisjoint(SNAPSHOT_FIELDS)


def test_load_normalizes_sources_by_reference(document: ProjectDocument) -> None:
    store = _loaded(document)

    project = store.read(EntityKind.PROJECT, "project-1")
    assert isinstance(project, Found)
    assert project.record["sources"] == [
        {"kind": "Process", "id": PROCESS_ID},
        {"kind": "Device", "id": DEVICE_ID},
        {"kind": "Issues", "id": ISSUES_ID},
    ]
    assert "messages" not in project.record

    source = store.source(EntityKind.PROCESS, PROCESS_ID)
    assert source is not None
    assert [node.id for node in source.messages.nodes] == ["m1", "m2"]
    assert source.messages.page_info.last_read_cursor == "c2"


def test_load_sets_roots_cursor_and_generation(document: ProjectDocument) -> None:
    store = _loaded(document)

    assert store.project_id == "project-1"
    assert store.last_cursor == "c2"
    assert store.generation == 1
    assert store.host_type() == HostType.LAN
    layout = store.layout()
    assert layout is not None and [ref.id for ref in layout.sources] == [PROCESS_ID]
    settings = store.user_settings()
    assert settings is not None and settings.send_to == "dev@example.com"


def test_read_unknown_record_is_miss() -> None:
    store = EntityStore()
    result = store.read(EntityKind.DEVICE, "nope")
    assert result == Miss(EntityKind.DEVICE, "nope")


def test_read_returns_a_copy(document: ProjectDocument) -> None:
    store = _loaded(document)
    found = store.read(EntityKind.PROCESS, PROCESS_ID)
    assert isinstance(found, Found)
    found.record["messages"]["count"] = 99

    again = store.read(EntityKind.PROCESS, PROCESS_ID)
    assert isinstance(again, Found)
    assert again.record["messages"]["count"] == 2


def test_partial_write_leaves_other_fields_intact(document: ProjectDocument) -> None:
    store = _loaded(document)

    store.write(
        EntityKind.PROCESS,
        PROCESS_ID,
        {"messages": {"unread_count": 1}},
        origin=IngestionSource.PUSH,
    )

    source = store.source(EntityKind.PROCESS, PROCESS_ID)
    assert source is not None
    assert source.name == "Metro Bundler"
    assert source.messages.unread_count == 1
    assert source.messages.count == 2
    assert source.messages.page_info.last_read_cursor == "c2"


@pytest.mark.parametrize(
    ("kind", "patch", "origin"),
    [
        (EntityKind.PROCESS, {"name": "renamed"}, IngestionSource.PUSH),
        (EntityKind.PROJECT, {"messages": {}}, IngestionSource.PUSH),
        (EntityKind.PROJECT, {"messages": {}}, IngestionSource.POLL),
        (EntityKind.PROCESS, {"sources": []}, IngestionSource.POLL),
        (EntityKind.LAYOUT, {"selected": None, "messages": {}}, IngestionSource.POLL),
    ],
)
def test_cross_partition_writes_are_rejected(kind: EntityKind, patch: dict[str, Any], origin: IngestionSource) -> None:
    store = EntityStore()
    with pytest.raises(FieldOwnershipError):
        store.write(kind, "x", patch, origin=origin)
    assert isinstance(store.read(kind, "x"), Miss)


def test_ownership_error_names_foreign_fields() -> None:
    with pytest.raises(FieldOwnershipError) as excinfo:
        check_ownership(EntityKind.DEVICE, {"messages": {}, "name": "x"}, IngestionSource.PUSH)
    assert excinfo.value.fields == ("name",)
    assert excinfo.value.origin == IngestionSource.PUSH


def test_bulk_writer_is_unrestricted() -> None:
    check_ownership(EntityKind.PROCESS, {"name": "x", "messages": {}}, IngestionSource.BULK)


def test_snapshot_leaves_message_connections_intact(
    document: ProjectDocument, snapshot_payload: dict[str, Any]
) -> None:
    store = _loaded(document)
    store.write(
        EntityKind.PROCESS,
        PROCESS_ID,
        {"messages": {"count": 3, "unread_count": 1}},
        origin=IngestionSource.PUSH,
    )

    snapshot_payload["currentProject"]["manifestUrl"] = "exp://abc.tunnel.example:80"
    snapshot_payload["currentProject"]["settings"]["hostType"] = "tunnel"
    assert store.write_snapshot(ProjectSnapshot.model_validate(snapshot_payload))

    source = store.source(EntityKind.PROCESS, PROCESS_ID)
    assert source is not None
    assert source.messages.count == 3
    assert source.messages.unread_count == 1
    project = store.project()
    assert project is not None
    assert project.manifest_url == "exp://abc.tunnel.example:80"
    assert [source.id for source in project.sources] == [PROCESS_ID, DEVICE_ID, ISSUES_ID]
    assert store.host_type() == HostType.TUNNEL


def test_normalize_document_emits_each_entity_once(document: ProjectDocument) -> None:
    records = normalize_document(document)
    keys = [(record.kind, record.id) for record in records]
    assert len(keys) == len(set(keys))
    assert (EntityKind.USER, "ROOT") in keys
    assert (EntityKind.PROCESS_INFO, "ROOT") in keys


def test_reload_replaces_previous_records(document: ProjectDocument, document_payload: dict[str, Any]) -> None:
    store = _loaded(document)
    document_payload["currentProject"]["sources"] = document_payload["currentProject"]["sources"][:1]
    store.load(ProjectDocument.model_validate(document_payload))

    assert store.generation == 2
    assert isinstance(store.read(EntityKind.DEVICE, DEVICE_ID), Miss)
    assert [source.id for source in store.sources()] == [PROCESS_ID]


def test_disposed_store_drops_writes_and_misses_reads(document: ProjectDocument) -> None:
    store = _loaded(document)
    store.dispose()

    assert store.is_disposed
    assert isinstance(store.read(EntityKind.PROCESS, PROCESS_ID), Miss)
    assert not store.write(EntityKind.PROCESS, PROCESS_ID, {"messages": {"count": 0}}, origin=IngestionSource.PUSH)
    assert not store.load(document)
    assert store.project() is None


def test_connection_reports_scalars_without_nodes(document: ProjectDocument) -> None:
    store = _loaded(document)

    assert store.connection(EntityKind.PROCESS, PROCESS_ID) == SourceSummary(
        kind=EntityKind.PROCESS,
        id=PROCESS_ID,
        count=2,
        unread_count=0,
        last_read_cursor="c2",
        node_count=2,
    )
    assert store.connection(EntityKind.DEVICE, "nope") == Miss(EntityKind.DEVICE, "nope")


def test_source_summaries_follow_project_order(document: ProjectDocument) -> None:
    store = _loaded(document)

    summaries = store.source_summaries()

    assert [(summary.kind, summary.id) for summary in summaries] == [
        (EntityKind.PROCESS, PROCESS_ID),
        (EntityKind.DEVICE, DEVICE_ID),
        (EntityKind.ISSUES, ISSUES_ID),
    ]
    assert EntityStore().source_summaries() == []


def test_append_and_remove_message_keep_the_id_index_current(document: ProjectDocument) -> None:
    store = _loaded(document)
    assert store.has_message(EntityKind.PROCESS, PROCESS_ID, "m1")
    assert not store.has_message(EntityKind.PROCESS, PROCESS_ID, "m3")

    assert store.append_message(
        EntityKind.PROCESS, PROCESS_ID, {"id": "m3", "msg": "hi"}, messages={"count": 3, "unread_count": 1}
    )
    assert store.has_message(EntityKind.PROCESS, PROCESS_ID, "m3")
    source = store.source(EntityKind.PROCESS, PROCESS_ID)
    assert source is not None
    assert [node.id for node in source.messages.nodes] == ["m1", "m2", "m3"]
    assert source.messages.unread_count == 1
    assert source.messages.page_info.last_read_cursor == "c2"

    assert store.remove_message(EntityKind.PROCESS, PROCESS_ID, "m1", messages={"count": 2})
    assert not store.remove_message(EntityKind.PROCESS, PROCESS_ID, "m1", messages={"count": 2})
    assert not store.has_message(EntityKind.PROCESS, PROCESS_ID, "m1")
    connection = store.connection(EntityKind.PROCESS, PROCESS_ID)
    assert isinstance(connection, SourceSummary)
    assert (connection.count, connection.node_count) == (2, 2)


def test_bulk_reload_rebuilds_the_id_index(document: ProjectDocument, document_payload: dict[str, Any]) -> None:
    store = _loaded(document)
    assert store.has_message(EntityKind.PROCESS, PROCESS_ID, "m1")

    document_payload["currentProject"]["sources"][0]["messages"]["nodes"] = [{"__typename": "Log", "id": "m9"}]
    store.load(ProjectDocument.model_validate(document_payload))

    assert not store.has_message(EntityKind.PROCESS, PROCESS_ID, "m1")
    assert store.has_message(EntityKind.PROCESS, PROCESS_ID, "m9")


def test_message_appends_are_push_owned(document: ProjectDocument) -> None:
    store = _loaded(document)

    with pytest.raises(FieldOwnershipError):
        store.append_message(EntityKind.PROJECT, "project-1", {"id": "x"}, messages={"count": 1})
    with pytest.raises(ValueError):
        store.append_message(EntityKind.PROCESS, PROCESS_ID, {"id": "x"}, messages={"nodes": []})

    store.dispose()
    assert not store.append_message(EntityKind.PROCESS, PROCESS_ID, {"id": "x"}, messages={"count": 1})
