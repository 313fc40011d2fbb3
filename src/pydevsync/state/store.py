"""Normalized in-memory entity store.

Records are stored once per ``(EntityKind, id)`` and referenced from the
project record, the same way the console's GraphQL cache normalizes them.

Two writers share this store:

- the merge engine (push), which only ever writes the ``messages``
  connection of a source;
- the snapshot poll, which only ever writes coarse project fields.

The split is enforced on every write, so the two writers can interleave
without a lock and without clobbering each other.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple

from pydevsync.exceptions import FieldOwnershipError
from pydevsync.models.project import (
    HostType,
    Project,
    ProjectDocument,
    ProjectManagerLayout,
    ProjectSnapshot,
    UserSettings,
)
from pydevsync.models.source import Source
from pydevsync.state.events import EntityKind, IngestionSource

#: Fields owned by incremental (push) merges.
NODE_FIELDS: frozenset[str] = frozenset({"messages"})

#: Fields owned by snapshot polls.
SNAPSHOT_FIELDS: frozenset[str] = frozenset(
    {
        "manifest_url",
        "settings",
        "config",
        "send_to",
        "selected",
        "sources",
        "network_status",
        "is_android_simulator_supported",
        "is_ios_simulator_supported",
    }
)

_OWNED_FIELDS: dict[IngestionSource, frozenset[str]] = {
    IngestionSource.PUSH: NODE_FIELDS,
    IngestionSource.POLL: SNAPSHOT_FIELDS,
}

#: Id used for root records that have no id of their own.
SINGLETON_ID = "ROOT"


@dataclass(frozen=True, slots=True)
class Found:
    kind: EntityKind
    id: str
    record: dict[str, Any]


@dataclass(frozen=True, slots=True)
class Miss:
    kind: EntityKind
    id: str


ReadResult = Found | Miss


@dataclass(frozen=True, slots=True)
class SourceSummary:
    """Scalar view of a source and its message connection.

    Built straight from the stored record; message nodes are never copied.
    ``node_count`` is the number of nodes held, ``count`` the stored total.
    """

    kind: EntityKind
    id: str
    count: int = 0
    unread_count: int = 0
    last_read_cursor: str | None = None
    node_count: int = 0


class NormalizedRecord(NamedTuple):
    kind: EntityKind
    id: str
    data: dict[str, Any]


def _merge_deep(target: dict[str, Any], patch: Mapping[str, Any]) -> None:
    """Merge *patch* into *target*.

    Nested mappings merge key by key; lists and scalars replace.
    """
    for key, value in patch.items():
        existing = target.get(key)
        if isinstance(value, Mapping) and isinstance(existing, dict):
            _merge_deep(existing, value)
        else:
            target[key] = copy.deepcopy(value)


def check_ownership(kind: EntityKind, patch: Mapping[str, Any], origin: IngestionSource) -> None:
    """Raise :class:`FieldOwnershipError` if *origin* may not write *patch*."""
    owned = _OWNED_FIELDS.get(origin)
    if owned is None:
        return
    foreign = sorted(set(patch) - owned)
    if foreign:
        raise FieldOwnershipError(
            f"{origin} writer may not write {foreign} on {kind}",
            fields=foreign,
            origin=origin,
        )
    if origin == IngestionSource.PUSH and not kind.is_source:
        raise FieldOwnershipError(f"push writer may only write sources, not {kind}", origin=origin)
    if origin == IngestionSource.POLL and kind.is_source:
        raise FieldOwnershipError(f"poll writer may not write source {kind}", origin=origin)


def normalize_document(document: ProjectDocument) -> list[NormalizedRecord]:
    """Flatten a bulk document into normalized records.

    The project record references its sources by ``(kind, id)`` instead of
    embedding them.
    """
    project = document.current_project
    records: list[NormalizedRecord] = []
    for source in project.sources:
        records.append(NormalizedRecord(EntityKind.from_source(source.kind), source.id, source.model_dump()))

    project_data = project.model_dump(exclude={"sources", "messages"})
    project_data["sources"] = [{"kind": str(source.kind), "id": source.id} for source in project.sources]
    records.append(NormalizedRecord(EntityKind.PROJECT, project.id, project_data))
    records.extend(snapshot_records(document, include_project=False))
    if document.user is not None:
        records.append(NormalizedRecord(EntityKind.USER, SINGLETON_ID, document.user.model_dump()))
    return records


def snapshot_records(snapshot: ProjectSnapshot, *, include_project: bool = True) -> list[NormalizedRecord]:
    """Records carried by a poll snapshot, restricted to snapshot fields."""
    records: list[NormalizedRecord] = []
    project = snapshot.current_project
    if include_project:
        records.append(
            NormalizedRecord(
                EntityKind.PROJECT,
                project.id,
                project.model_dump(include={"manifest_url", "settings", "config"}),
            )
        )
    if snapshot.user_settings is not None:
        records.append(
            NormalizedRecord(
                EntityKind.USER_SETTINGS,
                snapshot.user_settings.id,
                snapshot.user_settings.model_dump(exclude={"id"}),
            )
        )
    if snapshot.project_manager_layout is not None:
        records.append(
            NormalizedRecord(
                EntityKind.LAYOUT,
                snapshot.project_manager_layout.id,
                snapshot.project_manager_layout.model_dump(exclude={"id"}),
            )
        )
    if snapshot.process_info is not None:
        records.append(NormalizedRecord(EntityKind.PROCESS_INFO, SINGLETON_ID, snapshot.process_info.model_dump()))
    return records


class EntityStore:
    """In-memory normalized record store.

    All access happens on one event loop; a read followed by a write of the
    same record is never interleaved with another writer of the same fields.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._records: dict[tuple[EntityKind, str], dict[str, Any]] = {}
        self._roots: dict[EntityKind, str] = {}
        # Message ids per source, built on first lookup.
        self._node_ids: dict[tuple[EntityKind, str], set[str]] = {}
        self._last_cursor: str | None = None
        self._generation = 0
        self._disposed = False

    @property
    def generation(self) -> int:
        """Number of bulk loads applied so far."""
        return self._generation

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def project_id(self) -> str | None:
        return self._roots.get(EntityKind.PROJECT)

    @property
    def last_cursor(self) -> str | None:
        """Subscription resume cursor of the last bulk load."""
        return self._last_cursor

    def read(self, kind: EntityKind, entity_id: str) -> ReadResult:
        """Return a copy of the record, or :class:`Miss` if the store doesn't hold it."""
        record = self._records.get((kind, entity_id))
        if record is None or self._disposed:
            return Miss(kind, entity_id)
        return Found(kind, entity_id, copy.deepcopy(record))

    def write(
        self,
        kind: EntityKind,
        entity_id: str,
        patch: Mapping[str, Any],
        *,
        origin: IngestionSource,
    ) -> bool:
        """Deep-merge *patch* into a record, creating it if needed.

        Fields not named in *patch* are left intact. Returns ``False`` when
        the store has been disposed and the write was dropped.
        """
        check_ownership(kind, patch, origin)
        if self._disposed:
            self._logger.debug("Dropping %s write to disposed store kind=%s id=%s", origin, kind, entity_id)
            return False

        record = self._records.get((kind, entity_id))
        if record is None:
            record = {"id": entity_id}
            self._records[(kind, entity_id)] = record
        _merge_deep(record, patch)
        messages = patch.get("messages")
        if isinstance(messages, Mapping) and "nodes" in messages:
            self._node_ids.pop((kind, entity_id), None)
        return True

    def write_snapshot(self, snapshot: ProjectSnapshot) -> bool:
        """Apply a poll snapshot. Message connections are never touched."""
        if self._disposed:
            self._logger.debug("Dropping snapshot for disposed store")
            return False
        for record in snapshot_records(snapshot):
            self.write(record.kind, record.id, record.data, origin=IngestionSource.POLL)
            self._roots[record.kind] = record.id
        return True

    def load(self, document: ProjectDocument) -> bool:
        """Replace the whole store with a freshly fetched bulk document."""
        if self._disposed:
            self._logger.debug("Dropping bulk load for disposed store")
            return False
        records = normalize_document(document)
        self._records = {}
        self._roots = {}
        self._node_ids = {}
        for record in records:
            self.write(record.kind, record.id, record.data, origin=IngestionSource.BULK)
            if not record.kind.is_source:
                self._roots[record.kind] = record.id
        self._last_cursor = document.last_cursor
        self._generation += 1
        self._logger.debug(
            "Loaded %d records generation=%d last_cursor=%s",
            len(records),
            self._generation,
            self._last_cursor,
        )
        return True

    def dispose(self) -> None:
        """Drop all records; later reads miss and later writes are no-ops."""
        self._disposed = True
        self._records.clear()
        self._roots.clear()
        self._node_ids.clear()

    # ------------------------------------------------------------------
    # Message connections
    # ------------------------------------------------------------------

    def connection(self, kind: EntityKind, entity_id: str) -> SourceSummary | Miss:
        """Scalar state of a source's messages, without copying its nodes."""
        record = self._records.get((kind, entity_id))
        if record is None or self._disposed:
            return Miss(kind, entity_id)
        messages = record.get("messages") or {}
        page_info = messages.get("page_info") or {}
        return SourceSummary(
            kind=kind,
            id=entity_id,
            count=messages.get("count", 0),
            unread_count=messages.get("unread_count", 0),
            last_read_cursor=page_info.get("last_read_cursor"),
            node_count=len(messages.get("nodes") or ()),
        )

    def has_message(self, kind: EntityKind, entity_id: str, node_id: str) -> bool:
        return node_id in self._message_ids(kind, entity_id)

    def _message_ids(self, kind: EntityKind, entity_id: str) -> set[str]:
        key = (kind, entity_id)
        ids = self._node_ids.get(key)
        if ids is None:
            record = self._records.get(key) or {}
            nodes = (record.get("messages") or {}).get("nodes") or ()
            ids = {node["id"] for node in nodes}
            self._node_ids[key] = ids
        return ids

    def _connection_record(
        self,
        kind: EntityKind,
        entity_id: str,
        messages: Mapping[str, Any],
    ) -> dict[str, Any] | None:
        check_ownership(kind, {"messages": messages}, IngestionSource.PUSH)
        if "nodes" in messages:
            raise ValueError("message nodes are appended or removed one at a time")
        if self._disposed:
            self._logger.debug("Dropping push write to disposed store kind=%s id=%s", kind, entity_id)
            return None
        record = self._records.setdefault((kind, entity_id), {"id": entity_id})
        connection = record.setdefault("messages", {})
        connection.setdefault("nodes", [])
        return connection

    def append_message(
        self,
        kind: EntityKind,
        entity_id: str,
        node: Mapping[str, Any],
        *,
        messages: Mapping[str, Any],
    ) -> bool:
        """Append one node to a source's messages and merge the scalar *messages* fields.

        Only the new node is copied. Returns ``False`` when the store has
        been disposed.
        """
        connection = self._connection_record(kind, entity_id, messages)
        if connection is None:
            return False
        connection["nodes"].append(copy.deepcopy(dict(node)))
        self._message_ids(kind, entity_id).add(node["id"])
        _merge_deep(connection, messages)
        return True

    def remove_message(
        self,
        kind: EntityKind,
        entity_id: str,
        node_id: str,
        *,
        messages: Mapping[str, Any],
    ) -> bool:
        """Remove one node from a source's messages and merge the scalar *messages* fields.

        Returns ``False`` when the store has been disposed or holds no such node.
        """
        connection = self._connection_record(kind, entity_id, messages)
        if connection is None:
            return False
        nodes = connection["nodes"]
        index = next((i for i, node in enumerate(nodes) if node["id"] == node_id), None)
        if index is None:
            return False
        del nodes[index]
        self._message_ids(kind, entity_id).discard(node_id)
        _merge_deep(connection, messages)
        return True

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    def _root(self, kind: EntityKind) -> dict[str, Any] | None:
        entity_id = self._roots.get(kind)
        if entity_id is None:
            return None
        result = self.read(kind, entity_id)
        return result.record if isinstance(result, Found) else None

    def source(self, kind: EntityKind, entity_id: str) -> Source | None:
        result = self.read(kind, entity_id)
        if isinstance(result, Miss):
            return None
        return Source.model_validate(result.record)

    def sources(self) -> list[Source]:
        """Project sources in project order."""
        project = self._root(EntityKind.PROJECT)
        if project is None:
            return []
        sources: list[Source] = []
        for ref in project.get("sources", []):
            source = self.source(EntityKind(ref["kind"]), ref["id"])
            if source is not None:
                sources.append(source)
        return sources

    def source_summaries(self) -> list[SourceSummary]:
        """Scalar summaries of the project sources, in project order."""
        project_id = self._roots.get(EntityKind.PROJECT)
        project = self._records.get((EntityKind.PROJECT, project_id)) if project_id is not None else None
        if project is None or self._disposed:
            return []
        summaries: list[SourceSummary] = []
        for ref in project.get("sources", []):
            summary = self.connection(EntityKind(ref["kind"]), ref["id"])
            if isinstance(summary, SourceSummary):
                summaries.append(summary)
        return summaries

    def project(self) -> Project | None:
        """The current project with its sources denormalized."""
        data = self._root(EntityKind.PROJECT)
        if data is None:
            return None
        data["sources"] = self.sources()
        return Project.model_validate(data)

    def layout(self) -> ProjectManagerLayout | None:
        data = self._root(EntityKind.LAYOUT)
        return ProjectManagerLayout.model_validate(data) if data is not None else None

    def user_settings(self) -> UserSettings | None:
        data = self._root(EntityKind.USER_SETTINGS)
        return UserSettings.model_validate(data) if data is not None else None

    def host_type(self) -> HostType | None:
        data = self._root(EntityKind.PROJECT)
        if data is None:
            return None
        value = (data.get("settings") or {}).get("host_type")
        return HostType(value) if value is not None else None

    def iter_records(self) -> Iterable[NormalizedRecord]:
        for (kind, entity_id), data in self._records.items():
            yield NormalizedRecord(kind, entity_id, copy.deepcopy(data))
