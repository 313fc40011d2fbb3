"""Visible section selection.

Derives which sources the console renders as sections from the project's
sources and the user's layout.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from pydevsync.models.message import SourceKind
from pydevsync.models.project import ProjectManagerLayout
from pydevsync.models.source import Source
from pydevsync.state.store import EntityStore


@dataclass(frozen=True, slots=True)
class ProjectView:
    """Ids of the sources currently rendered to the user."""

    source_ids: frozenset[str] = frozenset()

    def __contains__(self, source_id: object) -> bool:
        return source_id in self.source_ids

    def __len__(self) -> int:
        return len(self.source_ids)


@dataclass(frozen=True, slots=True)
class ViewSelection:
    sections: tuple[Source, ...] = ()
    """Sources rendered as sections, in layout order."""

    sources: tuple[Source, ...] = ()
    """Sources offered in the source list."""

    selected_id: str | None = None

    @property
    def view(self) -> ProjectView:
        return ProjectView(frozenset(source.id for source in self.sections))


class _SourceLike(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def kind(self) -> str: ...


def is_listed(source: Source) -> bool:
    """Issues sources are hidden until they hold at least one message."""
    return source.kind != SourceKind.ISSUES or source.messages.count > 0


def section_ids(sources: Sequence[_SourceLike], layout: ProjectManagerLayout | None) -> list[str]:
    """Ids of the rendered sections, in layout order.

    Layout entries that no longer match a project source are dropped. With an
    empty layout the first non-Issues source is shown.
    """
    known = {source.id for source in sources}
    ids = [ref.id for ref in layout.sources if ref.id in known] if layout is not None else []
    if not ids:
        fallback = next((source.id for source in sources if source.kind != SourceKind.ISSUES), None)
        if fallback is not None:
            ids.append(fallback)
    return ids


def select_sections(sources: Sequence[Source], layout: ProjectManagerLayout | None) -> ViewSelection:
    """Pick the rendered sections and the listed sources."""
    by_id = {source.id: source for source in sources}
    sections = tuple(by_id[source_id] for source_id in section_ids(sources, layout))
    listed = tuple(source for source in sources if is_listed(source))
    selected_id = layout.selected.id if layout is not None and layout.selected is not None else None
    return ViewSelection(sections=sections, sources=listed, selected_id=selected_id)


class ViewSelector:
    """Reads the project and layout from the store and selects sections."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def selection(self) -> ViewSelection:
        return select_sections(self._store.sources(), self._store.layout())

    def project_view(self) -> ProjectView:
        """Rendered source ids, from source references and the layout only."""
        return ProjectView(frozenset(section_ids(self._store.source_summaries(), self._store.layout())))
