from __future__ import annotations

import asyncio

import pytest

from pydevsync._client.resync import ResyncCoordinator
from pydevsync.exceptions import DevSyncTransportError
from pydevsync.models.project import ProjectDocument
from pydevsync.state.store import EntityStore


class GatedFetch:
    """Bulk fetch that blocks until released."""

    def __init__(self, document: ProjectDocument) -> None:
        self.document = document
        self.calls = 0
        self.release = asyncio.Event()
        self.error: Exception | None = None

    async def __call__(self) -> ProjectDocument:
        self.calls += 1
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.document


@pytest.mark.asyncio
async def test_requests_coalesce_while_in_flight(document: ProjectDocument) -> None:
    fetch = GatedFetch(document)
    store = EntityStore()
    loaded: list[ProjectDocument] = []
    resync = ResyncCoordinator(fetch, store, on_loaded=loaded.append)

    assert resync.request() is True
    assert resync.request() is False
    assert resync.request() is False
    assert resync.in_flight

    fetch.release.set()
    assert await resync.wait() is True

    assert fetch.calls == 1
    assert resync.completed == 1
    assert loaded == [document]
    assert store.project_id == "project-1"
    assert not resync.in_flight

    assert resync.request() is True
    await resync.wait()
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_failed_fetch_is_logged_and_absorbed(document: ProjectDocument, caplog: pytest.LogCaptureFixture) -> None:
    fetch = GatedFetch(document)
    fetch.error = DevSyncTransportError("down", endpoint="IndexPageQuery")
    fetch.release.set()
    store = EntityStore()
    resync = ResyncCoordinator(fetch, store)

    resync.request()

    assert await resync.wait() is False
    assert resync.completed == 0
    assert store.project_id is None
    assert "Full resync failed" in caplog.text


@pytest.mark.asyncio
async def test_completion_after_close_is_discarded(document: ProjectDocument) -> None:
    fetch = GatedFetch(document)
    store = EntityStore()
    loaded: list[ProjectDocument] = []
    resync = ResyncCoordinator(fetch, store, on_loaded=loaded.append)

    resync.request()
    await asyncio.sleep(0)
    await resync.close()
    fetch.release.set()
    await asyncio.sleep(0)

    assert resync.request() is False
    assert loaded == []
    assert store.project_id is None


@pytest.mark.asyncio
async def test_disposed_store_is_not_reloaded(document: ProjectDocument) -> None:
    fetch = GatedFetch(document)
    fetch.release.set()
    store = EntityStore()
    store.dispose()
    resync = ResyncCoordinator(fetch, store)

    resync.request()

    assert await resync.wait() is False
    assert resync.completed == 0
