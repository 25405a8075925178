"""Unit tests for session sync, degrade, and stale-result handling."""

from __future__ import annotations

import asyncio
from dataclasses import replace

import httpx
import pytest

from core.config import MetalensConfig
from core.errors import MetalensTransportError
from core.types import CacheStatus
from remote.metadata_client import MetadataClient
from store.cache_store import CacheHandle, load_snapshot, save_snapshot
from store.metadata_session import MetadataSession
from tests.sample_metadata import (
    SAMPLE_ORIGIN,
    sample_attributes,
    sample_link_types,
    sample_sets,
    sample_snapshot,
)


def _metadata_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("/attribute/list"):
        return httpx.Response(200, json=sample_attributes())
    if path.endswith("/class/list"):
        return httpx.Response(200, json=sample_sets())
    return httpx.Response(200, json=sample_link_types())


def _failing_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(502, text="bad gateway")


def _remote(handler) -> MetadataClient:
    config = replace(MetalensConfig.from_env(), auth_token=None)
    return MetadataClient(config, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_sync_fetches_indexes_and_persists(tmp_path) -> None:
    """A successful sync should activate a fresh, persisted snapshot."""
    handle = CacheHandle(tmp_path / "cache.sqlite3")
    async with _remote(_metadata_handler) as remote:
        session = MetadataSession(remote, handle, SAMPLE_ORIGIN)
        outcome = await session.sync()
    persisted = await load_snapshot(handle, SAMPLE_ORIGIN)
    await handle.close()

    assert (outcome.status, outcome.persisted, 10 in session.index.attribute_by_id) == (
        CacheStatus.FRESH,
        True,
        True,
    ) and persisted is not None


@pytest.mark.asyncio
async def test_sync_keeps_cached_snapshot_when_fetch_fails(tmp_path) -> None:
    """Fetch failures should degrade to the last cached snapshot."""
    handle = CacheHandle(tmp_path / "cache.sqlite3")
    await save_snapshot(handle, sample_snapshot())
    async with _remote(_failing_handler) as remote:
        session = MetadataSession(remote, handle, SAMPLE_ORIGIN)
        outcome = await session.sync()
    await handle.close()

    assert (outcome.status, outcome.error is not None, session.snapshot == sample_snapshot()) == (
        CacheStatus.CACHED,
        True,
        True,
    )


@pytest.mark.asyncio
async def test_sync_reports_empty_when_cache_and_fetch_fail(tmp_path) -> None:
    """No cache and a failed fetch should leave an explicit empty state."""
    handle = CacheHandle(tmp_path / "cache.sqlite3")
    async with _remote(_failing_handler) as remote:
        session = MetadataSession(remote, handle, SAMPLE_ORIGIN)
        outcome = await session.sync()
    await handle.close()

    assert (outcome.status, session.status_banner().startswith("No metadata")) == (
        CacheStatus.EMPTY,
        True,
    )


@pytest.mark.asyncio
async def test_refresh_survives_persist_failure(tmp_path) -> None:
    """A failed cache write should not discard the fetched snapshot."""
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("x", encoding="utf-8")
    handle = CacheHandle(blocker / "cache.sqlite3")
    async with _remote(_metadata_handler) as remote:
        session = MetadataSession(remote, handle, SAMPLE_ORIGIN)
        outcome = await session.refresh()

    assert (outcome.applied, outcome.persisted, session.status) == (
        True,
        False,
        CacheStatus.FRESH,
    )


@pytest.mark.asyncio
async def test_older_response_arriving_last_is_discarded(tmp_path) -> None:
    """A slow earlier fetch must not overwrite a newer applied result."""
    release_slow = asyncio.Event()
    calls = {"count": 0}

    async def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/class/list"):
            calls["count"] += 1
            if calls["count"] == 1:
                await release_slow.wait()
                return httpx.Response(200, json=[{"id": 1, "name": "Stale"}])
            return httpx.Response(200, json=[{"id": 1, "name": "Newest"}])
        return httpx.Response(200, json=[])

    handle = CacheHandle(tmp_path / "cache.sqlite3")
    async with _remote(handler) as remote:
        session = MetadataSession(remote, handle, SAMPLE_ORIGIN)
        slow = asyncio.ensure_future(session.refresh())
        await asyncio.sleep(0.01)
        fast_outcome = await session.refresh()
        release_slow.set()
        slow_outcome = await slow
    await handle.close()

    assert (fast_outcome.applied, slow_outcome.applied, session.index.set_name(1)) == (
        True,
        False,
        "Newest",
    )


@pytest.mark.asyncio
async def test_refresh_propagates_transport_errors(tmp_path) -> None:
    """Direct refresh callers see the transport error."""
    handle = CacheHandle(tmp_path / "cache.sqlite3")
    async with _remote(_failing_handler) as remote:
        session = MetadataSession(remote, handle, SAMPLE_ORIGIN)
        with pytest.raises(MetalensTransportError) as error_info:
            await session.refresh()
    await handle.close()

    assert error_info.value.status == 502
