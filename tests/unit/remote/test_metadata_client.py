"""Unit tests for the metadata API client."""

from __future__ import annotations

from dataclasses import replace

import httpx
import pytest

from core.config import MetalensConfig
from core.errors import MetalensPayloadError, MetalensTransportError
from remote import metadata_client
from remote.metadata_client import MetadataClient
from tests.sample_metadata import SAMPLE_ORIGIN, sample_attributes, sample_sets

_BATCH_PREFIX = "/api/v1/metadata/linktype/batch/class/"
_SINGLE_PREFIX = "/api/v1/metadata/linktype/class/"


def _client(handler, batch_size: int = 50) -> MetadataClient:
    config = replace(MetalensConfig.from_env(), link_type_batch_size=batch_size, auth_token=None)
    return MetadataClient(config, transport=httpx.MockTransport(handler))


def _batch_ids(request: httpx.Request) -> list[int]:
    return [int(item) for item in request.url.path[len(_BATCH_PREFIX) :].split(",")]


@pytest.mark.asyncio
async def test_fetch_attributes_returns_payload_list() -> None:
    """Attribute list endpoint payload should be returned as-is."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/metadata/attribute/list"
        return httpx.Response(200, json=sample_attributes())

    async with _client(handler) as client:
        attributes = await client.fetch_attributes(SAMPLE_ORIGIN)

    assert attributes == sample_attributes()


@pytest.mark.asyncio
async def test_fetch_sets_raises_transport_error_with_status_and_body() -> None:
    """Non-success statuses should raise a typed transport error."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="maintenance")

    async with _client(handler) as client:
        with pytest.raises(MetalensTransportError) as error_info:
            await client.fetch_sets(SAMPLE_ORIGIN)

    assert (error_info.value.status, error_info.value.body) == (503, "maintenance")


@pytest.mark.asyncio
async def test_fetch_sets_propagates_network_errors() -> None:
    """Network failures should propagate unchanged."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(httpx.ConnectError):
            await client.fetch_sets(SAMPLE_ORIGIN)


@pytest.mark.asyncio
async def test_fetch_sets_rejects_non_list_payload() -> None:
    """Collection endpoints must answer with a JSON list."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"items": []})

    async with _client(handler) as client:
        with pytest.raises(MetalensPayloadError):
            await client.fetch_sets(SAMPLE_ORIGIN)


@pytest.mark.asyncio
async def test_link_types_are_requested_in_sequential_batches_of_fifty() -> None:
    """120 ids with batch size 50 should issue three combined calls."""
    requested_batches: list[list[int]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        ids = _batch_ids(request)
        requested_batches.append(ids)
        return httpx.Response(200, json=[{"id": ids[0], "name": f"link-{ids[0]}"}])

    async with _client(handler) as client:
        link_types = await client.fetch_link_types_by_ids(SAMPLE_ORIGIN, range(1, 121))

    assert [len(batch) for batch in requested_batches] == [50, 50, 20] and len(link_types) == 3


@pytest.mark.asyncio
async def test_failed_batch_contributes_nothing_and_does_not_stop_others() -> None:
    """A failing middle batch should be skipped without raising."""
    batch_calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        ids = _batch_ids(request)
        batch_calls.append(ids[0])
        if ids[0] == 51:
            return httpx.Response(500, text="boom")
        return httpx.Response(200, json=[{"id": set_id} for set_id in ids[:2]])

    async with _client(handler) as client:
        link_types = await client.fetch_link_types_by_ids(SAMPLE_ORIGIN, range(1, 121))

    assert batch_calls == [1, 51, 101] and [item["id"] for item in link_types] == [1, 2, 101, 102]


@pytest.mark.asyncio
async def test_batch_network_failure_is_isolated() -> None:
    """A network error on one batch should not abort the others."""

    def handler(request: httpx.Request) -> httpx.Response:
        ids = _batch_ids(request)
        if ids[0] == 1:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json=[{"id": ids[0]}])

    async with _client(handler, batch_size=2) as client:
        link_types = await client.fetch_link_types_by_ids(SAMPLE_ORIGIN, [1, 2, 3])

    assert link_types == [{"id": 3}]


@pytest.mark.asyncio
async def test_not_found_batch_falls_back_to_one_request_per_id() -> None:
    """A 404 from the batch endpoint should trigger per-id requests."""
    single_calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith(_BATCH_PREFIX):
            return httpx.Response(404, text="not found")
        set_id = int(path[len(_SINGLE_PREFIX) :])
        single_calls.append(set_id)
        if set_id == 2:
            return httpx.Response(500, text="broken")
        return httpx.Response(200, json=[{"id": set_id * 10}, {"id": set_id * 10 + 1}])

    async with _client(handler) as client:
        link_types = await client.fetch_link_types_by_ids(SAMPLE_ORIGIN, [1, 2, 3])

    assert single_calls == [1, 2, 3] and len(link_types) == 4


@pytest.mark.asyncio
async def test_empty_id_list_issues_no_requests() -> None:
    """No ids should mean no link-type calls."""
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json=[])

    async with _client(handler) as client:
        link_types = await client.fetch_link_types_by_ids(SAMPLE_ORIGIN, [])

    assert link_types == [] and calls == []


@pytest.mark.asyncio
async def test_truncate_empty_body_is_success() -> None:
    """An empty truncate response body should count as success."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/api/v1/metadata/class/truncate/7"
        return httpx.Response(200, content=b"")

    async with _client(handler) as client:
        result = await client.truncate_set(SAMPLE_ORIGIN, 7)

    assert result.success


@pytest.mark.asyncio
async def test_truncate_returns_server_result() -> None:
    """A JSON truncate body should be passed through."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "message": "set is locked"})

    async with _client(handler) as client:
        result = await client.truncate_set(SAMPLE_ORIGIN, 7)

    assert (result.success, result.message) == (False, "set is locked")


@pytest.mark.asyncio
async def test_fetch_snapshot_collects_all_collections() -> None:
    """Snapshot fetch should combine attributes, sets, and link types."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/attribute/list"):
            return httpx.Response(200, json=sample_attributes())
        if path.endswith("/class/list"):
            return httpx.Response(200, json=sample_sets())
        return httpx.Response(200, json=[{"id": 100, "name": "owns"}])

    async with _client(handler) as client:
        snapshot = await client.fetch_snapshot(SAMPLE_ORIGIN + "/app/search?q=1")

    assert (
        snapshot.origin_key,
        len(snapshot.attributes),
        len(snapshot.sets),
        len(snapshot.link_types),
    ) == (SAMPLE_ORIGIN, 3, 3, 1)


@pytest.mark.asyncio
async def test_auth_token_is_sent_as_bearer_header() -> None:
    """Configured tokens should be sent on every request."""
    seen_headers: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_headers.append(request.headers.get("Authorization", ""))
        return httpx.Response(200, json=[])

    config = replace(MetalensConfig.from_env(), auth_token="secret")
    async with MetadataClient(config, transport=httpx.MockTransport(handler)) as client:
        await client.fetch_sets(SAMPLE_ORIGIN)

    assert seen_headers == ["Bearer secret"]


def test_private_helpers_document_their_contract() -> None:
    """Request helpers should carry docstrings."""
    helpers = [
        MetadataClient._fetch_link_type_batch,
        MetadataClient._fetch_link_types_individually,
        MetadataClient._get_list,
        metadata_client._build_url,
        metadata_client._chunked,
        metadata_client._raise_for_status,
        metadata_client._decode_json,
        metadata_client._expect_list,
    ]

    assert all(helper.__doc__ for helper in helpers)
