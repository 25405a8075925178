"""Async client for the host application's metadata API.

This module fetches attributes, sets, and link types and issues set
truncate calls. Link types are requested in sequential id batches with
a per-id fallback when the combined endpoint is not available.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

import httpx

from core.config import MetalensConfig
from core.constants import (
    ATTRIBUTE_LIST_PATH,
    LINK_TYPE_BATCH_PATH,
    LINK_TYPE_SINGLE_PATH,
    SET_LIST_PATH,
    TRUNCATE_SET_PATH,
)
from core.entity_ids import parse_int_like
from core.errors import MetalensPayloadError, MetalensTransportError
from core.logging_config import get_logger
from core.types import JsonObject, Snapshot, TruncateResult
from remote.origin import normalize_origin

_LOGGER = get_logger(__name__)

_BATCH_FAILURES = (MetalensTransportError, MetalensPayloadError, httpx.HTTPError)


class MetadataClient:
    """Metadata API client bound to one reusable ``httpx.AsyncClient``."""

    def __init__(
        self,
        config: MetalensConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create the client.

        Args:
            config: Runtime configuration.
            transport: Optional httpx transport, used to stub the network.
        """
        self._batch_size = config.link_type_batch_size
        headers = {"Accept": "application/json"}
        if config.auth_token:
            headers["Authorization"] = f"Bearer {config.auth_token}"
        self._http = httpx.AsyncClient(headers=headers, transport=transport)

    async def __aenter__(self) -> "MetadataClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def fetch_attributes(self, origin: str) -> list[JsonObject]:
        """Fetch every attribute defined on the host."""
        return await self._get_list(origin, ATTRIBUTE_LIST_PATH)

    async def fetch_sets(self, origin: str) -> list[JsonObject]:
        """Fetch every set (entity class) defined on the host."""
        return await self._get_list(origin, SET_LIST_PATH)

    async def fetch_link_types_by_ids(
        self,
        origin: str,
        set_ids: Iterable[int],
    ) -> list[JsonObject]:
        """Fetch link types attached to the given sets.

        Ids are requested in sequential batches. A failed batch is logged
        and contributes no items; remaining batches still run.

        Args:
            origin: Host origin URL.
            set_ids: Set ids whose link types are requested.

        Returns:
            Concatenated link types from every successful batch.
        """
        ids = list(set_ids)
        link_types: list[JsonObject] = []
        for batch_number, batch in enumerate(_chunked(ids, self._batch_size), 1):
            try:
                link_types.extend(await self._fetch_link_type_batch(origin, batch))
            except _BATCH_FAILURES as error:
                _LOGGER.warning(
                    "link_type_batch_failed",
                    origin=origin,
                    batch_number=batch_number,
                    batch_size=len(batch),
                    error=str(error),
                )
        return link_types

    async def truncate_set(self, origin: str, set_id: int) -> TruncateResult:
        """Delete all records of a set on the host.

        Args:
            origin: Host origin URL.
            set_id: Set to truncate.

        Returns:
            Server result; an empty body counts as success.

        Raises:
            MetalensTransportError: If the server answers with a non-2xx status.
        """
        url = _build_url(origin, TRUNCATE_SET_PATH.format(id=set_id))
        response = await self._http.post(url)
        _raise_for_status(response, url)
        if not response.content.strip():
            return TruncateResult(success=True, message=f"Set {set_id} truncated.")
        payload = _decode_json(response, url)
        if not isinstance(payload, dict):
            raise MetalensPayloadError(
                f"Unexpected truncate response from {url}: expected JSON object, "
                f"got {type(payload).__name__}."
            )
        return TruncateResult(
            success=bool(payload.get("success", False)),
            message=str(payload.get("message", "")),
        )

    async def fetch_snapshot(self, origin: str) -> Snapshot:
        """Fetch all collections for an origin into a new snapshot.

        Attributes and sets are fetched concurrently; link types follow
        for every set id.

        Args:
            origin: Host origin URL.

        Returns:
            Freshly fetched snapshot.
        """
        origin_key = normalize_origin(origin)
        attributes, sets = await asyncio.gather(
            self.fetch_attributes(origin_key),
            self.fetch_sets(origin_key),
        )
        set_ids = [
            set_id
            for set_id in (parse_int_like(entity_set.get("id")) for entity_set in sets)
            if set_id is not None
        ]
        link_types = await self.fetch_link_types_by_ids(origin_key, set_ids)
        _LOGGER.info(
            "snapshot_fetched",
            origin=origin_key,
            attribute_count=len(attributes),
            set_count=len(sets),
            link_type_count=len(link_types),
        )
        return Snapshot(
            origin_key=origin_key,
            attributes=tuple(attributes),
            sets=tuple(sets),
            link_types=tuple(link_types),
            timestamp=datetime.now(timezone.utc),
        )

    async def _fetch_link_type_batch(
        self,
        origin: str,
        batch: Sequence[int],
    ) -> list[JsonObject]:
        """Fetch one batch through the combined endpoint.

        Args:
            origin: Host origin URL.
            batch: Set ids in this batch.

        Returns:
            Link types of the batch. A 404 on the combined endpoint falls
            back to one request per id.

        Raises:
            MetalensTransportError: If the server answers with another non-2xx status.
            MetalensPayloadError: If the response is not a JSON list.
        """
        joined_ids = ",".join(str(set_id) for set_id in batch)
        url = _build_url(origin, LINK_TYPE_BATCH_PATH.format(ids=joined_ids))
        response = await self._http.get(url)
        if response.status_code == httpx.codes.NOT_FOUND:
            _LOGGER.info("link_type_batch_fallback", origin=origin, batch_size=len(batch))
            return await self._fetch_link_types_individually(origin, batch)
        _raise_for_status(response, url)
        return _expect_list(_decode_json(response, url), url)

    async def _fetch_link_types_individually(
        self,
        origin: str,
        batch: Sequence[int],
    ) -> list[JsonObject]:
        """Fetch link types one set id at a time.

        Args:
            origin: Host origin URL.
            batch: Set ids to request individually.

        Returns:
            Link types from every id that succeeded; failed ids are logged.
        """
        link_types: list[JsonObject] = []
        for set_id in batch:
            try:
                link_types.extend(
                    await self._get_list(origin, LINK_TYPE_SINGLE_PATH.format(id=set_id))
                )
            except _BATCH_FAILURES as error:
                _LOGGER.warning(
                    "link_type_fetch_failed",
                    origin=origin,
                    set_id=set_id,
                    error=str(error),
                )
        return link_types

    async def _get_list(self, origin: str, path: str) -> list[JsonObject]:
        """GET a collection endpoint and return its JSON list.

        Args:
            origin: Host origin URL.
            path: API path under the origin.

        Returns:
            Object items of the response list.

        Raises:
            MetalensTransportError: If the server answers with a non-2xx status.
            MetalensPayloadError: If the response is not a JSON list.
        """
        url = _build_url(origin, path)
        response = await self._http.get(url)
        _raise_for_status(response, url)
        return _expect_list(_decode_json(response, url), url)


def _build_url(origin: str, path: str) -> str:
    """Join an origin and an API path."""
    return f"{origin.rstrip('/')}{path}"


def _chunked(ids: Sequence[int], size: int) -> Iterable[Sequence[int]]:
    """Yield consecutive id slices of at most ``size`` items."""
    for start in range(0, len(ids), size):
        yield ids[start : start + size]


def _raise_for_status(response: httpx.Response, url: str) -> None:
    """Raise for non-2xx responses.

    Args:
        response: HTTP response.
        url: Requested URL, used in the message.

    Raises:
        MetalensTransportError: If the response status is not 2xx.
    """
    if response.is_success:
        return
    raise MetalensTransportError(
        f"Metadata request to {url} failed with HTTP {response.status_code}.",
        status=response.status_code,
        body=response.text,
    )


def _decode_json(response: httpx.Response, url: str) -> Any:
    """Decode a JSON response body.

    Args:
        response: HTTP response.
        url: Requested URL, used in the message.

    Returns:
        Decoded JSON value.

    Raises:
        MetalensPayloadError: If the body is not valid JSON.
    """
    try:
        return response.json()
    except ValueError as error:
        raise MetalensPayloadError(
            f"Metadata response from {url} is not valid JSON: {error}."
        ) from error


def _expect_list(payload: Any, url: str) -> list[JsonObject]:
    """Validate a collection payload.

    Args:
        payload: Decoded JSON value.
        url: Requested URL, used in the message.

    Returns:
        Object items of the list; other items are dropped.

    Raises:
        MetalensPayloadError: If the payload is not a list.
    """
    if not isinstance(payload, list):
        raise MetalensPayloadError(
            f"Unexpected metadata response from {url}: expected JSON list, "
            f"got {type(payload).__name__}."
        )
    return [item for item in payload if isinstance(item, dict)]
