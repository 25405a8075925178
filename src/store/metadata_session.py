"""Active metadata state for one origin.

This module orchestrates cache load, remote fetch, persistence, and
index rebuilds. Every operation captures a generation token when it
starts; a result is applied only if no later-started operation has
already been applied, so slow stale responses are discarded.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass

import httpx

from core.errors import MetalensError, MetalensStoreError
from core.logging_config import get_logger
from core.types import CacheStatus, MetadataIndex, Snapshot
from remote.metadata_client import MetadataClient
from remote.origin import normalize_origin
from store.cache_store import CacheHandle, load_snapshot, save_snapshot
from store.metadata_index import build_index

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class SyncOutcome:
    """Result of a session load or refresh.

    Attributes:
        status: Source of the active snapshot after the operation.
        applied: Whether this operation's result became the active state.
        persisted: Whether a fetched snapshot was written to the cache.
        error: Message of a fetch failure that was absorbed, if any.
    """

    status: CacheStatus
    applied: bool
    persisted: bool = False
    error: str | None = None


class MetadataSession:
    """Holds the active snapshot and index for one origin."""

    def __init__(self, client: MetadataClient, cache: CacheHandle, origin: str) -> None:
        self._client = client
        self._cache = cache
        self._origin_key = normalize_origin(origin)
        self._tokens = itertools.count(1)
        self._applied_token = 0
        self._snapshot: Snapshot | None = None
        self._index = MetadataIndex()
        self._status = CacheStatus.EMPTY

    @property
    def origin_key(self) -> str:
        return self._origin_key

    @property
    def snapshot(self) -> Snapshot | None:
        return self._snapshot

    @property
    def index(self) -> MetadataIndex:
        return self._index

    @property
    def status(self) -> CacheStatus:
        return self._status

    async def load_cached(self) -> SyncOutcome:
        """Activate the cached snapshot for this origin, if any."""
        token = next(self._tokens)
        snapshot = await load_snapshot(self._cache, self._origin_key)
        if snapshot is None:
            return SyncOutcome(status=self._status, applied=False)
        applied = self._apply(token, snapshot, CacheStatus.CACHED)
        return SyncOutcome(status=self._status, applied=applied)

    async def refresh(self) -> SyncOutcome:
        """Fetch a fresh snapshot, activate it, and persist it.

        Persistence failures are logged; the fetched snapshot stays
        active for this session.

        Raises:
            MetalensTransportError: If a top-level fetch fails.
            httpx.HTTPError: If the network call fails.
        """
        token = next(self._tokens)
        snapshot = await self._client.fetch_snapshot(self._origin_key)
        if not self._apply(token, snapshot, CacheStatus.FRESH):
            return SyncOutcome(status=self._status, applied=False)
        try:
            await save_snapshot(self._cache, snapshot)
        except MetalensStoreError as error:
            _LOGGER.warning(
                "snapshot_persist_failed",
                origin_key=self._origin_key,
                error=str(error),
            )
            return SyncOutcome(status=self._status, applied=True, persisted=False)
        return SyncOutcome(status=self._status, applied=True, persisted=True)

    async def sync(self) -> SyncOutcome:
        """Load the cache, then refresh, keeping cached data on fetch failure.

        Returns:
            Outcome of the refresh, or of the cache fallback when the
            fetch failed.
        """
        await self.load_cached()
        try:
            return await self.refresh()
        except (MetalensError, httpx.HTTPError) as error:
            _LOGGER.warning(
                "snapshot_refresh_failed",
                origin_key=self._origin_key,
                status=self._status.value,
                error=str(error),
            )
            return SyncOutcome(status=self._status, applied=False, error=str(error))

    def status_banner(self) -> str:
        """Return the cache-status line shown next to search and templates."""
        if self._snapshot is None:
            return f"No metadata available for {self._origin_key}."
        fetched_at = self._snapshot.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC")
        if self._status is CacheStatus.FRESH:
            return f"Live metadata for {self._origin_key}, fetched {fetched_at}."
        return f"Showing cached metadata for {self._origin_key} from {fetched_at}."

    def _apply(self, token: int, snapshot: Snapshot, status: CacheStatus) -> bool:
        if token <= self._applied_token:
            _LOGGER.info(
                "stale_result_discarded",
                origin_key=self._origin_key,
                token=token,
                applied_token=self._applied_token,
            )
            return False
        self._applied_token = token
        self._snapshot = snapshot
        self._index = build_index(snapshot)
        self._status = status
        return True
