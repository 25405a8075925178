"""Python SDK for metadata operations.

This module exposes high-level async APIs for sync, search, template
rewriting, context capture, and set truncation, backed by one cache
handle and one HTTP client per SDK client.
"""

from __future__ import annotations

from typing import Any, Sequence

import httpx

from core.config import MetalensConfig
from core.constants import DEFAULT_SEARCH_LIMIT
from core.types import EntityCategory, FilterSpec, SearchPage, TruncateResult
from query.search import configure_collation, search
from remote.context_capture import capture_context
from remote.metadata_client import MetadataClient
from remote.origin import normalize_origin
from store.cache_store import CacheHandle, load_captured_context
from store.metadata_session import MetadataSession, SyncOutcome
from templating.template_render import TemplateResult, rewrite_template


class MetalensClient:
    """Primary SDK entry point.

    The cache handle is created here, once, and shared by every session
    the client hands out.
    """

    def __init__(
        self,
        config: MetalensConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            transport: Optional httpx transport for the metadata API.
        """
        configure_collation()
        self._config = config or MetalensConfig.from_env()
        self._cache = CacheHandle(self._config.cache_path)
        self._remote = MetadataClient(self._config, transport=transport)
        self._sessions: dict[str, MetadataSession] = {}

    async def __aenter__(self) -> "MetalensClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client and the cache connection."""
        await self._remote.aclose()
        await self._cache.close()

    @property
    def cache(self) -> CacheHandle:
        return self._cache

    @property
    def remote(self) -> MetadataClient:
        return self._remote

    def session(self, origin: str) -> MetadataSession:
        """Return the session for an origin, creating it on first use."""
        origin_key = normalize_origin(origin)
        if origin_key not in self._sessions:
            self._sessions[origin_key] = MetadataSession(self._remote, self._cache, origin_key)
        return self._sessions[origin_key]

    async def sync(self, origin: str) -> SyncOutcome:
        """Load cached metadata for an origin and refresh it from the host."""
        return await self.session(origin).sync()

    async def load_cached(self, origin: str) -> MetadataSession:
        """Return the origin's session after activating its cached snapshot."""
        session = self.session(origin)
        if session.snapshot is None:
            await session.load_cached()
        return session

    async def search(
        self,
        origin: str,
        term: str = "",
        filters: Sequence[FilterSpec] = (),
        entity_type: EntityCategory | str = EntityCategory.ALL,
        limit: int = DEFAULT_SEARCH_LIMIT,
        offset: int = 0,
    ) -> SearchPage | None:
        """Search the origin's active snapshot.

        Returns:
            Search page, or None when no snapshot is available.
        """
        session = await self.load_cached(origin)
        if session.snapshot is None:
            return None
        return search(
            session.snapshot,
            session.index,
            term=term,
            filters=filters,
            entity_type=entity_type,
            limit=limit,
            offset=offset,
        )

    async def rewrite(self, origin: str, payload: Any) -> TemplateResult:
        """Rewrite ids in a payload using the origin's active index."""
        session = await self.load_cached(origin)
        return rewrite_template(payload, session.index)

    async def captured_context(self, origin: str) -> object | None:
        """Return the origin's last captured context payload."""
        return await load_captured_context(self._cache, normalize_origin(origin))

    async def capture(
        self,
        origin: str,
        method: str,
        url: str,
        raw_body: bytes | None,
    ) -> object | None:
        """Capture the context of an intercepted session-prepare request."""
        return await capture_context(self._cache, normalize_origin(origin), method, url, raw_body)

    async def truncate_set(self, origin: str, set_id: int) -> TruncateResult:
        """Truncate a set on the host."""
        return await self._remote.truncate_set(normalize_origin(origin), set_id)
