"""Public SDK surface for metalens.

This module provides a stable import path for host-page integrations.
It re-exports the primary client, the core engine functions, and the
typed models they exchange.
"""

from __future__ import annotations

from core.config import MetalensConfig
from core.types import (
    CacheStatus,
    EntityCategory,
    FilterSpec,
    MatchType,
    MetadataIndex,
    SearchPage,
    Snapshot,
    TruncateResult,
)
from query.search import search
from remote.metadata_client import MetadataClient
from store.cache_store import CacheHandle, load_snapshot, save_snapshot
from store.metadata_filtering import matches
from store.metadata_index import build_index
from store.metadata_sdk import MetalensClient
from store.metadata_session import MetadataSession, SyncOutcome
from templating.id_resolver import resolve_ids
from templating.template_render import TemplateResult, rewrite_template

__all__ = [
    "CacheHandle",
    "CacheStatus",
    "EntityCategory",
    "FilterSpec",
    "MatchType",
    "MetadataClient",
    "MetadataIndex",
    "MetadataSession",
    "MetalensClient",
    "MetalensConfig",
    "SearchPage",
    "Snapshot",
    "SyncOutcome",
    "TemplateResult",
    "TruncateResult",
    "build_index",
    "load_snapshot",
    "matches",
    "resolve_ids",
    "rewrite_template",
    "save_snapshot",
    "search",
]
