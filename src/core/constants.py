"""Core constants used across metalens modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".metalens")
CACHE_DATABASE_FILE_NAME = "metadata_cache.sqlite3"
DEFAULT_LINK_TYPE_BATCH_SIZE = 50
DEFAULT_LOG_LEVEL = "info"
SUPPORTED_LOG_LEVELS = ("debug", "info", "warning", "error")
DEFAULT_SEARCH_LIMIT = 25

ATTRIBUTE_LIST_PATH = "/api/v1/metadata/attribute/list"
SET_LIST_PATH = "/api/v1/metadata/class/list"
LINK_TYPE_BATCH_PATH = "/api/v1/metadata/linktype/batch/class/{ids}"
LINK_TYPE_SINGLE_PATH = "/api/v1/metadata/linktype/class/{id}"
TRUNCATE_SET_PATH = "/api/v1/metadata/class/truncate/{id}"
CONTEXT_PREPARE_PATH = "/api/v1/context/session/prepare"

SEARCH_GUIDANCE_MESSAGE = (
    "Enter a search term or add a filter to browse cached metadata."
)
