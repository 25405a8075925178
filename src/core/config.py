"""Runtime configuration model for metalens.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    CACHE_DATABASE_FILE_NAME,
    DEFAULT_DATA_ROOT,
    DEFAULT_LINK_TYPE_BATCH_SIZE,
    DEFAULT_LOG_LEVEL,
    SUPPORTED_LOG_LEVELS,
)
from core.errors import MetalensConfigError


@dataclass(frozen=True)
class MetalensConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory for the metadata cache database.
        link_type_batch_size: Number of set ids per combined link-type request.
        auth_token: Optional bearer token sent to the metadata API.
        log_level: Minimum structured log level.
    """

    data_root: Path
    link_type_batch_size: int
    auth_token: str | None
    log_level: str

    @classmethod
    def from_env(cls) -> "MetalensConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            MetalensConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("METALENS_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        batch_size_value = os.getenv(
            "METALENS_LINK_TYPE_BATCH_SIZE", str(DEFAULT_LINK_TYPE_BATCH_SIZE)
        )
        auth_token = os.getenv("METALENS_AUTH_TOKEN") or None
        log_level_value = os.getenv("METALENS_LOG_LEVEL", DEFAULT_LOG_LEVEL)
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            link_type_batch_size=_parse_batch_size(batch_size_value),
            auth_token=auth_token,
            log_level=_parse_log_level(log_level_value),
        )

    @property
    def cache_path(self) -> Path:
        """Return the SQLite cache database path under the data root."""
        return self.data_root / CACHE_DATABASE_FILE_NAME


def _parse_batch_size(raw_value: str) -> int:
    """Parse the link-type batch size environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Parsed positive batch size.

    Raises:
        MetalensConfigError: If value is not a positive integer.
    """
    try:
        batch_size = int(raw_value)
    except ValueError as error:
        raise MetalensConfigError(
            "Invalid METALENS_LINK_TYPE_BATCH_SIZE value: "
            f"expected integer, got '{raw_value}'. "
            "Set METALENS_LINK_TYPE_BATCH_SIZE to a positive number."
        ) from error
    if batch_size < 1:
        raise MetalensConfigError(
            f"Invalid METALENS_LINK_TYPE_BATCH_SIZE value: {batch_size} is not positive. "
            "Set METALENS_LINK_TYPE_BATCH_SIZE to 1 or more."
        )
    return batch_size


def _parse_log_level(raw_value: str) -> str:
    level = raw_value.strip().lower()
    if level not in SUPPORTED_LOG_LEVELS:
        raise MetalensConfigError(
            f"Invalid METALENS_LOG_LEVEL value '{raw_value}'. "
            f"Use one of: {', '.join(SUPPORTED_LOG_LEVELS)}."
        )
    return level
