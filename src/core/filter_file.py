"""Saved filter files for search.

This module loads a YAML list of filters, so frequently used searches
can be kept on disk and passed to the CLI with ``--filters-file``.

Example::

    filters:
      - path: properties.indexed
        value: "true"
      - path: dataType
        value: STRING
        matchType: exact
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence, cast

import yaml

from core.errors import MetalensFilterFileError
from core.types import FilterSpec

_ALLOWED_FILTER_KEYS = frozenset(
    {"path", "value", "matchType", "match_type", "caseSensitive", "case_sensitive"}
)


def load_filter_file(file_path: str) -> list[FilterSpec]:
    """Load and validate a YAML filters file.

    Args:
        file_path: Path to a YAML file with a top-level ``filters`` list.

    Returns:
        Parsed filters in file order.

    Raises:
        MetalensFilterFileError: If the file is missing or invalid.
    """
    payload = _load_yaml_payload(file_path)
    if not isinstance(payload, Mapping) or "filters" not in payload:
        raise MetalensFilterFileError(
            f"Filters file {file_path} must be a mapping with a 'filters' list."
        )
    raw_filters = payload["filters"]
    if not isinstance(raw_filters, Sequence) or isinstance(raw_filters, (str, bytes)):
        raise MetalensFilterFileError(
            f"Invalid 'filters' in {file_path}: expected list, "
            f"got {type(raw_filters).__name__}."
        )
    return [
        _parse_filter(item, position, file_path)
        for position, item in enumerate(raw_filters, 1)
    ]


def _load_yaml_payload(file_path: str) -> object:
    filters_file = Path(file_path).expanduser().resolve()
    if not filters_file.exists():
        raise MetalensFilterFileError(
            f"Filters file does not exist at {filters_file}. Provide a valid YAML file path."
        )
    try:
        return cast(object, yaml.safe_load(filters_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise MetalensFilterFileError(
            f"Failed to read filters file at {filters_file}: {error}. "
            "Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise MetalensFilterFileError(
            f"Failed to parse YAML filters file at {filters_file}: {error}. "
            "Fix YAML syntax and retry."
        ) from error


def _parse_filter(item: object, position: int, file_path: str) -> FilterSpec:
    if not isinstance(item, Mapping):
        raise MetalensFilterFileError(
            f"Filter #{position} in {file_path} must be a mapping, got {type(item).__name__}."
        )
    unknown_keys = sorted(str(key) for key in item if key not in _ALLOWED_FILTER_KEYS)
    if unknown_keys:
        raise MetalensFilterFileError(
            f"Filter #{position} in {file_path} has unsupported keys: {', '.join(unknown_keys)}."
        )
    if not str(item.get("path", "")).strip():
        raise MetalensFilterFileError(f"Filter #{position} in {file_path} needs a 'path'.")
    return FilterSpec.from_payload(item)
