"""Snapshot serialization for the persisted cache record.

This module centralizes the JSON shape of cached snapshots.
It is reused by the cache store and the CLI output.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Mapping

from core.types import JsonObject, Snapshot


def snapshot_to_record(snapshot: Snapshot) -> dict[str, object]:
    """Serialize a snapshot into the persisted record shape.

    Args:
        snapshot: Snapshot instance.

    Returns:
        Record with JSON-encoded collections and ISO timestamp.
    """
    return {
        "origin_key": snapshot.origin_key,
        "attributes": json.dumps(list(snapshot.attributes)),
        "sets": json.dumps(list(snapshot.sets)),
        "link_types": json.dumps(list(snapshot.link_types)),
        "timestamp": snapshot.timestamp.isoformat(),
    }


def snapshot_from_record(record: Mapping[str, Any]) -> Snapshot:
    """Deserialize a persisted record into a snapshot.

    Args:
        record: Row mapping produced by ``snapshot_to_record``.

    Returns:
        Parsed snapshot.

    Raises:
        ValueError: If a collection is not a JSON list of objects.
    """
    return Snapshot(
        origin_key=str(record["origin_key"]),
        attributes=_decode_collection(record["attributes"], "attributes"),
        sets=_decode_collection(record["sets"], "sets"),
        link_types=_decode_collection(record["link_types"], "link_types"),
        timestamp=datetime.fromisoformat(str(record["timestamp"])),
    )


def snapshot_summary(snapshot: Snapshot) -> dict[str, object]:
    """Return a compact JSON-safe description of a snapshot."""
    return {
        "originKey": snapshot.origin_key,
        "attributes": len(snapshot.attributes),
        "sets": len(snapshot.sets),
        "linkTypes": len(snapshot.link_types),
        "timestamp": snapshot.timestamp.isoformat(),
    }


def _decode_collection(raw_value: object, field_name: str) -> tuple[JsonObject, ...]:
    payload = json.loads(str(raw_value))
    if not isinstance(payload, list):
        raise ValueError(f"Cached {field_name} must be a JSON list.")
    items: list[JsonObject] = []
    for item in payload:
        if not isinstance(item, dict):
            raise ValueError(f"Cached {field_name} entries must be JSON objects.")
        items.append(item)
    return tuple(items)
