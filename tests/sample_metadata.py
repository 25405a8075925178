"""Shared sample metadata payloads for tests."""

from __future__ import annotations

from datetime import datetime, timezone

from core.types import Snapshot

SAMPLE_ORIGIN = "https://warehouse.example.com"


def sample_sets() -> list[dict[str, object]]:
    return [
        {"id": 1, "name": "Customer", "description": "Customer master", "core": True, "isHidden": False},
        {"id": 2, "name": "Account", "description": "Billing accounts", "core": False, "isHidden": False},
        {"id": 3, "name": "Order", "core": False, "isHidden": True},
    ]


def sample_attributes() -> list[dict[str, object]]:
    return [
        {
            "id": 10,
            "name": "email",
            "classId": 1,
            "dataType": "STRING",
            "description": "Primary contact address",
            "properties": {"indexed": True, "searchable": True},
        },
        {
            "id": 11,
            "name": "balance",
            "classId": 2,
            "dataType": "DECIMAL",
            "properties": {"indexed": False, "searchable": False},
        },
        {
            "id": 12,
            "name": "orphan",
            "classId": 99,
            "dataType": "STRING",
            "properties": {"indexed": False, "searchable": True},
        },
    ]


def sample_link_types() -> list[dict[str, object]]:
    return [
        {
            "id": 100,
            "name": "owns",
            "sourceCollectionId": 1,
            "targetCollectionId": 2,
            "directed": True,
            "core": False,
            "config": {"type": "reference", "linkStorage": {"mode": "inline", "configuration": {}}},
        },
        {
            "id": 101,
            "name": "dangling",
            "sourceCollectionId": 1,
            "targetCollectionId": 77,
            "directed": False,
            "core": False,
            "config": {"type": "reference", "linkStorage": {"mode": "table", "configuration": {}}},
        },
    ]


def sample_snapshot(origin_key: str = SAMPLE_ORIGIN) -> Snapshot:
    return Snapshot(
        origin_key=origin_key,
        attributes=tuple(sample_attributes()),
        sets=tuple(sample_sets()),
        link_types=tuple(sample_link_types()),
        timestamp=datetime(2026, 10, 1, 12, 30, tzinfo=timezone.utc),
    )
