"""In-memory id lookup maps built from a snapshot.

Maps are derived state: they are rebuilt wholesale from a snapshot on
every load and never patched incrementally.
"""

from __future__ import annotations

from core.entity_ids import parse_int_like
from core.types import (
    AttributeIndexEntry,
    JsonObject,
    LinkTypeIndexEntry,
    MetadataIndex,
    Snapshot,
)


def build_index(snapshot: Snapshot) -> MetadataIndex:
    """Build id lookup maps for sets, attributes, and link types.

    Attributes whose ``classId`` does not resolve to an indexed set are
    left out of ``attribute_by_id``. Entities without an integer id are
    skipped.

    Args:
        snapshot: Snapshot to index.

    Returns:
        Index maps for the snapshot.
    """
    set_by_id: dict[int, JsonObject] = {}
    for entity_set in snapshot.sets:
        set_id = parse_int_like(entity_set.get("id"))
        if set_id is not None:
            set_by_id[set_id] = entity_set

    attribute_by_id: dict[int, AttributeIndexEntry] = {}
    for attribute in snapshot.attributes:
        attribute_id = parse_int_like(attribute.get("id"))
        set_id = parse_int_like(attribute.get("classId"))
        if attribute_id is None or set_id is None or set_id not in set_by_id:
            continue
        attribute_by_id[attribute_id] = AttributeIndexEntry(
            name=_entity_name(attribute, attribute_id),
            parent_set_name=_entity_name(set_by_id[set_id], set_id),
            set_id=set_id,
        )

    link_type_by_id: dict[int, LinkTypeIndexEntry] = {}
    for link_type in snapshot.link_types:
        link_type_id = parse_int_like(link_type.get("id"))
        if link_type_id is None:
            continue
        link_type_by_id[link_type_id] = LinkTypeIndexEntry(
            name=_entity_name(link_type, link_type_id),
            source_collection_id=parse_int_like(link_type.get("sourceCollectionId")),
            target_collection_id=parse_int_like(link_type.get("targetCollectionId")),
        )

    return MetadataIndex(
        set_by_id=set_by_id,
        attribute_by_id=attribute_by_id,
        link_type_by_id=link_type_by_id,
    )


def _entity_name(entity: JsonObject, entity_id: int) -> str:
    """Return an entity's display name.

    Args:
        entity: Raw entity payload.
        entity_id: Parsed entity id.

    Returns:
        The entity name, or its id when the name is missing or empty.
    """
    name = entity.get("name")
    return str(name) if name not in (None, "") else str(entity_id)
