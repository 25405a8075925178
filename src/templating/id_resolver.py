"""Symbolic id resolution over arbitrary JSON payloads.

Numeric entity ids embedded in a payload are replaced by reference
nodes. The kind of id a value holds is inferred from the key it sits
under; ids that cannot be mapped become ``ResolutionGap`` nodes that
the caller renders. Everything else is copied through untouched.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Union

from core.entity_ids import parse_int_like
from core.types import MetadataIndex


class RefKind(str, Enum):
    """Semantic hint for the ids found under a key."""

    SET = "set"
    ATTRIBUTE = "attribute"
    LINK = "link"
    UNKNOWN = "unknown"


class GapReason(str, Enum):
    """Why an id could not be mapped to a symbolic reference."""

    UNKNOWN_ID = "unknown_id"
    MISSING_ENDPOINT = "missing_endpoint"


@dataclass(frozen=True)
class SetRef:
    set_id: int
    name: str


@dataclass(frozen=True)
class AttributeRef:
    attribute_id: int
    name: str
    parent_set_name: str


@dataclass(frozen=True)
class LinkRef:
    link_type_id: int
    name: str
    source_set_name: str
    target_set_name: str


@dataclass(frozen=True)
class ResolutionGap:
    """An id that could not be mapped to a symbolic name.

    Attributes:
        raw_id: The integer found in the payload.
        kind: Hint that was active when the id was found.
        reason: Unknown id, or link type with unresolvable endpoints.
    """

    raw_id: int
    kind: RefKind
    reason: GapReason = GapReason.UNKNOWN_ID


Reference = Union[SetRef, AttributeRef, LinkRef, ResolutionGap]
REFERENCE_TYPES = (SetRef, AttributeRef, LinkRef, ResolutionGap)

_KEY_HINTS: dict[str, RefKind] = {
    "entityClassId": RefKind.SET,
    "entityClassIds": RefKind.SET,
    "classId": RefKind.SET,
    "attributeId": RefKind.ATTRIBUTE,
    "attributeIds": RefKind.ATTRIBUTE,
    "linkTypeId": RefKind.LINK,
    "linkTypeIds": RefKind.LINK,
}
_OPAQUE_KEY = "value"


def resolve_ids(payload: Any, index: MetadataIndex) -> Any:
    """Return a deep copy of a payload with ids replaced by references.

    Args:
        payload: JSON-compatible value.
        index: Lookup maps built from the active snapshot.

    Returns:
        Copy of the payload. When every index map is empty the copy is
        returned unchanged.
    """
    if index.is_empty:
        return copy.deepcopy(payload)
    return _transform(payload, RefKind.UNKNOWN, index)


def map_references(tree: Any, visit: Callable[[Reference], Any]) -> Any:
    """Fold a resolved tree, replacing every reference node via ``visit``.

    Mapping keys that are references are visited too.

    Args:
        tree: Output of ``resolve_ids``.
        visit: Function applied to each reference node.

    Returns:
        New tree with visited nodes substituted.
    """
    if isinstance(tree, REFERENCE_TYPES):
        return visit(tree)
    if isinstance(tree, Mapping):
        return {
            (visit(key) if isinstance(key, REFERENCE_TYPES) else key): map_references(
                child, visit
            )
            for key, child in tree.items()
        }
    if isinstance(tree, list):
        return [map_references(item, visit) for item in tree]
    return tree


def _transform(node: Any, hint: RefKind, index: MetadataIndex) -> Any:
    if isinstance(node, Mapping):
        return _transform_mapping(node, index)
    if isinstance(node, (list, tuple)):
        return [_transform(item, hint, index) for item in node]
    raw_id = parse_int_like(node)
    if raw_id is None:
        return node
    return _SCALAR_RESOLVERS[hint](raw_id, index)


def _transform_mapping(node: Mapping[Any, Any], index: MetadataIndex) -> dict[Any, Any]:
    result: dict[Any, Any] = {}
    for key, child in node.items():
        if key == _OPAQUE_KEY:
            result[key] = copy.deepcopy(child)
            continue
        hint = _KEY_HINTS.get(key, RefKind.UNKNOWN) if isinstance(key, str) else RefKind.UNKNOWN
        result[_rewrite_key(key, index)] = _transform(child, hint, index)
    return result


def _rewrite_key(key: Any, index: MetadataIndex) -> Any:
    set_id = parse_int_like(key) if isinstance(key, str) else None
    if set_id is None or set_id not in index.set_by_id:
        return key
    return _set_ref(set_id, index)


def _set_ref(set_id: int, index: MetadataIndex) -> SetRef:
    return SetRef(set_id=set_id, name=index.set_name(set_id) or str(set_id))


def _resolve_set(raw_id: int, index: MetadataIndex) -> Reference:
    if raw_id in index.set_by_id:
        return _set_ref(raw_id, index)
    return ResolutionGap(raw_id=raw_id, kind=RefKind.SET)


def _resolve_attribute(raw_id: int, index: MetadataIndex) -> Reference:
    entry = index.attribute_by_id.get(raw_id)
    if entry is None:
        return ResolutionGap(raw_id=raw_id, kind=RefKind.ATTRIBUTE)
    return AttributeRef(
        attribute_id=raw_id,
        name=entry.name,
        parent_set_name=entry.parent_set_name,
    )


def _resolve_link(raw_id: int, index: MetadataIndex) -> Reference:
    entry = index.link_type_by_id.get(raw_id)
    if entry is None:
        return ResolutionGap(raw_id=raw_id, kind=RefKind.LINK)
    source_name = index.set_name(entry.source_collection_id)
    target_name = index.set_name(entry.target_collection_id)
    if source_name is None or target_name is None:
        return ResolutionGap(
            raw_id=raw_id,
            kind=RefKind.LINK,
            reason=GapReason.MISSING_ENDPOINT,
        )
    return LinkRef(
        link_type_id=raw_id,
        name=entry.name,
        source_set_name=source_name,
        target_set_name=target_name,
    )


def _resolve_unknown(raw_id: int, index: MetadataIndex) -> Reference:
    # Sets win over attributes, attributes over link types.
    if raw_id in index.set_by_id:
        return _resolve_set(raw_id, index)
    if raw_id in index.attribute_by_id:
        return _resolve_attribute(raw_id, index)
    if raw_id in index.link_type_by_id:
        return _resolve_link(raw_id, index)
    return ResolutionGap(raw_id=raw_id, kind=RefKind.UNKNOWN)


_SCALAR_RESOLVERS: dict[RefKind, Callable[[int, MetadataIndex], Reference]] = {
    RefKind.SET: _resolve_set,
    RefKind.ATTRIBUTE: _resolve_attribute,
    RefKind.LINK: _resolve_link,
    RefKind.UNKNOWN: _resolve_unknown,
}
