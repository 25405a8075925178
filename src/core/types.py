"""Shared typed models.

This module defines immutable data models used by the remote client,
cache store, index, search, and templating layers to keep interfaces
explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

JsonObject = Mapping[str, Any]


class EntityCategory(str, Enum):
    """Entity collections that search can be restricted to."""

    ALL = "all"
    ATTRIBUTES = "attributes"
    SETS = "sets"
    LINKS = "links"


class MatchType(str, Enum):
    """Closed set of predicate kinds understood by the filter evaluator."""

    CONTAINS = "contains"
    EXACT = "exact"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    REGEX = "regex"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    EXISTS = "exists"

    @classmethod
    def parse(cls, raw_value: object) -> "MatchType":
        """Parse a match type name, defaulting to ``contains``.

        Args:
            raw_value: Match type name such as ``startsWith`` or ``gt``.

        Returns:
            Parsed match type; unknown or missing names map to CONTAINS.
        """
        if isinstance(raw_value, MatchType):
            return raw_value
        text = str(raw_value or "").strip()
        for member in cls:
            if member.value.lower() == text.lower():
                return member
        return cls.CONTAINS

    @property
    def is_relational(self) -> bool:
        """Return whether this predicate compares numbers."""
        return self in (MatchType.GT, MatchType.LT, MatchType.GTE, MatchType.LTE)


class CacheStatus(str, Enum):
    """Where the active snapshot came from."""

    FRESH = "fresh"
    CACHED = "cached"
    EMPTY = "empty"


@dataclass(frozen=True)
class FilterSpec:
    """One nested-path predicate applied to a raw entity.

    Attributes:
        path: Dot-notation path; a trailing ``?`` tests existence only.
        value: Expected value as text.
        match_type: Predicate kind.
        case_sensitive: Whether textual comparisons keep case.
    """

    path: str
    value: str
    match_type: MatchType = MatchType.CONTAINS
    case_sensitive: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "FilterSpec":
        """Build a filter from a JSON/YAML mapping.

        Args:
            payload: Mapping with ``path``, ``value``, optional ``matchType``
                and ``caseSensitive`` keys.

        Returns:
            Parsed filter spec.
        """
        raw_match_type = payload.get("matchType", payload.get("match_type"))
        raw_case = payload.get("caseSensitive", payload.get("case_sensitive", False))
        return cls(
            path=str(payload.get("path", "")),
            value=_filter_value_text(payload.get("value", "")),
            match_type=MatchType.parse(raw_match_type),
            case_sensitive=bool(raw_case),
        )


@dataclass(frozen=True)
class Snapshot:
    """Full-replacement cache record of all entity collections for one origin.

    Attributes:
        origin_key: Normalized origin of the host application.
        attributes: Raw attribute payloads as returned by the server.
        sets: Raw set payloads.
        link_types: Raw link type payloads.
        timestamp: UTC time the collections were fetched.
    """

    origin_key: str
    attributes: tuple[JsonObject, ...]
    sets: tuple[JsonObject, ...]
    link_types: tuple[JsonObject, ...]
    timestamp: datetime


@dataclass(frozen=True)
class AttributeIndexEntry:
    """Index entry for an attribute whose owning set is known."""

    name: str
    parent_set_name: str
    set_id: int


@dataclass(frozen=True)
class LinkTypeIndexEntry:
    """Index entry for a link type and its endpoint collections."""

    name: str
    source_collection_id: int | None
    target_collection_id: int | None


@dataclass(frozen=True)
class MetadataIndex:
    """Derived id lookup maps rebuilt from a snapshot.

    Attributes:
        set_by_id: Raw set payload by set id.
        attribute_by_id: Attribute entry by attribute id.
        link_type_by_id: Link type entry by link type id.
    """

    set_by_id: Mapping[int, JsonObject] = field(default_factory=dict)
    attribute_by_id: Mapping[int, AttributeIndexEntry] = field(default_factory=dict)
    link_type_by_id: Mapping[int, LinkTypeIndexEntry] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """Return whether all three maps are empty."""
        return not (self.set_by_id or self.attribute_by_id or self.link_type_by_id)

    def set_name(self, set_id: int | None) -> str | None:
        """Return the name of a known set, or None."""
        if set_id is None or set_id not in self.set_by_id:
            return None
        return str(self.set_by_id[set_id].get("name", set_id))


@dataclass(frozen=True)
class TruncateResult:
    """Outcome of a set truncate call."""

    success: bool
    message: str


@dataclass(frozen=True)
class SearchHit:
    """One search result row.

    Attributes:
        category: Entity collection the hit came from.
        entity_id: Raw id of the entity.
        label: Display label used for ordering.
        entity: Raw entity payload.
        parent_set_name: Owning set name for attributes, when known.
    """

    category: EntityCategory
    entity_id: object
    label: str
    entity: JsonObject
    parent_set_name: str | None = None


@dataclass(frozen=True)
class SearchPage:
    """Paginated search result.

    Attributes:
        total: Candidate count before pagination.
        hits: Hits in the requested window.
        guidance: Message shown instead of results when no criteria were given.
    """

    total: int
    hits: tuple[SearchHit, ...]
    guidance: str | None = None


def _filter_value_text(raw_value: object) -> str:
    """Render a YAML/JSON filter value as the text the evaluator expects."""
    if raw_value is None:
        return "null"
    if isinstance(raw_value, bool):
        return "true" if raw_value else "false"
    return str(raw_value)
