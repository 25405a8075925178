"""Paginated search over a cached metadata snapshot.

This module combines free-text matching, nested predicate filters,
and the id index into one ordered, paginated result.
"""

from __future__ import annotations

import locale
from typing import Sequence

from core.constants import DEFAULT_SEARCH_LIMIT, SEARCH_GUIDANCE_MESSAGE
from core.entity_ids import parse_int_like
from core.errors import MetalensQueryError
from core.types import (
    EntityCategory,
    FilterSpec,
    JsonObject,
    MetadataIndex,
    SearchHit,
    SearchPage,
    Snapshot,
)
from core.logging_config import get_logger
from store.metadata_filtering import matches

_LOGGER = get_logger(__name__)

_CATEGORY_ORDER = (EntityCategory.ATTRIBUTES, EntityCategory.SETS, EntityCategory.LINKS)


def configure_collation() -> None:
    """Adopt the user's environment locale for label collation.

    An unsupported environment locale keeps the current collation.
    """
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as error:
        _LOGGER.warning("collation_locale_unavailable", error=str(error))


def search(
    snapshot: Snapshot,
    index: MetadataIndex,
    term: str = "",
    filters: Sequence[FilterSpec] = (),
    entity_type: EntityCategory | str = EntityCategory.ALL,
    limit: int = DEFAULT_SEARCH_LIMIT,
    offset: int = 0,
) -> SearchPage:
    """Search cached entities by free text and filters.

    Args:
        snapshot: Snapshot holding the raw entity collections.
        index: Index built from the same snapshot.
        term: Case-insensitive substring of name, description, or id.
        filters: Predicates every hit must satisfy.
        entity_type: Category to search, or ``all``.
        limit: Maximum number of hits in the page.
        offset: Number of sorted candidates to skip.

    Returns:
        Page of hits with the pre-pagination total. An empty term with no
        filters on the first page yields a guidance page instead.

    Raises:
        MetalensQueryError: If the category or pagination is invalid.
    """
    category = _parse_category(entity_type)
    if limit < 0 or offset < 0:
        raise MetalensQueryError(
            f"Invalid pagination limit={limit} offset={offset}: both must be non-negative."
        )
    needle = term.lower()
    if not term and not filters and offset == 0:
        return SearchPage(total=0, hits=(), guidance=SEARCH_GUIDANCE_MESSAGE)

    candidates: list[SearchHit] = []
    for current in _CATEGORY_ORDER:
        if category is not EntityCategory.ALL and category is not current:
            continue
        for entity in _collection(snapshot, current):
            if _matches_term(entity, needle) and matches(entity, filters):
                candidates.append(_build_hit(current, entity, index))

    candidates.sort(key=lambda hit: locale.strxfrm(hit.label.casefold()))
    return SearchPage(total=len(candidates), hits=tuple(candidates[offset : offset + limit]))


def _parse_category(entity_type: EntityCategory | str) -> EntityCategory:
    try:
        return EntityCategory(entity_type)
    except ValueError as error:
        choices = ", ".join(member.value for member in EntityCategory)
        raise MetalensQueryError(
            f"Unsupported entity type '{entity_type}'. Use one of: {choices}."
        ) from error


def _collection(snapshot: Snapshot, category: EntityCategory) -> tuple[JsonObject, ...]:
    if category is EntityCategory.ATTRIBUTES:
        return snapshot.attributes
    if category is EntityCategory.SETS:
        return snapshot.sets
    return snapshot.link_types


def _matches_term(entity: JsonObject, needle: str) -> bool:
    if not needle:
        return True
    for field_name in ("name", "description", "id"):
        value = entity.get(field_name)
        if value is not None and needle in str(value).lower():
            return True
    return False


def _build_hit(category: EntityCategory, entity: JsonObject, index: MetadataIndex) -> SearchHit:
    entity_id = entity.get("id")
    name = entity.get("name")
    label = str(name) if name not in (None, "") else str(entity_id)
    parent_set_name = None
    if category is EntityCategory.ATTRIBUTES:
        parent_set_name = index.set_name(parse_int_like(entity.get("classId")))
    return SearchHit(
        category=category,
        entity_id=entity_id,
        label=label,
        entity=entity,
        parent_set_name=parent_set_name,
    )
