"""Rendering of resolved payloads into template expressions.

Reference nodes become ``{{ kind(...) }}`` expressions and resolution
gaps become ``<<...>>`` markers, so a rendered payload is plain JSON.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from core.logging_config import get_logger
from core.types import MetadataIndex
from templating.id_resolver import (
    AttributeRef,
    GapReason,
    LinkRef,
    RefKind,
    Reference,
    ResolutionGap,
    SetRef,
    map_references,
    resolve_ids,
)

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class TemplateResult:
    """Rendered payload plus the gaps found while resolving it."""

    payload: Any
    gaps: tuple[ResolutionGap, ...]


def rewrite_template(payload: Any, index: MetadataIndex) -> TemplateResult:
    """Resolve ids in a payload and render it as a template.

    Args:
        payload: JSON-compatible context payload.
        index: Lookup maps built from the active snapshot.

    Returns:
        Rendered payload and the resolution gaps it contains.
    """
    tree = resolve_ids(payload, index)
    gaps = tuple(collect_gaps(tree))
    if gaps:
        _LOGGER.info("template_resolution_gaps", gap_count=len(gaps))
    return TemplateResult(payload=render_template(tree), gaps=gaps)


def render_template(tree: Any) -> Any:
    """Render every reference node of a resolved tree as text."""
    return map_references(tree, render_reference)


def collect_gaps(tree: Any) -> list[ResolutionGap]:
    """Return every resolution gap in a resolved tree, in traversal order."""
    gaps: list[ResolutionGap] = []

    def _collect(reference: Reference) -> Reference:
        if isinstance(reference, ResolutionGap):
            gaps.append(reference)
        return reference

    map_references(tree, _collect)
    return gaps


def render_reference(reference: Reference) -> str:
    """Render one reference node.

    Args:
        reference: Set, attribute, or link reference, or a gap.

    Returns:
        Template expression or unresolved-id marker.
    """
    if isinstance(reference, SetRef):
        return f"{{{{ set({_quote(reference.name)}) }}}}"
    if isinstance(reference, AttributeRef):
        return (
            f"{{{{ attribute({_quote(reference.name)}, "
            f"{_quote(reference.parent_set_name)}) }}}}"
        )
    if isinstance(reference, LinkRef):
        return (
            f"{{{{ link({_quote(reference.name)}, {_quote(reference.source_set_name)}, "
            f"{_quote(reference.target_set_name)}) }}}}"
        )
    return _render_gap(reference)


def _render_gap(gap: ResolutionGap) -> str:
    if gap.reason is GapReason.MISSING_ENDPOINT:
        return f"<<link {gap.raw_id} missing source/target set>>"
    if gap.kind is RefKind.UNKNOWN:
        return f"<<unresolved id {gap.raw_id}>>"
    return f"<<unresolved {gap.kind.value} id {gap.raw_id}>>"


def _quote(name: str) -> str:
    return json.dumps(name, ensure_ascii=False)
