"""Nested predicate filtering over raw entity payloads.

This module evaluates AND-combined path filters against arbitrary
JSON-shaped entities. A filter that cannot be evaluated never matches,
and ``matches`` itself never raises.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Callable, Mapping, Sequence

from core.logging_config import get_logger
from core.types import FilterSpec, MatchType

_LOGGER = get_logger(__name__)

_MISSING = object()
_EXISTENCE_TRUE = frozenset({"true", "1", "yes"})
_BOOLEAN_TRUE = frozenset({"true", "yes", "1", "on"})
_BOOLEAN_FALSE = frozenset({"false", "no", "0", "off"})
_NULL_LITERALS = frozenset({"null", "undefined"})


def matches(entity: object, filters: Sequence[FilterSpec]) -> bool:
    """Return whether an entity satisfies every filter.

    Args:
        entity: Raw entity payload.
        filters: Filters to AND-combine; an empty list always matches.

    Returns:
        True when all filters match.
    """
    for filter_spec in filters:
        try:
            matched = _evaluate_filter(entity, filter_spec)
        except Exception as error:
            _LOGGER.debug(
                "filter_evaluation_failed",
                path=filter_spec.path,
                match_type=filter_spec.match_type.value,
                error=str(error),
            )
            matched = False
        if not matched:
            return False
    return True


def resolve_path(entity: object, path: str) -> object:
    """Resolve a dot-notation path against nested mappings and lists.

    Args:
        entity: Root payload.
        path: Dot-separated keys; integer segments index into lists.

    Returns:
        Resolved value, or None when any segment is missing.
    """
    current: object = entity
    for segment in path.split("."):
        current = _step(current, segment)
        if current is _MISSING:
            return None
    return current


def _step(current: object, segment: str) -> object:
    if isinstance(current, Mapping):
        return current.get(segment, _MISSING)
    if isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
        try:
            return current[int(segment)]
        except (ValueError, IndexError):
            return _MISSING
    return _MISSING


def _evaluate_filter(entity: object, filter_spec: FilterSpec) -> bool:
    path = filter_spec.path.strip()
    if path.endswith("?") or filter_spec.match_type is MatchType.EXISTS:
        trimmed_path = path[:-1] if path.endswith("?") else path
        expect_present = filter_spec.value.strip().lower() in _EXISTENCE_TRUE
        return (resolve_path(entity, trimmed_path) is not None) == expect_present

    resolved = resolve_path(entity, path)
    if resolved is None:
        return filter_spec.value.strip().lower() in _NULL_LITERALS

    if isinstance(resolved, bool):
        expected = _parse_boolean(filter_spec.value)
        return expected is not None and resolved == expected

    if filter_spec.match_type.is_relational:
        left = _to_number(resolved)
        right = _to_number(filter_spec.value)
        if left is None or right is None:
            return False
        return _RELATIONAL_EVALUATORS[filter_spec.match_type](left, right)

    actual = _to_text(resolved)
    expected_text = filter_spec.value
    if not filter_spec.case_sensitive and filter_spec.match_type is not MatchType.REGEX:
        actual = actual.lower()
        expected_text = expected_text.lower()
    return _TEXT_EVALUATORS[filter_spec.match_type](
        actual, expected_text, filter_spec.case_sensitive
    )


def _parse_boolean(raw_value: str) -> bool | None:
    text = raw_value.strip().lower()
    if text in _BOOLEAN_TRUE:
        return True
    if text in _BOOLEAN_FALSE:
        return False
    return None


def _to_number(value: object) -> float | None:
    """Coerce a scalar to a finite-or-infinite float, rejecting NaN."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def _to_text(value: object) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def _contains(actual: str, expected: str, _case_sensitive: bool) -> bool:
    return expected in actual


def _exact(actual: str, expected: str, _case_sensitive: bool) -> bool:
    return actual == expected


def _starts_with(actual: str, expected: str, _case_sensitive: bool) -> bool:
    return actual.startswith(expected)


def _ends_with(actual: str, expected: str, _case_sensitive: bool) -> bool:
    return actual.endswith(expected)


def _regex(actual: str, expected: str, case_sensitive: bool) -> bool:
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.search(expected, actual, flags) is not None


def _greater_than(left: float, right: float) -> bool:
    return left > right


def _less_than(left: float, right: float) -> bool:
    return left < right


def _greater_or_equal(left: float, right: float) -> bool:
    return left >= right


def _less_or_equal(left: float, right: float) -> bool:
    return left <= right


_TEXT_EVALUATORS: dict[MatchType, Callable[[str, str, bool], bool]] = {
    MatchType.CONTAINS: _contains,
    MatchType.EXACT: _exact,
    MatchType.STARTS_WITH: _starts_with,
    MatchType.ENDS_WITH: _ends_with,
    MatchType.REGEX: _regex,
}
_RELATIONAL_EVALUATORS: dict[MatchType, Callable[[float, float], bool]] = {
    MatchType.GT: _greater_than,
    MatchType.LT: _less_than,
    MatchType.GTE: _greater_or_equal,
    MatchType.LTE: _less_or_equal,
}


def _check_exhaustive() -> None:
    """Fail at import time if a match type has no evaluator."""
    handled: set[Any] = {MatchType.EXISTS}
    handled.update(_TEXT_EVALUATORS)
    handled.update(_RELATIONAL_EVALUATORS)
    missing = set(MatchType) - handled
    if missing:
        names = ", ".join(sorted(member.value for member in missing))
        raise RuntimeError(f"No filter evaluator registered for match types: {names}.")


_check_exhaustive()
