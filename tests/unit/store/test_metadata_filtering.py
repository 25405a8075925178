"""Unit tests for nested predicate filtering."""

from __future__ import annotations

import pytest

from core.types import FilterSpec, MatchType
from store.metadata_filtering import matches, resolve_path
from tests.sample_metadata import sample_attributes, sample_link_types

_EMAIL = sample_attributes()[0]
_OWNS = sample_link_types()[0]


@pytest.mark.parametrize("entity", [{}, {"a": 1}, [], None, "text"])
def test_empty_filter_list_always_matches(entity: object) -> None:
    """No filters should match any entity."""
    assert matches(entity, [])


def test_gt_compares_nested_numbers() -> None:
    """Relational filters should coerce both sides to numbers."""
    spec = FilterSpec(path="a.b", value="5", match_type=MatchType.GT)

    assert (matches({"a": {"b": 10}}, [spec]), matches({"a": {"b": "x"}}, [spec])) == (True, False)


def test_relational_filter_rejects_non_numeric_value() -> None:
    """A non-numeric filter value never matches relationally."""
    spec = FilterSpec(path="a", value="many", match_type=MatchType.LTE)

    assert not matches({"a": 3}, [spec])


def test_existence_suffix_tests_presence_only() -> None:
    """A trailing question mark checks whether the path is present."""
    present = FilterSpec(path="description?", value="yes")
    absent = FilterSpec(path="description?", value="false")

    assert (matches(_EMAIL, [present]), matches(_EMAIL, [absent])) == (True, False)


def test_exists_match_type_treats_null_as_absent() -> None:
    """Explicit nulls count as missing for existence checks."""
    spec = FilterSpec(path="description", value="false", match_type=MatchType.EXISTS)

    assert matches({"description": None}, [spec])


def test_missing_value_matches_only_null_literals() -> None:
    """Missing paths match the literal texts null and undefined only."""
    null_spec = FilterSpec(path="configuration", value="null")
    undefined_spec = FilterSpec(path="configuration", value="undefined")
    other_spec = FilterSpec(path="configuration", value="x")

    assert (
        matches(_EMAIL, [null_spec]),
        matches(_EMAIL, [undefined_spec]),
        matches(_EMAIL, [other_spec]),
    ) == (True, True, False)


def test_boolean_values_use_fixed_vocabulary() -> None:
    """Boolean fields compare against parsed on/off words."""
    on_spec = FilterSpec(path="properties.indexed", value="on")
    off_spec = FilterSpec(path="properties.indexed", value="no")
    junk_spec = FilterSpec(path="properties.indexed", value="maybe")

    assert (
        matches(_EMAIL, [on_spec]),
        matches(_EMAIL, [off_spec]),
        matches(_EMAIL, [junk_spec]),
    ) == (True, False, False)


def test_text_operators_respect_case_sensitivity() -> None:
    """Case-insensitive text matching is the default."""
    insensitive = FilterSpec(path="name", value="EMA", match_type=MatchType.STARTS_WITH)
    sensitive = FilterSpec(
        path="name",
        value="EMA",
        match_type=MatchType.STARTS_WITH,
        case_sensitive=True,
    )

    assert (matches(_EMAIL, [insensitive]), matches(_EMAIL, [sensitive])) == (True, False)


def test_exact_ends_with_and_contains() -> None:
    """Text operators should dispatch to their own comparisons."""
    filters = [
        FilterSpec(path="dataType", value="string", match_type=MatchType.EXACT),
        FilterSpec(path="name", value="ail", match_type=MatchType.ENDS_WITH),
        FilterSpec(path="description", value="contact"),
    ]

    assert matches(_EMAIL, filters)


def test_regex_uses_case_flag() -> None:
    """Regex filters are case-insensitive unless requested otherwise."""
    insensitive = FilterSpec(path="name", value="^OW", match_type=MatchType.REGEX)
    sensitive = FilterSpec(path="name", value="^OW", match_type=MatchType.REGEX, case_sensitive=True)

    assert (matches(_OWNS, [insensitive]), matches(_OWNS, [sensitive])) == (True, False)


def test_invalid_regex_does_not_match_or_raise() -> None:
    """Evaluation errors mean the filter does not match."""
    spec = FilterSpec(path="name", value="(unclosed", match_type=MatchType.REGEX)

    assert not matches(_OWNS, [spec])


def test_filters_are_and_combined() -> None:
    """Every filter has to match."""
    filters = [
        FilterSpec(path="config.linkStorage.mode", value="inline", match_type=MatchType.EXACT),
        FilterSpec(path="directed", value="false"),
    ]

    assert not matches(_OWNS, filters)


def test_resolve_path_indexes_into_lists() -> None:
    """Integer segments should index into sequences."""
    assert resolve_path({"items": [{"id": 1}, {"id": 2}]}, "items.1.id") == 2
