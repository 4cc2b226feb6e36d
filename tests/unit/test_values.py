"""Typed value codecs backing every daemon key."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from mcpd_config.domain.errors import InvalidValue
from mcpd_config.domain.values import (
    HOUR,
    MILLISECOND,
    MINUTE,
    SECOND,
    Duration,
    ValueKind,
    coerce_stored,
    format_duration,
    format_value,
    parse_bool,
    parse_duration,
    parse_string_list,
    parse_value,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("30s", 30 * SECOND),
        ("1m30s", 90 * SECOND),
        ("2h", 2 * HOUR),
        ("250ms", 250 * MILLISECOND),
        ("1.5m", 90 * SECOND),
        ("0", 0),
        ("0s", 0),
        ("-5s", -5 * SECOND),
    ],
)
def test_parse_duration_accepts_compound_forms(text: str, expected: int) -> None:
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "soon", "10", "5 s", "1x", "s"])
def test_parse_duration_rejects_garbage(text: str) -> None:
    with pytest.raises(InvalidValue, match="invalid duration"):
        parse_duration(text)


def test_format_duration_prefers_the_largest_exact_unit() -> None:
    assert format_duration(5 * MINUTE) == "5m"
    assert format_duration(45 * SECOND) == "45s"
    assert format_duration(0) == "0s"
    assert format_duration(-2 * HOUR) == "-2h"


@given(st.integers(min_value=-(10**15), max_value=10**15))
def test_formatted_durations_parse_back_to_the_same_count(nanoseconds: int) -> None:
    assert parse_duration(format_duration(nanoseconds)) == nanoseconds


def test_duration_positive_flag() -> None:
    assert Duration.parse("1s").positive
    assert not Duration.parse("0s").positive
    assert str(Duration.parse("90s")) == "90s"


def test_parse_bool_is_case_insensitive_and_strict() -> None:
    assert parse_bool("True") is True
    assert parse_bool("FALSE") is False
    with pytest.raises(InvalidValue, match="invalid boolean"):
        parse_bool("yes")


def test_parse_string_list_trims_and_drops_empty_items() -> None:
    assert parse_string_list("GET, POST ,,") == ("GET", "POST")


def test_parse_value_treats_blank_input_as_clear() -> None:
    for kind in ValueKind:
        assert parse_value(kind, "  ") is None


def test_parse_value_rejects_overlong_strings() -> None:
    with pytest.raises(InvalidValue, match="maximum length"):
        parse_value(ValueKind.STRING, "x" * 5000)


def test_format_value_produces_toml_friendly_leaves() -> None:
    assert format_value(ValueKind.DURATION, Duration.parse("30s")) == "30s"
    assert format_value(ValueKind.STRING_LIST, ("a", "b")) == ["a", "b"]
    assert format_value(ValueKind.BOOL, None) is None


def test_coerce_stored_reads_durations_from_strings_and_integers() -> None:
    assert coerce_stored(ValueKind.DURATION, "10s") == Duration(10 * SECOND)
    assert coerce_stored(ValueKind.DURATION, 1_000) == Duration(1_000)


def test_coerce_stored_rejects_mismatched_types() -> None:
    with pytest.raises(InvalidValue):
        coerce_stored(ValueKind.BOOL, "true")
    with pytest.raises(InvalidValue):
        coerce_stored(ValueKind.STRING, 5)
