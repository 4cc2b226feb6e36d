"""Argument normalisation, merging and removal rules."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from mcpd_config.domain.args import flag_name, merge_args, normalize_args, remove_matching_flags, required_arg_names

_flag_names = st.sampled_from(["--port", "--verbose", "--repo", "--local-timezone"])
_tokens = st.one_of(
    _flag_names,
    st.builds(lambda name, value: f"{name}={value}", _flag_names, st.sampled_from(["1", "true", "x/y"])),
    st.sampled_from(["-v", "input.txt", "--"]),
)


def test_flag_name_ignores_short_flags_and_positionals() -> None:
    assert flag_name("--port=1") == "--port"
    assert flag_name(" --debug ") == "--debug"
    assert flag_name("-p") is None
    assert flag_name("--") is None


def test_normalize_collapses_long_flag_followed_by_value() -> None:
    assert normalize_args(["--repo", "mozilla-ai/mcpd"]) == ["--repo=mozilla-ai/mcpd"]


def test_normalize_keeps_flag_bare_when_next_token_is_a_flag() -> None:
    assert normalize_args(["--verbose", "--port", "8080"]) == ["--verbose", "--port=8080"]


def test_normalize_honours_declared_boolean_flags() -> None:
    assert normalize_args(["--dry-run", "target"], boolean_flags={"--dry-run"}) == ["--dry-run", "target"]


def test_normalize_drops_blank_and_duplicate_tokens() -> None:
    assert normalize_args([" --a=1 ", "", "--a=1", "  "]) == ["--a=1"]


@given(st.lists(_tokens, max_size=12))
def test_normalize_is_idempotent(tokens: list[str]) -> None:
    once = normalize_args(tokens)
    assert normalize_args(once) == once


def test_merge_replaces_inline_values_in_place() -> None:
    existing = ["--port=8080", "--verbose", "--port=9000", "input.txt"]
    assert merge_args(existing, ["--port=1234", "--debug"]) == ["--port=1234", "--verbose", "input.txt", "--debug"]


def test_merge_never_reorders_existing_tokens() -> None:
    existing = ["b", "--a=1", "c"]
    assert merge_args(existing, ["c", "d"]) == ["b", "--a=1", "c", "d"]


def test_remove_matching_flags_removes_bare_and_valued_forms() -> None:
    tokens = ["--verbose", "--verbose=true", "--port=8080"]
    assert remove_matching_flags(tokens, ["--verbose"]) == ["--port=8080"]


def test_remove_matching_flags_accepts_valued_names_and_positionals() -> None:
    tokens = ["--port=8080", "input.txt", "--debug"]
    assert remove_matching_flags(tokens, ["--port=1", "input.txt"]) == ["--debug"]


@given(st.lists(_tokens, max_size=12), st.lists(_tokens, max_size=4))
def test_remove_matching_flags_is_idempotent(tokens: list[str], names: list[str]) -> None:
    once = remove_matching_flags(tokens, names)
    assert remove_matching_flags(once, names) == once


def test_required_arg_names_are_distinct_flag_names() -> None:
    assert required_arg_names(["--repo=x", "--repo", "pos", "--token"]) == ["--repo", "--token"]
