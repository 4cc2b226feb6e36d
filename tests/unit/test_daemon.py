"""Daemon schema registry and the path-addressable daemon section."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from mcpd_config.domain.daemon import DaemonSection, is_valid_address, is_valid_origin
from mcpd_config.domain.errors import InvalidPath, InvalidValue, UnknownKey, ValidationError
from mcpd_config.domain.results import OperationResult
from mcpd_config.domain.schema import DAEMON_KEYS, available_keys, keys_under, lookup, normalize_path
from mcpd_config.domain.values import Duration, ValueKind

_SAMPLES = {
    ValueKind.STRING: st.sampled_from(["localhost:8090", "0.0.0.0:9000", ":80"]),
    ValueKind.BOOL: st.sampled_from(["true", "false", "TRUE"]),
    ValueKind.DURATION: st.sampled_from(["1s", "30s", "5m", "1h30m", "250ms"]),
    ValueKind.STRING_LIST: st.sampled_from(["GET", "GET,POST", "*", "a, b ,c"]),
}


def test_registry_declares_every_key_once() -> None:
    paths = [key.path for key in DAEMON_KEYS]
    assert len(paths) == len(set(paths))
    assert "api.cors.allow_credentials" in paths
    assert "mcp.interval.health" in paths


def test_available_keys_are_sorted() -> None:
    paths = [key.path for key in available_keys()]
    assert paths == sorted(paths)


def test_lookup_normalises_and_rejects_unknown_paths() -> None:
    assert lookup(" API.Addr ").kind is ValueKind.STRING
    with pytest.raises(UnknownKey, match="unknown daemon config key: api.nope"):
        lookup("api.nope")
    with pytest.raises(InvalidPath):
        normalize_path("api..addr")


def test_keys_under_returns_subtree_members() -> None:
    assert [key.path for key in keys_under("mcp.timeout")] == [
        "mcp.timeout.shutdown",
        "mcp.timeout.init",
        "mcp.timeout.health",
    ]


@given(st.sampled_from(DAEMON_KEYS).flatmap(lambda key: st.tuples(st.just(key), _SAMPLES[key.kind])))
def test_set_then_get_returns_the_parsed_value(pair) -> None:
    key, raw = pair
    section = DaemonSection()
    section.set(key.path, raw)
    assert section.get(key.path) == key.parse(raw)


@given(st.sampled_from(DAEMON_KEYS).flatmap(lambda key: st.tuples(st.just(key), _SAMPLES[key.kind])))
def test_set_then_remove_leaves_the_key_absent(pair) -> None:
    key, raw = pair
    section = DaemonSection()
    section.set(key.path, raw)
    assert section.remove(key.path) is OperationResult.DELETED
    assert section.get(key.path) is None
    assert DaemonSection.from_mapping(section.to_mapping()) == section


def test_set_reports_each_operation_result() -> None:
    section = DaemonSection()
    assert section.set("api.timeout.shutdown", "30s") is OperationResult.CREATED
    assert section.set("api.timeout.shutdown", "30s") is OperationResult.NOOP
    assert section.set("api.timeout.shutdown", "1m") is OperationResult.UPDATED
    assert section.set("api.timeout.shutdown", "") is OperationResult.DELETED
    assert section.remove("api.timeout.shutdown") is OperationResult.NOOP


def test_set_rejects_non_positive_durations_and_bad_booleans() -> None:
    section = DaemonSection()
    with pytest.raises(InvalidValue, match="duration must be positive"):
        section.set("mcp.timeout.init", "0s")
    with pytest.raises(InvalidValue, match="invalid value for 'api.cors.enable'"):
        section.set("api.cors.enable", "maybe")


def test_get_returns_subtrees_and_whole_tree() -> None:
    section = DaemonSection()
    section.set("api.addr", "localhost:8090")
    section.set("api.cors.enable", "true")
    section.set("mcp.interval.health", "10s")
    assert section.get("api", "cors") == {"enable": True}
    assert section.get("api.cors") == {"enable": True}
    assert section.get() == {
        "api": {"addr": "localhost:8090", "cors": {"enable": True}},
        "mcp": {"interval": {"health": Duration.parse("10s")}},
    }
    with pytest.raises(UnknownKey):
        section.get("api.unknown")


def test_to_mapping_nests_keys_and_formats_leaves() -> None:
    section = DaemonSection()
    section.set("api.cors.methods", "GET,POST")
    section.set("api.timeout.shutdown", "30s")
    assert section.to_mapping() == {"api": {"timeout": {"shutdown": "30s"}, "cors": {"methods": ["GET", "POST"]}}}


def test_from_mapping_keeps_zero_durations_for_validation() -> None:
    section = DaemonSection.from_mapping(
        {"api": {"addr": "invalid-address", "timeout": {"shutdown": "0s"}, "cors": {"methods": ["INVALID_METHOD"]}}}
    )
    with pytest.raises(ValidationError) as info:
        section.validate()
    text = str(info.value)
    assert "API address" in text
    assert "timeout" in text
    assert "method" in text
    assert len(info.value.errors) == 3


def test_from_mapping_rejects_unknown_keys() -> None:
    with pytest.raises(UnknownKey):
        DaemonSection.from_mapping({"api": {"port": 80}})


def test_validation_covers_mcp_timeouts_and_cors_details() -> None:
    section = DaemonSection.from_mapping(
        {
            "api": {"cors": {"allow_origins": ["*", "http://bad host"], "max_age": "0s", "methods": ["*", "GET"]}},
            "mcp": {"timeout": {"health": "0s"}, "interval": {"health": "0s"}},
        }
    )
    errors = section.validation_errors()
    assert "API configuration error: CORS configuration error: invalid origin address: http://bad host" in errors
    assert "API configuration error: CORS configuration error: CORS max age must be positive" in errors
    assert "MCP configuration error: timeout configuration error: MCP health timeout must be positive" in errors
    assert "MCP configuration error: interval configuration error: MCP health interval must be positive" in errors
    assert len(errors) == 4


@pytest.mark.parametrize("addr", ["localhost:8090", ":8090", "127.0.0.1:80", "[::1]:443"])
def test_valid_addresses(addr: str) -> None:
    assert is_valid_address(addr)


@pytest.mark.parametrize("addr", ["invalid-address", "host:0", "host:port", "a:b:c"])
def test_invalid_addresses(addr: str) -> None:
    assert not is_valid_address(addr)


def test_origin_validation() -> None:
    assert is_valid_origin("https://example.com")
    assert not is_valid_origin("https://example.com/path")
