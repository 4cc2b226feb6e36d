"""Document aggregate: server upserts, validation and TOML mapping shape."""

from __future__ import annotations

import pytest

from mcpd_config.domain.document import Document, DocumentKind, ServerEntry
from mcpd_config.domain.errors import InvalidFormat, InvalidValue, MissingArgument, NotFound, ValidationError
from mcpd_config.domain.plugins import Category, PluginEntry
from mcpd_config.domain.results import OperationResult


def _contract_server(name: str = "time", **fields) -> ServerEntry:
    return ServerEntry.create(name, package=fields.pop("package", "uvx::mcp-server-time@latest"), **fields)


def test_contract_upsert_create_noop_update() -> None:
    document = Document(DocumentKind.CONTRACT)
    assert document.upsert(_contract_server(tools=["get_current_time"])) is OperationResult.CREATED
    assert document.upsert(_contract_server(tools=["get_current_time"])) is OperationResult.NOOP
    assert document.upsert(_contract_server(tools=["convert_time"])) is OperationResult.UPDATED
    assert document.names() == ["time"]


def test_set_like_fields_ignore_order() -> None:
    assert _contract_server(required_env=["B", "A"]) == _contract_server(required_env=["A", "B", "A"])


def test_context_upsert_without_values_deletes_or_noops() -> None:
    document = Document(DocumentKind.CONTEXT)
    assert document.upsert(ServerEntry("time")) is OperationResult.NOOP
    assert document.upsert(ServerEntry("time", args=("--x=1",))) is OperationResult.CREATED
    assert document.upsert(ServerEntry("time")) is OperationResult.DELETED
    assert document.get("time") == (None, False)


def test_upsert_rejects_bad_names() -> None:
    document = Document(DocumentKind.CONTEXT)
    with pytest.raises(MissingArgument):
        document.upsert(ServerEntry(" ", env={"A": "1"}))
    with pytest.raises(InvalidValue, match="invalid server name"):
        document.upsert(ServerEntry("has space", env={"A": "1"}))


def test_delete_unknown_server_is_not_found() -> None:
    document = Document(DocumentKind.CONTRACT, servers=[_contract_server()])
    assert document.delete("time") is OperationResult.DELETED
    with pytest.raises(NotFound, match="server 'time' not found in config"):
        document.delete("time")


def test_validation_collects_server_daemon_and_plugin_errors() -> None:
    document = Document(
        DocumentKind.CONTRACT,
        servers=[_contract_server(package=" "), _contract_server("dup"), _contract_server("dup")],
    )
    document.ensure_daemon().set("api.addr", "nowhere")
    document.ensure_plugins()._entries[Category.AUDIT].append(PluginEntry("logger", ()))
    with pytest.raises(ValidationError) as info:
        document.validate()
    errors = info.value.errors
    assert "server entry 'time' has empty package" in errors
    assert "duplicate server name 'dup'" in errors
    assert any(error.startswith("daemon configuration error: API configuration error: API address") for error in errors)
    assert "plugin configuration error: plugin 'logger' in category 'audit': at least one flow is required" in errors


def test_plugin_helpers_require_a_catalogue() -> None:
    document = Document(DocumentKind.CONTRACT)
    assert document.list_plugins(Category.AUDIT) == []
    assert document.plugin(Category.AUDIT, "x") == (None, False)
    with pytest.raises(NotFound, match="no plugins configured"):
        document.delete_plugin(Category.AUDIT, "x")
    document.upsert_plugin(Category.AUDIT, PluginEntry("x", ("response",)))
    assert document.all_categories() == {Category.AUDIT: [PluginEntry("x", ("response",))]}


def test_contract_mapping_shape() -> None:
    document = Document(DocumentKind.CONTRACT, servers=[_contract_server(required_args=["--local-timezone"])])
    document.ensure_daemon().set("api.timeout.shutdown", "30s")
    document.ensure_plugins().dir = "/plugins"
    assert document.to_mapping() == {
        "servers": [
            {
                "name": "time",
                "package": "uvx::mcp-server-time@latest",
                "required_args": ["--local-timezone"],
            }
        ],
        "daemon": {"api": {"timeout": {"shutdown": "30s"}}},
        "plugins": {"dir": "/plugins"},
    }


def test_context_mapping_shape_and_round_trip() -> None:
    document = Document(DocumentKind.CONTEXT)
    document.upsert(ServerEntry("time", args=("--local-timezone=Europe/London",), env={"TZ": "Europe/London"}))
    data = document.to_mapping()
    assert data == {"servers": {"time": {"args": ["--local-timezone=Europe/London"], "env": {"TZ": "Europe/London"}}}}
    assert Document.from_mapping(data, DocumentKind.CONTEXT) == document


def test_empty_sections_are_not_serialised() -> None:
    document = Document(DocumentKind.CONTRACT)
    document.ensure_daemon()
    document.ensure_plugins()
    assert document.to_mapping() == {"servers": []}


@pytest.mark.parametrize(
    ("data", "kind"),
    [
        ({"servers": {"time": {}}}, DocumentKind.CONTRACT),
        ({"servers": [{"name": "time"}]}, DocumentKind.CONTEXT),
        ({"servers": {"time": {"env": {"A": 1}}}}, DocumentKind.CONTEXT),
        ({"servers": [], "daemon": "x"}, DocumentKind.CONTRACT),
        ({"servers": [], "plugins": {"authentication": ["jwt"]}}, DocumentKind.CONTRACT),
    ],
)
def test_from_mapping_rejects_malformed_tables(data, kind) -> None:
    with pytest.raises(InvalidFormat):
        Document.from_mapping(data, kind)


def test_context_keeps_tables_it_does_not_edit() -> None:
    data = {
        "servers": {
            "time": {
                "args": ["--a=1"],
                "volumes": {"data": {"from": "/x", "to": "/y"}},
            }
        }
    }
    document = Document.from_mapping(data, DocumentKind.CONTEXT)
    entry, _ = document.get("time")
    document.upsert(entry.with_args(["--a=1", "--b=2"]))
    assert document.to_mapping() == {
        "servers": {
            "time": {
                "args": ["--a=1", "--b=2"],
                "volumes": {"data": {"from": "/x", "to": "/y"}},
            }
        }
    }


def test_clearing_args_keeps_server_with_other_tables() -> None:
    document = Document.from_mapping(
        {"servers": {"time": {"args": ["--a=1"], "volumes": {"data": {"from": "/x"}}}}}, DocumentKind.CONTEXT
    )
    entry, _ = document.get("time")
    assert document.upsert(entry.with_args(())) is OperationResult.UPDATED
    assert document.to_mapping() == {"servers": {"time": {"volumes": {"data": {"from": "/x"}}}}}
