"""Loader pipeline: load-or-initialise, validate-then-save, opt-in checks."""

from __future__ import annotations

import stat
from pathlib import Path

import pytest

from mcpd_config.adapters.file_store.toml import TOMLDocumentStore
from mcpd_config.application.loader import (
    DocumentLoader,
    ValidatingLoader,
    plugin_directory_error,
    validate_plugin_binaries,
    validate_schema,
)
from mcpd_config.domain.document import Document, DocumentKind, ServerEntry
from mcpd_config.domain.errors import InvalidFormat, InvalidValue, ValidationError
from mcpd_config.domain.plugins import Category, PluginEntry


def _loader() -> DocumentLoader:
    return DocumentLoader(TOMLDocumentStore())


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


def test_missing_file_yields_empty_document_without_writing(tmp_path: Path) -> None:
    target = tmp_path / ".mcpd.toml"
    document = _loader().load(target, DocumentKind.CONTRACT)
    assert document.servers == [] and document.path == target
    assert not target.exists()


def test_save_then_load_round_trips(tmp_path: Path) -> None:
    target = tmp_path / ".mcpd.toml"
    document = Document(
        DocumentKind.CONTRACT,
        path=target,
        servers=[ServerEntry.create("time", package="uvx::mcp-server-time@latest", tools=["get_current_time"])],
    )
    document.ensure_daemon().set("api.cors.enable", "false")
    document.upsert_plugin(Category.AUTHENTICATION, PluginEntry("jwt-auth", ("request",), required=True))
    _loader().save(document)
    assert _loader().load(target, DocumentKind.CONTRACT) == document


def test_context_documents_are_private(tmp_path: Path) -> None:
    target = tmp_path / "mcpd" / "secrets.dev.toml"
    document = Document(DocumentKind.CONTEXT, path=target, servers=[ServerEntry("time", env={"TZ": "UTC"})])
    _loader().save(document)
    assert _mode(target) == 0o600
    assert _mode(target.parent) == 0o700


def test_save_can_force_regular_permissions(tmp_path: Path) -> None:
    document = Document(DocumentKind.CONTEXT, servers=[ServerEntry("time", env={"TZ": "UTC"})])
    written = _loader().save(document, path=tmp_path / "portable.toml", secure=False)
    assert _mode(written) == 0o644


def test_invalid_documents_never_reach_disk(tmp_path: Path) -> None:
    target = tmp_path / ".mcpd.toml"
    target.write_text('servers = []\n', encoding="utf-8")
    document = _loader().load(target, DocumentKind.CONTRACT)
    document.servers.append(ServerEntry.create("time"))
    with pytest.raises(ValidationError, match="empty package"):
        _loader().save(document)
    assert target.read_text(encoding="utf-8") == "servers = []\n"


def test_save_requires_a_path() -> None:
    with pytest.raises(InvalidValue, match="config file path not present"):
        _loader().save(Document(DocumentKind.CONTRACT))


def test_unknown_daemon_keys_surface_as_invalid_format(tmp_path: Path) -> None:
    target = tmp_path / ".mcpd.toml"
    target.write_text("servers = []\n[daemon.api]\nport = 1\n", encoding="utf-8")
    with pytest.raises(InvalidFormat, match="unknown daemon config key"):
        _loader().load(target, DocumentKind.CONTRACT)


def test_plugin_items_that_are_not_tables_surface_as_invalid_format(tmp_path: Path) -> None:
    target = tmp_path / ".mcpd.toml"
    target.write_text('servers = []\n[plugins]\nauthentication = ["jwt"]\n', encoding="utf-8")
    with pytest.raises(InvalidFormat, match="plugins.authentication must be an array of tables"):
        _loader().load(target, DocumentKind.CONTRACT)


def test_validating_loader_accumulates_every_check(tmp_path: Path) -> None:
    target = tmp_path / ".mcpd.toml"
    target.write_text(
        'servers = [{name = "bad name", package = ""}]\n[[plugins.audit]]\nname = "logger"\nflows = ["response"]\n',
        encoding="utf-8",
    )
    loader = ValidatingLoader(_loader(), validate_schema, validate_plugin_binaries)
    with pytest.raises(ValidationError) as info:
        loader.load(target, DocumentKind.CONTRACT)
    assert info.value.errors == (
        "invalid server name 'bad name'",
        "server entry 'bad name' has empty package",
        "Plugin directory not configured (required for --check-binaries)",
    )


def test_plugin_binary_checks(tmp_path: Path) -> None:
    plugins = tmp_path / "plugins"
    document = Document(DocumentKind.CONTRACT)
    document.upsert_plugin(Category.AUDIT, PluginEntry("logger", ("response",)))
    document.upsert_plugin(Category.AUTHENTICATION, PluginEntry("jwt-auth", ("request",)))
    document.plugins.dir = str(plugins)
    assert plugin_directory_error(document) == f"Plugin directory does not exist: {plugins}"
    plugins.mkdir()
    (plugins / "logger").write_text("", encoding="utf-8")
    assert plugin_directory_error(document) is None
    assert validate_plugin_binaries(document) == [f"plugin jwt-auth not found in directory {plugins}"]
