"""TOML document store: parsing, atomic replacement and permissions."""

from __future__ import annotations

import stat
from pathlib import Path

import pytest

from mcpd_config.adapters.file_store.toml import TOMLDocumentStore
from mcpd_config.application.ports import REGULAR_DIR_MODE, REGULAR_FILE_MODE, SECURE_DIR_MODE, SECURE_FILE_MODE
from mcpd_config.domain.errors import InvalidFormat, NotFound


def test_write_creates_parents_and_round_trips(tmp_path: Path) -> None:
    store = TOMLDocumentStore()
    target = tmp_path / "a" / "b" / ".mcpd.toml"
    payload = {"servers": [{"name": "time", "package": "uvx::time"}], "daemon": {"api": {"addr": "localhost:8090"}}}
    store.write(target, payload, mode=REGULAR_FILE_MODE, dir_mode=REGULAR_DIR_MODE)
    assert store.exists(target)
    assert store.read(target) == payload


def test_secure_write_sets_private_modes(tmp_path: Path) -> None:
    store = TOMLDocumentStore()
    target = tmp_path / "private" / "secrets.dev.toml"
    store.write(target, {"servers": {}}, mode=SECURE_FILE_MODE, dir_mode=SECURE_DIR_MODE)
    assert stat.S_IMODE(target.stat().st_mode) == 0o600
    assert stat.S_IMODE(target.parent.stat().st_mode) == 0o700


def test_write_replaces_without_leaving_temporary_files(tmp_path: Path) -> None:
    store = TOMLDocumentStore()
    target = tmp_path / ".mcpd.toml"
    target.write_text("servers = []\n", encoding="utf-8")
    store.write(target, {"servers": [{"name": "x", "package": "y"}]}, mode=REGULAR_FILE_MODE, dir_mode=REGULAR_DIR_MODE)
    assert [path.name for path in tmp_path.iterdir()] == [".mcpd.toml"]
    assert store.read(target)["servers"][0]["name"] == "x"


def test_read_missing_file_is_not_found(tmp_path: Path) -> None:
    with pytest.raises(NotFound):
        TOMLDocumentStore().read(tmp_path / "absent.toml")


def test_read_invalid_toml_is_invalid_format(tmp_path: Path) -> None:
    target = tmp_path / "broken.toml"
    target.write_text("servers = [\n", encoding="utf-8")
    with pytest.raises(InvalidFormat, match="could not be parsed"):
        TOMLDocumentStore().read(target)
