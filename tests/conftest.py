from __future__ import annotations

from pathlib import Path

import lib_cli_exit_tools
import pytest

from tests.support import ConfigSandbox, create_config_sandbox


@pytest.fixture
def sandbox(tmp_path: Path) -> ConfigSandbox:
    """Return a fresh contract/context sandbox below ``tmp_path``."""

    return create_config_sandbox(tmp_path)


@pytest.fixture(autouse=True)
def _restore_traceback_config():
    """Keep ``--traceback`` from leaking between CLI tests."""

    previous = lib_cli_exit_tools.config.traceback
    previous_color = lib_cli_exit_tools.config.traceback_force_color
    yield
    lib_cli_exit_tools.config.traceback = previous
    lib_cli_exit_tools.config.traceback_force_color = previous_color
