"""Shared sandbox helpers for the mcpd configuration test-suite.

A sandbox pins the project contract and the execution context to files below
``tmp_path`` and offers a CLI invoker that always passes ``--config-file`` and
``--runtime-file`` so no test ever touches the real user configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[assignment]

from click.testing import CliRunner, Result

from mcpd_config import cli


@dataclass
class ConfigSandbox:
    """Filesystem layout for one test: a project directory plus a private context file."""

    root: Path
    contract: Path
    context: Path

    def write_contract(self, body: str) -> Path:
        self.contract.parent.mkdir(parents=True, exist_ok=True)
        self.contract.write_text(body, encoding="utf-8")
        return self.contract

    def write_context(self, body: str) -> Path:
        self.context.parent.mkdir(parents=True, exist_ok=True)
        self.context.write_text(body, encoding="utf-8")
        return self.context

    def read_contract(self) -> dict[str, Any]:
        return tomllib.loads(self.contract.read_text(encoding="utf-8"))

    def read_context(self) -> dict[str, Any]:
        return tomllib.loads(self.context.read_text(encoding="utf-8"))

    def invoke(self, *args: str) -> Result:
        """Run ``mcpd`` with the sandbox file locations prepended."""

        argv = ["--config-file", str(self.contract), "--runtime-file", str(self.context), *args]
        return CliRunner().invoke(cli.cli, argv, catch_exceptions=False)


def create_config_sandbox(tmp_path: Path) -> ConfigSandbox:
    project = tmp_path / "project"
    project.mkdir()
    return ConfigSandbox(
        root=tmp_path,
        contract=project / ".mcpd.toml",
        context=tmp_path / "home" / ".config" / "mcpd" / "secrets.dev.toml",
    )
