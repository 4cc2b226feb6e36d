"""Filesystem path resolution for the contract and context documents.

Purpose
-------
Encapsulate the platform conventions that decide where ``.mcpd.toml`` and the
execution context live when the operator does not name them explicitly.

Contents
--------
* :class:`DefaultPathResolver` – resolves both document paths.
* :func:`default_env_prefix` – environment prefix derivation (``mcpd`` → ``MCPD``).

System Role
-----------
Consulted once at CLI start-up by :func:`mcpd_config.core.resolve_paths`. The
resolver accepts injected environment, platform and working directory values so
tests stay deterministic.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Final, Mapping

from ...observability import log_debug

CONTRACT_FILENAME: Final[str] = ".mcpd.toml"
CONTEXT_FILENAME: Final[str] = "secrets.dev.toml"
APP_DIRECTORY: Final[str] = "mcpd"


def default_env_prefix(slug: str) -> str:
    """Return the canonical environment prefix for *slug*.

    Examples
    --------
    >>> default_env_prefix('mcpd')
    'MCPD'
    >>> default_env_prefix('mcpd-config')
    'MCPD_CONFIG'
    """

    return slug.replace("-", "_").upper()


class DefaultPathResolver:
    """Resolve default document locations.

    Why
    ----
    Keep platform branching in one place so the CLI and the composition root
    stay platform-agnostic.

    Parameters
    ----------
    cwd:
        Working directory used for the project contract.
    env:
        Environment mapping overriding ``os.environ`` values.
    platform:
        ``sys.platform`` clone; defaults to the running interpreter's value.

    Examples
    --------
    >>> resolver = DefaultPathResolver(cwd=Path('/work'), env={'XDG_CONFIG_HOME': '/cfg'}, platform='linux')
    >>> resolver.contract().as_posix()
    '/work/.mcpd.toml'
    >>> resolver.context().as_posix()
    '/cfg/mcpd/secrets.dev.toml'
    """

    def __init__(
        self,
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        platform: str | None = None,
    ) -> None:
        self.cwd = cwd or Path.cwd()
        self.env = dict(os.environ) if env is None else dict(env)
        self.platform = platform or sys.platform

    @property
    def _is_windows(self) -> bool:
        return self.platform.startswith("win")

    def contract(self) -> Path:
        """Return the project contract path (``<cwd>/.mcpd.toml``)."""

        return self.cwd / CONTRACT_FILENAME

    def context(self) -> Path:
        """Return the execution context path for the current platform."""

        if self._is_windows:
            appdata = self.env.get("APPDATA")
            base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
        else:
            xdg = self.env.get("XDG_CONFIG_HOME")
            base = Path(xdg) if xdg else Path.home() / ".config"
        path = base / APP_DIRECTORY / CONTEXT_FILENAME
        log_debug("path_candidate", document="context", path=str(path), platform=self.platform)
        return path
