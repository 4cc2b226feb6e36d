"""`.env` writer for the environment contract.

Purpose
-------
Render a flat mapping as ``KEY=value`` lines with keys in ascending lexical
order and embedded newlines escaped, so the file diff stays stable between
exports.

Contents
--------
* :class:`DotEnvWriter` – implementation of
  :class:`mcpd_config.application.ports.EnvContractWriter`.
* :func:`render_dotenv` – pure rendering helper.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Mapping

from ...domain.errors import IOFailure
from ...observability import log_debug
from ...application.ports import REGULAR_DIR_MODE, REGULAR_FILE_MODE


def render_dotenv(values: Mapping[str, str]) -> str:
    """Return the dotenv text for *values*.

    Examples
    --------
    >>> render_dotenv({"B": "", "A": "line1\\nline2"})
    'A=line1\\\\nline2\\nB=\\n'
    """

    lines = [f"{key}={_escape(values[key])}" for key in sorted(values)]
    return "".join(f"{line}\n" for line in lines)


def _escape(value: str) -> str:
    return value.replace("\r\n", "\\n").replace("\n", "\\n")


class DotEnvWriter:
    """Write dotenv files atomically with world-readable permissions."""

    def __init__(self, *, mode: int = REGULAR_FILE_MODE, dir_mode: int = REGULAR_DIR_MODE) -> None:
        self._mode = mode
        self._dir_mode = dir_mode

    def write(self, path: Path, values: Mapping[str, str]) -> None:
        rendered = render_dotenv(values).encode("utf-8")
        try:
            path.parent.mkdir(mode=self._dir_mode, parents=True, exist_ok=True)
            descriptor, temporary = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        except OSError as exc:
            raise IOFailure(f"could not prepare '{path}': {exc}") from exc
        try:
            with os.fdopen(descriptor, "wb") as handle:
                handle.write(rendered)
            os.chmod(temporary, self._mode)
            os.replace(temporary, path)
        except OSError as exc:
            Path(temporary).unlink(missing_ok=True)
            raise IOFailure(f"could not write '{path}': {exc}") from exc
        log_debug("dotenv_written", path=str(path), keys=len(values))
