"""TOML document store.

Purpose
-------
Read configuration documents with ``tomllib`` and write them back with
``tomli_w`` through a temporary file that atomically replaces the target, so an
interrupted save never leaves a truncated document behind.

Contents
--------
* :class:`TOMLDocumentStore` – implementation of
  :class:`mcpd_config.application.ports.DocumentStore`.

System Role
-----------
The only component that performs TOML I/O. Used by the loader pipeline and the
export engine via :mod:`mcpd_config.core`.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Mapping

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[assignment]

import tomli_w

from ...domain.errors import InvalidFormat, IOFailure, NotFound
from ...observability import log_debug, log_error


class TOMLDocumentStore:
    """Parse and persist TOML documents.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> from mcpd_config.application.ports import REGULAR_DIR_MODE, REGULAR_FILE_MODE
    >>> store = TOMLDocumentStore()
    >>> target = Path(tmp.name) / "nested" / ".mcpd.toml"
    >>> store.write(target, {"servers": []}, mode=REGULAR_FILE_MODE, dir_mode=REGULAR_DIR_MODE)
    >>> dict(store.read(target))
    {'servers': []}
    >>> tmp.cleanup()
    """

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def read(self, path: Path) -> Mapping[str, Any]:
        """Return the parsed mapping stored at *path*.

        Raises
        ------
        NotFound
            When *path* does not exist.
        InvalidFormat
            When the file is not valid UTF-8 TOML.
        """

        if not path.is_file():
            raise NotFound(f"configuration file not found: {path}")
        try:
            payload = path.read_bytes()
        except OSError as exc:
            raise IOFailure(f"could not read '{path}': {exc}") from exc
        log_debug("config_file_read", path=str(path), size=len(payload))
        try:
            return tomllib.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
            log_error("config_file_invalid", path=str(path), error=str(exc))
            raise InvalidFormat(f"file '{path}' could not be parsed: {exc}") from exc

    def write(self, path: Path, data: Mapping[str, Any], *, mode: int, dir_mode: int) -> None:
        """Atomically replace *path* with the TOML rendering of *data*.

        The parent directory is created with *dir_mode* when missing; the file is
        written to a sibling temporary file, chmod-ed to *mode*, and renamed over
        the target.
        """

        rendered = tomli_w.dumps(dict(data)).encode("utf-8")
        directory = path.parent
        try:
            directory.mkdir(mode=dir_mode, parents=True, exist_ok=True)
            descriptor, temporary = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
        except OSError as exc:
            raise IOFailure(f"could not prepare '{path}': {exc}") from exc
        try:
            with os.fdopen(descriptor, "wb") as handle:
                handle.write(rendered)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(temporary, mode)
            os.replace(temporary, path)
        except OSError as exc:
            Path(temporary).unlink(missing_ok=True)
            raise IOFailure(f"could not write '{path}': {exc}") from exc
        log_debug("config_file_written", path=str(path), size=len(rendered), mode=oct(mode))
