"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts the loader pipeline and the export engine rely
on, so the composition root can swap filesystem adapters for in-memory fakes.

Contents
--------
* :class:`DocumentStore` – reads and atomically writes raw document mappings.
* :class:`Loader` – returns a mutable :class:`Document` for a path.
* :class:`DocumentCheck` – load-time check applied by the validating loader.
* :class:`EnvContractWriter` – renders the placeholder environment contract.

System Role
-----------
These protocols keep the application layer independent of TOML and file-mode
details. Each adapter implements one protocol.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Final, Mapping, Protocol

from ..domain.document import Document, DocumentKind

#: Execution contexts may hold secrets and stay private to the operator.
SECURE_FILE_MODE: Final[int] = 0o600
SECURE_DIR_MODE: Final[int] = 0o700
#: Contracts and exported artefacts are meant to be shared.
REGULAR_FILE_MODE: Final[int] = 0o644
REGULAR_DIR_MODE: Final[int] = 0o755


class DocumentStore(Protocol):
    """Persist raw mappings for one document format."""

    def exists(self, path: Path) -> bool:
        """Return ``True`` when *path* already holds a document."""

    def read(self, path: Path) -> Mapping[str, Any]:
        """Parse *path* or raise ``NotFound`` / ``InvalidFormat``."""

    def write(self, path: Path, data: Mapping[str, Any], *, mode: int, dir_mode: int) -> None:
        """Atomically replace *path* with *data* using the given permissions."""


class Loader(Protocol):
    """Materialise a document of a given kind from a path."""

    def load(self, path: Path, kind: DocumentKind) -> Document:
        """Return the document stored at *path* (empty when the file is missing)."""


class DocumentCheck(Protocol):
    """Validate a freshly loaded document.

    Checks return human-readable problems instead of raising so several checks
    can be combined into one composite error.
    """

    def __call__(self, document: Document) -> list[str]:
        ...


class EnvContractWriter(Protocol):
    """Write a flat ``KEY=value`` mapping to disk."""

    def write(self, path: Path, values: Mapping[str, str]) -> None:
        """Persist *values* to *path* with keys in ascending order."""
