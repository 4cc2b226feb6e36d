"""Loader pipeline turning files into documents and back.

Purpose
-------
Provide the load-or-initialise and validate-then-save cycle every command
follows, plus an opt-in decorator that applies extra checks at load time.

Contents
--------
* :class:`DocumentLoader` – loads (or initialises) and saves documents.
* :class:`ValidatingLoader` – decorator running :class:`DocumentCheck` callables.
* :func:`validate_schema` – structural validation of servers, daemon, plugins.
* :func:`plugin_directory_error` – checks that ``plugins.dir`` is usable.
* :func:`validate_plugin_binaries` – checks that plugin binaries exist on disk.

System Role
-----------
Sits between the TOML store adapter and the CLI commands. Missing files yield
empty documents in memory; nothing is written until :meth:`DocumentLoader.save`
succeeds with a document that passed validation.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from ..domain.document import Document, DocumentKind
from ..domain.errors import InvalidFormat, InvalidPath, InvalidValue, ValidationError
from ..observability import log_debug, log_error, log_info, make_event
from .ports import (
    REGULAR_DIR_MODE,
    REGULAR_FILE_MODE,
    SECURE_DIR_MODE,
    SECURE_FILE_MODE,
    DocumentCheck,
    DocumentStore,
    Loader,
)


class DocumentLoader:
    """Load and persist documents through a :class:`DocumentStore`.

    Why
    ----
    Commands should not care whether a file exists yet; a missing document is an
    empty one that only reaches disk on the first successful save.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> from mcpd_config.adapters.file_store.toml import TOMLDocumentStore
    >>> tmp = TemporaryDirectory()
    >>> loader = DocumentLoader(TOMLDocumentStore())
    >>> doc = loader.load(Path(tmp.name) / '.mcpd.toml', DocumentKind.CONTRACT)
    >>> doc.servers
    []
    >>> (Path(tmp.name) / '.mcpd.toml').exists()
    False
    >>> tmp.cleanup()
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def load(self, path: Path, kind: DocumentKind) -> Document:
        if not self._store.exists(path):
            log_debug("document_initialised", **make_event(kind.value, str(path)))
            return Document(kind, path=path)
        data = self._store.read(path)
        try:
            document = Document.from_mapping(data, kind, path=path)
        except (InvalidValue, InvalidPath, InvalidFormat) as exc:
            log_error("document_invalid", **make_event(kind.value, str(path), {"error": str(exc)}))
            raise InvalidFormat(f"file '{path}' could not be parsed: {exc}") from exc
        log_debug("document_loaded", **make_event(kind.value, str(path), {"servers": len(document.servers)}))
        return document

    def save(self, document: Document, *, path: Path | None = None, secure: bool | None = None) -> Path:
        """Validate *document* and atomically write it.

        Parameters
        ----------
        path:
            Destination override; defaults to the path the document came from.
        secure:
            Force ``0600``/``0700`` permissions (``True``) or ``0644``/``0755``
            (``False``). Defaults to secure for context documents.

        Returns
        -------
        Path
            The path that was written.
        """

        target = path or document.path
        if target is None:
            raise InvalidValue("config file path not present")
        document.validate()
        if secure is None:
            secure = document.kind is DocumentKind.CONTEXT
        mode, dir_mode = (SECURE_FILE_MODE, SECURE_DIR_MODE) if secure else (REGULAR_FILE_MODE, REGULAR_DIR_MODE)
        self._store.write(target, document.to_mapping(), mode=mode, dir_mode=dir_mode)
        log_info("document_saved", **make_event(document.kind.value, str(target), {"servers": len(document.servers)}))
        return target

    def exists(self, path: Path) -> bool:
        return self._store.exists(path)


class ValidatingLoader:
    """Decorate a :class:`Loader` with load-time checks.

    All checks run; their messages are combined into one
    :class:`ValidationError` so operators see every problem at once.
    """

    def __init__(self, inner: Loader, *checks: DocumentCheck) -> None:
        self._inner = inner
        self._checks: Sequence[DocumentCheck] = checks

    def load(self, path: Path, kind: DocumentKind) -> Document:
        document = self._inner.load(path, kind)
        errors: list[str] = []
        for check in self._checks:
            errors.extend(check(document))
        if errors:
            log_error("document_checks_failed", **make_event(kind.value, str(path), {"errors": len(errors)}))
            raise ValidationError(errors)
        return document


def validate_schema(document: Document) -> list[str]:
    """Return structural problems found in *document*."""

    return document.validation_errors()


def plugin_directory_error(document: Document) -> str | None:
    """Return why ``plugins.dir`` cannot be searched for binaries, or ``None``."""

    catalogue = document.plugins
    if catalogue is None or not (catalogue.dir or "").strip():
        return "Plugin directory not configured (required for --check-binaries)"
    if not Path(catalogue.dir).is_dir():
        return f"Plugin directory does not exist: {catalogue.dir}"
    return None


def validate_plugin_binaries(document: Document) -> list[str]:
    """Require ``plugins.dir`` to exist and hold a file for every configured plugin."""

    catalogue = document.plugins
    if catalogue is None or catalogue.is_empty:
        return []
    problem = plugin_directory_error(document)
    if problem is not None:
        return [problem]
    directory = Path(catalogue.dir)  # type: ignore[arg-type]
    return [
        f"plugin {name} not found in directory {directory}"
        for name in sorted(catalogue.distinct_names())
        if not (directory / name).is_file()
    ]
