"""Composition root for ``mcpd_config``.

Purpose
-------
Wire the filesystem adapters to the loader pipeline and export engine, and
derive the process-wide document locations once at start-up. Commands and
library consumers go through the helpers below instead of instantiating
adapters themselves.

Contents
--------
* :class:`ConfigPaths` – resolved contract and context locations.
* :func:`resolve_paths` – flag > environment > platform default precedence.
* :func:`build_loader` – loader optionally decorated with load-time checks.
* :func:`load_or_init` / :func:`save_document` – the load and save halves of a
  command cycle.
* :func:`export_config` – run the export engine against both documents.

System Role
-----------
The canonical place for changing precedence rules or swapping adapters.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final, Mapping, Sequence

from .adapters.dotenv.writer import DotEnvWriter
from .adapters.file_store.toml import TOMLDocumentStore
from .adapters.path_resolvers.default import DefaultPathResolver, default_env_prefix
from .application.export import ExportArtefacts, ExportEngine, ExportFormat
from .application.loader import DocumentLoader, ValidatingLoader
from .application.ports import DocumentCheck, Loader
from .domain.document import Document, DocumentKind
from .observability import log_debug

APP_SLUG: Final[str] = "mcpd"
ENV_PREFIX: Final[str] = default_env_prefix(APP_SLUG)
CONFIG_FILE_ENV: Final[str] = f"{ENV_PREFIX}_CONFIG_FILE"
RUNTIME_FILE_ENV: Final[str] = f"{ENV_PREFIX}_RUNTIME_FILE"

_STORE = TOMLDocumentStore()


@dataclass(frozen=True)
class ConfigPaths:
    """Locations of the project contract and the execution context."""

    contract: Path
    context: Path


def resolve_paths(
    *,
    config_file: str | Path | None = None,
    runtime_file: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    platform: str | None = None,
) -> ConfigPaths:
    """Return the document paths honouring flag, environment and default precedence.

    Examples
    --------
    >>> paths = resolve_paths(env={"MCPD_RUNTIME_FILE": "/tmp/ctx.toml"}, cwd=Path("/work"), platform="linux")
    >>> paths.contract.as_posix(), paths.context.as_posix()
    ('/work/.mcpd.toml', '/tmp/ctx.toml')
    >>> resolve_paths(config_file="custom.toml", env={}, cwd=Path("/work")).contract.as_posix()
    'custom.toml'
    """

    resolver = DefaultPathResolver(cwd=cwd, env=env, platform=platform)
    contract = _first_path(config_file, resolver.env.get(CONFIG_FILE_ENV)) or resolver.contract()
    context = _first_path(runtime_file, resolver.env.get(RUNTIME_FILE_ENV)) or resolver.context()
    log_debug("paths_resolved", contract=str(contract), context=str(context))
    return ConfigPaths(contract=contract, context=context)


def _first_path(*candidates: str | Path | None) -> Path | None:
    for candidate in candidates:
        if candidate is not None and str(candidate).strip():
            return Path(str(candidate).strip()).expanduser()
    return None


def document_loader() -> DocumentLoader:
    return DocumentLoader(_STORE)


def build_loader(checks: Sequence[DocumentCheck] = ()) -> Loader:
    """Return the default loader, wrapped in :class:`ValidatingLoader` when *checks* are given."""

    loader: Loader = document_loader()
    if checks:
        loader = ValidatingLoader(loader, *checks)
    return loader


def load_or_init(path: Path, kind: DocumentKind, *, checks: Sequence[DocumentCheck] = ()) -> Document:
    """Load the document at *path* or return an empty one without touching disk."""

    return build_loader(checks).load(path, kind)


def save_document(document: Document) -> Path:
    """Validate and atomically persist *document* to its own path."""

    return document_loader().save(document)


def export_config(
    paths: ConfigPaths,
    *,
    context_output: Path,
    contract_output: Path,
    fmt: ExportFormat = ExportFormat.DOTENV,
) -> ExportArtefacts:
    """Export the portable context and environment contract for *paths*."""

    contract = load_or_init(paths.contract, DocumentKind.CONTRACT)
    context = load_or_init(paths.context, DocumentKind.CONTEXT)
    engine = ExportEngine(document_loader(), DotEnvWriter())
    return engine.export(contract, context, context_output=context_output, contract_output=contract_output, fmt=fmt)


__all__ = [
    "APP_SLUG",
    "CONFIG_FILE_ENV",
    "RUNTIME_FILE_ENV",
    "ConfigPaths",
    "build_loader",
    "default_env_prefix",
    "document_loader",
    "export_config",
    "load_or_init",
    "resolve_paths",
    "save_document",
]
