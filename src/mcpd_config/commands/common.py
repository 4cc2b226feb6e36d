"""Helpers shared by the ``mcpd config`` command groups.

Purpose
-------
Keep the command modules thin: resolve document paths from the Click context,
convert domain errors into Click errors with operator context, and run the
load, mutate, save cycle uniformly.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import rich_click as click

from ..core import ConfigPaths, load_or_init, resolve_paths, save_document
from ..domain.document import Document, DocumentKind
from ..domain.errors import ConfigError, InvalidValue
from ..domain.results import OperationResult

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@contextmanager
def config_errors(action: str | None = None) -> Iterator[None]:
    """Re-raise :class:`ConfigError` as :class:`click.ClickException`, prefixed by *action*."""

    try:
        yield
    except ConfigError as exc:
        message = f"{action}: {exc}" if action else str(exc)
        raise click.ClickException(message) from exc


def paths_from(ctx: click.Context) -> ConfigPaths:
    """Return the document paths stored on the root context (resolved lazily)."""

    root = ctx.find_root()
    root.ensure_object(dict)
    paths = root.obj.get("paths")
    if paths is None:
        paths = resolve_paths(config_file=root.obj.get("config_file"), runtime_file=root.obj.get("runtime_file"))
        root.obj["paths"] = paths
    return paths


def load_contract(ctx: click.Context) -> Document:
    with config_errors("failed to load config"):
        return load_or_init(paths_from(ctx).contract, DocumentKind.CONTRACT)


def load_context(ctx: click.Context) -> Document:
    with config_errors("failed to load execution context config"):
        return load_or_init(paths_from(ctx).context, DocumentKind.CONTEXT)


def save(document: Document) -> Path:
    with config_errors("failed to save config"):
        return save_document(document)


def save_if_changed(document: Document, result: OperationResult) -> None:
    """Persist *document* only when *result* reports a change."""

    if result.changed:
        save(document)


def split_key_value(text: str, *, hint: str = "expected key=value") -> tuple[str, str]:
    """Split ``KEY=VALUE`` on the first ``=``, trimming both halves.

    Examples
    --------
    >>> split_key_value("api.addr = localhost:8090")
    ('api.addr', 'localhost:8090')
    """

    if "=" not in text:
        raise InvalidValue(f"invalid format, {hint}: {text}", value=text)
    key, _, value = text.partition("=")
    key = key.strip()
    if not key:
        raise InvalidValue(f"invalid format, {hint}: {text}", value=text)
    return key, value.strip()
